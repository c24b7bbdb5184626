"""Object storage for uploaded images: Amazon S3, or a local directory for development."""
import logging
from pathlib import Path
from typing import Protocol

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

PRESIGNED_URL_TTL_SECONDS = 3600


class BlobStore(Protocol):
    bucket: str

    def put(self, key: str, data: bytes, content_type: str) -> None: ...

    def presigned_url(self, bucket: str, key: str, expires_in: int = PRESIGNED_URL_TTL_SECONDS) -> str: ...


class S3BlobStore:
    def __init__(self, bucket: str, region: str, client=None):
        self.bucket = bucket
        self.region = region
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            config=Config(signature_version="s3v4", retries={"max_attempts": 3, "mode": "standard"}),
        )

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise OSError(f"S3 upload failed for s3://{self.bucket}/{key}: {e}") from e
        logger.info("Stored %d bytes at s3://%s/%s", len(data), self.bucket, key)

    def presigned_url(self, bucket: str, key: str, expires_in: int = PRESIGNED_URL_TTL_SECONDS) -> str:
        """Signs a GET for the object wherever it was written, not the current bucket."""
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_in,
        )


class LocalBlobStore:
    """Writes blobs under <root>/<bucket>/<key>."""

    def __init__(self, bucket: str, root: str):
        self.bucket = bucket
        self.root = Path(root)

    def _path(self, bucket: str, key: str) -> Path:
        base = (self.root / bucket).resolve()
        path = (base / key).resolve()
        if not path.is_relative_to(base):
            raise ValueError(f"Blob key escapes the storage root: {key!r}")
        return path

    def put(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(self.bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored %d bytes (%s) at %s", len(data), content_type, path)

    def presigned_url(self, bucket: str, key: str, expires_in: int = PRESIGNED_URL_TTL_SECONDS) -> str:
        return self._path(bucket, key).as_uri()
