"""Upload-and-assess workflow.

Three ordered steps:

1. store the image in the blob store (required: failure aborts the upload),
2. ask the inference client for an assessment (advisory: failure is recorded),
3. write the upload record (advisory: failure is logged).

Once step 1 succeeds the upload id is issued and the caller gets a success
result, whatever happens in steps 2 and 3.
"""
import asyncio
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from assessor.schemas.assessment import Assessed, AssessmentOutcome, Failed
from assessor.schemas.upload import UploadReceipt, UploadRecord
from assessor.services.blob_store import BlobStore
from assessor.services.inference import DamageAssessor
from assessor.services.record_store import RecordStore
from assessor.utils.exceptions import (
    AssessmentFailure,
    BlobWriteFailure,
    ConfigurationError,
    IndexWriteFailure,
    InvalidInput,
)

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
ALLOWED_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/heic",
    "image/heif",
})
DEFAULT_EXTENSION = "jpg"
_EXTENSION_RE = re.compile(r"[A-Za-z0-9]{1,10}")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _mask_secrets(message: str) -> str:
    return re.sub(r"sk-[A-Za-z0-9_-]+", "sk-***", message)


def _failure_reason(error: Exception) -> str:
    return _mask_secrets(str(error)).strip() or "Assessment failed"


def storage_key_for(upload_id: str, filename: str) -> str:
    _, dot, ext = filename.rpartition(".")
    if not dot or not _EXTENSION_RE.fullmatch(ext):
        ext = DEFAULT_EXTENSION
    return f"uploads/{upload_id}.{ext}"


@dataclass
class SubmitResult:
    receipt: UploadReceipt
    outcome: AssessmentOutcome
    indexed: bool


class UploadWorkflow:
    def __init__(
        self,
        blob_store: BlobStore | None,
        record_store: RecordStore | None,
        assessor: DamageAssessor,
        max_file_size: int = MAX_FILE_SIZE,
    ):
        self.blob_store = blob_store
        self.record_store = record_store
        self.assessor = assessor
        self.max_file_size = max_file_size

    def validate(self, content_type: str, size: int) -> None:
        if content_type not in ALLOWED_TYPES:
            raise InvalidInput("Invalid file type. Allowed types: JPEG, PNG, GIF, WebP, HEIC, HEIF")
        if size > self.max_file_size:
            raise InvalidInput(
                f"File too large. Maximum size is {self.max_file_size // (1024 * 1024)}MB"
            )
        if self.blob_store is None:
            raise ConfigurationError("Storage bucket not configured")
        if self.record_store is None:
            raise ConfigurationError("Upload records table not configured")

    async def submit(self, data: bytes, content_type: str, filename: str, size: int) -> SubmitResult:
        self.validate(content_type, size)

        upload_id = str(uuid.uuid4())
        key = storage_key_for(upload_id, filename)

        # Step 1: store the image
        try:
            await asyncio.to_thread(self.blob_store.put, key, data, content_type)
        except Exception as e:
            logger.exception("Blob write failed for upload %s", upload_id)
            raise BlobWriteFailure() from e
        uploaded_at = _now()
        logger.info("Upload %s stored at %s/%s", upload_id, self.blob_store.bucket, key)

        # Step 2: assessment (advisory)
        outcome = await self._assess(upload_id, data, content_type)

        # Step 3: upload record (advisory)
        record = UploadRecord.create(
            upload_id=upload_id,
            filename=filename,
            content_type=content_type,
            file_size=size,
            storage_key=key,
            storage_bucket=self.blob_store.bucket,
            uploaded_at=uploaded_at,
            outcome=outcome,
        )
        indexed = await self._index(record)

        receipt = UploadReceipt(
            upload_id=upload_id,
            key=key,
            filename=filename,
            size=size,
            content_type=content_type,
        )
        return SubmitResult(receipt=receipt, outcome=outcome, indexed=indexed)

    async def _assess(self, upload_id: str, data: bytes, content_type: str) -> AssessmentOutcome:
        try:
            assessment = await self.assessor.assess(data, content_type)
        except AssessmentFailure as e:
            logger.warning("Assessment failed for upload %s (upload succeeded): %s", upload_id, e)
            return Failed(reason=_failure_reason(e))
        except Exception as e:
            logger.exception("Unexpected assessment error for upload %s", upload_id)
            return Failed(reason=_failure_reason(e))
        logger.info("Assessment completed for upload %s", upload_id)
        return Assessed(assessment=assessment, assessed_at=_now())

    async def _index(self, record: UploadRecord) -> bool:
        try:
            await self.record_store.put(record)
        except IndexWriteFailure:
            logger.exception("Upload record write failed for %s", record.upload_id)
            return False
        except Exception:
            logger.exception("Unexpected error writing upload record %s", record.upload_id)
            return False
        return True
