from functools import lru_cache

from fastapi import Depends

from assessor.config import settings
from assessor.database import async_session
from assessor.services.blob_store import BlobStore, LocalBlobStore, S3BlobStore
from assessor.services.inference import DamageAssessor
from assessor.services.record_store import RecordStore, SqlRecordStore
from assessor.services.upload_workflow import UploadWorkflow


@lru_cache
def _build_blob_store(backend: str, bucket: str, region: str, local_root: str) -> BlobStore:
    if backend == "local":
        return LocalBlobStore(bucket, local_root)
    return S3BlobStore(bucket, region)


def get_blob_store() -> BlobStore | None:
    if not settings.storage_bucket:
        return None
    return _build_blob_store(
        settings.storage_backend,
        settings.storage_bucket,
        settings.aws_region,
        settings.local_storage_root,
    )


def get_record_store() -> RecordStore | None:
    if not settings.uploads_table_name:
        return None
    return SqlRecordStore(async_session)


def get_assessor() -> DamageAssessor:
    return DamageAssessor(
        model=settings.openai_model,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
    )


def get_workflow(
    blob_store: BlobStore | None = Depends(get_blob_store),
    record_store: RecordStore | None = Depends(get_record_store),
    assessor: DamageAssessor = Depends(get_assessor),
) -> UploadWorkflow:
    return UploadWorkflow(
        blob_store,
        record_store,
        assessor,
        max_file_size=settings.max_upload_size_bytes,
    )
