import logging

from fastapi import APIRouter, Depends, File, Query, UploadFile

from assessor.dependencies import get_blob_store, get_record_store, get_workflow
from assessor.schemas.assessment import Failed, Pending
from assessor.schemas.upload import UploadRecord, UploadReport
from assessor.services.blob_store import BlobStore
from assessor.services.record_store import DEFAULT_LIST_LIMIT, RecordStore
from assessor.services.upload_workflow import UploadWorkflow
from assessor.utils.exceptions import InvalidInput, NotFound
from assessor.utils.response import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])

NO_ASSESSMENT_MESSAGE = "Assessment data not available for this upload."


def report_message(record: UploadRecord) -> str | None:
    outcome = record.outcome
    if isinstance(outcome, Failed):
        return f"Assessment unavailable: {outcome.reason}"
    if isinstance(outcome, Pending):
        return NO_ASSESSMENT_MESSAGE
    return None


async def _get_or_404(record_store: RecordStore | None, upload_id: str) -> UploadRecord:
    record = await record_store.get(upload_id) if record_store is not None else None
    if record is None:
        raise NotFound("Upload not found")
    return record


@router.post("", status_code=201)
async def submit_upload(
    file: UploadFile | None = File(None),
    workflow: UploadWorkflow = Depends(get_workflow),
):
    if file is None:
        raise InvalidInput("No file provided")

    content_type = file.content_type or ""
    # Reject oversized or wrong-type files before pulling the body into memory.
    if file.size is not None:
        workflow.validate(content_type, file.size)

    content = await file.read()
    result = await workflow.submit(
        content,
        content_type=content_type,
        filename=file.filename or "",
        size=len(content),
    )
    return success_response(data=result.receipt.model_dump())


@router.get("")
async def list_uploads(
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=DEFAULT_LIST_LIMIT),
    record_store: RecordStore | None = Depends(get_record_store),
):
    if record_store is None:
        return success_response(data=[])
    records = await record_store.list_recent(limit)
    return success_response(data=[r.model_dump(mode="json") for r in records])


@router.get("/{upload_id}")
async def get_upload(
    upload_id: str,
    record_store: RecordStore | None = Depends(get_record_store),
):
    record = await _get_or_404(record_store, upload_id)
    return success_response(data=record.model_dump(mode="json"))


@router.get("/{upload_id}/report")
async def get_upload_report(
    upload_id: str,
    record_store: RecordStore | None = Depends(get_record_store),
    blob_store: BlobStore | None = Depends(get_blob_store),
):
    record = await _get_or_404(record_store, upload_id)

    image_url = None
    if blob_store is not None:
        try:
            image_url = blob_store.presigned_url(record.storage_bucket, record.storage_key)
        except Exception:
            logger.exception("Could not sign image URL for upload %s", upload_id)

    report = UploadReport(
        record=record,
        outcome=record.outcome,
        message=report_message(record),
        image_url=image_url,
    )
    return success_response(data=report.model_dump(mode="json"))
