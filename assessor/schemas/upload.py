from pydantic import BaseModel, model_validator

from assessor.schemas.assessment import Assessed, AssessmentOutcome, DamageAssessment, Failed, Pending


class UploadRecord(BaseModel):
    upload_id: str
    filename: str
    content_type: str
    file_size: int
    storage_key: str
    storage_bucket: str
    uploaded_at: str
    assessment: DamageAssessment | None = None
    assessed_at: str | None = None
    assessment_error: str | None = None

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def check_outcome_fields(self) -> "UploadRecord":
        if self.assessment is not None and self.assessment_error is not None:
            raise ValueError("a record cannot hold both an assessment and an assessment error")
        if (self.assessment is None) != (self.assessed_at is None):
            raise ValueError("assessed_at must be set exactly when assessment is set")
        return self

    @classmethod
    def create(
        cls,
        *,
        upload_id: str,
        filename: str,
        content_type: str,
        file_size: int,
        storage_key: str,
        storage_bucket: str,
        uploaded_at: str,
        outcome: AssessmentOutcome,
    ) -> "UploadRecord":
        fields: dict = {}
        if isinstance(outcome, Assessed):
            fields = {"assessment": outcome.assessment, "assessed_at": outcome.assessed_at}
        elif isinstance(outcome, Failed):
            fields = {"assessment_error": outcome.reason}
        return cls(
            upload_id=upload_id,
            filename=filename,
            content_type=content_type,
            file_size=file_size,
            storage_key=storage_key,
            storage_bucket=storage_bucket,
            uploaded_at=uploaded_at,
            **fields,
        )

    @property
    def outcome(self) -> AssessmentOutcome:
        if self.assessment is not None:
            return Assessed(assessment=self.assessment, assessed_at=self.assessed_at)
        if self.assessment_error:
            return Failed(reason=self.assessment_error)
        return Pending()


class UploadReceipt(BaseModel):
    """What the caller gets back once the blob is stored."""

    upload_id: str
    key: str
    filename: str
    size: int
    content_type: str


class UploadReport(BaseModel):
    record: UploadRecord
    outcome: AssessmentOutcome
    message: str | None = None
    image_url: str | None = None
