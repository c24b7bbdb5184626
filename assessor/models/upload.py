from sqlalchemy import JSON, Column, Integer, String

from assessor.config import settings
from assessor.database import Base


class UploadRecordRow(Base):
    # Table name is fixed at import time from UPLOADS_TABLE_NAME.
    __tablename__ = settings.uploads_table_name or "upload_records"

    upload_id = Column(String, primary_key=True)
    filename = Column(String, nullable=False)
    content_type = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    storage_key = Column(String, nullable=False)
    storage_bucket = Column(String, nullable=False)
    uploaded_at = Column(String, nullable=False)
    assessment = Column(JSON, nullable=True)
    assessed_at = Column(String, nullable=True)
    assessment_error = Column(String, nullable=True)
