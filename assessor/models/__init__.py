from assessor.models.upload import UploadRecordRow

__all__ = ["UploadRecordRow"]
