"""Key-value access to upload records, backed by the upload records table."""
import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from assessor.models.upload import UploadRecordRow
from assessor.schemas.upload import UploadRecord
from assessor.utils.exceptions import IndexWriteFailure

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50

_COLUMNS = [c.name for c in UploadRecordRow.__table__.columns]


def _to_record(row: UploadRecordRow) -> UploadRecord:
    return UploadRecord.model_validate({name: getattr(row, name) for name in _COLUMNS})


class RecordStore(Protocol):
    async def put(self, record: UploadRecord) -> None: ...

    async def get(self, upload_id: str) -> UploadRecord | None: ...

    async def list_recent(self, limit: int = DEFAULT_LIST_LIMIT) -> list[UploadRecord]: ...


class SqlRecordStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def put(self, record: UploadRecord) -> None:
        """Insert a new record. Never overwrites: an existing upload_id is an error."""
        try:
            async with self.session_factory() as session:
                session.add(UploadRecordRow(**record.model_dump(mode="json")))
                await session.commit()
        except SQLAlchemyError as e:
            raise IndexWriteFailure(f"Could not write upload record {record.upload_id}: {e}") from e

    async def get(self, upload_id: str) -> UploadRecord | None:
        async with self.session_factory() as session:
            row = await session.get(UploadRecordRow, upload_id)
        return _to_record(row) if row is not None else None

    async def list_recent(self, limit: int = DEFAULT_LIST_LIMIT) -> list[UploadRecord]:
        # No ordering and no cursor: a bounded scan, like the listing page needs.
        async with self.session_factory() as session:
            result = await session.execute(select(UploadRecordRow).limit(limit))
            rows = result.scalars().all()
        return [_to_record(r) for r in rows]
