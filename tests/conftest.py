import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from assessor.dependencies import get_assessor, get_blob_store, get_record_store
from assessor.database import Base
from assessor.main import app
from assessor.schemas.assessment import DamageAssessment
from assessor.services.record_store import SqlRecordStore
from assessor.utils.exceptions import AssessmentFailure, IndexWriteFailure

JPEG_HEADER = b"\xff\xd8\xff\xe0"


def make_assessment(**overrides) -> DamageAssessment:
    data = {
        "vehicle": {"make": "Toyota", "model": "Camry", "color": "Silver"},
        "damage_summary": "Dented front bumper and cracked left headlight.",
        "cost_estimate": {"min": 1200, "max": 2500, "currency": "USD"},
    }
    data.update(overrides)
    return DamageAssessment.model_validate(data)


class FakeBlobStore:
    def __init__(self, bucket: str = "test-bucket", fail: bool = False):
        self.bucket = bucket
        self.fail = fail
        self.objects: dict[str, tuple[bytes, str]] = {}

    def put(self, key: str, data: bytes, content_type: str) -> None:
        if self.fail:
            raise OSError("bucket unreachable")
        self.objects[key] = (data, content_type)

    def presigned_url(self, bucket: str, key: str, expires_in: int = 3600) -> str:
        return f"https://{bucket}.example.test/{key}?expires={expires_in}"


class FakeAssessor:
    def __init__(self, assessment: DamageAssessment | None = None, error: Exception | None = None):
        self.assessment = assessment or make_assessment()
        self.error = error
        self.calls: list[bytes] = []

    async def assess(self, image: bytes, content_type: str = "image/jpeg") -> DamageAssessment:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return self.assessment


class FailingRecordStore:
    def __init__(self):
        self.attempts = 0

    async def put(self, record) -> None:
        self.attempts += 1
        raise IndexWriteFailure("table is throttled")

    async def get(self, upload_id: str):
        return None

    async def list_recent(self, limit: int = 50):
        return []


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def record_store(db_engine):
    session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    return SqlRecordStore(session_maker)


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def assessor():
    return FakeAssessor()


@pytest_asyncio.fixture
async def client(blob_store, record_store, assessor):
    """HTTP client with the app's stores and assessor replaced by test doubles.

    Tests can swap a collaborator by assigning app.dependency_overrides again.
    """
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_assessor] = lambda: assessor
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def assessment_error():
    return AssessmentFailure("Model request failed: connection reset")
