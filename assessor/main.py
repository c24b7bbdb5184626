import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from assessor.config import settings
from assessor.database import create_tables
from assessor.dependencies import get_record_store
from assessor.routers.uploads import router as uploads_router
from assessor.utils.exceptions import register_exception_handlers

logger = logging.getLogger(__name__)

SERVICE_NAME = "vehicle-damage-assessor"
VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if get_record_store() is not None:
        await create_tables()
    else:
        logger.warning("UPLOADS_TABLE_NAME not set: uploads will be rejected and listings empty")
    yield


app = FastAPI(
    title="Vehicle Damage Assessor API",
    description="Upload a vehicle damage photo and get an AI damage assessment",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(uploads_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {"status": "success", "data": {"service": SERVICE_NAME, "version": VERSION}, "message": None}
