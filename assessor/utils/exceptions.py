import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from assessor.utils.response import error_response

logger = logging.getLogger(__name__)


class AppException(Exception):
    def __init__(self, message: str, status_code: int = 400, kind: str = "invalid_input"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.kind = kind


class InvalidInput(AppException):
    """Caller-fixable: bad media type, oversized or missing file."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400, kind="invalid_input")


class ConfigurationError(AppException):
    """Operator-fixable: storage or index target missing."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500, kind="configuration")


class NotFound(AppException):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404, kind="not_found")


class BlobWriteFailure(AppException):
    def __init__(self, message: str = "Failed to upload file"):
        super().__init__(message, status_code=502, kind="internal")


class AssessmentFailure(Exception):
    """The model could not produce an assessment. Advisory, never reaches a handler."""


class ModelNotConfigured(AssessmentFailure):
    pass


class AssessmentSchemaError(AssessmentFailure):
    pass


class IndexWriteFailure(Exception):
    """The upload record could not be written. Advisory, logged only."""


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.message, data={"kind": exc.kind}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        kind = "not_found" if exc.status_code == 404 else "invalid_input"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(str(exc.detail), data={"kind": kind}),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=error_response(
                "Invalid request parameters",
                data={"kind": "invalid_input", "errors": jsonable_encoder(exc.errors())},
            ),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_response("Internal server error", data={"kind": "internal"}),
        )
