# backend/interaction_api/core/errors.py
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class RecordValidationError(Exception):
    """Client-supplied data violates a required-field or enum constraint."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RecordNotFound(Exception):
    def __init__(self, message: str = "Interaction not found"):
        super().__init__(message)
        self.message = message


def format_validation_errors(errors) -> str:
    """Flatten pydantic error dicts into one readable message."""
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "Validation failed: " + "; ".join(parts)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RecordValidationError)
    async def _validation(request: Request, exc: RecordValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, format_validation_errors(exc.errors()))

    @app.exception_handler(RecordNotFound)
    async def _not_found(request: Request, exc: RecordNotFound):
        return _error(status.HTTP_404_NOT_FOUND, exc.message)

    @app.middleware("http")
    async def _unhandled(request: Request, call_next):
        # anything the typed handlers above did not convert
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("[api] %s %s failed", request.method, request.url.path)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or exc.__class__.__name__)
