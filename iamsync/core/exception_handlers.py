"""Exception handlers: domain error codes and framework errors to JSON responses.

Every error body has the shape {"error": <code>, "message": ..., ...}.
Timeouts (correlation budget, per-principal lock) are 503 with a
Retry-After hint so callers back off instead of hammering the lock.
"""

import logging
import math

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from iamsync.core.config import get_settings
from iamsync.domain.exceptions import IamSyncException

logger = logging.getLogger(__name__)

_ERROR_CODE_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "NOT_FOUND": 404,
    "UNKNOWN_PRINCIPAL": 409,
    "POLICY_VIOLATION": 422,
    "SINK_REJECTED": 502,
    "CORRELATION_TIMEOUT": 503,
    "LOCK_TIMEOUT": 503,
    "SQL_NOT_CONFIGURED": 500,
}


def status_for(error_code: str) -> int:
    """HTTP status for a domain error code; unknown codes are client errors."""
    return _ERROR_CODE_STATUS.get(error_code, 400)


def _retry_after_seconds() -> str:
    return str(max(1, math.ceil(get_settings().correlation_backoff_max_seconds)))


async def _iamsync_exception_handler(request: Request, exc: IamSyncException) -> JSONResponse:
    status = status_for(exc.error_code)
    headers = None
    if status == 503:
        headers = {"Retry-After": _retry_after_seconds()}
    if status >= 500:
        logger.error(
            "%s %s failed with %s: %s",
            request.method,
            request.url.path,
            exc.error_code,
            exc.message,
        )
    return JSONResponse(status_code=status, content=exc.to_dict(), headers=headers)


async def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors()),
        },
    )


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 for anything unmapped; the exception text is exposed only in debug."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if get_settings().debug else "Internal server error"
    return JSONResponse(status_code=500, content={"error": "INTERNAL_ERROR", "message": message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IamSyncException, _iamsync_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
