"""Exception handlers that keep every error response in the same JSON shape."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tacitus.errors import PersistenceError

logger = logging.getLogger(__name__)


def _error(status_code: int, detail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": True, "status_code": status_code, "detail": detail},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _error(exc.status_code, exc.detail)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error(422, jsonable_encoder(exc.errors()))


async def persistence_exception_handler(
    request: Request, exc: PersistenceError
) -> JSONResponse:
    logger.error(
        "Database error on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return _error(500, "Database error")


async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Log the traceback; answer with a generic 500 that leaks nothing."""
    logger.error(
        "Unhandled exception on %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return _error(500, "Internal server error")
