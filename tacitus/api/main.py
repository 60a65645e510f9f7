from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from tacitus import __version__
from tacitus.api.auth import require_api_key
from tacitus.api.dependencies import get_db
from tacitus.api.exception_handlers import (
    http_exception_handler,
    persistence_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from tacitus.api.middleware import RequestLoggingMiddleware
from tacitus.api.routes.locations import router as locations_router
from tacitus.api.routes.query import router as query_router
from tacitus.api.schemas import ErrorResponse, HealthResponse
from tacitus.config import settings
from tacitus.db.migrate import upgrade_to_head
from tacitus.db.session import engine
from tacitus.errors import PersistenceError
from tacitus.logging_config import setup_logging
from tacitus.services.answerer import build_backend
from tacitus.services.metrics import metrics

logger = logging.getLogger("tacitus")

_DESCRIPTION = """\
Backend for the Tacitus location-aware assistant.

The mobile app sends the device's GPS position together with a spoken or
typed question. The nearest **stored location** (searched ahead of time
with `/api/search-location`) supplies a place name and a list of
**Wikipedia articles**, and a locally hosted **language model** answers
the question with that context.
"""

_OPENAPI_TAGS = [
    {"name": "system", "description": "Health checks and metrics."},
    {"name": "query", "description": "Ask a question about the current location."},
    {
        "name": "locations",
        "description": "Search, store and browse locations used as answer context.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Alembic's fileConfig replaces root handlers, so migrate before configuring logging.
    if settings.run_migrations:
        upgrade_to_head()
    setup_logging(settings.log_level, settings.log_format)

    app.state.http_client = httpx.AsyncClient()
    app.state.llm_backend = build_backend(app.state.http_client, settings)
    logger.info(
        "Tacitus %s started (llm_backend=%s, auth=%s)",
        __version__,
        settings.llm_backend,
        "on" if settings.auth_enabled else "off",
    )
    try:
        yield
    finally:
        await app.state.http_client.aclose()
        await engine.dispose()


app = FastAPI(
    title="Tacitus API",
    version=__version__,
    summary="Location-aware question answering",
    description=_DESCRIPTION,
    openapi_tags=_OPENAPI_TAGS,
    license_info={"name": "MIT", "identifier": "MIT"},
    lifespan=lifespan,
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(PersistenceError, persistence_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

origins = [o.strip() for o in settings.cors_origins.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(query_router)
app.include_router(locations_router)


@app.get(
    "/api/health",
    tags=["system"],
    summary="Health check",
    description="Returns 200 when the database answers, 503 otherwise.",
    response_model=HealthResponse,
    responses={503: {"model": ErrorResponse, "description": "Database unreachable"}},
)
async def health(session: AsyncSession = Depends(get_db)):
    try:
        await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Health check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"status": "degraded", "database": "unreachable", "detail": str(exc)},
        )
    return {
        "status": "ok",
        "database": "connected",
        "message": "Server is running",
        "uptime_seconds": metrics.uptime_seconds(),
    }


@app.get(
    "/api/metrics",
    tags=["system"],
    summary="Application metrics",
    dependencies=[Depends(require_api_key)],
)
async def get_metrics():
    return metrics.snapshot()
