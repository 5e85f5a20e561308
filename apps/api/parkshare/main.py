"""FastAPI application for the parking marketplace API."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .core.config import settings
from .core.logging_config import configure_logging
from .db.capabilities import detect_capabilities
from .db.session import engine
from .routers import bookings, host, listings
from .services.intervals import InvalidIntervalError

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    capabilities = await detect_capabilities(engine)
    logger.info("Schema capabilities resolved (missing: %s)", ", ".join(capabilities.missing) or "none")
    yield
    await engine.dispose()


app = FastAPI(title="ParkShare API", version="0.1.0", lifespan=lifespan)

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(listings.router, prefix="/api/listings", tags=["listings"])
app.include_router(bookings.router, prefix="/api/bookings", tags=["bookings"])
app.include_router(host.router, prefix="/api/host", tags=["host"])


@app.exception_handler(InvalidIntervalError)
async def invalid_interval_handler(_: Request, exc: InvalidIntervalError) -> JSONResponse:
    """Empty or inverted windows are client errors, never a verdict."""

    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/api/health", tags=["meta"])
async def health() -> dict[str, str]:
    """Simple liveness probe."""

    return {"status": "ok"}


@app.head("/api/health", tags=["meta"])
async def health_head() -> Response:
    """Allow HEAD for uptime monitors that only need the status code."""

    return Response(status_code=200)
