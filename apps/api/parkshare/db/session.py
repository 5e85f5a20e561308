"""Async engine and session factory for PostgreSQL or a local SQLite file."""
from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..core.config import Settings, settings


def build_engine(config: Settings) -> AsyncEngine:
    connect_args: dict[str, object] = {}
    if config.database_is_postgres:
        if config.database_ssl_required:
            connect_args["ssl"] = True
    else:
        # Concurrent booking writers wait for SQLite's file lock instead of failing.
        connect_args["timeout"] = 15

    return create_async_engine(
        config.database_url,
        echo=False,
        pool_pre_ping=config.database_is_postgres,
        connect_args=connect_args,
    )


engine = build_engine(settings)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session; services open their own transactions."""

    async with SessionLocal() as session:
        yield session
