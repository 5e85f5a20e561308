"""Shared fixtures for the parking API tests."""
from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from parkshare.core.config import Settings
from parkshare.db.capabilities import SchemaCapabilities, set_capabilities
from parkshare.db.session import build_engine
from parkshare.models import Listing, ListingStatus
from parkshare.models.base import Base
from parkshare.services.rate_limit import booking_limiter


@pytest.fixture(autouse=True)
def _reset_process_state() -> Iterator[None]:
    set_capabilities(SchemaCapabilities.full())
    booking_limiter.reset()
    yield
    set_capabilities(SchemaCapabilities.full())
    booking_limiter.reset()


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """File-backed SQLite database so concurrent sessions see each other's commits."""

    engine = build_engine(Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'parkshare-test.db'}"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with factory() as session:
        async with session.begin():
            session.add_all(
                [
                    Listing(
                        id="lst-near",
                        host_id="host-1",
                        title="Garage near the station",
                        address="1 Station Road",
                        latitude=52.3700,
                        longitude=4.8900,
                        price_per_day=20,
                        amenities=["covered", "ev_charger"],
                        image_urls=[],
                    ),
                    Listing(
                        id="lst-far",
                        host_id="host-2",
                        title="Driveway by the park",
                        address="9 Park Lane",
                        latitude=52.3800,
                        longitude=4.9000,
                        price_per_day=10,
                        amenities=["gated"],
                        image_urls=[],
                    ),
                    Listing(
                        id="lst-archived",
                        host_id="host-1",
                        title="Old carport",
                        address="3 Station Road",
                        latitude=52.3701,
                        longitude=4.8901,
                        price_per_day=5,
                        amenities=[],
                        image_urls=[],
                        status=ListingStatus.ARCHIVED,
                    ),
                ]
            )

    yield factory
    await engine.dispose()


LEGACY_DDL = [
    """
    CREATE TABLE listings (
        id VARCHAR PRIMARY KEY,
        host_id VARCHAR NOT NULL,
        title VARCHAR NOT NULL,
        address VARCHAR NOT NULL,
        latitude FLOAT NOT NULL,
        longitude FLOAT NOT NULL,
        price_per_day INTEGER NOT NULL,
        availability_text VARCHAR,
        amenities JSON,
        rating FLOAT,
        status VARCHAR NOT NULL,
        created_at DATETIME
    )
    """,
    """
    CREATE TABLE bookings (
        id VARCHAR PRIMARY KEY,
        listing_id VARCHAR NOT NULL REFERENCES listings(id),
        driver_id VARCHAR NOT NULL,
        start_time DATETIME NOT NULL,
        end_time DATETIME NOT NULL,
        amount_cents INTEGER,
        currency VARCHAR(3),
        vehicle_plate VARCHAR(12),
        created_at DATETIME
    )
    """,
]


@pytest.fixture
def legacy_ddl() -> list[str]:
    """Schema of a deployment that predates rules, booking status and listing media."""

    return list(LEGACY_DDL)
