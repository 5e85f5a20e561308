"""Schema capability detection for partially migrated databases.

Older deployments may lack the availability rules table or some of the newer
booking and listing columns. The application inspects the schema once at
startup and the repositories pick a reduced query shape for anything that is
missing instead of failing the request.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields

from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

LISTINGS_TABLE = "listings"
BOOKINGS_TABLE = "bookings"
AVAILABILITY_TABLE = "listing_availability"


@dataclass(frozen=True, slots=True)
class SchemaCapabilities:
    """Optional schema features available in the connected database."""

    availability_rules: bool = True
    booking_status: bool = True
    booking_checkout_session: bool = True
    listing_rating_count: bool = True
    listing_image_urls: bool = True

    @classmethod
    def full(cls) -> "SchemaCapabilities":
        return cls()

    @property
    def missing(self) -> list[str]:
        return [item.name for item in fields(self) if not getattr(self, item.name)]


_current = SchemaCapabilities.full()


def get_capabilities() -> SchemaCapabilities:
    """Return the capabilities resolved at startup (full until detected)."""

    return _current


def set_capabilities(capabilities: SchemaCapabilities) -> None:
    global _current
    _current = capabilities


def inspect_schema(connection: Connection) -> SchemaCapabilities:
    """Build the capability set from a synchronous connection."""

    inspector = inspect(connection)
    tables = set(inspector.get_table_names())

    def _columns(table: str) -> set[str]:
        if table not in tables:
            return set()
        return {column["name"] for column in inspector.get_columns(table)}

    booking_columns = _columns(BOOKINGS_TABLE)
    listing_columns = _columns(LISTINGS_TABLE)

    return SchemaCapabilities(
        availability_rules=AVAILABILITY_TABLE in tables,
        booking_status="status" in booking_columns,
        booking_checkout_session="checkout_session_id" in booking_columns,
        listing_rating_count="rating_count" in listing_columns,
        listing_image_urls="image_urls" in listing_columns,
    )


async def detect_capabilities(engine: AsyncEngine) -> SchemaCapabilities:
    """Inspect the database, store and return its capabilities."""

    async with engine.connect() as conn:
        capabilities = await conn.run_sync(inspect_schema)

    for name in capabilities.missing:
        logger.warning("Schema capability %s unavailable; using reduced-feature queries", name)

    set_capabilities(capabilities)
    return capabilities
