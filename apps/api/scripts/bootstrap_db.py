"""Create database schema and seed sample listings for development."""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone

from sqlalchemy import delete, text

from parkshare.core.config import settings
from parkshare.core.logging_config import configure_logging
from parkshare.db.session import SessionLocal, engine
from parkshare.models import AvailabilityRule, Listing, ListingStatus, RuleKind
from parkshare.models.base import Base

logger = logging.getLogger("bootstrap_db")

OVERLAP_CONSTRAINT_SQL = """
DO $$
BEGIN
	IF NOT EXISTS (SELECT 1 FROM pg_constraint WHERE conname = 'bookings_no_overlap') THEN
		ALTER TABLE bookings
			ADD CONSTRAINT bookings_no_overlap
			EXCLUDE USING gist (
				listing_id WITH =,
				tstzrange(start_time, end_time, '[)') WITH &&
			)
			WHERE (status <> 'canceled');
	END IF;
END $$;
"""

LISTINGS = [
	{
		"id": "lst-canal-garage",
		"host_id": "host-marta",
		"title": "Covered garage by the canal",
		"address": "Prinsengracht 263, Amsterdam",
		"latitude": 52.3752,
		"longitude": 4.8840,
		"price_per_day": 18,
		"availability_text": "Weekdays during office hours",
		"amenities": ["covered", "ev_charger", "cctv"],
		"image_urls": ["https://picsum.photos/seed/canal/800/600"],
		"rating": 4.7,
		"rating_count": 38,
		"rules": [
			{
				"kind": RuleKind.OPEN,
				"starts_at": datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
				"ends_at": datetime(2024, 1, 1, 18, 0, tzinfo=timezone.utc),
				# Monday, Wednesday, Friday.
				"repeat_weekdays": [1, 3, 5],
				"repeat_until": None,
			},
		],
	},
	{
		"id": "lst-jordaan-driveway",
		"host_id": "host-joost",
		"title": "Private driveway in the Jordaan",
		"address": "Westerstraat 120, Amsterdam",
		"latitude": 52.3786,
		"longitude": 4.8810,
		"price_per_day": 12,
		"availability_text": "Any time",
		"amenities": ["gated"],
		"image_urls": ["https://picsum.photos/seed/jordaan/800/600"],
		"rating": 4.3,
		"rating_count": 12,
		"rules": [
			{
				"kind": RuleKind.BLOCKED,
				"starts_at": datetime(2024, 1, 6, 0, 0, tzinfo=timezone.utc),
				"ends_at": datetime(2024, 1, 7, 0, 0, tzinfo=timezone.utc),
				# Saturdays are reserved for the owner.
				"repeat_weekdays": [6],
				"repeat_until": date(2026, 12, 31),
			},
		],
	},
	{
		"id": "lst-zuid-underground",
		"host_id": "host-marta",
		"title": "Underground spot near Zuid station",
		"address": "Gustav Mahlerlaan 10, Amsterdam",
		"latitude": 52.3390,
		"longitude": 4.8730,
		"price_per_day": 25,
		"availability_text": None,
		"amenities": ["covered", "24h_access"],
		"image_urls": [],
		"rating": None,
		"rating_count": 0,
		"rules": [],
	},
]


async def create_schema() -> None:
	"""Create the database schema if it does not already exist."""

	async with engine.begin() as conn:
		await conn.run_sync(Base.metadata.create_all)
		if settings.database_is_postgres:
			await conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
			await conn.execute(text(OVERLAP_CONSTRAINT_SQL))
			logger.info("Booking overlap constraint ensured")
		else:
			logger.warning("Not PostgreSQL; overlapping bookings are guarded in-process only")


async def seed_listings() -> None:
	"""Insert or update demo listings and replace their availability rules."""

	async with SessionLocal() as session:
		async with session.begin():
			for data in LISTINGS:
				listing = await session.get(Listing, data["id"])
				if listing is None:
					listing = Listing(id=data["id"], status=ListingStatus.ACTIVE)
					session.add(listing)

				listing.host_id = data["host_id"]
				listing.title = data["title"]
				listing.address = data["address"]
				listing.latitude = data["latitude"]
				listing.longitude = data["longitude"]
				listing.price_per_day = data["price_per_day"]
				listing.availability_text = data["availability_text"]
				listing.amenities = data["amenities"]
				listing.image_urls = data["image_urls"]
				listing.rating = data["rating"]
				listing.rating_count = data["rating_count"]
				await session.flush()

				await session.execute(
					delete(AvailabilityRule).where(AvailabilityRule.listing_id == data["id"])
				)
				for rule in data["rules"]:
					session.add(AvailabilityRule(listing_id=data["id"], **rule))


async def main() -> None:
	configure_logging(settings.log_level)
	await create_schema()
	await seed_listings()
	await engine.dispose()
	logger.info("Database schema ensured and demo data seeded.")


if __name__ == "__main__":
	asyncio.run(main())
