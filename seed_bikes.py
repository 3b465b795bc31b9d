# seed_bikes.py
import asyncio
import sys
from typing import List

from loguru import logger

from bikerental.db.database import init_db, close_db
from bikerental.models.bike import Bike, GeoPoint
from bikerental.models.enum import BikeStatus

# Parked around the campus grounds
SAMPLE_BIKES = [
    {"bike_number": "BSU-001", "model": "Mountain Bike", "lat": 16.4023, "lng": 120.5960},
    {"bike_number": "BSU-002", "model": "City Bike", "lat": 16.4028, "lng": 120.5955},
    {"bike_number": "BSU-003", "model": "Mountain Bike", "lat": 16.4018, "lng": 120.5965},
    {"bike_number": "BSU-004", "model": "Hybrid Bike", "lat": 16.4031, "lng": 120.5970},
    {"bike_number": "BSU-005", "model": "City Bike", "lat": 16.4015, "lng": 120.5952},
]


async def seed_bikes() -> List[Bike]:
    """Inserts the sample fleet, skipping bike numbers that already exist."""
    inserted: List[Bike] = []
    for sample in SAMPLE_BIKES:
        if await Bike.find_one(Bike.bike_number == sample["bike_number"]):
            logger.info(f"Bike {sample['bike_number']} already exists, skipping.")
            continue
        bike = Bike(
            bike_number=sample["bike_number"],
            model=sample["model"],
            status=BikeStatus.AVAILABLE,
            current_location=GeoPoint(lat=sample["lat"], lng=sample["lng"]),
        )
        await bike.insert()
        inserted.append(bike)
        logger.info(f"Inserted bike {bike.bike_number} ({bike.id}).")
    return inserted


async def main() -> int:
    try:
        await init_db()
    except Exception as e:
        logger.error(f"Error connecting to database: {e}")
        return 1
    try:
        inserted = await seed_bikes()
        logger.info(f"Seeding finished: {len(inserted)} bike(s) inserted.")
        return 0
    finally:
        close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
