# bikerental/core/bike_claims.py
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from loguru import logger
from pymongo import ReturnDocument

from bikerental.models.bike import Bike
from bikerental.models.enum import BikeStatus


async def claim_bike(bike_id: ObjectId, session=None) -> Optional[Bike]:
    """
    Flips an active AVAILABLE bike to RENTED in a single conditional update.
    Returns the updated bike, or None when the bike is missing, retired or not
    AVAILABLE. Concurrent claims on the same bike cannot both succeed.
    """
    raw_bike = await Bike.get_motor_collection().find_one_and_update(
        {"_id": bike_id, "status": BikeStatus.AVAILABLE.value, "is_active": True},
        {"$set": {"status": BikeStatus.RENTED.value, "updated_at": datetime.now(timezone.utc)}},
        session=session,
        return_document=ReturnDocument.AFTER,
    )
    if raw_bike is None:
        logger.info(f"Bike {bike_id} could not be claimed (missing, retired or not available).")
        return None
    logger.info(f"Bike {bike_id} ({raw_bike.get('bike_number')}) status set to RENTED.")
    return Bike.model_validate(raw_bike)


async def release_bike(bike_id: ObjectId, session=None) -> bool:
    """Returns a RENTED bike to AVAILABLE. False when the bike was not RENTED."""
    result = await Bike.get_motor_collection().update_one(
        {"_id": bike_id, "status": BikeStatus.RENTED.value},
        {"$set": {"status": BikeStatus.AVAILABLE.value, "updated_at": datetime.now(timezone.utc)}},
        session=session,
    )
    if result.modified_count == 0:
        logger.warning(f"Bike {bike_id} was not RENTED when its rental closed; status left unchanged.")
        return False
    logger.info(f"Bike {bike_id} status set to AVAILABLE.")
    return True
