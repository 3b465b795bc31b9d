# bikerental/api/v1/endpoints/bikes.py
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Path, Body, Query, Request
from loguru import logger
from pymongo.errors import DuplicateKeyError

from bikerental.core.rate_limiter import limiter
from bikerental.core.security import get_current_active_user, require_admin
from bikerental.core.utils import parse_object_id, document_data
from bikerental.models.bike import Bike
from bikerental.models.enum import BikeStatus
from bikerental.models.user import User

router = APIRouter(tags=["Bikes"])


def bike_response(bike: Bike) -> Bike.Response:
    return Bike.Response.model_validate(document_data(bike))


async def get_bike_or_404(bike_id: str) -> Bike:
    """Active (not retired) bike by id."""
    bike = await Bike.find_one({"_id": parse_object_id(bike_id, "bike"), "is_active": True})
    if bike is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bike not found")
    return bike


@router.get("", response_model=List[Bike.Response])
@limiter.limit("120/minute")
async def read_bikes(
    request: Request,
    status_filter: Optional[BikeStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_active_user),
):
    """Fleet listing for the map, ordered by bike number."""
    query = {"is_active": True}
    if status_filter:
        query["status"] = BikeStatus(status_filter).value
    bikes = await Bike.find(query).sort("+bike_number").to_list()
    return [bike_response(b) for b in bikes]


@router.get("/{bike_id}", response_model=Bike.Response)
async def read_bike(bike_id: str = Path(...), current_user: User = Depends(get_current_active_user)):
    return bike_response(await get_bike_or_404(bike_id))


@router.post("", response_model=Bike.Response, status_code=status.HTTP_201_CREATED)
async def create_bike(bike_in: Bike.Create = Body(...), current_user: User = Depends(require_admin)):
    bike_number = bike_in.bike_number.strip()
    if await Bike.find_one(Bike.bike_number == bike_number):
        raise HTTPException(status_code=400, detail=f"Bike number '{bike_number}' already exists")

    now_utc = datetime.now(timezone.utc)
    bike = Bike(
        bike_number=bike_number,
        model=bike_in.model.strip(),
        status=BikeStatus.AVAILABLE,
        current_location=bike_in.current_location,
        purchase_date=bike_in.purchase_date or now_utc,
        created_at=now_utc,
        updated_at=now_utc,
    )
    try:
        await bike.insert()
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=f"Bike number '{bike_number}' already exists")
    logger.info(f"Admin '{current_user.email}' added bike {bike.bike_number} ({bike.id}).")
    return bike_response(bike)


@router.patch("/{bike_id}", response_model=Bike.Response)
async def update_bike(
    bike_id: str = Path(...),
    bike_update: Bike.Update = Body(...),
    current_user: User = Depends(require_admin),
):
    """Edit model/location, or move a bike between AVAILABLE and MAINTENANCE."""
    bike = await get_bike_or_404(bike_id)
    update_data = bike_update.model_dump(exclude_unset=True, by_alias=False)

    for key in ("model", "status"):
        if key in update_data and update_data[key] is None:
            del update_data[key]

    new_status = update_data.get("status")
    if new_status is not None:
        new_status = BikeStatus(new_status)
        if new_status == BikeStatus.RENTED:
            raise HTTPException(status_code=400, detail="Bikes are marked RENTED only by starting a rental")
        if bike.status == BikeStatus.RENTED:
            raise HTTPException(status_code=400, detail="Bike is currently rented; end the rental first")
        update_data["status"] = new_status.value

    if not update_data:
        return bike_response(bike)

    update_data["updated_at"] = datetime.now(timezone.utc)
    bike_filter = {"_id": bike.id}
    if "status" in update_data:
        # A rental may have claimed the bike since it was read
        bike_filter["status"] = {"$ne": BikeStatus.RENTED.value}
    result = await Bike.get_motor_collection().update_one(bike_filter, {"$set": update_data})
    if result.matched_count == 0:
        raise HTTPException(status_code=400, detail="Bike is currently rented; end the rental first")
    logger.info(f"Admin '{current_user.email}' updated bike {bike.bike_number}: {sorted(update_data)}")
    return bike_response(await get_bike_or_404(bike_id))


@router.delete("/{bike_id}", status_code=status.HTTP_200_OK)
async def retire_bike(bike_id: str = Path(...), current_user: User = Depends(require_admin)):
    """Soft delete: the bike disappears from listings but its rental history stays."""
    bike = await get_bike_or_404(bike_id)
    if bike.status == BikeStatus.RENTED:
        raise HTTPException(status_code=400, detail="Bike is currently rented and cannot be retired")
    result = await Bike.get_motor_collection().update_one(
        {"_id": bike.id, "status": {"$ne": BikeStatus.RENTED.value}},
        {"$set": {"is_active": False, "updated_at": datetime.now(timezone.utc)}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=400, detail="Bike is currently rented and cannot be retired")
    logger.info(f"Admin '{current_user.email}' retired bike {bike.bike_number}.")
    return {"message": "Bike retired successfully", "bikeId": bike_id}
