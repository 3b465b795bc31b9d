# bikerental/models/rental.py
from typing import Optional
from datetime import datetime, timezone

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import IndexModel, ASCENDING, DESCENDING

from .base import ApiSchema
from .bike import Bike
from .enum import RentalStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Rental(Document):
    user_id: PydanticObjectId
    bike_id: PydanticObjectId
    status: RentalStatus = Field(default=RentalStatus.ACTIVE)
    start_time: datetime = Field(default_factory=_utcnow)
    end_time: Optional[datetime] = None
    distance: Optional[float] = Field(None, ge=0, description="Kilometres ridden")
    carbon_saved: Optional[float] = Field(None, ge=0, description="Kilograms of CO2 avoided")
    pdf_url: Optional[str] = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    class Settings:
        name = "rentals"
        indexes = [
            IndexModel([("user_id", ASCENDING), ("status", ASCENDING)], name="rental_user_status_index"),
            IndexModel([("bike_id", ASCENDING), ("status", ASCENDING)], name="rental_bike_status_index"),
            IndexModel([("start_time", DESCENDING)], name="rental_start_time_index"),
        ]

    # --- Pydantic Schemas ---
    class Create(ApiSchema):
        bike_id: str = Field(...)
        pdf_url: Optional[str] = None

    class Action(ApiSchema):
        rental_id: str = Field(...)
        action: str = Field(..., description="'end' or 'cancel'")
        distance: Optional[float] = Field(None, ge=0)

    class End(ApiSchema):
        distance: Optional[float] = Field(None, ge=0)

    class Response(ApiSchema):
        id: str
        user_id: str
        bike_id: str
        status: RentalStatus
        start_time: datetime
        end_time: Optional[datetime] = None
        distance: Optional[float] = None
        carbon_saved: Optional[float] = None
        pdf_url: Optional[str] = None
        bike: Optional[Bike.Response] = None
