# bikerental/models/bike.py
from typing import Optional
from datetime import datetime, timezone

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import IndexModel, ASCENDING

from .base import ApiSchema
from .enum import BikeStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GeoPoint(BaseModel):
    """Map coordinates of a parked bike."""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Bike(Document):
    bike_number: str = Field(..., max_length=50)
    model: str = Field(..., max_length=200)
    status: BikeStatus = Field(default=BikeStatus.AVAILABLE)
    current_location: Optional[GeoPoint] = None
    purchase_date: datetime = Field(default_factory=_utcnow)
    is_active: bool = Field(default=True, description="False once the bike is retired from the fleet")

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    class Settings:
        name = "bikes"
        indexes = [
            IndexModel([("bike_number", ASCENDING)], name="bike_number_unique_index", unique=True),
            IndexModel([("status", ASCENDING)], name="bike_status_index"),
            IndexModel([("is_active", ASCENDING)], name="bike_is_active_index"),
        ]

    # --- Pydantic Schemas for API ---
    class Create(ApiSchema):
        bike_number: str = Field(..., min_length=1, max_length=50)
        model: str = Field(..., min_length=1, max_length=200)
        current_location: Optional[GeoPoint] = None
        purchase_date: Optional[datetime] = None

    class Update(ApiSchema):
        model: Optional[str] = Field(None, min_length=1, max_length=200)
        current_location: Optional[GeoPoint] = None
        status: Optional[BikeStatus] = None

    class Response(ApiSchema):
        id: str
        bike_number: str
        model: str
        status: BikeStatus
        current_location: Optional[GeoPoint] = None
        purchase_date: datetime
        is_active: bool
