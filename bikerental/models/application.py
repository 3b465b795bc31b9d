# bikerental/models/application.py
from typing import Optional, Any, List
from datetime import datetime, timezone

from beanie import Document, PydanticObjectId
from pydantic import Field, field_validator
from pydantic.alias_generators import to_camel
from pymongo import IndexModel, ASCENDING, DESCENDING

from .base import ApiSchema
from .enum import ApplicationStatus
from .user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Checked in this order; the first empty one is reported back to the client
REQUIRED_FIELDS: List[str] = [
    "first_name", "last_name", "sr_code", "sex", "date_of_birth",
    "phone_number", "email", "college_program", "house_no",
    "street_name", "barangay", "municipality_city", "province",
    "distance_from_campus", "duration_of_use",
]


class Application(Document):
    """A user's bike-rental eligibility form, subject to admin approval."""
    user_id: PydanticObjectId

    # Personal
    first_name: str
    last_name: str
    middle_name: Optional[str] = None
    sr_code: str
    sex: str
    date_of_birth: str  # ISO date, YYYY-MM-DD
    phone_number: str
    email: str

    # Academic
    college_program: str
    gwa_last_semester: Optional[float] = None
    extracurricular_activities: Optional[str] = None

    # Address
    house_no: str
    street_name: str
    barangay: str
    municipality_city: str
    province: str
    distance_from_campus: str

    # Financial / usage
    monthly_family_income: Optional[float] = None
    duration_of_use: str

    # Review
    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING)
    submitted_at: datetime = Field(default_factory=_utcnow)
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[PydanticObjectId] = None
    notes: Optional[str] = None

    updated_at: datetime = Field(default_factory=_utcnow)

    class Settings:
        name = "applications"
        indexes = [
            IndexModel([("user_id", ASCENDING), ("status", ASCENDING)], name="application_user_status_index"),
            IndexModel([("submitted_at", DESCENDING)], name="application_submitted_at_index"),
            IndexModel([("status", ASCENDING)], name="application_status_index"),
        ]

    # --- Pydantic Schemas ---
    class Create(ApiSchema):
        """Submitted form. Presence of required fields is checked by the handler."""
        first_name: Optional[str] = None
        last_name: Optional[str] = None
        middle_name: Optional[str] = None
        sr_code: Optional[str] = None
        sex: Optional[str] = None
        date_of_birth: Optional[str] = None
        phone_number: Optional[str] = None
        email: Optional[str] = None
        college_program: Optional[str] = None
        gwa_last_semester: Optional[float] = None
        extracurricular_activities: Optional[str] = None
        house_no: Optional[str] = None
        street_name: Optional[str] = None
        barangay: Optional[str] = None
        municipality_city: Optional[str] = None
        province: Optional[str] = None
        distance_from_campus: Optional[str] = None
        monthly_family_income: Optional[float] = None
        duration_of_use: Optional[str] = None

        @field_validator("gwa_last_semester", "monthly_family_income", mode="before")
        @classmethod
        def blank_number_is_none(cls, v: Any) -> Any:
            if isinstance(v, str) and not v.strip():
                return None
            return v

        @field_validator("middle_name", "extracurricular_activities", mode="before")
        @classmethod
        def blank_text_is_none(cls, v: Any) -> Any:
            if isinstance(v, str) and not v.strip():
                return None
            return v

        def first_missing_field(self) -> Optional[str]:
            """Wire name of the first required field left empty, if any."""
            for field_name in REQUIRED_FIELDS:
                value = getattr(self, field_name)
                if value is None or (isinstance(value, str) and not value.strip()):
                    return to_camel(field_name)
            return None

    class Review(ApiSchema):
        status: ApplicationStatus
        notes: Optional[str] = None

    class AdminReview(Review):
        application_id: str = Field(...)

    class Response(ApiSchema):
        id: str
        user_id: str
        first_name: str
        last_name: str
        middle_name: Optional[str] = None
        sr_code: str
        sex: str
        date_of_birth: str
        phone_number: str
        email: str
        college_program: str
        gwa_last_semester: Optional[float] = None
        extracurricular_activities: Optional[str] = None
        house_no: str
        street_name: str
        barangay: str
        municipality_city: str
        province: str
        distance_from_campus: str
        monthly_family_income: Optional[float] = None
        duration_of_use: str
        status: ApplicationStatus
        submitted_at: datetime
        reviewed_at: Optional[datetime] = None
        reviewed_by: Optional[str] = None
        notes: Optional[str] = None

    class AdminResponse(Response):
        user: Optional[User.Ref] = None

    class Submitted(ApiSchema):
        message: str
        application_id: str
        status: ApplicationStatus
