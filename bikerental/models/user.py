# bikerental/models/user.py
from typing import Optional
from datetime import datetime, timezone

from beanie import Document
from pydantic import BaseModel, Field, EmailStr, field_validator
from pymongo import IndexModel, ASCENDING

from .base import ApiSchema
from .enum import UserRole


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Document):
    email: EmailStr
    name: str
    hashed_password: str
    role: UserRole = Field(default=UserRole.STUDENT)
    disabled: bool = Field(default=False)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    class Settings:
        name = "users"
        indexes = [
            IndexModel([("email", ASCENDING)], name="email_unique_index", unique=True),
            IndexModel([("role", ASCENDING)], name="role_index"),
        ]

    # --- Pydantic Schemas ---
    class Create(ApiSchema):
        email: EmailStr
        password: str = Field(..., min_length=6)
        name: str = Field(..., min_length=1, max_length=200)
        role: UserRole = UserRole.STUDENT

        @field_validator("email")
        @classmethod
        def normalize_email(cls, v: str) -> str:
            return v.strip().lower()

    class Login(BaseModel):
        email: EmailStr
        password: str

    class Response(ApiSchema):
        id: str
        email: EmailStr
        name: str
        role: UserRole
        disabled: bool
        created_at: datetime

    class Ref(ApiSchema):
        """Submitter identity embedded in admin listings."""
        email: Optional[EmailStr] = None
        name: Optional[str] = None
