# bikerental/models/enum.py
from enum import Enum


class UserRole(str, Enum):
    STUDENT = "STUDENT"
    TEACHING_STAFF = "TEACHING_STAFF"
    NON_TEACHING_STAFF = "NON_TEACHING_STAFF"
    ADMIN = "ADMIN"


class BikeStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    RENTED = "RENTED"
    MAINTENANCE = "MAINTENANCE"


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"             # initial status after submission
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RentalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# A user may hold at most one application in any of these
NON_TERMINAL_APPLICATION_STATUSES = (
    ApplicationStatus.PENDING,
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.APPROVED,
)
