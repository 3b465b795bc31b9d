# tests/conftest.py
import os
import tempfile

# Settings are read at import time, so they must be in place before the app is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017/bike_rental_test")
os.environ["MONGODB_TRANSACTIONS"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PDF_OUTPUT_DIR"] = tempfile.mkdtemp(prefix="bikerental-pdfs-")

import pytest
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from bikerental.core.security import create_user_token, get_password_hash
from bikerental.db.database import init_db
from bikerental.main import app
from bikerental.models.bike import Bike, GeoPoint
from bikerental.models.enum import BikeStatus, UserRole
from bikerental.models.user import User

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(autouse=True)
async def db():
    """Fresh in-memory database for every test."""
    yield await init_db(client=AsyncMongoMockClient())


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def create_user(email: str, role: UserRole = UserRole.STUDENT, name: str = "Test User",
                      disabled: bool = False) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=get_password_hash(DEFAULT_PASSWORD),
        role=role,
        disabled=disabled,
    )
    await user.insert()
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user)}"}


@pytest.fixture
async def student():
    return await create_user("juan.delacruz@g.batstate-u.edu.ph", name="Juan Dela Cruz")


@pytest.fixture
async def other_student():
    return await create_user("maria.santos@g.batstate-u.edu.ph", name="Maria Santos")


@pytest.fixture
async def admin():
    return await create_user("admin@g.batstate-u.edu.ph", role=UserRole.ADMIN, name="Bike Office")


@pytest.fixture
def student_headers(student):
    return auth_headers(student)


@pytest.fixture
def other_headers(other_student):
    return auth_headers(other_student)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


async def create_bike(bike_number: str = "BSU-001", status: BikeStatus = BikeStatus.AVAILABLE,
                      is_active: bool = True) -> Bike:
    bike = Bike(
        bike_number=bike_number,
        model="Mountain Bike",
        status=status,
        is_active=is_active,
        current_location=GeoPoint(lat=16.4023, lng=120.5960),
    )
    await bike.insert()
    return bike


@pytest.fixture
async def bike():
    return await create_bike()


@pytest.fixture
def application_payload():
    return {
        "firstName": "Juan",
        "lastName": "Dela Cruz",
        "middleName": "Reyes",
        "srCode": "21-12345",
        "sex": "Male",
        "dateOfBirth": "2003-05-14",
        "phoneNumber": "09171234567",
        "email": "juan.delacruz@g.batstate-u.edu.ph",
        "collegeProgram": "BS Computer Science",
        "gwaLastSemester": 1.75,
        "extracurricularActivities": "Cycling club",
        "houseNo": "12",
        "streetName": "Rizal St.",
        "barangay": "Poblacion",
        "municipalityCity": "Batangas City",
        "province": "Batangas",
        "distanceFromCampus": "1-5 km",
        "monthlyFamilyIncome": 25000,
        "durationOfUse": "One semester",
    }
