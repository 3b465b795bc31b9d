# tests/test_scripts.py
from bikerental.core.security import verify_password
from bikerental.models.bike import Bike
from bikerental.models.enum import BikeStatus, UserRole
from bikerental.models.user import User

from create_admin import create_admin_user
from seed_bikes import SAMPLE_BIKES, seed_bikes


async def test_create_admin_user():
    admin = await create_admin_user("Office@g.batstate-u.edu.ph", "adminpass", "Bike Office")
    assert admin is not None

    stored = await User.find_one(User.email == "office@g.batstate-u.edu.ph")
    assert stored.role == UserRole.ADMIN
    assert verify_password("adminpass", stored.hashed_password)


async def test_create_admin_user_refuses_existing_email(student):
    assert await create_admin_user(student.email, "adminpass", "Someone") is None
    assert (await User.find_one(User.email == student.email)).role == UserRole.STUDENT


async def test_seed_bikes_is_idempotent():
    inserted = await seed_bikes()
    assert [b.bike_number for b in inserted] == ["BSU-001", "BSU-002", "BSU-003", "BSU-004", "BSU-005"]

    assert await seed_bikes() == []
    bikes = await Bike.find_all().to_list()
    assert len(bikes) == len(SAMPLE_BIKES)
    assert all(b.status == BikeStatus.AVAILABLE and b.current_location is not None for b in bikes)
