# create_admin.py
import asyncio
import sys
from getpass import getpass
from typing import Optional

from loguru import logger

from bikerental.core.security import get_password_hash
from bikerental.db.database import init_db, close_db
from bikerental.models.enum import UserRole
from bikerental.models.user import User


async def create_admin_user(email: str, password: str, name: str) -> Optional[User]:
    """Inserts an ADMIN account. Returns None when the email is already taken."""
    email = email.strip().lower()
    if await User.find_one(User.email == email):
        logger.error(f"Email '{email}' already exists.")
        return None

    admin_user = User(
        email=email,
        name=name.strip() or "Administrator",
        hashed_password=get_password_hash(password),
        role=UserRole.ADMIN,
        disabled=False,
    )
    await admin_user.insert()
    logger.info(f"Admin user '{email}' created successfully.")
    return admin_user


def prompt_admin_details():
    while True:
        email = input("Enter admin email: ").strip()
        if email:
            break
        print("Email cannot be empty.")

    while True:
        password = getpass("Enter admin password: ")
        if len(password) < 6:
            print("Password must be at least 6 characters.")
            continue
        if password == getpass("Confirm admin password: "):
            break
        print("Passwords do not match. Please try again.")

    name = input("Enter admin full name (optional, press Enter to skip): ").strip()
    return email, password, name


async def create_initial_admin():
    print("--- Create Initial Admin User ---")
    try:
        await init_db()
    except Exception as e:
        logger.error(f"Error connecting to database: {e}")
        return 1

    try:
        email, password, name = prompt_admin_details()
        admin_user = await create_admin_user(email, password, name)
        return 0 if admin_user else 1
    finally:
        close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(create_initial_admin()))
