# bikerental/db/database.py
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import motor.motor_asyncio
from beanie import init_beanie
from loguru import logger

from bikerental.core import config
from bikerental.models.user import User
from bikerental.models.bike import Bike
from bikerental.models.application import Application
from bikerental.models.rental import Rental

DOCUMENT_MODELS = [User, Bike, Application, Rental]

_client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None


async def init_db(client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None):
    """Connect to MongoDB and register the Beanie document models."""
    global _client
    logger.info("Connecting to MongoDB...")
    _client = client or motor.motor_asyncio.AsyncIOMotorClient(config.MONGODB_URL)
    database = _client[config.DATABASE_NAME]
    logger.info(f"Using database: {config.DATABASE_NAME}")

    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    logger.info("Beanie initialization complete for all models.")
    return database


def get_client() -> motor.motor_asyncio.AsyncIOMotorClient:
    if _client is None:
        raise RuntimeError("Database client is not initialised; call init_db() first.")
    return _client


def close_db():
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB connection closed.")


@asynccontextmanager
async def transaction() -> AsyncIterator[Optional[motor.motor_asyncio.AsyncIOMotorClientSession]]:
    """
    Yields a session with an open transaction, committed when the block exits
    normally and aborted when it raises. Yields None when transactions are
    switched off (standalone servers), in which case writes apply one by one.
    """
    if not config.MONGODB_TRANSACTIONS:
        yield None
        return

    async with await get_client().start_session() as session:
        async with session.start_transaction():
            yield session
