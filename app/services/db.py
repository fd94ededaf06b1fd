from functools import lru_cache

import motor.motor_asyncio
from pymongo import ASCENDING

from app.config import Settings
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

ACADEMIC_COLLECTION = "academic_details"


@lru_cache()
def get_client(mongodb_uri: str) -> motor.motor_asyncio.AsyncIOMotorClient:
    """One motor client per connection string; motor connects lazily so this performs no I/O"""
    try:
        client = motor.motor_asyncio.AsyncIOMotorClient(mongodb_uri)
        logger.info("MongoDB client initialized successfully")
        return client
    except Exception as e:
        logger.error(f"Failed to initialize MongoDB client: {e}")
        raise


def get_academic_collection(settings: Settings):
    return get_client(settings.mongodb_uri)[settings.db_name][ACADEMIC_COLLECTION]


async def init_indexes(collection):
    """Index initialization for the academic details collection."""
    logger.info("Starting database index initialization")

    # One academic record per user
    try:
        await collection.create_index([("user_id", ASCENDING)], unique=True)
        logger.debug(f"Created unique index on {collection.name}.user_id")
    except Exception as e:
        if "already exists" in str(e).lower():
            logger.debug(f"Index on {collection.name}.user_id already exists")
        else:
            logger.warning(f"Could not create unique index on {collection.name}.user_id: {e}")

    logger.info("Database index initialization completed")


def to_dict(doc):
    """Strip Mongo's internal _id so records serialize identically on every read"""
    if not doc:
        return None
    doc.pop("_id", None)
    return doc
