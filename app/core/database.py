"""
MongoDB database connection and utilities.
"""

import logging
from datetime import timezone

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

    @classmethod
    async def connect(cls):
        """Connect to MongoDB."""
        # Stored datetimes are UTC; read them back as aware values
        cls.client = AsyncIOMotorClient(settings.MONGO_URI, tz_aware=True, tzinfo=timezone.utc)
        cls.db = cls.client[settings.MONGO_DB_NAME]

        # Create indexes
        await cls._create_indexes()

        logger.info("Connected to MongoDB: %s", settings.MONGO_DB_NAME)

    @classmethod
    async def disconnect(cls):
        """Disconnect from MongoDB."""
        if cls.client:
            cls.client.close()
            logger.info("Disconnected from MongoDB")

    @classmethod
    async def _create_indexes(cls):
        """Create database indexes for better query performance."""
        # Submissions: per-user aggregation and public feeds
        await cls.db.submissions.create_index([("user_id", 1), ("deleted_at", 1)])
        await cls.db.submissions.create_index([("is_public", 1), ("deleted_at", 1), ("created_at", -1)])

        # Persisted first-earned badge moments
        await cls.db.user_badges.create_index([("user_id", 1), ("key", 1)], unique=True)

    @classmethod
    def get_collection(cls, name: str):
        """Get a collection by name."""
        return cls.db[name]


def get_db() -> AsyncIOMotorDatabase:
    """Get the database instance."""
    return Database.db
