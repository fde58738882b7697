"""
Database connection for MongoDB (motor).

Provides async connection management with lifecycle hooks. The Redis
connection used for activity events is owned by ``src.core.events``.
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from src.core.config import settings

logger = logging.getLogger(__name__)

# Global connection instances
_mongo_client: AsyncIOMotorClient | None = None
_mongo_db: AsyncIOMotorDatabase | None = None


async def init_db_connections() -> None:
    """Initialize database connections on application startup."""
    global _mongo_client, _mongo_db

    _mongo_client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=False)
    _mongo_db = _mongo_client[settings.MONGODB_DATABASE]

    # Verify connection
    try:
        await _mongo_client.admin.command("ping")
        logger.info("MongoDB connected: %s", settings.MONGODB_DATABASE)
    except Exception:
        logger.exception("MongoDB connection failed")
        raise


async def close_db_connections() -> None:
    """Close database connections on application shutdown."""
    global _mongo_client, _mongo_db

    if _mongo_client:
        _mongo_client.close()
        logger.info("MongoDB connection closed")

    _mongo_client = None
    _mongo_db = None


def get_mongo_db() -> AsyncIOMotorDatabase:
    """Get MongoDB database instance."""
    if _mongo_db is None:
        raise RuntimeError("MongoDB not initialized. Call init_db_connections first.")
    return _mongo_db


# Alias for cleaner imports
get_database = get_mongo_db
