"""Auth services - read access to the user directory."""

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from src.modules.auth.models import UserInDB

USERS_COLLECTION = "users"


async def get_user_by_id(db: AsyncIOMotorDatabase, user_id: str) -> UserInDB | None:
    """Get user by ID."""
    if not ObjectId.is_valid(user_id):
        return None
    doc = await db[USERS_COLLECTION].find_one({"_id": ObjectId(user_id)})
    return UserInDB.from_mongo(doc) if doc else None


async def get_user_by_username(
    db: AsyncIOMotorDatabase, username: str
) -> UserInDB | None:
    """Get user by username."""
    doc = await db[USERS_COLLECTION].find_one({"username": username})
    return UserInDB.from_mongo(doc) if doc else None



async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create indexes for auth collections."""
    await db[USERS_COLLECTION].create_index("email", unique=True)
    await db[USERS_COLLECTION].create_index("username", unique=True)
