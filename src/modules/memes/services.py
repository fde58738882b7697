"""Lookups against the meme reference store."""

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from src.modules.memes.models import MemeRef

MEMES_COLLECTION = "memes"


async def get_meme_by_id(db: AsyncIOMotorDatabase, meme_id: str) -> MemeRef | None:
    """Fetch a meme reference by ID."""
    if not ObjectId.is_valid(meme_id):
        return None
    doc = await db[MEMES_COLLECTION].find_one({"_id": ObjectId(meme_id)})
    return MemeRef.from_mongo(doc) if doc else None
