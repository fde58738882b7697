"""Collaboration persistence - MongoDB access for the aggregate."""

import logging
import math
import re

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from src.core.exceptions import ConflictError
from src.modules.collaborations.models import CollaborationInDB

logger = logging.getLogger(__name__)

COLLABORATIONS_COLLECTION = "collaborations"

SORTS = {
    "recent": [("created_at", DESCENDING)],
    "active": [("updated_at", DESCENDING)],
    "popular": [
        ("stats.total_contributors", DESCENDING),
        ("stats.total_views", DESCENDING),
    ],
}


async def insert_collaboration(
    db: AsyncIOMotorDatabase, collab: CollaborationInDB
) -> CollaborationInDB:
    """Insert a new aggregate and assign its id."""
    collab.revision = 0
    result = await db[COLLABORATIONS_COLLECTION].insert_one(collab.to_mongo())
    collab.id = str(result.inserted_id)
    return collab


async def get_collaboration_by_id(
    db: AsyncIOMotorDatabase, collab_id: str
) -> CollaborationInDB | None:
    """Fetch collaboration by ID."""
    if not ObjectId.is_valid(collab_id):
        return None
    doc = await db[COLLABORATIONS_COLLECTION].find_one({"_id": ObjectId(collab_id)})
    return CollaborationInDB.from_mongo(doc) if doc else None


async def save_collaboration(
    db: AsyncIOMotorDatabase, collab: CollaborationInDB, expected_revision: int
) -> CollaborationInDB:
    """Replace the stored aggregate if nobody wrote it since it was read.

    The write is conditional on ``revision``; a concurrent writer makes the
    filter miss and the caller gets a retryable ConflictError.
    """
    collab.revision = expected_revision + 1
    result = await db[COLLABORATIONS_COLLECTION].replace_one(
        {"_id": ObjectId(collab.id), "revision": expected_revision},
        collab.to_mongo(),
    )
    if result.matched_count == 0:
        collab.revision = expected_revision
        logger.warning(
            "Stale write on collaboration %s at revision %s",
            collab.id,
            expected_revision,
        )
        raise ConflictError(
            "Collaboration was modified by someone else, reload and retry"
        )
    return collab


async def increment_views(db: AsyncIOMotorDatabase, collab_id: str) -> None:
    """Bump the view counter without touching the revision."""
    await db[COLLABORATIONS_COLLECTION].update_one(
        {"_id": ObjectId(collab_id)}, {"$inc": {"stats.total_views": 1}}
    )


async def list_public_collaborations(
    db: AsyncIOMotorDatabase,
    type: str | None = None,
    search: str | None = None,
    sort: str = "recent",
    page: int = 1,
    limit: int = 12,
) -> dict:
    """Paginated listing of public collaborations."""
    query: dict = {"settings.is_public": True}
    if type:
        query["type"] = type
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [
            {"title": pattern},
            {"description": pattern},
            {"tags": pattern},
        ]

    total = await db[COLLABORATIONS_COLLECTION].count_documents(query)
    cursor = (
        db[COLLABORATIONS_COLLECTION]
        .find(query)
        .sort(SORTS.get(sort, SORTS["recent"]))
        .skip((page - 1) * limit)
        .limit(limit)
    )
    docs = await cursor.to_list(length=limit)
    return {
        "items": [CollaborationInDB.from_mongo(d) for d in docs],
        "total": total,
        "page": page,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


async def list_trending(
    db: AsyncIOMotorDatabase, limit: int = 10
) -> list[CollaborationInDB]:
    cursor = (
        db[COLLABORATIONS_COLLECTION]
        .find({"settings.is_public": True})
        .sort(SORTS["popular"])
        .limit(limit)
    )
    docs = await cursor.to_list(length=limit)
    return [CollaborationInDB.from_mongo(d) for d in docs]


async def list_user_collaborations(
    db: AsyncIOMotorDatabase, user_id: str
) -> list[CollaborationInDB]:
    """List collaborations where user is owner or collaborator."""
    cursor = (
        db[COLLABORATIONS_COLLECTION]
        .find({"$or": [{"owner_id": user_id}, {"collaborators.user_id": user_id}]})
        .sort("updated_at", DESCENDING)
    )
    docs = await cursor.to_list(length=100)
    return [CollaborationInDB.from_mongo(d) for d in docs]


async def list_with_pending_invite(
    db: AsyncIOMotorDatabase, user_id: str
) -> list[CollaborationInDB]:
    """Collaborations holding an invite for ``user_id`` (indexed lookup)."""
    cursor = (
        db[COLLABORATIONS_COLLECTION]
        .find({"pending_invites.user_id": user_id})
        .sort("updated_at", DESCENDING)
    )
    docs = await cursor.to_list(length=100)
    return [CollaborationInDB.from_mongo(d) for d in docs]


async def list_remixes(
    db: AsyncIOMotorDatabase, meme_id: str
) -> list[CollaborationInDB]:
    cursor = (
        db[COLLABORATIONS_COLLECTION]
        .find(
            {
                "original_meme": meme_id,
                "type": "remix",
                "settings.is_public": True,
            }
        )
        .sort("created_at", DESCENDING)
    )
    docs = await cursor.to_list(length=100)
    return [CollaborationInDB.from_mongo(d) for d in docs]


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create indexes for the collaborations collection."""
    collection = db[COLLABORATIONS_COLLECTION]
    await collection.create_index([("owner_id", ASCENDING)])
    await collection.create_index([("collaborators.user_id", ASCENDING)])
    await collection.create_index([("pending_invites.user_id", ASCENDING)])
    await collection.create_index([("original_meme", ASCENDING)])
    await collection.create_index(
        [("settings.is_public", ASCENDING), ("type", ASCENDING)]
    )
    await collection.create_index([("created_at", DESCENDING)])
