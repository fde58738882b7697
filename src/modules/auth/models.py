"""User model for MongoDB."""

from datetime import datetime

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.core.models import PyObjectId, utcnow


class UserInDB(BaseModel):
    """User document as stored in MongoDB.

    Accounts are created by the platform's auth subsystem; this service only
    reads them to resolve the acting principal and invitation targets.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: PyObjectId | None = Field(default=None, alias="_id")
    email: EmailStr
    username: str
    role: str = "user"
    is_active: bool = True
    avatar_url: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    def to_mongo(self) -> dict:
        """Convert to MongoDB document format."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        if data.get("_id"):
            data["_id"] = ObjectId(data["_id"])
        return data

    @classmethod
    def from_mongo(cls, doc: dict) -> "UserInDB":
        """Create instance from MongoDB document."""
        return cls(**doc)
