"""Meme reference records owned by the meme-management subsystem."""

from pydantic import BaseModel, ConfigDict, Field

from src.core.models import PyObjectId


class MemeRef(BaseModel):
    """The slice of a meme document this service reads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: PyObjectId = Field(alias="_id")
    owner_id: PyObjectId | None = Field(default=None, alias="creator")
    image_url: str | None = Field(default=None, alias="imageUrl")
    title: str = ""

    @classmethod
    def from_mongo(cls, doc: dict) -> "MemeRef":
        """Create instance from MongoDB document."""
        return cls(**doc)
