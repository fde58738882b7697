"""Shared models and types for the whole application."""

from datetime import datetime, timezone
from typing import Annotated, Generic, TypeVar

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, BeforeValidator

T = TypeVar("T")


def validate_object_id(v: str | ObjectId) -> str:
    """Validate and convert ObjectId to string."""
    if isinstance(v, ObjectId):
        return str(v)
    if isinstance(v, str) and ObjectId.is_valid(v):
        return v
    raise ValueError("Invalid ObjectId")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form MongoDB hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(v: datetime | None) -> datetime | None:
    """Normalise aware datetimes from clients to naive UTC."""
    if isinstance(v, datetime) and v.tzinfo is not None:
        return v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


# Standard type for MongoDB ObjectIDs used across modules
PyObjectId = Annotated[str, BeforeValidator(validate_object_id)]

# Datetimes accepted from clients, stored as naive UTC
NaiveUTCDatetime = Annotated[datetime, AfterValidator(to_naive_utc)]


class Envelope(BaseModel, Generic[T]):
    """Success envelope shared by every endpoint."""

    success: bool = True
    data: T


class ErrorEnvelope(BaseModel):
    """Error envelope rendered by the exception handlers."""

    success: bool = False
    message: str
