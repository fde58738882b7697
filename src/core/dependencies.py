"""
FastAPI dependency injection utilities.

Provides reusable dependencies for routes and services.
"""

from typing import Annotated

from fastapi import Depends, Header
from motor.motor_asyncio import AsyncIOMotorDatabase

from src.core.database import get_database
from src.core.exceptions import ValidationError


def get_expected_revision(
    if_match: Annotated[str | None, Header(alias="If-Match")] = None,
) -> int | None:
    """Read the aggregate revision a client last saw from the If-Match header."""
    if if_match is None:
        return None
    value = if_match.strip().strip('"')
    if value.startswith("W/"):
        value = value[2:].strip('"')
    try:
        return int(value)
    except ValueError as exc:
        raise ValidationError("If-Match must carry an integer revision") from exc


# Type aliases for dependency injection
MongoDB = Annotated[AsyncIOMotorDatabase, Depends(get_database)]
ExpectedRevision = Annotated[int | None, Depends(get_expected_revision)]
