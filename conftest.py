"""
Pytest configuration and shared fixtures.

Provides an in-memory MongoDB (mongomock-motor), an HTTP client wired to it,
user/token factories, and a recorder standing in for the Redis publisher.
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from src.core.config import settings
from src.core.database import get_database
from src.core.events import event_publisher
from src.main import app
from src.modules.auth.models import UserInDB
from src.modules.auth.security import create_access_token
from src.modules.auth.services import USERS_COLLECTION


@pytest.fixture(autouse=True)
def no_outbound_email(monkeypatch):
    """Invitation e-mails are never sent from tests."""
    monkeypatch.setattr(settings, "INVITE_EMAILS_ENABLED", False)


@pytest.fixture(autouse=True)
def published_events(monkeypatch) -> list[dict]:
    """Record activity events instead of publishing them to Redis."""
    events: list[dict] = []

    async def record(collaboration_id, event_type, payload=None):
        events.append(
            {
                "collaboration_id": collaboration_id,
                "type": event_type,
                "payload": payload or {},
            }
        )
        return True

    monkeypatch.setattr(event_publisher, "publish", record)
    return events


@pytest.fixture
def mongo_db() -> Any:
    """Fresh in-memory MongoDB database per test."""
    client = AsyncMongoMockClient()
    return client[f"{settings.MONGODB_DATABASE}_test"]


@pytest.fixture
async def async_client(mongo_db) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing FastAPI endpoints.

    Usage:
        async def test_endpoint(async_client):
            response = await async_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    # Override database dependency to use the test database
    app.dependency_overrides[get_database] = lambda: mongo_db
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def create_user(mongo_db):
    """Factory inserting a user and returning ``(user_id, auth_headers)``."""

    async def _create(username: str, role: str = "user", is_active: bool = True):
        user = UserInDB(
            email=f"{username}@example.com",
            username=username,
            role=role,
            is_active=is_active,
        )
        result = await mongo_db[USERS_COLLECTION].insert_one(user.to_mongo())
        user_id = str(result.inserted_id)
        token = create_access_token(user_id)
        return user_id, {"Authorization": f"Bearer {token}"}

    return _create


@pytest.fixture
def anyio_backend() -> str:
    """Backend for anyio (used by httpx)."""
    return "asyncio"
