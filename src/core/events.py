"""Redis Pub/Sub publishing of collaboration activity events."""

import json
import logging
from datetime import datetime
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.core.config import settings
from src.core.models import utcnow

logger = logging.getLogger(__name__)


def channel_for(collaboration_id: str) -> str:
    """Channel name used for one collaboration's events."""
    return f"collab:{collaboration_id}"


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class RedisEventPublisher:
    """Publishes activity events so presentation layers can push live updates."""

    def __init__(self, redis_url: str | None = None, enabled: bool | None = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self.enabled = settings.EVENTS_ENABLED if enabled is None else enabled
        self.client: Redis | None = None

    async def connect(self) -> None:
        """Initialize Redis connection."""
        self.client = Redis.from_url(self.redis_url, decode_responses=True)

    async def publish(
        self, collaboration_id: str, event_type: str, payload: dict | None = None
    ) -> bool:
        """Publish an event to the collaboration's channel.

        Events are notifications, not state: a Redis outage is logged and
        swallowed so it never fails the request that produced the event.
        """
        if not self.enabled:
            return False

        if not self.client:
            await self.connect()

        message = {
            "type": event_type,
            "collaboration_id": collaboration_id,
            "payload": payload or {},
            "timestamp": utcnow(),
        }
        try:
            await self.client.publish(
                channel_for(collaboration_id), json.dumps(message, default=_default)
            )
        except RedisError as exc:
            logger.warning(
                "Could not publish %s for %s: %s", event_type, collaboration_id, exc
            )
            return False
        return True

    async def stop(self) -> None:
        """Clean up connections."""
        if self.client:
            await self.client.aclose()
            self.client = None


# Global instance
event_publisher = RedisEventPublisher()
