"""Live pantry updates for household members over Redis pub/sub.

Mutations are announced on the group's channel once they have committed, and
every WebSocket connection of that group relays them. Delivery is best-effort:
a lost event never touches the ledger, clients catch up by reloading.
"""

import logging
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

import redis
import redis.asyncio as aioredis
from pydantic import BaseModel, Field, ValidationError, model_validator

from src.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class PantryEventType(StrEnum):
    """Event types for pantry updates."""

    # Item events
    ITEM_ADDED = "item_added"
    ITEM_UPDATED = "item_updated"
    ITEM_USED = "item_used"
    ITEM_DELETED = "item_deleted"

    # Category events
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"

    # Notification events
    NOTIFICATION_READ = "notification_read"
    NOTIFICATION_DISMISSED = "notification_dismissed"


# Payload keys carried by each event type
EVENT_FIELDS: dict[PantryEventType, frozenset[str]] = {
    PantryEventType.ITEM_ADDED: frozenset({"item_id", "name", "quantity", "unit"}),
    PantryEventType.ITEM_UPDATED: frozenset({"item_id", "name", "quantity", "unit"}),
    PantryEventType.ITEM_USED: frozenset({"item_id", "remaining_quantity", "unit"}),
    PantryEventType.ITEM_DELETED: frozenset({"item_id"}),
    PantryEventType.CATEGORY_CREATED: frozenset({"category_id", "name"}),
    PantryEventType.CATEGORY_UPDATED: frozenset({"category_id", "name"}),
    PantryEventType.CATEGORY_DELETED: frozenset({"category_id"}),
    PantryEventType.NOTIFICATION_READ: frozenset({"notification_id"}),
    PantryEventType.NOTIFICATION_DISMISSED: frozenset({"notification_id"}),
}


def pantry_channel(group_id: int) -> str:
    """Redis channel carrying a group's pantry events."""
    return f"group:{group_id}:pantry"


class PantryEvent(BaseModel):
    """A committed pantry change, as sent to the group's connections."""

    type: PantryEventType
    group_id: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_payload(self) -> "PantryEvent":
        expected = EVENT_FIELDS[self.type]
        if set(self.data) != expected:
            raise ValueError(
                f"{self.type} carries {sorted(expected)}, got {sorted(self.data)}"
            )
        return self

    @classmethod
    def build(cls, event_type: PantryEventType, group_id: int, **data: Any) -> "PantryEvent":
        return cls(type=event_type, group_id=group_id, data=data)

    @property
    def channel(self) -> str:
        return pantry_channel(self.group_id)


# Publishing client shared by the API workers
_sync_redis: redis.Redis | None = None


def get_sync_redis() -> redis.Redis:
    global _sync_redis
    if _sync_redis is None:
        _sync_redis = redis.from_url(settings.redis_url)
    return _sync_redis


def publish_pantry_event(event: PantryEvent) -> int:
    """Announce a committed change to the group's connections.

    Returns how many connections received it, or 0 when Redis is unreachable.
    """
    try:
        receivers = get_sync_redis().publish(event.channel, event.model_dump_json())
    except redis.RedisError as e:
        logger.error(f"Failed to publish {event.type} for group {event.group_id}: {e}")
        return 0
    logger.debug(f"Published {event.type} to {event.channel} ({receivers} receivers)")
    return receivers


class PantryEventStream:
    """Async subscription to one group's pantry events, for a WebSocket."""

    def __init__(self, group_id: int) -> None:
        self.group_id = group_id
        self._redis: aioredis.Redis | None = None
        self._pubsub: aioredis.client.PubSub | None = None

    @property
    def channel(self) -> str:
        return pantry_channel(self.group_id)

    async def events(self) -> AsyncIterator[PantryEvent]:
        """Yield the group's events until the subscription is closed."""
        if self._redis is None:
            self._redis = aioredis.from_url(settings.redis_url)
        self._pubsub = self._redis.pubsub()
        await self._pubsub.subscribe(self.channel)

        try:
            async for message in self._pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    event = PantryEvent.model_validate_json(message["data"])
                except ValidationError:
                    logger.warning(f"Dropping malformed event on {self.channel}")
                    continue
                if event.group_id != self.group_id:
                    logger.warning(f"Dropping event of group {event.group_id} on {self.channel}")
                    continue
                yield event
        finally:
            await self._pubsub.unsubscribe(self.channel)

    async def close(self) -> None:
        if self._pubsub is not None:
            await self._pubsub.aclose()
        if self._redis is not None:
            await self._redis.aclose()
