"""
Order event fan-out over Redis pub/sub.

The notifier (SMS / push / dashboard) subscribes to ``settings.events_channel``.
Events are published only after the order transaction commits, and a
publish failure is logged without touching the committed order.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from cargo_dispatch.domain.enums import OrderEvent

logger = logging.getLogger(__name__)


def create_redis(url: str) -> aioredis.Redis:
    """Return a Redis client backed by its own connection pool."""
    return aioredis.Redis(
        connection_pool=aioredis.ConnectionPool.from_url(url, decode_responses=True)
    )


class OrderEventPublisher:
    def __init__(self, client: aioredis.Redis, channel: str = "order-events"):
        self.redis = client
        self.channel = channel

    async def publish(self, event: OrderEvent, **payload: Any) -> bool:
        message = json.dumps({"event": event.value, **payload}, default=str)
        try:
            await self.redis.publish(self.channel, message)
        except (RedisError, OSError):
            logger.exception("event_publish_failed: event=%s", event.value)
            return False
        logger.debug("event_published: event=%s payload=%s", event.value, payload)
        return True

    async def publish_all(self, events: list[tuple[OrderEvent, dict[str, Any]]]) -> None:
        for event, payload in events:
            await self.publish(event, **payload)
