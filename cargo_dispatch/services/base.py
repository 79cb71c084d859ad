"""Shared wiring for the engine services."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cargo_dispatch.config import Settings, settings as default_settings
from cargo_dispatch.domain.enums import OrderEvent
from cargo_dispatch.infrastructure.events import OrderEventPublisher

PendingEvents = list[tuple[OrderEvent, dict[str, Any]]]


class EngineService:
    """
    Base for services that run one transaction per operation.

    The session factory and publisher are injected; tests hand in a SQLite
    factory and a publisher over a mocked Redis client.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        publisher: Optional[OrderEventPublisher] = None,
        settings: Optional[Settings] = None,
    ):
        self.session_factory = session_factory
        self.publisher = publisher
        self.settings = settings or default_settings

    async def _emit(self, events: PendingEvents) -> None:
        # Called after commit only
        if self.publisher is not None and events:
            await self.publisher.publish_all(events)
