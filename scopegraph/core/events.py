"""Event bus connecting discovery plugins to whoever consumes their output."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    ASSET_DISCOVERED = "asset_discovered"   # data: asset, source, plugin
    PLUGIN_STARTED = "plugin_started"       # data: plugin
    PLUGIN_STOPPED = "plugin_stopped"       # data: plugin


@dataclass
class Event:
    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    at: datetime = field(default_factory=lambda: datetime.now(UTC))


Handler = Callable[[Event], Awaitable[None] | None]


class EventBus:
    """Pub/sub keyed by event type; handlers may be plain functions or coroutines.

    Handlers run in subscription order. A handler that raises is logged and
    the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: EventType, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: Handler) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    async def emit_async(self, event: Event) -> None:
        for handler in list(self._handlers.get(event.type, [])):
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("%s handler %r failed", event.type, handler)
