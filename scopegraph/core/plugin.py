"""Plugin system — BasePlugin ABC and PluginMeta."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from aiolimiter import AsyncLimiter
from pydantic import BaseModel, Field

from scopegraph.assets.models import AssetType, Source
from scopegraph.core.events import Event, EventType

if TYPE_CHECKING:
    from scopegraph.assets.relations import StoredAsset
    from scopegraph.core.session import Session


class PluginMeta(BaseModel):
    """Metadata declaring what a plugin consumes and how hard it may push its source."""

    name: str
    display_name: str
    description: str = ""
    confidence: int = Field(default=50, ge=0, le=100)  # source confidence
    requests_per_second: float = 1.0
    max_instances: int = 10     # concurrent handler calls
    priority: int = 5
    event_type: AssetType = AssetType.FQDN
    transforms: list[AssetType] = Field(default_factory=lambda: [AssetType.FQDN])


class BasePlugin(ABC):
    """Base class for all discovery plugins.

    Convention: one file in plugins/<category>/, one class with `meta`,
    one `check` method handling a single stored asset.
    """

    meta: ClassVar[PluginMeta]

    def __init__(self) -> None:
        self.log = logging.getLogger(f"scopegraph.plugins.{self.meta.name}")
        self.limiter = AsyncLimiter(self.meta.requests_per_second, 1.0)
        self._slots = asyncio.Semaphore(self.meta.max_instances)

    @property
    def source(self) -> Source:
        return Source(name=self.meta.display_name, confidence=self.meta.confidence)

    def accepts(self, stored: StoredAsset) -> bool:
        """Return True if this plugin handles the given asset kind."""
        return stored.asset.asset_type == self.meta.event_type

    async def start(self, session: Session) -> None:
        self.log.info("Plugin started")
        await session.bus.emit_async(
            Event(EventType.PLUGIN_STARTED, {"plugin": self.meta.name}),
        )

    async def stop(self, session: Session) -> None:
        self.log.info("Plugin stopped")
        await session.bus.emit_async(
            Event(EventType.PLUGIN_STOPPED, {"plugin": self.meta.name}),
        )

    async def handle(self, session: Session, stored: StoredAsset) -> list[StoredAsset]:
        """Run :meth:`check`, bounded by ``meta.max_instances`` concurrent calls."""
        async with self._slots:
            return await self.check(session, stored)

    @abstractmethod
    async def check(self, session: Session, stored: StoredAsset) -> list[StoredAsset]:
        """Discover assets related to ``stored``; return what was found."""

    def __repr__(self) -> str:
        return f"<Plugin {self.meta.name}>"
