"""Shared resources handed to every plugin during discovery."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from scopegraph.config import Settings
from scopegraph.core.events import EventBus
from scopegraph.graph import AssetStore, open_store
from scopegraph.scope import Scope, expand_asn_prefixes
from scopegraph.utils.http import AsyncHttpClient

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Dependency container for one investigation.

    The scope is filled once in :meth:`create` and only read afterwards;
    plugins running concurrently share it without locking.
    """

    settings: Settings
    scope: Scope
    store: AssetStore
    http: AsyncHttpClient | None = None
    bus: EventBus = field(default_factory=EventBus)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    log: logging.Logger = field(default_factory=lambda: logging.getLogger("scopegraph.session"))

    @classmethod
    async def create(cls, settings: Settings, *, with_http: bool = True) -> Session:
        """Open the store, load the scope, and learn announced prefixes."""
        store = await open_store(settings.storage)
        scope = Scope.from_settings(settings.scope)
        await expand_asn_prefixes(scope, store)

        http = AsyncHttpClient.from_settings(settings.http) if with_http else None
        session = cls(settings=settings, scope=scope, store=store, http=http)
        logger.info("Session %s started", session.id)
        return session

    async def close(self) -> None:
        if self.http is not None:
            await self.http.close()
        await self.store.close()
        logger.info("Session %s closed", self.id)

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
