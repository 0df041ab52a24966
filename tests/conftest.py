"""Shared test fixtures."""

import logging
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from scopegraph.assets import FQDN, IPAddress, RelationType
from scopegraph.config import Settings
from scopegraph.core.events import EventBus
from scopegraph.core.session import Session
from scopegraph.graph import MemoryAssetStore, SQLiteAssetStore
from scopegraph.scope import Scope

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)
HOUR = timedelta(hours=1)


@pytest.fixture
async def memory_store():
    store = MemoryAssetStore()
    yield store
    await store.close()


@pytest.fixture
async def sqlite_store():
    store = await SQLiteAssetStore.open(":memory:", chunk_size=2)
    yield store
    await store.close()


@pytest.fixture(params=["memory", "sqlite"])
async def store(request):
    """Each graph backend in turn."""
    if request.param == "memory":
        s = MemoryAssetStore()
    else:
        s = await SQLiteAssetStore.open(":memory:", chunk_size=2)
    yield s
    await s.close()


@pytest.fixture
def sample_scope():
    scope = Scope()
    scope.add_domain("example.com")
    scope.add_cidr("192.0.2.0/24")
    scope.add_asn(64500)
    scope.add_org("Acme Widgets")
    return scope


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
async def session(settings, sample_scope, memory_store):
    """Session with an in-memory graph and a mocked HTTP client."""
    http = AsyncMock()
    http.fetch_text = AsyncMock(return_value=None)
    return Session(
        settings=settings,
        scope=sample_scope,
        store=memory_store,
        http=http,
        bus=EventBus(),
        log=logging.getLogger("test"),
    )


class GraphSeeder:
    """Writes small DNS-shaped graphs into a store for tests."""

    def __init__(self, store):
        self.store = store

    async def link(self, rel_type, src, dst, last_seen=NOW):
        a = await self.store.create_asset(src, last_seen=last_seen)
        b = await self.store.create_asset(dst, last_seen=last_seen)
        return await self.store.create_relation(rel_type, a, b, last_seen=last_seen)

    async def address(self, name, address, last_seen=NOW):
        rel = RelationType.AAAA_RECORD if ":" in address else RelationType.A_RECORD
        return await self.link(rel, FQDN(name=name), IPAddress(address=address), last_seen)

    async def alias(self, name, target, last_seen=NOW):
        return await self.link(
            RelationType.CNAME_RECORD, FQDN(name=name), FQDN(name=target), last_seen,
        )

    async def service(self, rel_type, name, target, last_seen=NOW):
        return await self.link(rel_type, FQDN(name=name), FQDN(name=target), last_seen)


@pytest.fixture
def seed(store):
    return GraphSeeder(store)


@pytest.fixture
def seed_memory(memory_store):
    return GraphSeeder(memory_store)
