"""Tests for learning ASN-announced prefixes from the asset graph."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from scopegraph.assets import AutonomousSystem, Netblock, RelationType
from scopegraph.errors import StoreError
from scopegraph.scope import Scope, expand_asn_prefixes, read_as_prefixes

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)
HOUR = timedelta(hours=1)


class TestReadAsPrefixes:
    async def test_announced_prefixes(self, store, seed):
        asys = AutonomousSystem(number=64500)
        await seed.link(RelationType.ANNOUNCES, asys, Netblock(cidr="203.0.113.0/24"))
        await seed.link(RelationType.ANNOUNCES, asys, Netblock(cidr="2001:db8::/32"))
        prefixes = await read_as_prefixes(store, 64500)
        assert sorted(prefixes) == ["2001:db8::/32", "203.0.113.0/24"]

    async def test_unknown_asn(self, store):
        assert await read_as_prefixes(store, 64999) == []

    async def test_stale_announcements_filtered(self, store, seed):
        asys = AutonomousSystem(number=64500)
        await seed.link(RelationType.ANNOUNCES, asys, Netblock(cidr="203.0.113.0/24"), NOW - HOUR)
        assert await read_as_prefixes(store, 64500, since=NOW) == []

    async def test_store_failure_yields_nothing(self):
        broken = MagicMock()
        broken.find_by_content = AsyncMock(side_effect=StoreError("down"))
        assert await read_as_prefixes(broken, 64500) == []


class TestExpandAsnPrefixes:
    async def test_netblocks_match_through_asn(self, store, seed):
        await seed.link(
            RelationType.ANNOUNCES, AutonomousSystem(number=64500), Netblock(cidr="203.0.113.0/24"),
        )
        scope = Scope()
        scope.add_asn(64500)

        assert await expand_asn_prefixes(scope, store) == 1
        assert await expand_asn_prefixes(scope, store) == 0
        match, accuracy = scope.is_in_scope(Netblock(cidr="203.0.113.64/26"))
        assert match == AutonomousSystem(number=64500)
        assert accuracy == 100
