"""Behaviour every graph backend shares, run against memory and SQLite."""

from datetime import UTC, datetime, timedelta

from scopegraph.assets import (
    FQDN,
    AssetType,
    IPAddress,
    Netblock,
    RelationType,
    Source,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)
HOUR = timedelta(hours=1)


class TestAssets:
    async def test_create_and_find(self, store):
        stored = await store.create_asset(FQDN(name="www.example.com"), last_seen=NOW)
        assert stored.id == FQDN(name="www.example.com").asset_id()

        found = await store.find_by_id(stored.id)
        assert found.asset == FQDN(name="www.example.com")
        assert found.last_seen == NOW

    async def test_upsert_keeps_one_node(self, store):
        first = await store.create_asset(FQDN(name="example.com"), last_seen=NOW - HOUR)
        second = await store.create_asset(FQDN(name="EXAMPLE.COM."), last_seen=NOW)
        assert first.id == second.id
        assert len(await store.find_by_type(AssetType.FQDN)) == 1

    async def test_last_seen_never_moves_backwards(self, store):
        await store.create_asset(FQDN(name="example.com"), last_seen=NOW)
        stored = await store.create_asset(FQDN(name="example.com"), last_seen=NOW - HOUR)
        assert stored.last_seen == NOW

    async def test_missing(self, store):
        assert await store.find_by_id("0000000000000000") is None

    async def test_since_hides_stale_assets(self, store):
        stored = await store.create_asset(FQDN(name="old.example.com"), last_seen=NOW - HOUR)
        assert await store.find_by_id(stored.id, since=NOW) is None
        assert await store.find_by_id(stored.id, since=NOW - HOUR) is not None

    async def test_find_by_type_with_filters(self, store):
        await store.create_asset(IPAddress(address="192.0.2.1"))
        await store.create_asset(IPAddress(address="2001:db8::1"))
        await store.create_asset(Netblock(cidr="192.0.2.0/24"))

        v6 = await store.find_by_type(AssetType.IP_ADDRESS, type="IPv6")
        assert [s.asset.address for s in v6] == ["2001:db8::1"]
        assert len(await store.find_by_type(AssetType.IP_ADDRESS)) == 2

    async def test_find_by_content(self, store):
        await store.create_asset(Source(name="RapidDNS", confidence=70))
        found = await store.find_by_content(Source(name="RapidDNS", confidence=70))
        assert len(found) == 1
        assert await store.find_by_content(Source(name="Other")) == []


class TestRelations:
    async def test_outgoing_and_incoming(self, store, seed):
        await seed.address("www.example.com", "192.0.2.10")
        await seed.alias("www.example.com", "cdn.example.net")
        fid = FQDN(name="www.example.com").asset_id()

        out = await store.outgoing_relations(fid)
        assert {r.type for r in out} == {RelationType.A_RECORD, RelationType.CNAME_RECORD}

        only_a = await store.outgoing_relations(fid, None, RelationType.A_RECORD)
        assert [r.to_asset.asset.address for r in only_a] == ["192.0.2.10"]

        incoming = await store.incoming_relations(IPAddress(address="192.0.2.10").asset_id())
        assert [r.from_asset.id for r in incoming] == [fid]

    async def test_relation_upsert(self, store, seed):
        first = await seed.address("www.example.com", "192.0.2.10", NOW - HOUR)
        second = await seed.address("www.example.com", "192.0.2.10", NOW)
        assert first.id == second.id
        assert second.last_seen == NOW
        fid = FQDN(name="www.example.com").asset_id()
        assert len(await store.outgoing_relations(fid)) == 1

    async def test_since_filters_relations(self, store, seed):
        await seed.address("www.example.com", "192.0.2.10", NOW - HOUR)
        fid = FQDN(name="www.example.com").asset_id()
        assert await store.outgoing_relations(fid, NOW) == []


class TestResolutionQueries:
    async def test_direct_addresses(self, store, seed):
        await seed.address("a.example.com", "93.184.216.34")
        await seed.address("a.example.com", "2001:db8::34")
        rows = await store.direct_addresses(["A.example.com."])
        assert sorted(rows) == [
            ("a.example.com", "2001:db8::34"),
            ("a.example.com", "93.184.216.34"),
        ]

    async def test_direct_addresses_many_names(self, store, seed):
        names = [f"h{i}.example.com" for i in range(5)]
        for i, name in enumerate(names):
            await seed.address(name, f"192.0.2.{i + 1}")
        rows = await store.direct_addresses(names)
        assert len(rows) == 5

    async def test_indirect_addresses(self, store, seed):
        await seed.service(RelationType.MX_RECORD, "example.com", "mx1.example.net")
        await seed.address("mx1.example.net", "198.51.100.25")
        rows = await store.indirect_addresses(["example.com"])
        assert rows == [("example.com", "198.51.100.25")]

    async def test_indirect_addresses_stale_service_hop(self, store, seed):
        await seed.service(
            RelationType.MX_RECORD, "example.com", "mx1.example.net", NOW - 2 * HOUR,
        )
        await seed.address("mx1.example.net", "198.51.100.25", NOW)
        assert await store.indirect_addresses(["example.com"], NOW - HOUR) == []

    async def test_indirect_addresses_stale_target_address(self, store, seed):
        await seed.service(RelationType.SRV_RECORD, "example.com", "sip.example.net", NOW)
        await seed.address("sip.example.net", "198.51.100.40", NOW - 2 * HOUR)
        assert await store.indirect_addresses(["example.com"], NOW - HOUR) == []

    async def test_indirect_addresses_both_hops_fresh(self, store, seed):
        await seed.service(RelationType.SRV_RECORD, "example.com", "sip.example.net", NOW)
        await seed.address("sip.example.net", "198.51.100.40", NOW - HOUR)
        rows = await store.indirect_addresses(["example.com"], NOW - HOUR)
        assert rows == [("example.com", "198.51.100.40")]

    async def test_alias_targets_single_hop(self, store, seed):
        await seed.alias("b.example.com", "c.example.com")
        await seed.alias("c.example.com", "d.example.com")
        rows = await store.alias_targets(["b.example.com"])
        assert rows == [("b.example.com", "c.example.com")]

    async def test_alias_chain_addresses(self, store, seed):
        await seed.alias("b.example.com", "c.example.com")
        await seed.alias("c.example.com", "d.example.com")
        await seed.address("d.example.com", "203.0.113.7")
        rows = await store.alias_chain_addresses("b.example.com")
        assert rows == [("d.example.com", "203.0.113.7")]

    async def test_alias_chain_terminates_on_cycle(self, store, seed):
        await seed.alias("x.example.com", "y.example.com")
        await seed.alias("y.example.com", "x.example.com")
        await seed.address("y.example.com", "203.0.113.9")
        rows = await store.alias_chain_addresses("x.example.com")
        assert rows == [("y.example.com", "203.0.113.9")]

    async def test_alias_chain_respects_since(self, store, seed):
        await seed.alias("b.example.com", "c.example.com", NOW - HOUR)
        await seed.address("c.example.com", "203.0.113.7")
        assert await store.alias_chain_addresses("b.example.com", since=NOW) == []

    async def test_unknown_names(self, store):
        assert await store.direct_addresses(["nothing.example"]) == []
        assert await store.alias_chain_addresses("nothing.example") == []
