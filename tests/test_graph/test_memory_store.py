"""MemoryAssetStore-specific behaviour."""

from scopegraph.assets import FQDN, IPAddress, RelationType


class TestMemoryStore:
    async def test_counts(self, memory_store, seed_memory):
        await seed_memory.address("www.example.com", "192.0.2.10")
        await seed_memory.address("www.example.com", "192.0.2.10")
        assert memory_store.asset_count == 2
        assert memory_store.relation_count == 1

    async def test_relation_registers_unknown_endpoints(self, memory_store):
        a = await memory_store.create_asset(FQDN(name="www.example.com"))
        other = await memory_store.create_asset(IPAddress(address="192.0.2.10"))
        memory_store.clear()
        await memory_store.create_relation(RelationType.A_RECORD, a, other)
        assert await memory_store.direct_addresses(["www.example.com"]) == [
            ("www.example.com", "192.0.2.10"),
        ]

    async def test_clear(self, memory_store, seed_memory):
        await seed_memory.alias("b.example.com", "c.example.com")
        memory_store.clear()
        assert memory_store.asset_count == 0
        assert await memory_store.alias_targets(["b.example.com"]) == []
