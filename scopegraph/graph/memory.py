"""In-memory graph store — dict-backed assets with forward/reverse edge indexes."""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from scopegraph.assets.models import FQDN, AssetType, BaseAsset, IPAddress
from scopegraph.assets.relations import (
    ADDRESS_RELATIONS,
    INDIRECT_RELATIONS,
    RelationType,
    StoredAsset,
    StoredRelation,
)
from scopegraph.graph.store import AssetStore, NameRow, as_utc, fqdn_ids, is_fresh


@dataclass
class _Edge:
    id: str
    type: RelationType
    from_id: str
    to_id: str
    created_at: datetime
    last_seen: datetime


class MemoryAssetStore(AssetStore):
    """Graph store held entirely in process memory.

    Assets dedup on their content ID; edges dedup on (type, from, to).
    Suitable for tests and short-lived sessions.
    """

    def __init__(self) -> None:
        self._assets: dict[str, StoredAsset] = {}
        self._edges: dict[str, _Edge] = {}
        self._relation_index: dict[str, list[_Edge]] = defaultdict(list)
        self._reverse_index: dict[str, list[_Edge]] = defaultdict(list)

    @property
    def asset_count(self) -> int:
        return len(self._assets)

    @property
    def relation_count(self) -> int:
        return len(self._edges)

    async def create_asset(
        self, asset: BaseAsset, last_seen: datetime | None = None,
    ) -> StoredAsset:
        now = as_utc(last_seen) if last_seen else datetime.now(UTC)
        asset_id = asset.asset_id()
        existing = self._assets.get(asset_id)
        if existing:
            stored = existing.model_copy(
                update={"asset": asset, "last_seen": max(existing.last_seen, now)},
            )
        else:
            stored = StoredAsset(id=asset_id, asset=asset, created_at=now, last_seen=now)
        self._assets[asset_id] = stored
        return stored

    async def create_relation(
        self,
        rel_type: RelationType,
        from_asset: StoredAsset,
        to_asset: StoredAsset,
        last_seen: datetime | None = None,
    ) -> StoredRelation:
        now = as_utc(last_seen) if last_seen else datetime.now(UTC)
        for side in (from_asset, to_asset):
            if side.id not in self._assets:
                self._assets[side.id] = side

        rel_id = StoredRelation.make_id(rel_type, from_asset.id, to_asset.id)
        edge = self._edges.get(rel_id)
        if edge:
            edge.last_seen = max(edge.last_seen, now)
        else:
            edge = _Edge(
                id=rel_id,
                type=RelationType(rel_type),
                from_id=from_asset.id,
                to_id=to_asset.id,
                created_at=now,
                last_seen=now,
            )
            self._edges[rel_id] = edge
            self._relation_index[edge.from_id].append(edge)
            self._reverse_index[edge.to_id].append(edge)
        return self._materialize(edge)

    async def find_by_id(
        self, asset_id: str, since: datetime | None = None,
    ) -> StoredAsset | None:
        stored = self._assets.get(asset_id)
        if stored is None or not is_fresh(stored.last_seen, since):
            return None
        return stored

    async def find_by_type(
        self, asset_type: AssetType, since: datetime | None = None, **filters: Any,
    ) -> list[StoredAsset]:
        results = []
        for stored in self._assets.values():
            if stored.asset.asset_type != asset_type:
                continue
            if not is_fresh(stored.last_seen, since):
                continue
            if filters and not all(
                getattr(stored.asset, k, None) == v for k, v in filters.items()
            ):
                continue
            results.append(stored)
        return results

    async def outgoing_relations(
        self, asset_id: str, since: datetime | None = None, *rel_types: RelationType,
    ) -> list[StoredRelation]:
        edges = self._select(self._relation_index.get(asset_id, []), since, rel_types)
        return [self._materialize(e) for e in edges]

    async def incoming_relations(
        self, asset_id: str, since: datetime | None = None, *rel_types: RelationType,
    ) -> list[StoredRelation]:
        edges = self._select(self._reverse_index.get(asset_id, []), since, rel_types)
        return [self._materialize(e) for e in edges]

    async def indirect_addresses(
        self, names: Iterable[str], since: datetime | None = None,
    ) -> list[NameRow]:
        rows: list[NameRow] = []
        for fid, name in fqdn_ids(names).items():
            for hop in self._select(self._relation_index.get(fid, []), since, INDIRECT_RELATIONS):
                if not self._is_kind(hop.to_id, AssetType.FQDN):
                    continue
                rows.extend((name, addr) for addr in self._addresses_of(hop.to_id, since))
        return rows

    async def direct_addresses(
        self, names: Iterable[str], since: datetime | None = None,
    ) -> list[NameRow]:
        rows: list[NameRow] = []
        for fid, name in fqdn_ids(names).items():
            rows.extend((name, addr) for addr in self._addresses_of(fid, since))
        return rows

    async def alias_targets(
        self, names: Iterable[str], since: datetime | None = None,
    ) -> list[NameRow]:
        rows: list[NameRow] = []
        for fid, name in fqdn_ids(names).items():
            for edge in self._select(
                self._relation_index.get(fid, []), since, (RelationType.CNAME_RECORD,),
            ):
                target = self._assets.get(edge.to_id)
                if target and isinstance(target.asset, FQDN):
                    rows.append((name, target.asset.name))
        return rows

    async def alias_chain_addresses(
        self, name: str, since: datetime | None = None,
    ) -> list[NameRow]:
        start = fqdn_ids([name])
        if not start:
            return []

        rows: list[NameRow] = []
        visited: set[str] = set()
        queue = deque(start)
        while queue:
            fid = queue.popleft()
            if fid in visited:
                continue
            visited.add(fid)
            stored = self._assets.get(fid)
            if stored is None or not isinstance(stored.asset, FQDN):
                continue
            rows.extend((stored.asset.name, addr) for addr in self._addresses_of(fid, since))
            for edge in self._select(
                self._relation_index.get(fid, []), since, (RelationType.CNAME_RECORD,),
            ):
                if edge.to_id not in visited:
                    queue.append(edge.to_id)
        return rows

    def clear(self) -> None:
        """Reset the store."""
        self._assets.clear()
        self._edges.clear()
        self._relation_index.clear()
        self._reverse_index.clear()

    # -- helpers --

    @staticmethod
    def _select(
        edges: list[_Edge], since: datetime | None, rel_types: Iterable[RelationType],
    ) -> list[_Edge]:
        wanted = set(rel_types)
        return [
            e for e in edges
            if (not wanted or e.type in wanted) and is_fresh(e.last_seen, since)
        ]

    def _is_kind(self, asset_id: str, asset_type: AssetType) -> bool:
        stored = self._assets.get(asset_id)
        return stored is not None and stored.asset.asset_type == asset_type

    def _addresses_of(self, fid: str, since: datetime | None) -> list[str]:
        addrs = []
        for edge in self._select(self._relation_index.get(fid, []), since, ADDRESS_RELATIONS):
            target = self._assets.get(edge.to_id)
            if target and isinstance(target.asset, IPAddress):
                addrs.append(target.asset.address)
        return addrs

    def _materialize(self, edge: _Edge) -> StoredRelation:
        return StoredRelation(
            id=edge.id,
            type=edge.type,
            from_asset=self._assets[edge.from_id],
            to_asset=self._assets[edge.to_id],
            created_at=edge.created_at,
            last_seen=edge.last_seen,
        )
