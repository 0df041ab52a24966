"""Asset graph store contract consumed by the scope engine and the resolver."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from scopegraph.assets.models import FQDN, AssetType, BaseAsset, normalize_name
from scopegraph.assets.relations import RelationType, StoredAsset, StoredRelation

# (hostname, address) or (hostname, alias target) rows
NameRow = tuple[str, str]


def as_utc(ts: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def is_fresh(last_seen: datetime, since: datetime | None) -> bool:
    """True when an observation passes the ``since`` cutoff (None = no filter)."""
    if since is None:
        return True
    return as_utc(last_seen) >= as_utc(since)


def fqdn_ids(names: Iterable[str]) -> dict[str, str]:
    """Map graph IDs of FQDN assets to their canonical names, skipping junk."""
    ids: dict[str, str] = {}
    for name in names:
        name = normalize_name(name)
        if name:
            ids[FQDN(name=name).asset_id()] = name
    return ids


class AssetStore(ABC):
    """Content-addressed graph of assets joined by time-stamped relations.

    Every ``since`` argument is an inclusive cutoff on ``last_seen``;
    ``None`` disables time filtering. Backend failures surface as
    :class:`~scopegraph.errors.StoreError`.
    """

    @abstractmethod
    async def create_asset(
        self, asset: BaseAsset, last_seen: datetime | None = None,
    ) -> StoredAsset:
        """Insert the asset, or refresh ``last_seen`` if it already exists."""

    @abstractmethod
    async def create_relation(
        self,
        rel_type: RelationType,
        from_asset: StoredAsset,
        to_asset: StoredAsset,
        last_seen: datetime | None = None,
    ) -> StoredRelation:
        """Insert the edge, or refresh ``last_seen`` if it already exists."""

    @abstractmethod
    async def find_by_id(
        self, asset_id: str, since: datetime | None = None,
    ) -> StoredAsset | None:
        """Return the stored asset, or None when missing or stale."""

    @abstractmethod
    async def find_by_type(
        self, asset_type: AssetType, since: datetime | None = None, **filters: Any,
    ) -> list[StoredAsset]:
        """Assets of one kind whose content equals every given filter."""

    @abstractmethod
    async def outgoing_relations(
        self, asset_id: str, since: datetime | None = None, *rel_types: RelationType,
    ) -> list[StoredRelation]:
        """Edges leaving the asset, optionally restricted to some types."""

    @abstractmethod
    async def incoming_relations(
        self, asset_id: str, since: datetime | None = None, *rel_types: RelationType,
    ) -> list[StoredRelation]:
        """Edges arriving at the asset, optionally restricted to some types."""

    @abstractmethod
    async def indirect_addresses(
        self, names: Iterable[str], since: datetime | None = None,
    ) -> list[NameRow]:
        """(name, address) where name -srv/ns/mx-> holder -a/aaaa-> address."""

    @abstractmethod
    async def direct_addresses(
        self, names: Iterable[str], since: datetime | None = None,
    ) -> list[NameRow]:
        """(name, address) where name -a/aaaa-> address."""

    @abstractmethod
    async def alias_targets(
        self, names: Iterable[str], since: datetime | None = None,
    ) -> list[NameRow]:
        """(name, target) for one ``cname_record`` hop out of each name."""

    @abstractmethod
    async def alias_chain_addresses(
        self, name: str, since: datetime | None = None,
    ) -> list[NameRow]:
        """(hostname, address) for every chain member reachable from name.

        Follows ``cname_record`` edges transitively, applying ``since`` at
        every hop; the starting name itself is part of the chain.
        """

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""

    async def find_by_content(
        self, asset: BaseAsset, since: datetime | None = None,
    ) -> list[StoredAsset]:
        """Assets with the same content identity as ``asset``."""
        found = await self.find_by_id(asset.asset_id(), since)
        return [found] if found else []

    async def __aenter__(self) -> AssetStore:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
