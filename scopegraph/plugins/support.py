"""Helpers shared by discovery plugins for TTL windows, sources and storage."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from scopegraph.assets.models import FQDN, AssetType, Source
from scopegraph.assets.relations import RelationType, StoredAsset
from scopegraph.core.events import Event, EventType
from scopegraph.errors import StoreError
from scopegraph.scope.matching import fqdn_or_none

if TYPE_CHECKING:
    from scopegraph.config import Settings
    from scopegraph.core.session import Session

logger = logging.getLogger(__name__)

SUBDOMAIN_RE = re.compile(
    r"(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z][a-z0-9-]{0,61}[a-z0-9]",
    re.IGNORECASE,
)


def ttl_start_time(
    settings: Settings, from_type: str, to_type: str, plugin_name: str,
) -> datetime:
    """Oldest ``last_seen`` still considered fresh for this plugin's transformation.

    A plugin-specific TTL wins over the ``"<from>-><to>"`` entry, which wins
    over ``ttl.default_minutes``.
    """
    ttl = settings.ttl
    minutes = ttl.transformations.get(
        plugin_name, ttl.transformations.get(f"{from_type}->{to_type}", ttl.default_minutes),
    )
    if minutes < 0:
        raise ValueError(f"Negative TTL for {plugin_name}: {minutes}")
    return datetime.now(UTC) - timedelta(minutes=minutes)


async def get_source(session: Session, source: Source) -> StoredAsset:
    """The stored Source asset for a plugin, created on first use."""
    return await session.store.create_asset(source)


async def asset_monitored_within_ttl(
    session: Session, stored: StoredAsset, src: StoredAsset, since: datetime,
) -> bool:
    """True if ``src`` was already asked about ``stored`` at or after ``since``."""
    try:
        rels = await session.store.outgoing_relations(
            stored.id, since, RelationType.MONITORED_BY,
        )
    except StoreError as e:
        logger.warning("Monitor lookup for %s failed: %s", stored.id, e)
        return False
    return any(rel.to_asset.id == src.id for rel in rels)


async def mark_asset_monitored(session: Session, stored: StoredAsset, src: StoredAsset) -> None:
    await session.store.create_relation(RelationType.MONITORED_BY, stored, src)


async def source_to_assets_within_ttl(
    session: Session,
    name: str,
    asset_type: AssetType,
    src: StoredAsset,
    since: datetime,
) -> list[StoredAsset]:
    """Assets previously credited to ``src`` under ``name`` and still fresh."""
    rels = await session.store.incoming_relations(src.id, since, RelationType.SOURCE)
    results = []
    for rel in rels:
        asset = rel.from_asset.asset
        if asset.asset_type != asset_type:
            continue
        if isinstance(asset, FQDN) and not (
            asset.name == name or asset.name.endswith("." + name)
        ):
            continue
        results.append(rel.from_asset)
    return results


async def store_fqdns_with_source(
    session: Session, names: Iterable[str], src: StoredAsset, plugin_name: str,
) -> list[StoredAsset]:
    """Store names as FQDN assets credited to ``src``; skip names that fail."""
    stored_assets = []
    for name in names:
        fqdn = fqdn_or_none(name)
        if fqdn is None:
            continue
        try:
            stored = await session.store.create_asset(fqdn)
            await session.store.create_relation(RelationType.SOURCE, stored, src)
        except StoreError as e:
            logger.error("%s failed to store %s: %s", plugin_name, fqdn.name, e)
            continue
        stored_assets.append(stored)
    return stored_assets


async def process_fqdns_with_source(
    session: Session, assets: Iterable[StoredAsset], src: StoredAsset, plugin_name: str,
) -> None:
    """Announce discovered names so downstream handlers can pick them up."""
    for stored in assets:
        await session.bus.emit_async(Event(
            EventType.ASSET_DISCOVERED,
            {"asset": stored, "source": src.asset, "plugin": plugin_name},
        ))


def scrape_subdomain_names(text: str) -> list[str]:
    """Every hostname-looking token in ``text``, lower-cased, first-seen order."""
    names: dict[str, None] = {}
    for match in SUBDOMAIN_RE.findall(text):
        names.setdefault(match.lower(), None)
    return list(names)
