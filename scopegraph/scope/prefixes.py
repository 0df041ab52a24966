"""Netblocks announced by autonomous systems, read from the asset graph."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from scopegraph.assets.models import AutonomousSystem, Netblock
from scopegraph.assets.relations import RelationType
from scopegraph.errors import StoreError

if TYPE_CHECKING:
    from scopegraph.graph.store import AssetStore
    from scopegraph.scope.registry import Scope

logger = logging.getLogger(__name__)


async def read_as_prefixes(
    store: AssetStore, asn: int, since: datetime | None = None,
) -> list[str]:
    """CIDRs the AS is known to announce; empty when the AS is not in the graph."""
    prefixes: list[str] = []
    try:
        found = await store.find_by_content(AutonomousSystem(number=asn), since)
        if not found:
            return prefixes
        rels = await store.outgoing_relations(found[0].id, since, RelationType.ANNOUNCES)
        for rel in rels:
            stored = await store.find_by_id(rel.to_asset.id, since)
            if stored is not None and isinstance(stored.asset, Netblock):
                prefixes.append(stored.asset.cidr)
    except StoreError as e:
        logger.warning("Reading prefixes of AS%d failed: %s", asn, e)
    return prefixes


async def expand_asn_prefixes(
    scope: Scope, store: AssetStore, since: datetime | None = None,
) -> int:
    """Teach the scope which prefixes its registered ASNs announce.

    Returns the number of new announcements recorded.
    """
    added = 0
    for asn in scope.asns():
        for cidr in await read_as_prefixes(store, asn, since):
            if scope.add_announcement(asn, cidr):
                added += 1
    if added:
        logger.info("Learned %d announced prefixes for %d ASNs", added, len(scope.asns()))
    return added
