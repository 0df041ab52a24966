"""Name-to-address resolution over the asset graph.

Resolution narrows in stages so the common case stays cheap:

1. names holding SRV/NS/MX records whose targets have A/AAAA records,
2. names with their own A/AAAA records,
3. names with CNAME records, followed down the whole alias chain.

Each stage only queries the names earlier stages left unresolved.
"""

from __future__ import annotations

import ipaddress
import logging
from collections import defaultdict
from collections.abc import Awaitable, Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from scopegraph.assets.models import FQDN, IPAddress, normalize_name
from scopegraph.errors import NoAddressesError, StoreError

if TYPE_CHECKING:
    from scopegraph.graph.store import AssetStore, NameRow

logger = logging.getLogger(__name__)


class NameAddrPair(BaseModel):
    """A hostname and one address it resolves to."""

    model_config = ConfigDict(frozen=True)

    fqdn: FQDN
    addr: IPAddress


async def resolve_addresses(
    store: AssetStore, names: Iterable[str], since: datetime | None = None,
) -> list[NameAddrPair]:
    """Resolve hostnames to addresses using relations observed at or after ``since``.

    Returns every discoverable pair, deduplicated, in no particular order.
    Raises :class:`NoAddressesError` when nothing resolves, and
    :class:`StoreError` when alias-chain discovery itself fails.
    """
    remaining = {n for n in (normalize_name(name) for name in names) if n}
    addr_map: dict[str, set[str]] = defaultdict(set)

    if remaining:
        rows = await _stage("indirect", store.indirect_addresses(sorted(remaining), since))
        _collect(rows, addr_map, remaining)

    if remaining:
        rows = await _stage("direct", store.direct_addresses(sorted(remaining), since))
        _collect(rows, addr_map, remaining)

    if remaining:
        aliases = await store.alias_targets(sorted(remaining), since)
        logger.debug("alias stage: %d CNAME hops for %d names", len(aliases), len(remaining))
        for name, target in aliases:
            try:
                rows = await store.alias_chain_addresses(target, since)
            except StoreError as e:
                logger.warning("Alias chain traversal from %s failed: %s", target, e)
                continue
            if rows:
                addr_map[name].update(addr for _, addr in rows)
                remaining.discard(name)

    if remaining:
        logger.debug("%d names left unresolved", len(remaining))
    return _pairs(addr_map)


async def _stage(label: str, query: Awaitable[list[NameRow]]) -> list[NameRow]:
    """Run a recoverable stage query; a store failure counts as zero results."""
    try:
        rows = await query
    except StoreError as e:
        logger.warning("%s address stage failed, continuing: %s", label, e)
        return []
    logger.debug("%s stage: %d rows", label, len(rows))
    return rows


def _collect(
    rows: list[NameRow], addr_map: dict[str, set[str]], remaining: set[str],
) -> None:
    resolved = set()
    for name, addr in rows:
        if name not in remaining:
            continue
        addr_map[name].add(addr)
        resolved.add(name)
    remaining.difference_update(resolved)


def _pairs(addr_map: dict[str, set[str]]) -> list[NameAddrPair]:
    pairs: dict[tuple[str, str], NameAddrPair] = {}
    for name, addrs in addr_map.items():
        for addr in addrs:
            try:
                ip = ipaddress.ip_address(str(addr).strip())
            except ValueError:
                continue
            key = (name, str(ip))
            if key in pairs:
                continue
            pairs[key] = NameAddrPair(
                fqdn=FQDN(name=name),
                addr=IPAddress(address=str(ip), type="IPv4" if ip.version == 4 else "IPv6"),
            )

    if not pairs:
        raise NoAddressesError()
    return list(pairs.values())
