"""Graph relations: typed, time-stamped edges between stored assets."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from scopegraph.assets.models import Asset, make_id


class RelationType(StrEnum):
    ANNOUNCES = "announces"          # AUTONOMOUS_SYSTEM → NETBLOCK
    A_RECORD = "a_record"            # FQDN → IP_ADDRESS
    AAAA_RECORD = "aaaa_record"      # FQDN → IP_ADDRESS
    CNAME_RECORD = "cname_record"    # FQDN → FQDN
    SRV_RECORD = "srv_record"        # FQDN → FQDN
    NS_RECORD = "ns_record"          # FQDN → FQDN
    MX_RECORD = "mx_record"          # FQDN → FQDN
    CONTAINS = "contains"            # NETBLOCK → IP_ADDRESS
    SOURCE = "source"                # any → SOURCE
    MONITORED_BY = "monitored_by"    # any → SOURCE


ADDRESS_RELATIONS = (RelationType.A_RECORD, RelationType.AAAA_RECORD)
INDIRECT_RELATIONS = (RelationType.SRV_RECORD, RelationType.NS_RECORD, RelationType.MX_RECORD)


def _now() -> datetime:
    return datetime.now(UTC)


class StoredAsset(BaseModel):
    """An asset as held by a graph store."""

    model_config = ConfigDict(frozen=True)

    id: str
    asset: Asset
    created_at: datetime = Field(default_factory=_now)
    last_seen: datetime = Field(default_factory=_now)


class StoredRelation(BaseModel):
    """A directed edge as held by a graph store.

    ``last_seen`` is the last time any source observed the edge; time-bounded
    queries only consider edges with ``last_seen >= since``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: RelationType
    from_asset: StoredAsset
    to_asset: StoredAsset
    created_at: datetime = Field(default_factory=_now)
    last_seen: datetime = Field(default_factory=_now)

    @staticmethod
    def make_id(rel_type: RelationType | str, from_id: str, to_id: str) -> str:
        return make_id(f"rel:{rel_type}", source=from_id, target=to_id)
