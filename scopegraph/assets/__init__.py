"""Asset kinds and relations of the discovery graph."""

from __future__ import annotations

from scopegraph.assets.models import (
    FQDN,
    URL,
    Asset,
    AssetType,
    AutnumRecord,
    AutonomousSystem,
    BaseAsset,
    DomainRecord,
    EmailAddress,
    Fingerprint,
    IPAddress,
    IPNetRecord,
    Location,
    Netblock,
    Organization,
    Source,
    TLSCertificate,
    make_id,
    normalize_name,
    parse_asset,
)
from scopegraph.assets.relations import (
    ADDRESS_RELATIONS,
    INDIRECT_RELATIONS,
    RelationType,
    StoredAsset,
    StoredRelation,
)

__all__ = [
    "ADDRESS_RELATIONS",
    "FQDN",
    "INDIRECT_RELATIONS",
    "URL",
    "Asset",
    "AssetType",
    "AutnumRecord",
    "AutonomousSystem",
    "BaseAsset",
    "DomainRecord",
    "EmailAddress",
    "Fingerprint",
    "IPAddress",
    "IPNetRecord",
    "Location",
    "Netblock",
    "Organization",
    "RelationType",
    "Source",
    "StoredAsset",
    "StoredRelation",
    "TLSCertificate",
    "make_id",
    "normalize_name",
    "parse_asset",
]
