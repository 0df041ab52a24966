"""Asset models — typed, immutable graph nodes with deterministic IDs."""

from __future__ import annotations

import hashlib
import ipaddress
from enum import StrEnum
from typing import Annotated, Any, ClassVar, Literal
from urllib.parse import urlsplit

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)


class AssetType(StrEnum):
    FQDN = "fqdn"
    IP_ADDRESS = "ip_address"
    NETBLOCK = "netblock"
    AUTONOMOUS_SYSTEM = "autonomous_system"
    ORGANIZATION = "organization"
    LOCATION = "location"
    FINGERPRINT = "fingerprint"
    EMAIL_ADDRESS = "email_address"
    TLS_CERTIFICATE = "tls_certificate"
    DOMAIN_RECORD = "domain_record"
    IPNET_RECORD = "ipnet_record"
    AUTNUM_RECORD = "autnum_record"
    URL = "url"
    SOURCE = "source"


def make_id(asset_type: AssetType | str, **key_fields: Any) -> str:
    """Deterministic ID from type + sorted key fields.

    Examples:
        make_id(FQDN, name="example.com") → "a1b2c3d4..."
        make_id(NETBLOCK, cidr="192.0.2.0/24") → "e5f6..."
    """
    raw = f"{asset_type}:" + "&".join(
        f"{k}={v}" for k, v in sorted(key_fields.items())
    )
    return hashlib.sha256(raw.encode()).hexdigest()[:16]


def normalize_name(name: str) -> str:
    """Canonical hostname form: trimmed, lower case, no trailing dot."""
    return name.strip().lower().rstrip(".")


def address_family(value: str) -> str:
    """Return "IPv4" or "IPv6" for an address or CIDR string, "" if unparseable."""
    try:
        version = ipaddress.ip_network(value.strip(), strict=False).version
    except ValueError:
        return ""
    return "IPv4" if version == 4 else "IPv6"


class BaseAsset(BaseModel):
    """Common behaviour for every asset kind.

    Assets are immutable values. Identity inside a graph store is the
    content hash returned by ``asset_id()``, so the same real-world object
    always lands on the same node.
    """

    model_config = ConfigDict(frozen=True)

    asset_type: AssetType
    key: ClassVar[tuple[str, ...]] = ()

    def key_fields(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.key}

    def asset_id(self) -> str:
        return make_id(self.asset_type, **self.key_fields())

    def content(self) -> dict[str, Any]:
        """JSON-ready content, including the kind discriminator."""
        return self.model_dump(mode="json")


class FQDN(BaseAsset):
    asset_type: Literal[AssetType.FQDN] = AssetType.FQDN
    name: str

    key: ClassVar[tuple[str, ...]] = ("name",)

    @field_validator("name")
    @classmethod
    def _normalize(cls, v: str) -> str:
        v = normalize_name(v)
        if not v:
            raise ValueError("empty hostname")
        return v


class IPAddress(BaseAsset):
    asset_type: Literal[AssetType.IP_ADDRESS] = AssetType.IP_ADDRESS
    address: str
    type: str = ""

    key: ClassVar[tuple[str, ...]] = ("address",)

    @model_validator(mode="before")
    @classmethod
    def _derive_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("type") and data.get("address"):
            data = {**data, "type": address_family(str(data["address"]))}
        return data

    @field_validator("address")
    @classmethod
    def _canonical(cls, v: str) -> str:
        return str(ipaddress.ip_address(v.strip()))

    @property
    def ip(self) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
        return ipaddress.ip_address(self.address)


class Netblock(BaseAsset):
    asset_type: Literal[AssetType.NETBLOCK] = AssetType.NETBLOCK
    cidr: str
    type: str = ""

    key: ClassVar[tuple[str, ...]] = ("cidr",)

    @model_validator(mode="before")
    @classmethod
    def _derive_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("type") and data.get("cidr"):
            data = {**data, "type": address_family(str(data["cidr"]))}
        return data

    @field_validator("cidr")
    @classmethod
    def _canonical(cls, v: str) -> str:
        return str(ipaddress.ip_network(v.strip(), strict=False))

    @property
    def network(self) -> ipaddress.IPv4Network | ipaddress.IPv6Network:
        return ipaddress.ip_network(self.cidr)


class AutonomousSystem(BaseAsset):
    asset_type: Literal[AssetType.AUTONOMOUS_SYSTEM] = AssetType.AUTONOMOUS_SYSTEM
    number: int = Field(ge=0)

    key: ClassVar[tuple[str, ...]] = ("number",)


class Organization(BaseAsset):
    asset_type: Literal[AssetType.ORGANIZATION] = AssetType.ORGANIZATION
    name: str
    legal_name: str = ""

    key: ClassVar[tuple[str, ...]] = ("name",)


class Location(BaseAsset):
    asset_type: Literal[AssetType.LOCATION] = AssetType.LOCATION
    address: str = ""
    building: str = ""
    building_number: str = ""
    street_address: str = ""
    unit: str = ""
    po_box: str = ""
    city: str = ""
    locality: str = ""
    province: str = ""
    country: str = ""
    postal_code: str = ""

    key: ClassVar[tuple[str, ...]] = (
        "address", "building", "building_number", "street_address", "unit",
        "po_box", "city", "locality", "province", "country", "postal_code",
    )

    def components(self) -> dict[str, str]:
        """Non-empty address components, keyed by field name."""
        return {name: getattr(self, name) for name in self.key if getattr(self, name)}


class Fingerprint(BaseAsset):
    asset_type: Literal[AssetType.FINGERPRINT] = AssetType.FINGERPRINT
    type: str
    value: str

    key: ClassVar[tuple[str, ...]] = ("type", "value")


class EmailAddress(BaseAsset):
    asset_type: Literal[AssetType.EMAIL_ADDRESS] = AssetType.EMAIL_ADDRESS
    address: str
    username: str = ""
    domain: str = ""

    key: ClassVar[tuple[str, ...]] = ("address",)

    @model_validator(mode="before")
    @classmethod
    def _split(cls, data: Any) -> Any:
        if isinstance(data, dict) and "@" in str(data.get("address", "")):
            address = str(data["address"]).strip().lower()
            username, _, domain = address.rpartition("@")
            data = {
                **data,
                "address": address,
                "username": data.get("username") or username,
                "domain": data.get("domain") or domain,
            }
        return data

    @field_validator("domain")
    @classmethod
    def _normalize_domain(cls, v: str) -> str:
        return normalize_name(v)


class TLSCertificate(BaseAsset):
    asset_type: Literal[AssetType.TLS_CERTIFICATE] = AssetType.TLS_CERTIFICATE
    serial_number: str
    subject_common_name: str = ""
    issuer_common_name: str = ""
    subject_alt_names: tuple[str, ...] = ()

    key: ClassVar[tuple[str, ...]] = ("serial_number",)


class DomainRecord(BaseAsset):
    asset_type: Literal[AssetType.DOMAIN_RECORD] = AssetType.DOMAIN_RECORD
    domain: str
    name: str = ""
    registrar: str = ""
    whois_server: str = ""

    key: ClassVar[tuple[str, ...]] = ("domain",)

    @field_validator("domain")
    @classmethod
    def _normalize_domain(cls, v: str) -> str:
        return normalize_name(v)


class IPNetRecord(BaseAsset):
    asset_type: Literal[AssetType.IPNET_RECORD] = AssetType.IPNET_RECORD
    cidr: str
    handle: str = ""
    name: str = ""
    type: str = ""

    key: ClassVar[tuple[str, ...]] = ("handle", "cidr")

    @model_validator(mode="before")
    @classmethod
    def _derive_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("type") and data.get("cidr"):
            data = {**data, "type": address_family(str(data["cidr"]))}
        return data

    @field_validator("cidr")
    @classmethod
    def _canonical(cls, v: str) -> str:
        return str(ipaddress.ip_network(v.strip(), strict=False))


class AutnumRecord(BaseAsset):
    asset_type: Literal[AssetType.AUTNUM_RECORD] = AssetType.AUTNUM_RECORD
    number: int = Field(ge=0)
    handle: str = ""
    name: str = ""

    key: ClassVar[tuple[str, ...]] = ("handle", "number")


class URL(BaseAsset):
    asset_type: Literal[AssetType.URL] = AssetType.URL
    url: str
    scheme: str = ""
    host: str = ""
    port: int | None = None
    path: str = ""

    key: ClassVar[tuple[str, ...]] = ("url",)

    @model_validator(mode="before")
    @classmethod
    def _parse(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("url") and not data.get("host"):
            parts = urlsplit(str(data["url"]).strip())
            data = {
                **data,
                "scheme": data.get("scheme") or parts.scheme,
                "host": (parts.hostname or "").lower(),
                "port": data.get("port") or parts.port,
                "path": data.get("path") or parts.path,
            }
        return data


class Source(BaseAsset):
    asset_type: Literal[AssetType.SOURCE] = AssetType.SOURCE
    name: str
    confidence: int = Field(default=0, ge=0, le=100)

    key: ClassVar[tuple[str, ...]] = ("name",)


Asset = Annotated[
    FQDN
    | IPAddress
    | Netblock
    | AutonomousSystem
    | Organization
    | Location
    | Fingerprint
    | EmailAddress
    | TLSCertificate
    | DomainRecord
    | IPNetRecord
    | AutnumRecord
    | URL
    | Source,
    Field(discriminator="asset_type"),
]

_ASSET_ADAPTER: TypeAdapter[Any] = TypeAdapter(Asset)


def parse_asset(data: dict[str, Any]) -> BaseAsset:
    """Build the right asset kind from a raw mapping with an ``asset_type`` tag."""
    return _ASSET_ADAPTER.validate_python(data)
