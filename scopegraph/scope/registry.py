"""Scope registry deciding which assets belong to the investigation."""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from scopegraph.assets.models import (
    FQDN,
    URL,
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
    TLSCertificate,
)
from scopegraph.scope.matching import (
    EXACT_ACCURACY,
    domain_accuracy,
    fqdn_or_none,
    is_noisy,
    location_accuracy,
    name_accuracy,
)

if TYPE_CHECKING:
    from scopegraph.config import ScopeSettings

logger = logging.getLogger(__name__)

Match = tuple[BaseAsset | None, int]
NO_MATCH: Match = (None, 0)


def _stronger(*matches: Match) -> Match:
    best = NO_MATCH
    for match in matches:
        if match[0] is not None and match[1] > best[1]:
            best = match
    return best


class Scope:
    """Registry of scope-defining values and the per-kind matchers over them.

    Populate once at session start with :meth:`add` (or
    :meth:`from_settings`), then query concurrently with
    :meth:`is_in_scope`. Reads take no locks, so writers must finish
    before readers start or be synchronized by the owner.

    Usage::

        scope = Scope()
        scope.add(FQDN(name="example.com"))
        match, accuracy = scope.is_in_scope(FQDN(name="www.example.com"))
        # -> (FQDN(name="example.com"), 90)
    """

    def __init__(self) -> None:
        self._domains: dict[str, FQDN] = {}
        self._networks: dict[str, Netblock] = {}
        self._asns: dict[int, AutonomousSystem] = {}
        self._addresses: dict[str, IPAddress] = {}
        self._orgs: dict[str, Organization] = {}
        self._locations: dict[str, Location] = {}
        self._fingerprints: dict[str, Fingerprint] = {}
        self._announced: dict[str, int] = {}  # cidr → announcing ASN

        self._adders: dict[AssetType, Callable[[Any], bool]] = {
            AssetType.FQDN: self._add_fqdn,
            AssetType.EMAIL_ADDRESS: self._add_email,
            AssetType.IP_ADDRESS: self._add_ip_address,
            AssetType.NETBLOCK: self._add_netblock,
            AssetType.AUTONOMOUS_SYSTEM: self._add_autonomous_system,
            AssetType.DOMAIN_RECORD: self._add_domain_record,
            AssetType.IPNET_RECORD: self._add_ipnet_record,
            AssetType.AUTNUM_RECORD: self._add_autnum_record,
            AssetType.TLS_CERTIFICATE: self._add_certificate,
            AssetType.URL: self._add_url,
            AssetType.ORGANIZATION: self.add_organization,
            AssetType.LOCATION: self.add_location,
            AssetType.FINGERPRINT: self.add_fingerprint,
        }
        self._matchers: dict[AssetType, Callable[[Any], Match]] = {
            AssetType.FQDN: self._match_fqdn,
            AssetType.EMAIL_ADDRESS: self._match_email,
            AssetType.IP_ADDRESS: self._match_ip_address,
            AssetType.NETBLOCK: self._match_netblock,
            AssetType.AUTONOMOUS_SYSTEM: self._match_autonomous_system,
            AssetType.DOMAIN_RECORD: self._match_domain_record,
            AssetType.IPNET_RECORD: self._match_ipnet_record,
            AssetType.AUTNUM_RECORD: self._match_autnum_record,
            AssetType.TLS_CERTIFICATE: self._match_certificate,
            AssetType.URL: self._match_url,
            AssetType.ORGANIZATION: self._match_organization,
            AssetType.LOCATION: self._match_location,
            AssetType.FINGERPRINT: self._match_fingerprint,
        }

    @classmethod
    def from_settings(cls, settings: ScopeSettings) -> Scope:
        """Build a registry from the ``scope`` section of the configuration."""
        scope = cls()
        for name in settings.domains:
            scope.add_domain(name)
        for cidr in settings.cidrs:
            scope.add_cidr(cidr)
        for asn in settings.asns:
            scope.add_asn(asn)
        for addr in settings.addresses:
            scope.add_address(addr)
        for org in settings.organizations:
            scope.add_org(org)
        for loc in settings.locations:
            scope.add_location(Location(**loc))
        for fp in settings.fingerprints:
            scope.add_fingerprint(Fingerprint(**fp))
        logger.debug(
            "Scope loaded: %d domains, %d cidrs, %d asns, %d addresses, %d orgs",
            len(scope._domains), len(scope._networks), len(scope._asns),
            len(scope._addresses), len(scope._orgs),
        )
        return scope

    # -- public contract --

    def add(self, asset: BaseAsset) -> bool:
        """Register the asset's scope projection. Returns True if it was new."""
        adder = self._adders.get(asset.asset_type)
        if adder is None:
            return False
        return adder(asset)

    def is_in_scope(self, asset: BaseAsset, confidence: int = 0) -> Match:
        """Return the best matching scope entry and its accuracy (0–100).

        ``(None, 0)`` when nothing matches, or when ``confidence`` is
        positive and the best accuracy falls below it.
        """
        matcher = self._matchers.get(asset.asset_type)
        if matcher is None:
            return NO_MATCH
        match, accuracy = matcher(asset)
        if match is None or accuracy <= 0:
            return NO_MATCH
        if confidence > 0 and accuracy < confidence:
            return NO_MATCH
        return match, accuracy

    # -- adders --

    def add_domain(self, name: str) -> bool:
        fqdn = fqdn_or_none(name)
        if fqdn is None or fqdn.name in self._domains:
            return False
        self._domains[fqdn.name] = fqdn
        return True

    def add_cidr(self, cidr: str) -> bool:
        try:
            netblock = Netblock(cidr=cidr)
        except ValueError:
            logger.debug("Ignoring malformed CIDR %r", cidr)
            return False
        if netblock.cidr in self._networks:
            return False
        self._networks[netblock.cidr] = netblock
        return True

    def add_asn(self, number: int) -> bool:
        if number in self._asns or number < 0:
            return False
        self._asns[number] = AutonomousSystem(number=number)
        return True

    def add_address(self, address: str) -> bool:
        try:
            ip = IPAddress(address=address)
        except ValueError:
            logger.debug("Ignoring malformed address %r", address)
            return False
        if ip.address in self._addresses:
            return False
        self._addresses[ip.address] = ip
        return True

    def add_org(self, name: str) -> bool:
        if not name.strip():
            return False
        return self.add_organization(Organization(name=name.strip()))

    def add_organization(self, org: Organization) -> bool:
        key = org.name.strip().lower()
        if not key or key in self._orgs:
            return False
        self._orgs[key] = org
        return True

    def add_location(self, loc: Location) -> bool:
        key = loc.asset_id()
        if not loc.components() or key in self._locations:
            return False
        self._locations[key] = loc
        return True

    def add_fingerprint(self, fp: Fingerprint) -> bool:
        if not fp.value or fp.value in self._fingerprints:
            return False
        self._fingerprints[fp.value] = fp
        return True

    def add_announcement(self, asn: int, cidr: str) -> bool:
        """Record that ``asn`` announces ``cidr`` (see ``expand_asn_prefixes``)."""
        try:
            canonical = Netblock(cidr=cidr).cidr
        except ValueError:
            return False
        if self._announced.get(canonical) == asn:
            return False
        self._announced[canonical] = asn
        return True

    def _add_fqdn(self, fqdn: FQDN) -> bool:
        return self.add_domain(fqdn.name)

    def _add_email(self, email: EmailAddress) -> bool:
        return self.add_domain(email.domain)

    def _add_ip_address(self, ip: IPAddress) -> bool:
        return self.add_address(ip.address)

    def _add_netblock(self, netblock: Netblock) -> bool:
        return self.add_cidr(netblock.cidr)

    def _add_autonomous_system(self, asys: AutonomousSystem) -> bool:
        return self.add_asn(asys.number)

    def _add_domain_record(self, record: DomainRecord) -> bool:
        return self.add_domain(record.domain)

    def _add_ipnet_record(self, record: IPNetRecord) -> bool:
        return self.add_cidr(record.cidr)

    def _add_autnum_record(self, record: AutnumRecord) -> bool:
        added_org = self.add_org(record.name)
        added_asn = self.add_asn(record.number)
        return added_org or added_asn

    def _add_certificate(self, cert: TLSCertificate) -> bool:
        return self.add_domain(cert.subject_common_name)

    def _add_url(self, url: URL) -> bool:
        if _is_ip_literal(url.host):
            return self.add_address(url.host.strip("[]"))
        return self.add_domain(url.host)

    # -- matchers --

    def _match_fqdn(self, fqdn: FQDN) -> Match:
        # Walk label-aligned suffixes from most to least specific.
        labels = fqdn.name.split(".")
        for i in range(len(labels)):
            suffix = ".".join(labels[i:])
            registered = self._domains.get(suffix)
            if registered is not None:
                return registered, domain_accuracy(fqdn.name, suffix)
        return NO_MATCH

    def _match_name(self, name: str) -> Match:
        fqdn = fqdn_or_none(name)
        if fqdn is None:
            return NO_MATCH
        return self._match_fqdn(fqdn)

    def _match_email(self, email: EmailAddress) -> Match:
        return self._match_name(email.domain)

    def _match_ip_address(self, ip: IPAddress) -> Match:
        direct = self._addresses.get(ip.address)
        if direct is not None:
            return direct, EXACT_ACCURACY

        addr = ip.ip
        best: Netblock | None = None
        for netblock in self._networks.values():
            net = netblock.network
            if net.version != addr.version or addr not in net:
                continue
            if best is None or net.prefixlen > best.network.prefixlen:
                best = netblock
        if best is None:
            return NO_MATCH
        return best, EXACT_ACCURACY

    def _match_netblock(self, netblock: Netblock) -> Match:
        candidate = netblock.network
        best: Netblock | None = None
        for registered in self._networks.values():
            net = registered.network
            if net.version != candidate.version or not candidate.subnet_of(net):
                continue
            if best is None or net.prefixlen > best.network.prefixlen:
                best = registered
        if best is not None:
            return best, EXACT_ACCURACY

        for cidr, asn in self._announced.items():
            asys = self._asns.get(asn)
            if asys is None:
                continue
            net = ipaddress.ip_network(cidr)
            if net.version == candidate.version and candidate.subnet_of(net):
                return asys, EXACT_ACCURACY
        return NO_MATCH

    def _match_autonomous_system(self, asys: AutonomousSystem) -> Match:
        registered = self._asns.get(asys.number)
        if registered is None:
            return NO_MATCH
        return registered, EXACT_ACCURACY

    def _match_domain_record(self, record: DomainRecord) -> Match:
        return _stronger(
            self._match_name(record.domain),
            self._match_org_name(record.name),
        )

    def _match_ipnet_record(self, record: IPNetRecord) -> Match:
        return self._match_netblock(Netblock(cidr=record.cidr, type=record.type))

    def _match_autnum_record(self, record: AutnumRecord) -> Match:
        return _stronger(
            self._match_autonomous_system(AutonomousSystem(number=record.number)),
            self._match_org_name(record.name),
        )

    def _match_certificate(self, cert: TLSCertificate) -> Match:
        return self._match_name(cert.subject_common_name)

    def _match_url(self, url: URL) -> Match:
        if _is_ip_literal(url.host):
            return self._match_ip_address(IPAddress(address=url.host.strip("[]")))
        return self._match_name(url.host)

    def _match_org_name(self, name: str) -> Match:
        if not name.strip():
            return NO_MATCH
        return self._match_organization(Organization(name=name))

    def _match_organization(self, org: Organization) -> Match:
        fields = {"name": org.name, "legal_name": org.legal_name}
        values = [v.strip().lower() for v in fields.values() if v.strip()]

        for registered in self._orgs.values():
            names = {registered.name.lower(), registered.legal_name.lower()} - {""}
            if names.intersection(values):
                return registered, EXACT_ACCURACY

        best = NO_MATCH
        for field, value in fields.items():
            if not value.strip() or is_noisy(field) or is_noisy(value):
                continue
            for registered in self._orgs.values():
                accuracy = max(
                    name_accuracy(value, registered.name),
                    name_accuracy(value, registered.legal_name),
                )
                if accuracy > best[1]:
                    best = (registered, accuracy)
        return best

    def _match_location(self, loc: Location) -> Match:
        best = NO_MATCH
        for registered in self._locations.values():
            accuracy = location_accuracy(loc, registered)
            if accuracy > best[1]:
                best = (registered, accuracy)
        return best

    def _match_fingerprint(self, fp: Fingerprint) -> Match:
        registered = self._fingerprints.get(fp.value)
        if registered is None:
            return NO_MATCH
        return registered, EXACT_ACCURACY

    # -- accessors --

    def domains(self) -> list[str]:
        return list(self._domains)

    def cidrs(self) -> list[str]:
        return list(self._networks)

    def asns(self) -> list[int]:
        return list(self._asns)

    def addresses(self) -> list[str]:
        return list(self._addresses)

    def organizations(self) -> list[Organization]:
        return list(self._orgs.values())

    def locations(self) -> list[Location]:
        return list(self._locations.values())

    def fingerprints(self) -> list[Fingerprint]:
        return list(self._fingerprints.values())


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return False
    return True
