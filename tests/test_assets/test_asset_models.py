"""Asset model normalization, identity and parsing."""

import pytest
from pydantic import ValidationError

from scopegraph.assets import (
    FQDN,
    URL,
    AssetType,
    EmailAddress,
    IPAddress,
    Location,
    Netblock,
    Organization,
    RelationType,
    StoredRelation,
    make_id,
    parse_asset,
)


class TestFQDN:
    def test_normalizes_case_and_trailing_dot(self):
        assert FQDN(name="  WWW.Example.COM. ").name == "www.example.com"

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            FQDN(name=" . ")

    def test_identity_ignores_formatting(self):
        assert FQDN(name="Example.com.").asset_id() == FQDN(name="example.com").asset_id()

    def test_immutable(self):
        fqdn = FQDN(name="example.com")
        with pytest.raises(ValidationError):
            fqdn.name = "other.com"


class TestIPAddress:
    def test_family_derived(self):
        assert IPAddress(address="93.184.216.34").type == "IPv4"
        assert IPAddress(address="2001:db8::1").type == "IPv6"

    def test_canonical_form(self):
        assert IPAddress(address="2001:DB8:0:0::1").address == "2001:db8::1"

    def test_malformed_rejected(self):
        with pytest.raises(ValidationError):
            IPAddress(address="not-an-ip")


class TestNetblock:
    def test_host_bits_dropped(self):
        assert Netblock(cidr="192.0.2.17/24").cidr == "192.0.2.0/24"

    def test_family(self):
        assert Netblock(cidr="2001:db8::/32").type == "IPv6"


class TestDerivedFields:
    def test_email_split(self):
        email = EmailAddress(address="Admin@Example.COM")
        assert email.username == "admin"
        assert email.domain == "example.com"

    def test_url_parts(self):
        url = URL(url="https://API.example.com:8443/v1")
        assert url.host == "api.example.com"
        assert url.port == 8443
        assert url.scheme == "https"

    def test_location_components(self):
        loc = Location(city="Berlin", country="DE")
        assert loc.components() == {"city": "Berlin", "country": "DE"}


class TestIdentity:
    def test_make_id_deterministic(self):
        a = make_id(AssetType.FQDN, name="example.com")
        b = make_id(AssetType.FQDN, name="example.com")
        assert a == b
        assert len(a) == 16

    def test_kinds_do_not_collide(self):
        assert Organization(name="example.com").asset_id() != FQDN(name="example.com").asset_id()

    def test_relation_id_depends_on_type(self):
        a = StoredRelation.make_id(RelationType.A_RECORD, "x", "y")
        b = StoredRelation.make_id(RelationType.CNAME_RECORD, "x", "y")
        assert a != b


class TestParseAsset:
    def test_round_trip_through_content(self):
        ip = IPAddress(address="198.51.100.7")
        assert parse_asset(ip.content()) == ip

    def test_dispatches_on_kind(self):
        asset = parse_asset({"asset_type": "netblock", "cidr": "10.0.0.0/8"})
        assert isinstance(asset, Netblock)

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            parse_asset({"asset_type": "spaceship", "name": "x"})
