"""Scoring helpers shared by the scope matchers."""

from __future__ import annotations

from scopegraph.assets.models import FQDN, Location, normalize_name

EXACT_ACCURACY = 100

# Subdomain accuracy: 90 one label below a registered domain, 5 less per
# additional label, never below 50.
SUBDOMAIN_ACCURACY = 90
SUBDOMAIN_STEP = 5
SUBDOMAIN_FLOOR = 50

# Substrings marking registrar boilerplate rather than real ownership data.
# Matched as plain substrings of the lower-cased field name or value.
NOISY_SUBSTRINGS = (
    "registration",
    "registry",
    "redact",
    "private",
    "privacy",
    "available",
    "domain",
    "proxy",
    "liability",
)


def is_noisy(field: str) -> bool:
    """True if a field name or value looks like registrar boilerplate."""
    field = field.lower()
    return any(bad in field for bad in NOISY_SUBSTRINGS)


def fqdn_or_none(name: str) -> FQDN | None:
    """Project a free-form host string onto an FQDN, dropping a wildcard label."""
    name = normalize_name(name)
    if name.startswith("*."):
        name = name[2:]
    if not name:
        return None
    try:
        return FQDN(name=name)
    except ValueError:
        return None


def domain_accuracy(name: str, domain: str) -> int:
    """Accuracy of hostname ``name`` against registered ``domain``.

    Only label-aligned suffixes count: ``www.example.com`` is under
    ``example.com``; ``notexample.com`` is not.

        domain_accuracy("example.com", "example.com")      -> 100
        domain_accuracy("www.example.com", "example.com")  -> 90
        domain_accuracy("a.b.example.com", "example.com")  -> 85
        domain_accuracy("notexample.com", "example.com")   -> 0
    """
    if name == domain:
        return EXACT_ACCURACY
    if not name.endswith("." + domain):
        return 0
    extra_labels = name[: -len(domain) - 1].count(".") + 1
    return max(SUBDOMAIN_FLOOR, SUBDOMAIN_ACCURACY - SUBDOMAIN_STEP * (extra_labels - 1))


def name_accuracy(candidate: str, registered: str) -> int:
    """Fuzzy organization-name accuracy.

    Case-insensitive equality scores 100. Otherwise, when neither value is
    noisy and one contains the other, the score is the share of the longer
    value covered by the shorter one.
    """
    a = candidate.strip().lower()
    b = registered.strip().lower()
    if not a or not b:
        return 0
    if a == b:
        return EXACT_ACCURACY
    if is_noisy(a) or is_noisy(b):
        return 0
    shorter, longer = sorted((a, b), key=len)
    if shorter in longer:
        return round(EXACT_ACCURACY * len(shorter) / len(longer))
    return 0


def location_accuracy(candidate: Location, registered: Location) -> int:
    """Component-wise location accuracy.

    The score is the share of the registered location's non-noisy components
    that the candidate repeats, so a sparse candidate can never outscore a
    complete one.
    """
    wanted = {
        field: value.strip().lower()
        for field, value in registered.components().items()
        if not (is_noisy(field) or is_noisy(value))
    }
    if not wanted:
        return 0
    matches = 0
    for field, value in candidate.components().items():
        if is_noisy(field) or is_noisy(value):
            continue
        if wanted.get(field) == value.strip().lower():
            matches += 1
    return round(EXACT_ACCURACY * matches / len(wanted))
