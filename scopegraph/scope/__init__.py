"""Scope membership matching and ASN prefix expansion."""

from __future__ import annotations

from scopegraph.scope.matching import NOISY_SUBSTRINGS, is_noisy
from scopegraph.scope.prefixes import expand_asn_prefixes, read_as_prefixes
from scopegraph.scope.registry import NO_MATCH, Match, Scope

__all__ = [
    "NOISY_SUBSTRINGS",
    "NO_MATCH",
    "Match",
    "Scope",
    "expand_asn_prefixes",
    "is_noisy",
    "read_as_prefixes",
]
