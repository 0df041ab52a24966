"""Exception types raised by the graph store and the resolver."""

from __future__ import annotations


class ScopeGraphError(Exception):
    """Base class for scopegraph errors."""


class StoreError(ScopeGraphError):
    """The graph store failed to answer a query (connectivity, SQL, timeout)."""


class NoAddressesError(ScopeGraphError):
    """Resolution finished every stage without producing a single pair."""

    def __init__(self, message: str = "no addresses were discovered") -> None:
        super().__init__(message)
