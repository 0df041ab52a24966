"""scopegraph — attack-surface scope matching and graph-based address resolution."""

from __future__ import annotations

__version__ = "1.0.0"

from scopegraph.errors import NoAddressesError, ScopeGraphError, StoreError  # noqa: F401, E402
from scopegraph.resolve import NameAddrPair, resolve_addresses  # noqa: F401, E402
from scopegraph.scope import Scope  # noqa: F401, E402
