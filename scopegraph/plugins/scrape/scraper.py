"""Shared flow for plugins that scrape subdomain names out of web pages."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from scopegraph.assets.models import FQDN, AssetType
from scopegraph.core.plugin import BasePlugin
from scopegraph.plugins.support import (
    asset_monitored_within_ttl,
    get_source,
    mark_asset_monitored,
    process_fqdns_with_source,
    scrape_subdomain_names,
    source_to_assets_within_ttl,
    store_fqdns_with_source,
    ttl_start_time,
)
from scopegraph.scope.matching import fqdn_or_none

if TYPE_CHECKING:
    from scopegraph.assets.relations import StoredAsset
    from scopegraph.core.session import Session


class SubdomainScraper(BasePlugin):
    """Base for page scrapers keyed on a registered domain.

    Subclasses provide :meth:`urls`; pages are fetched in order under the
    plugin's rate limiter. With ``stop_on_empty`` set, the first page that
    comes back empty or fails ends the query.
    """

    stop_on_empty: bool = False

    @abstractmethod
    def urls(self, name: str) -> list[str]:
        """Pages to fetch for registered domain ``name``."""

    async def check(self, session: Session, stored: StoredAsset) -> list[StoredAsset]:
        fqdn = stored.asset
        if not isinstance(fqdn, FQDN):
            raise ValueError("failed to extract the FQDN asset")

        # Only registered domains are queried, not names discovered under them.
        match, _ = session.scope.is_in_scope(fqdn)
        if not isinstance(match, FQDN) or match.name != fqdn.name:
            return []

        since = ttl_start_time(session.settings, AssetType.FQDN, AssetType.FQDN, self.meta.name)
        src = await get_source(session, self.source)

        if await asset_monitored_within_ttl(session, stored, src, since):
            found = await source_to_assets_within_ttl(
                session, fqdn.name, AssetType.FQDN, src, since,
            )
            self.log.debug("%s queried within TTL, reusing %d names", fqdn.name, len(found))
        else:
            found = await self.lookup(session, fqdn.name, src)
            await mark_asset_monitored(session, stored, src)

        await process_fqdns_with_source(session, found, src, self.meta.name)
        return found

    async def lookup(self, session: Session, name: str, src: StoredAsset) -> list[StoredAsset]:
        names = await self.query(session, name)
        in_scope = [n for n in names if self._in_scope(session, n)]
        self.log.info("%s: %d names, %d in scope", name, len(names), len(in_scope))
        return await store_fqdns_with_source(session, in_scope, src, self.meta.name)

    async def query(self, session: Session, name: str) -> list[str]:
        """Fetch every page for ``name`` and scrape hostnames out of them."""
        if session.http is None:
            self.log.warning("HTTP client not available")
            return []

        names: dict[str, None] = {}
        for url in self.urls(name):
            async with self.limiter:
                text = await session.http.fetch_text(url)
            if not text:
                if self.stop_on_empty:
                    break
                continue
            for n in scrape_subdomain_names(text):
                names.setdefault(n, None)
        return list(names)

    @staticmethod
    def _in_scope(session: Session, name: str) -> bool:
        fqdn = fqdn_or_none(name)
        if fqdn is None:
            return False
        match, _ = session.scope.is_in_scope(fqdn)
        return match is not None
