"""Subdomain discovery via paginated search-engine results."""

from __future__ import annotations

from typing import ClassVar

from scopegraph.core.plugin import PluginMeta
from scopegraph.plugins.scrape.scraper import SubdomainScraper

SEARCH_URL = "https://www.ask.com/web?o=0&l=dir&qo=pagination&page=%d&q=site:%s -www.%s"
MAX_PAGES = 9


class BingPlugin(SubdomainScraper):
    meta: ClassVar[PluginMeta] = PluginMeta(
        name="bing",
        display_name="Bing",
        description="Scrapes subdomains from site: search results",
        confidence=60,
        requests_per_second=2.0,
        priority=7,
    )

    stop_on_empty = True

    def urls(self, name: str) -> list[str]:
        return [SEARCH_URL % (page, name, name) for page in range(1, MAX_PAGES + 1)]
