"""Subdomain discovery via RapidDNS."""

from __future__ import annotations

from typing import ClassVar

from scopegraph.core.plugin import PluginMeta
from scopegraph.plugins.scrape.scraper import SubdomainScraper


class RapidDnsPlugin(SubdomainScraper):
    meta: ClassVar[PluginMeta] = PluginMeta(
        name="rapiddns",
        display_name="RapidDNS",
        description="Scrapes subdomains from the RapidDNS database",
        confidence=70,
        requests_per_second=5.0,
        priority=7,
    )

    def urls(self, name: str) -> list[str]:
        return [f"https://rapiddns.io/subdomain/{name}?full=1"]
