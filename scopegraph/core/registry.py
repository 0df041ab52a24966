"""Plugin registry with auto-discovery and handler dispatch."""

from __future__ import annotations

import asyncio
import importlib
import inspect
import logging
import pkgutil
from types import ModuleType
from typing import TYPE_CHECKING

from scopegraph.core.plugin import BasePlugin

if TYPE_CHECKING:
    from collections.abc import Iterable

    from scopegraph.assets.models import AssetType, BaseAsset
    from scopegraph.assets.relations import StoredAsset
    from scopegraph.core.session import Session

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Discovers plugin classes, holds one instance of each, and routes assets to them."""

    def __init__(self) -> None:
        self._plugins: dict[str, BasePlugin] = {}

    def register(self, plugin: BasePlugin) -> None:
        self._plugins[plugin.meta.name] = plugin

    def get(self, name: str) -> BasePlugin | None:
        return self._plugins.get(name)

    def all(self) -> list[BasePlugin]:
        return list(self._plugins.values())

    @property
    def names(self) -> list[str]:
        return list(self._plugins.keys())

    def discover(self, package_name: str = "scopegraph.plugins") -> int:
        """Import every module under ``package_name`` and register its concrete plugins.

        Returns how many new plugins were registered.
        """
        try:
            package = importlib.import_module(package_name)
        except ImportError:
            logger.warning("Plugin package %s not importable", package_name)
            return 0

        before = len(self._plugins)
        modules = pkgutil.walk_packages(package.__path__, prefix=f"{package_name}.")
        for info in modules:
            if info.ispkg:
                continue
            try:
                module = importlib.import_module(info.name)
            except ImportError as e:
                logger.warning("Skipping plugin module %s: %s", info.name, e)
                continue
            for cls in _plugin_classes(module):
                if cls.meta.name not in self._plugins:
                    self.register(cls())
        return len(self._plugins) - before

    def handlers_for(self, asset_type: AssetType) -> list[BasePlugin]:
        """Plugins consuming this asset kind, highest priority first."""
        handlers = [p for p in self._plugins.values() if p.meta.event_type == asset_type]
        return sorted(handlers, key=lambda p: p.meta.priority, reverse=True)

    async def start_all(self, session: Session) -> None:
        for plugin in self._plugins.values():
            await plugin.start(session)

    async def stop_all(self, session: Session) -> None:
        for plugin in self._plugins.values():
            await plugin.stop(session)

    async def dispatch(self, session: Session, stored: StoredAsset) -> list[StoredAsset]:
        """Hand an asset to every accepting plugin concurrently; merge the results.

        A failing plugin is logged and does not affect the others.
        """
        handlers = [p for p in self.handlers_for(stored.asset.asset_type) if p.accepts(stored)]
        results = await asyncio.gather(
            *(p.handle(session, stored) for p in handlers), return_exceptions=True,
        )

        found: dict[str, StoredAsset] = {}
        for plugin, result in zip(handlers, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Plugin %s failed on %s: %s", plugin.meta.name, stored.id, result)
                continue
            for asset in result:
                found.setdefault(asset.id, asset)
        return list(found.values())

    async def run(self, session: Session, seeds: Iterable[BaseAsset]) -> list[StoredAsset]:
        """Store each seed and dispatch it between plugin start and stop."""
        found: dict[str, StoredAsset] = {}
        await self.start_all(session)
        try:
            for seed in seeds:
                stored = await session.store.create_asset(seed)
                for asset in await self.dispatch(session, stored):
                    found.setdefault(asset.id, asset)
        finally:
            await self.stop_all(session)
        return list(found.values())


def _plugin_classes(module: ModuleType) -> list[type[BasePlugin]]:
    return [
        obj for _, obj in inspect.getmembers(module, inspect.isclass)
        if issubclass(obj, BasePlugin) and not inspect.isabstract(obj) and hasattr(obj, "meta")
    ]
