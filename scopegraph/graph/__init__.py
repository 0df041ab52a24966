"""Asset graph store — contract plus in-memory and SQLite backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from scopegraph.graph.memory import MemoryAssetStore
from scopegraph.graph.sqlite import SQLiteAssetStore
from scopegraph.graph.store import AssetStore, NameRow

if TYPE_CHECKING:
    from scopegraph.config import StorageSettings

__all__ = [
    "AssetStore",
    "MemoryAssetStore",
    "NameRow",
    "SQLiteAssetStore",
    "open_store",
]


async def open_store(settings: StorageSettings) -> AssetStore:
    """Open the backend named by ``settings.backend``."""
    if settings.backend == "memory":
        return MemoryAssetStore()
    if settings.backend == "sqlite":
        return await SQLiteAssetStore.open(
            settings.db_path,
            wal_mode=settings.wal_mode,
            chunk_size=settings.bulk_chunk_size,
        )
    raise ValueError(f"Unknown storage backend: {settings.backend}")
