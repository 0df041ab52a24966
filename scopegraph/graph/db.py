"""Connection setup and schema for the SQLite asset graph."""

from __future__ import annotations

from pathlib import Path

import aiosqlite

SCHEMA_VERSION = 1

PRAGMAS = [
    "PRAGMA synchronous = NORMAL",
    "PRAGMA cache_size = -65536",       # 64MB
    "PRAGMA foreign_keys = ON",
    "PRAGMA temp_store = MEMORY",
    "PRAGMA busy_timeout = 5000",
]

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS assets (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL,
    last_seen TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_assets_type ON assets(type);
CREATE INDEX IF NOT EXISTS idx_assets_last_seen ON assets(last_seen);

CREATE TABLE IF NOT EXISTS relations (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    from_asset_id TEXT NOT NULL REFERENCES assets(id),
    to_asset_id TEXT NOT NULL REFERENCES assets(id),
    created_at TEXT NOT NULL,
    last_seen TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_relations_from ON relations(from_asset_id, type);
CREATE INDEX IF NOT EXISTS idx_relations_to ON relations(to_asset_id, type);
CREATE INDEX IF NOT EXISTS idx_relations_last_seen ON relations(last_seen);
"""


async def open_db(db_path: str | Path, wal_mode: bool = True) -> aiosqlite.Connection:
    """Connect, apply pragmas and make sure the schema exists."""
    db = await aiosqlite.connect(str(db_path))
    db.row_factory = aiosqlite.Row

    pragmas = (["PRAGMA journal_mode = WAL"] if wal_mode else []) + PRAGMAS
    for pragma in pragmas:
        await db.execute(pragma)
    await db.executescript(SCHEMA)
    await db.execute(
        "INSERT INTO schema_version (version) "
        "SELECT ? WHERE NOT EXISTS (SELECT 1 FROM schema_version)",
        (SCHEMA_VERSION,),
    )
    await db.commit()
    return db


async def close_db(db: aiosqlite.Connection) -> None:
    await db.commit()
    await db.close()
