"""SQLite graph store — parameterized queries over assets and relations."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from scopegraph.assets.models import AssetType, BaseAsset, parse_asset
from scopegraph.assets.relations import (
    ADDRESS_RELATIONS,
    INDIRECT_RELATIONS,
    RelationType,
    StoredAsset,
    StoredRelation,
)
from scopegraph.errors import StoreError
from scopegraph.graph.db import close_db, open_db
from scopegraph.graph.store import AssetStore, NameRow, as_utc, fqdn_ids

logger = logging.getLogger(__name__)

_TS_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

_RELATION_COLUMNS = """
    r.id AS r_id, r.type AS r_type, r.created_at AS r_created, r.last_seen AS r_seen,
    f.id AS f_id, f.content AS f_content, f.created_at AS f_created, f.last_seen AS f_seen,
    t.id AS t_id, t.content AS t_content, t.created_at AS t_created, t.last_seen AS t_seen
"""

_FRESH = "(? IS NULL OR {alias}.last_seen >= ?)"


def _ts(value: datetime) -> str:
    return as_utc(value).strftime(_TS_FORMAT)


def _parse_ts(value: str) -> datetime:
    return datetime.strptime(value, _TS_FORMAT).replace(tzinfo=UTC)


def _since(since: datetime | None) -> tuple[str | None, str | None]:
    value = _ts(since) if since is not None else None
    return value, value


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


def _chunks(values: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for i in range(0, len(values), size):
        yield values[i : i + size]


class SQLiteAssetStore(AssetStore):
    """Persistent graph store backed by SQLite.

    Asset content is stored as JSON and looked up by its deterministic
    content ID; caller values only ever reach SQL as bound parameters.
    Name lists are bound in chunks of ``chunk_size`` to stay under
    SQLite's variable limit.
    """

    def __init__(self, db: aiosqlite.Connection, chunk_size: int = 1000) -> None:
        self.db = db
        self.chunk_size = chunk_size

    @classmethod
    async def open(
        cls, db_path: str | Path, *, wal_mode: bool = True, chunk_size: int = 1000,
    ) -> SQLiteAssetStore:
        try:
            db = await open_db(db_path, wal_mode=wal_mode)
        except aiosqlite.Error as e:
            raise StoreError(f"cannot open graph database {db_path}: {e}") from e
        return cls(db, chunk_size=chunk_size)

    async def close(self) -> None:
        await close_db(self.db)

    # -- writes --

    async def create_asset(
        self, asset: BaseAsset, last_seen: datetime | None = None,
    ) -> StoredAsset:
        now = _ts(last_seen or datetime.now(UTC))
        asset_id = asset.asset_id()
        await self._write(
            """INSERT INTO assets (id, type, content, created_at, last_seen)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                content = excluded.content,
                last_seen = MAX(assets.last_seen, excluded.last_seen)
            """,
            (asset_id, str(asset.asset_type), json.dumps(asset.content()), now, now),
        )
        stored = await self.find_by_id(asset_id)
        if stored is None:
            raise StoreError(f"asset {asset_id} vanished after insert")
        return stored

    async def create_relation(
        self,
        rel_type: RelationType,
        from_asset: StoredAsset,
        to_asset: StoredAsset,
        last_seen: datetime | None = None,
    ) -> StoredRelation:
        now = _ts(last_seen or datetime.now(UTC))
        rel_id = StoredRelation.make_id(rel_type, from_asset.id, to_asset.id)
        await self._write(
            """INSERT INTO relations (id, type, from_asset_id, to_asset_id,
                created_at, last_seen)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                last_seen = MAX(relations.last_seen, excluded.last_seen)
            """,
            (rel_id, str(rel_type), from_asset.id, to_asset.id, now, now),
        )
        rows = await self._fetch(
            f"""SELECT {_RELATION_COLUMNS}
            FROM relations AS r
            JOIN assets AS f ON f.id = r.from_asset_id
            JOIN assets AS t ON t.id = r.to_asset_id
            WHERE r.id = ?""",
            (rel_id,),
        )
        if not rows:
            raise StoreError(f"relation {rel_id} vanished after insert")
        return self._relation_from_row(rows[0])

    # -- point and relation queries --

    async def find_by_id(
        self, asset_id: str, since: datetime | None = None,
    ) -> StoredAsset | None:
        rows = await self._fetch(
            f"""SELECT id, content, created_at, last_seen FROM assets AS a
            WHERE a.id = ? AND {_FRESH.format(alias="a")}""",
            (asset_id, *_since(since)),
        )
        if not rows:
            return None
        row = rows[0]
        return self._asset_from(row["id"], row["content"], row["created_at"], row["last_seen"])

    async def find_by_type(
        self, asset_type: AssetType, since: datetime | None = None, **filters: Any,
    ) -> list[StoredAsset]:
        sql = f"""SELECT id, content, created_at, last_seen FROM assets AS a
            WHERE a.type = ? AND {_FRESH.format(alias="a")}"""
        params: list[Any] = [str(asset_type), *_since(since)]
        for key, value in filters.items():
            sql += " AND json_extract(a.content, ?) = ?"
            params.extend((f"$.{key}", value))
        rows = await self._fetch(sql, params)
        return [
            self._asset_from(r["id"], r["content"], r["created_at"], r["last_seen"])
            for r in rows
        ]

    async def outgoing_relations(
        self, asset_id: str, since: datetime | None = None, *rel_types: RelationType,
    ) -> list[StoredRelation]:
        return await self._relations("r.from_asset_id", asset_id, since, rel_types)

    async def incoming_relations(
        self, asset_id: str, since: datetime | None = None, *rel_types: RelationType,
    ) -> list[StoredRelation]:
        return await self._relations("r.to_asset_id", asset_id, since, rel_types)

    # -- resolution queries --

    async def indirect_addresses(
        self, names: Iterable[str], since: datetime | None = None,
    ) -> list[NameRow]:
        sql = f"""SELECT json_extract(fqdns.content, '$.name') AS name,
                json_extract(ips.content, '$.address') AS addr
            FROM relations AS r1
            JOIN assets AS fqdns ON fqdns.id = r1.from_asset_id
            JOIN assets AS srvs ON srvs.id = r1.to_asset_id
            JOIN relations AS r2 ON r2.from_asset_id = srvs.id
            JOIN assets AS ips ON ips.id = r2.to_asset_id
            WHERE fqdns.type = ? AND srvs.type = ? AND ips.type = ?
                AND r1.type IN ({_placeholders(INDIRECT_RELATIONS)})
                AND r2.type IN ({_placeholders(ADDRESS_RELATIONS)})
                AND {_FRESH.format(alias="r1")} AND {_FRESH.format(alias="r2")}
                AND r1.from_asset_id IN ({{ids}})"""
        params = [
            str(AssetType.FQDN), str(AssetType.FQDN), str(AssetType.IP_ADDRESS),
            *map(str, INDIRECT_RELATIONS), *map(str, ADDRESS_RELATIONS),
            *_since(since), *_since(since),
        ]
        return await self._name_rows(sql, params, names)

    async def direct_addresses(
        self, names: Iterable[str], since: datetime | None = None,
    ) -> list[NameRow]:
        sql = f"""SELECT json_extract(fqdns.content, '$.name') AS name,
                json_extract(ips.content, '$.address') AS addr
            FROM relations AS r
            JOIN assets AS fqdns ON fqdns.id = r.from_asset_id
            JOIN assets AS ips ON ips.id = r.to_asset_id
            WHERE fqdns.type = ? AND ips.type = ?
                AND r.type IN ({_placeholders(ADDRESS_RELATIONS)})
                AND {_FRESH.format(alias="r")}
                AND r.from_asset_id IN ({{ids}})"""
        params = [
            str(AssetType.FQDN), str(AssetType.IP_ADDRESS),
            *map(str, ADDRESS_RELATIONS), *_since(since),
        ]
        return await self._name_rows(sql, params, names)

    async def alias_targets(
        self, names: Iterable[str], since: datetime | None = None,
    ) -> list[NameRow]:
        sql = f"""SELECT json_extract(fqdns.content, '$.name') AS name,
                json_extract(cnames.content, '$.name') AS addr
            FROM relations AS r
            JOIN assets AS fqdns ON fqdns.id = r.from_asset_id
            JOIN assets AS cnames ON cnames.id = r.to_asset_id
            WHERE fqdns.type = ? AND cnames.type = ? AND r.type = ?
                AND {_FRESH.format(alias="r")}
                AND r.from_asset_id IN ({{ids}})"""
        params = [
            str(AssetType.FQDN), str(AssetType.FQDN), str(RelationType.CNAME_RECORD),
            *_since(since),
        ]
        return await self._name_rows(sql, params, names)

    async def alias_chain_addresses(
        self, name: str, since: datetime | None = None,
    ) -> list[NameRow]:
        start = fqdn_ids([name])
        if not start:
            return []

        # UNION (not UNION ALL) drops revisited IDs, so CNAME loops terminate.
        sql = f"""WITH RECURSIVE traverse_cname(fqdn_id) AS (
                VALUES(?)
                UNION
                SELECT r.to_asset_id
                FROM traverse_cname
                JOIN relations AS r ON r.from_asset_id = traverse_cname.fqdn_id
                JOIN assets AS cnames ON cnames.id = r.to_asset_id
                WHERE r.type = ? AND cnames.type = ? AND {_FRESH.format(alias="r")}
            )
            SELECT json_extract(fqdns.content, '$.name') AS name,
                json_extract(ips.content, '$.address') AS addr
            FROM traverse_cname
            JOIN assets AS fqdns ON fqdns.id = traverse_cname.fqdn_id
            JOIN relations AS r ON r.from_asset_id = fqdns.id
            JOIN assets AS ips ON ips.id = r.to_asset_id
            WHERE fqdns.type = ? AND ips.type = ?
                AND r.type IN ({_placeholders(ADDRESS_RELATIONS)})
                AND {_FRESH.format(alias="r")}"""
        params = [
            next(iter(start)),
            str(RelationType.CNAME_RECORD), str(AssetType.FQDN), *_since(since),
            str(AssetType.FQDN), str(AssetType.IP_ADDRESS),
            *map(str, ADDRESS_RELATIONS), *_since(since),
        ]
        rows = await self._fetch(sql, params)
        return [(r["name"], r["addr"]) for r in rows]

    # -- helpers --

    async def _relations(
        self,
        column: str,
        asset_id: str,
        since: datetime | None,
        rel_types: Sequence[RelationType],
    ) -> list[StoredRelation]:
        sql = f"""SELECT {_RELATION_COLUMNS}
            FROM relations AS r
            JOIN assets AS f ON f.id = r.from_asset_id
            JOIN assets AS t ON t.id = r.to_asset_id
            WHERE {column} = ? AND {_FRESH.format(alias="r")}"""
        params: list[Any] = [asset_id, *_since(since)]
        if rel_types:
            sql += f" AND r.type IN ({_placeholders(rel_types)})"
            params.extend(str(t) for t in rel_types)
        rows = await self._fetch(sql, params)
        return [self._relation_from_row(row) for row in rows]

    async def _name_rows(
        self, sql: str, params: list[Any], names: Iterable[str],
    ) -> list[NameRow]:
        ids = list(fqdn_ids(names))
        results: list[NameRow] = []
        for chunk in _chunks(ids, self.chunk_size):
            rows = await self._fetch(
                sql.format(ids=_placeholders(chunk)), [*params, *chunk],
            )
            results.extend((r["name"], r["addr"]) for r in rows)
        return results

    async def _fetch(self, sql: str, params: Sequence[Any]) -> list[aiosqlite.Row]:
        try:
            async with self.db.execute(sql, tuple(params)) as cursor:
                return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            logger.debug("Graph query failed: %s", e)
            raise StoreError(str(e)) from e

    async def _write(self, sql: str, params: Sequence[Any]) -> None:
        try:
            await self.db.execute(sql, tuple(params))
            await self.db.commit()
        except aiosqlite.Error as e:
            raise StoreError(str(e)) from e

    @staticmethod
    def _asset_from(asset_id: str, content: str, created: str, seen: str) -> StoredAsset:
        return StoredAsset(
            id=asset_id,
            asset=parse_asset(json.loads(content)),
            created_at=_parse_ts(created),
            last_seen=_parse_ts(seen),
        )

    def _relation_from_row(self, row: aiosqlite.Row) -> StoredRelation:
        return StoredRelation(
            id=row["r_id"],
            type=RelationType(row["r_type"]),
            from_asset=self._asset_from(
                row["f_id"], row["f_content"], row["f_created"], row["f_seen"],
            ),
            to_asset=self._asset_from(
                row["t_id"], row["t_content"], row["t_created"], row["t_seen"],
            ),
            created_at=_parse_ts(row["r_created"]),
            last_seen=_parse_ts(row["r_seen"]),
        )
