"""
Key-value blob storage backends.

A blob store is a flat, string-keyed namespace offering get/set/delete and
list-by-prefix. Stores are named (``repository-subscriptions``,
``slack-installations``, ...) and never see each other's keys.

Backends:
- RedisBlobStore: shared Redis, used in deployed environments
- SqliteBlobStore: single-file SQLite, used for local development and tests
"""

from __future__ import annotations

import abc
import json
import os
import re
from datetime import datetime, timezone
from typing import Any

import aiosqlite
import redis.asyncio as redis
from redis.exceptions import RedisError

from .config import Settings

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS blobs (
    store       TEXT NOT NULL,
    key         TEXT NOT NULL,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL,
    PRIMARY KEY (store, key)
);
"""


class BlobStoreError(Exception):
    """The backing store could not complete an operation."""


class BlobStore(abc.ABC):
    """Async string-keyed blob storage, scoped to one named store."""

    def __init__(self, name: str):
        self.name = name

    @abc.abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the raw value stored at ``key``, or None."""

    @abc.abstractmethod
    async def set_json(self, key: str, value: Any) -> None:
        """Serialize ``value`` as JSON and store it at ``key`` (last write wins)."""

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""

    @abc.abstractmethod
    async def list(self, prefix: str = "") -> list[str]:
        """Return every key starting with ``prefix``. Order is not guaranteed."""

    async def close(self) -> None:
        pass


class RedisBlobStore(BlobStore):
    def __init__(self, client: redis.Redis, name: str):
        super().__init__(name)
        self._redis = client

    def _key(self, key: str) -> str:
        return f"{self.name}:{key}"

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(self._key(key))
        except RedisError as exc:
            raise BlobStoreError(f"{self.name}: get failed for {key!r}") from exc

    async def set_json(self, key: str, value: Any) -> None:
        try:
            await self._redis.set(self._key(key), json.dumps(value))
        except RedisError as exc:
            raise BlobStoreError(f"{self.name}: set failed for {key!r}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except RedisError as exc:
            raise BlobStoreError(f"{self.name}: delete failed for {key!r}") from exc

    async def list(self, prefix: str = "") -> list[str]:
        namespace = self._key("")
        # Escape glob characters so the prefix is matched literally
        pattern = _GLOB_SPECIAL.sub(r"\\\1", namespace + prefix) + "*"
        try:
            return [
                key[len(namespace):]
                async for key in self._redis.scan_iter(match=pattern, count=500)
            ]
        except RedisError as exc:
            raise BlobStoreError(f"{self.name}: list failed for {prefix!r}") from exc

    async def close(self) -> None:
        await self._redis.aclose()


class SqliteBlobStore(BlobStore):
    """SQLite-backed store. The connection is opened on first use."""

    def __init__(self, db_path: str, name: str):
        super().__init__(name)
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def _connection(self) -> aiosqlite.Connection:
        if self._db is None:
            os.makedirs(os.path.dirname(self._db_path) or ".", exist_ok=True)
            db = await aiosqlite.connect(self._db_path)
            await db.executescript(_SCHEMA)
            await db.commit()
            self._db = db
        return self._db

    async def get(self, key: str) -> str | None:
        try:
            db = await self._connection()
            cursor = await db.execute(
                "SELECT value FROM blobs WHERE store = ? AND key = ?", (self.name, key)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise BlobStoreError(f"{self.name}: get failed for {key!r}") from exc
        return row[0] if row else None

    async def set_json(self, key: str, value: Any) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            db = await self._connection()
            await db.execute(
                """INSERT INTO blobs (store, key, value, updated_at) VALUES (?, ?, ?, ?)
                   ON CONFLICT(store, key) DO UPDATE SET value=excluded.value,
                   updated_at=excluded.updated_at""",
                (self.name, key, json.dumps(value), now),
            )
            await db.commit()
        except aiosqlite.Error as exc:
            raise BlobStoreError(f"{self.name}: set failed for {key!r}") from exc

    async def delete(self, key: str) -> None:
        try:
            db = await self._connection()
            await db.execute("DELETE FROM blobs WHERE store = ? AND key = ?", (self.name, key))
            await db.commit()
        except aiosqlite.Error as exc:
            raise BlobStoreError(f"{self.name}: delete failed for {key!r}") from exc

    async def list(self, prefix: str = "") -> list[str]:
        try:
            db = await self._connection()
            # substr() comparison keeps "%" and "_" literal, unlike LIKE
            cursor = await db.execute(
                "SELECT key FROM blobs WHERE store = ? AND substr(key, 1, ?) = ? ORDER BY rowid",
                (self.name, len(prefix), prefix),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise BlobStoreError(f"{self.name}: list failed for {prefix!r}") from exc
        return [row[0] for row in rows]

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None


def open_blob_store(settings: Settings, name: str) -> BlobStore:
    """Create the configured backend for the named store. No I/O happens here."""
    if settings.blob_backend == "redis":
        client = redis.from_url(settings.redis_url, decode_responses=True)
        return RedisBlobStore(client, name)
    return SqliteBlobStore(settings.sqlite_path, name)
