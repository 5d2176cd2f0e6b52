from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from pydantic import ValidationError
from redis import RedisError
from redis.asyncio import Redis

from sportsfeed.config.settings import StorageSettings, settings
from sportsfeed.errors import SyntheticOverwriteError
from sportsfeed.schemas.snapshot import Snapshot

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | bytes | None: ...

    async def set(self, key: str, value: str) -> None: ...


class MemoryKeyValue:
    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str) -> None:
        self.store[key] = value


class RedisKeyValue:
    def __init__(self, client: Redis, ttl_seconds: int | None = None) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int | None = None) -> "RedisKeyValue":
        return cls(Redis.from_url(url), ttl_seconds)

    async def get(self, key: str) -> bytes | None:
        try:
            return await self._client.get(key)
        except RedisError as exc:
            logger.warning("redis get failed for %s: %s", key, exc)
            return None

    async def set(self, key: str, value: str) -> None:
        try:
            if self._ttl_seconds:
                await self._client.setex(key, self._ttl_seconds, value)
            else:
                await self._client.set(key, value)
        except RedisError as exc:
            logger.warning("redis set failed for %s: %s", key, exc)

    async def close(self) -> None:
        await self._client.aclose()


def build_key_value(storage: StorageSettings | None = None) -> KeyValueStore:
    storage = storage or settings.storage
    if storage.backend == "redis":
        return RedisKeyValue.from_url(storage.redis_url, storage.snapshot_ttl_seconds)
    return MemoryKeyValue()


class SnapshotStore:
    """Last-known-good snapshots per feed, on top of any async key/value store.

    Tracks, for the lifetime of this process, which feeds have held live or
    cached data so placeholder data never replaces it.
    """

    def __init__(self, backend: KeyValueStore, key_prefix: str = "sportsfeed") -> None:
        self._backend = backend
        self._key_prefix = key_prefix
        self._good_feeds: set[str] = set()

    def _snapshot_key(self, feed_id: str) -> str:
        return f"{self._key_prefix}:snapshot:{feed_id}"

    def _debug_key(self, feed_id: str) -> str:
        return f"{self._key_prefix}:debug:{feed_id}"

    def has_good_snapshot(self, feed_id: str) -> bool:
        return feed_id in self._good_feeds

    async def read(self, feed_id: str) -> Snapshot | None:
        raw = await self._backend.get(self._snapshot_key(feed_id))
        if not raw:
            return None
        try:
            snapshot = Snapshot.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("discarding unreadable snapshot for %s: %s", feed_id, exc)
            return None
        if snapshot.provenance != "synthetic":
            self._good_feeds.add(feed_id)
        return snapshot

    async def write(self, feed_id: str, snapshot: Snapshot) -> None:
        if snapshot.provenance == "synthetic" and feed_id in self._good_feeds:
            raise SyntheticOverwriteError(
                f"refusing to replace good snapshot for {feed_id} with synthetic data"
            )
        await self._backend.set(self._snapshot_key(feed_id), snapshot.model_dump_json())
        if snapshot.provenance != "synthetic":
            self._good_feeds.add(feed_id)

    async def write_debug_trace(self, feed_id: str, trace: dict[str, Any]) -> None:
        await self._backend.set(self._debug_key(feed_id), json.dumps(trace, default=str))

    async def read_debug_trace(self, feed_id: str) -> dict[str, Any] | None:
        raw = await self._backend.get(self._debug_key(feed_id))
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None
