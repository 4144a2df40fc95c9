"""
TTL response cache shared across requests.

Entries are keyed by a hash of (provider id, normalized subject value) and
carry an absolute expiry. Expiry is lazy: an entry read past ``expires_at`` is
a miss and is overwritten by the next successful fetch. Concurrent writers of
the same key race and the last write wins.

The cache fails open. Any backend error is logged and treated as a miss, so a
Redis outage degrades to direct provider calls instead of failing requests.
"""

import copy
import hashlib
import json
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import redis.asyncio as redis

from netknife.config.logging import get_logger
from netknife.config.settings import CacheBackendType
from netknife.models.intel import NormalizedPayload

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """One cached provider payload."""
    key: str
    payload: NormalizedPayload
    expires_at: float  # epoch seconds

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def to_json(self) -> str:
        return json.dumps(
            {"key": self.key, "payload": self.payload, "expires_at": self.expires_at},
            default=str,
        )

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        data = json.loads(raw)
        return cls(key=data["key"], payload=data["payload"], expires_at=float(data["expires_at"]))


@dataclass
class CacheStats:
    """Counters for cache behaviour."""
    hits: int = 0
    misses: int = 0
    expired: int = 0
    errors: int = 0
    writes: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expired": self.expired,
            "errors": self.errors,
            "writes": self.writes,
        }


class CacheBackend(ABC):
    """Key/value store with TTL semantics."""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        pass

    @abstractmethod
    async def set(self, entry: CacheEntry, ttl: int) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass

    async def close(self) -> None:
        pass


class MemoryCacheBackend(CacheBackend):
    """In-process backend bounded by entry count; oldest writes are evicted first."""

    def __init__(self, max_entries: int = 10000):
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    async def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    async def set(self, entry: CacheEntry, ttl: int) -> None:
        self._entries.pop(entry.key, None)
        self._entries[entry.key] = entry
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisCacheBackend(CacheBackend):
    """Redis backend; entries are stored as JSON with a native expiry."""

    def __init__(self, redis_url: Optional[str] = None, client: Optional[Any] = None,
                 key_prefix: str = "netknife:intel:"):
        if client is None and redis_url is None:
            raise ValueError("RedisCacheBackend needs either redis_url or client")
        self.key_prefix = key_prefix
        self._client = client if client is not None else redis.from_url(
            redis_url, decode_responses=True
        )

    async def get(self, key: str) -> Optional[CacheEntry]:
        raw = await self._client.get(key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        return CacheEntry.from_json(raw)

    async def set(self, entry: CacheEntry, ttl: int) -> None:
        await self._client.set(entry.key, entry.to_json(), ex=max(1, int(ttl)))

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def clear(self) -> None:
        async for key in self._client.scan_iter(match=f"{self.key_prefix}*"):
            await self._client.delete(key)

    async def close(self) -> None:
        await self._client.aclose()


class ResponseCache:
    """Provider response cache with lazy expiry and fail-open reads and writes."""

    def __init__(self, backend: Optional[CacheBackend] = None,
                 key_prefix: str = "netknife:intel:",
                 clock: Callable[[], float] = time.time):
        self.backend = backend if backend is not None else MemoryCacheBackend()
        self.key_prefix = key_prefix
        self.clock = clock
        self.stats = CacheStats()

    def make_key(self, provider_id: str, subject_value: str) -> str:
        """Cache key for a provider and subject value."""
        normalized = subject_value.strip().lower()
        digest = hashlib.sha256(f"{provider_id}\x00{normalized}".encode()).hexdigest()
        return f"{self.key_prefix}{provider_id}:{digest}"

    async def get(self, provider_id: str, subject_value: str) -> Optional[NormalizedPayload]:
        """Return a copy of the cached payload, or None on miss or expiry."""
        key = self.make_key(provider_id, subject_value)

        try:
            entry = await self.backend.get(key)
        except Exception as e:
            self.stats.errors += 1
            logger.warning("cache_get_failed", provider=provider_id, error=str(e))
            return None

        if entry is None:
            self.stats.misses += 1
            logger.debug("cache_miss", provider=provider_id)
            return None

        if entry.is_expired(self.clock()):
            self.stats.expired += 1
            self.stats.misses += 1
            logger.debug("cache_expired", provider=provider_id)
            return None

        self.stats.hits += 1
        logger.debug("cache_hit", provider=provider_id)
        return copy.deepcopy(entry.payload)

    async def set(self, provider_id: str, subject_value: str,
                  payload: NormalizedPayload, ttl: int) -> bool:
        """Store a payload for ``ttl`` seconds. Returns False if nothing was written."""
        if ttl <= 0:
            return False

        key = self.make_key(provider_id, subject_value)
        entry = CacheEntry(
            key=key,
            payload=copy.deepcopy(payload),
            expires_at=self.clock() + ttl,
        )

        try:
            await self.backend.set(entry, ttl)
        except Exception as e:
            self.stats.errors += 1
            logger.warning("cache_set_failed", provider=provider_id, error=str(e))
            return False

        self.stats.writes += 1
        return True

    async def invalidate(self, provider_id: str, subject_value: str) -> None:
        """Drop one entry."""
        try:
            await self.backend.delete(self.make_key(provider_id, subject_value))
        except Exception as e:
            self.stats.errors += 1
            logger.warning("cache_delete_failed", provider=provider_id, error=str(e))

    async def close(self) -> None:
        try:
            await self.backend.close()
        except Exception as e:
            logger.warning("cache_close_failed", error=str(e))


def build_response_cache(settings) -> ResponseCache:
    """Create the response cache selected by configuration."""
    if settings.CACHE_BACKEND == CacheBackendType.REDIS:
        backend: CacheBackend = RedisCacheBackend(
            redis_url=settings.REDIS_URL, key_prefix=settings.CACHE_KEY_PREFIX
        )
        logger.info("response_cache_configured", backend="redis")
    else:
        backend = MemoryCacheBackend(max_entries=settings.CACHE_MAX_ENTRIES)
        logger.info("response_cache_configured", backend="memory",
                    max_entries=settings.CACHE_MAX_ENTRIES)

    return ResponseCache(backend=backend, key_prefix=settings.CACHE_KEY_PREFIX)
