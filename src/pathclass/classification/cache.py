"""Two-tier classification cache.

The fast tier is an in-process dictionary owned by the cache instance. The durable
tier is any :class:`DurableStore`; the shipped implementation talks to Redis. Every
durable failure is absorbed here and reported to callers as a cache miss.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple
from urllib.parse import quote

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from pathclass.config.models import CacheSettings

from .models import Classification

LOGGER = logging.getLogger(__name__)

# Characters left unescaped by JavaScript's encodeURIComponent, which produced the
# keys already stored by earlier deployments.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def cache_key(pathway_name: str) -> str:
    """Return the fast-tier key for a pathway name (trimmed, otherwise exact)."""
    return pathway_name.strip()


def durable_key(pathway_name: str, prefix: str) -> str:
    """Return the namespaced, percent-encoded durable key for a pathway name."""
    return prefix + quote(cache_key(pathway_name), safe=_URI_COMPONENT_SAFE)


class DurableStore(Protocol):
    """Minimal key-value capability needed from the durable tier.

    Implementations may raise on connectivity problems; :class:`ClassificationCache`
    converts any such failure into a miss.
    """

    async def get(self, key: str) -> Optional[str]: ...

    async def mget(self, keys: Sequence[str]) -> List[Optional[str]]: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def set_many(self, entries: Mapping[str, str], ttl_seconds: int) -> None: ...


class RedisDurableStore:
    """Durable tier backed by Redis through ``redis.asyncio``.

    The connection is created lazily. After a connection failure the store reports
    itself offline for ``retry_after_seconds`` so an outage does not cost a socket
    timeout on every lookup.
    """

    def __init__(
        self,
        url: str,
        *,
        socket_timeout: float = 2.0,
        retry_after_seconds: float = 30.0,
    ) -> None:
        self._url = url
        self._socket_timeout = socket_timeout
        self._retry_after = retry_after_seconds
        self._client: Optional[aioredis.Redis] = None
        self._offline_until = 0.0

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "RedisDurableStore":
        return cls(
            settings.redis_url,
            socket_timeout=settings.socket_timeout_seconds,
            retry_after_seconds=settings.retry_after_seconds,
        )

    def _connection(self) -> aioredis.Redis:
        if time.monotonic() < self._offline_until:
            raise ConnectionError(f"Redis at {self._url} marked offline after a failure")
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                decode_responses=True,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_timeout,
            )
        return self._client

    def _mark_offline(self) -> None:
        self._offline_until = time.monotonic() + self._retry_after

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._connection().get(key)
        except (RedisConnectionError, RedisTimeoutError):
            self._mark_offline()
            raise

    async def mget(self, keys: Sequence[str]) -> List[Optional[str]]:
        if not keys:
            return []
        try:
            return list(await self._connection().mget(list(keys)))
        except (RedisConnectionError, RedisTimeoutError):
            self._mark_offline()
            raise

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._connection().set(key, value, ex=ttl_seconds)
        except (RedisConnectionError, RedisTimeoutError):
            self._mark_offline()
            raise

    async def set_many(self, entries: Mapping[str, str], ttl_seconds: int) -> None:
        """Write every entry with one expiry in a single pipelined round trip."""
        if not entries:
            return
        try:
            async with self._connection().pipeline(transaction=False) as pipe:
                for key, value in entries.items():
                    pipe.set(key, value, ex=ttl_seconds)
                await pipe.execute()
        except (RedisConnectionError, RedisTimeoutError):
            self._mark_offline()
            raise

    async def close(self) -> None:
        """Release the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class ClassificationCache:
    """Read-through cache mapping pathway names to classifications.

    Args:
        durable: Optional durable tier. When omitted the cache is process-local only.
        key_prefix: Namespace for durable keys.
        ttl_seconds: Expiry applied to every durable write.
    """

    def __init__(
        self,
        durable: Optional[DurableStore] = None,
        *,
        key_prefix: str = "pathway:cls:v1:",
        ttl_seconds: int = 60 * 60 * 24 * 30,
    ) -> None:
        self._durable = durable
        self._prefix = key_prefix
        self._ttl = ttl_seconds
        self._memory: Dict[str, Classification] = {}

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "ClassificationCache":
        """Build a cache wired to Redis when the durable tier is enabled."""
        durable = RedisDurableStore.from_settings(settings) if settings.enabled else None
        return cls(durable, key_prefix=settings.key_prefix, ttl_seconds=settings.ttl_seconds)

    @property
    def durable(self) -> Optional[DurableStore]:
        return self._durable

    def clear_fast_tier(self) -> None:
        """Drop the in-process tier only; durable entries are untouched."""
        self._memory.clear()

    async def get(self, pathway_name: str) -> Optional[Classification]:
        """Return the cached classification for ``pathway_name`` if present."""
        key = cache_key(pathway_name)
        cached = self._memory.get(key)
        if cached is not None or self._durable is None:
            return cached

        try:
            raw = await self._durable.get(durable_key(key, self._prefix))
        except Exception as exc:  # durable tier failures degrade to a miss
            LOGGER.warning("Durable cache read failed for %r: %s", key, exc)
            return None
        value = self._decode(key, raw)
        if value is not None:
            self._memory[key] = value
        return value

    async def get_many(self, pathway_names: Iterable[str]) -> Dict[str, Optional[Classification]]:
        """Look up several names at once.

        Returns:
            dict[str, Classification | None]: One entry per distinct trimmed name.
        """
        result: Dict[str, Optional[Classification]] = {}
        missing: List[str] = []
        for name in pathway_names:
            key = cache_key(name)
            if key in result:
                continue
            result[key] = self._memory.get(key)
            if result[key] is None:
                missing.append(key)

        if not missing or self._durable is None:
            return result

        try:
            raw_values = await self._durable.mget(
                [durable_key(key, self._prefix) for key in missing]
            )
        except Exception as exc:  # durable tier failures degrade to misses
            LOGGER.warning("Durable cache lookup failed for %d names: %s", len(missing), exc)
            return result

        for key, raw in zip(missing, raw_values):
            value = self._decode(key, raw)
            if value is not None:
                self._memory[key] = value
                result[key] = value
        return result

    async def set(self, pathway_name: str, value: Classification) -> None:
        """Upsert one classification in both tiers."""
        await self.set_many([(pathway_name, value)])

    async def set_many(self, entries: Iterable[Tuple[str, Classification]]) -> None:
        """Upsert several classifications; sentinel values are never stored."""
        stored: List[Tuple[str, Classification]] = []
        for name, value in entries:
            if not value.is_complete:
                LOGGER.debug("Refusing to cache incomplete classification for %r", name)
                continue
            key = cache_key(name)
            self._memory[key] = value
            stored.append((key, value))

        if not stored or self._durable is None:
            return

        payload = {
            durable_key(key, self._prefix): value.model_dump_json(by_alias=True)
            for key, value in stored
        }
        try:
            await self._durable.set_many(payload, self._ttl)
        except Exception as exc:  # durable tier failures are not fatal
            LOGGER.warning("Durable cache write failed for %d names: %s", len(payload), exc)

    def _decode(self, key: str, raw: Optional[str]) -> Optional[Classification]:
        if not raw:
            return None
        try:
            value = Classification.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            LOGGER.warning("Ignoring malformed cache entry for %r: %s", key, exc)
            return None
        return value if value.is_complete else None


__all__ = [
    "DurableStore",
    "RedisDurableStore",
    "ClassificationCache",
    "cache_key",
    "durable_key",
]
