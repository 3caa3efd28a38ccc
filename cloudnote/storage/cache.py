"""
Ephemeral Cache Adapters.

MemoryCache is the local target: an in-process map with per-entry expiry.
RedisCache is the managed target: every call goes through a circuit
breaker so an unreachable Redis stops costing latency once it is open.

Neither adapter raises. Backend failures are logged and turn into a
miss (get) or a no-op (put, delete), so the cache can only ever make a
request faster, never fail it.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import aiobreaker
from redis.asyncio import Redis
from redis.exceptions import RedisError

from cloudnote.core.logging import get_logger
from cloudnote.storage.base import Cache

logger = get_logger(__name__)


class MemoryCache(Cache):
    """
    In-process expiring map.

    Expired entries are evicted lazily when read and swept in bulk at most
    once per check_period seconds on write.

    Args:
        default_ttl: TTL used when put() receives a non-positive value
        check_period: Seconds between full expiry sweeps
        clock: Monotonic time source, replaceable in tests
    """

    def __init__(
        self,
        default_ttl: int = 3600,
        check_period: int = 600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self.check_period = check_period
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._last_sweep = clock()

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        ttl = ttl_seconds if ttl_seconds > 0 else self.default_ttl
        now = self._clock()
        self._entries[key] = (value, now + ttl)
        if now - self._last_sweep >= self.check_period:
            self._sweep(now)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def ttl(self, key: str) -> float | None:
        """Remaining lifetime of key in seconds, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        remaining = entry[1] - self._clock()
        return remaining if remaining > 0 else None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        if expired:
            logger.debug("Cache sweep evicted entries", extra={"evicted": len(expired)})


_CACHE_FAILURES = (RedisError, OSError, aiobreaker.CircuitBreakerError)


class RedisCache(Cache):
    """
    Redis-backed cache.

    Args:
        client: redis.asyncio client with decode_responses enabled
        breaker: Circuit breaker guarding every Redis call
    """

    def __init__(self, client: Redis, breaker: aiobreaker.CircuitBreaker) -> None:
        self._client = client
        self._breaker = breaker

    async def get(self, key: str) -> str | None:
        try:
            value = await self._breaker.call_async(self._client.get, key)
        except _CACHE_FAILURES as e:
            self._log_failure("get", key, e)
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._breaker.call_async(self._client.set, key, value, ex=max(int(ttl_seconds), 1))
        except _CACHE_FAILURES as e:
            self._log_failure("put", key, e)

    async def delete(self, key: str) -> None:
        try:
            await self._breaker.call_async(self._client.delete, key)
        except _CACHE_FAILURES as e:
            self._log_failure("delete", key, e)

    async def ping(self) -> bool:
        try:
            return bool(await self._breaker.call_async(self._client.ping))
        except _CACHE_FAILURES as e:
            self._log_failure("ping", None, e)
            return False

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _log_failure(operation: str, key: str | None, error: Exception) -> None:
        logger.warning(
            "Cache operation failed, degrading",
            extra={"operation": operation, "key": key, "error": str(error), "error_type": type(error).__name__},
        )
