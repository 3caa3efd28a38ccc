"""
API Rate Limiter.

Per-client sliding window limit on mutating note requests.
Reads the limit from config/settings/security.yaml.
Uses in-memory storage, so each process instance counts on its own.
"""

import time
from collections.abc import Callable

from fastapi import Request

from cloudnote.core.config import get_app_config
from cloudnote.core.exceptions import RateLimitError
from cloudnote.core.logging import get_logger
from cloudnote.core.middleware import client_address

logger = get_logger(__name__)

WINDOW_SECONDS = 60


class RateLimitResult:
    """Result of a rate limit check."""

    def __init__(self, allowed: bool, retry_after_seconds: int = 0) -> None:
        self.allowed = allowed
        self.retry_after_seconds = retry_after_seconds


class SlidingWindowRateLimiter:
    """
    Per-client rate limiter over a one minute sliding window.

    Args:
        requests_per_minute: Maximum accepted requests per client per window
        clock: Monotonic time source, replaceable in tests
    """

    def __init__(
        self,
        requests_per_minute: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.requests_per_minute = requests_per_minute
        self._clock = clock
        self._requests: dict[str, list[float]] = {}
        self._last_sweep = clock()

    def check(self, client_id: str) -> RateLimitResult:
        """
        Record a request from client_id if it is within the limit.

        Returns:
            RateLimitResult indicating whether the request is allowed
        """
        now = self._clock()
        cutoff = now - WINDOW_SECONDS
        if now - self._last_sweep >= WINDOW_SECONDS:
            self._sweep(cutoff)
            self._last_sweep = now

        window = [ts for ts in self._requests.get(client_id, ()) if ts > cutoff]
        self._requests[client_id] = window

        if len(window) >= self.requests_per_minute:
            oldest = min(window)
            retry_after = int(WINDOW_SECONDS - (now - oldest)) + 1
            logger.warning(
                "Rate limit exceeded",
                extra={"client": client_id, "limit": self.requests_per_minute},
            )
            return RateLimitResult(allowed=False, retry_after_seconds=retry_after)

        window.append(now)
        return RateLimitResult(allowed=True)

    def _sweep(self, cutoff: float) -> None:
        # Clients with nothing left in the window
        idle = [client for client, stamps in self._requests.items() if not stamps or stamps[-1] <= cutoff]
        for client in idle:
            del self._requests[client]

    @property
    def tracked_clients(self) -> int:
        """Number of clients currently holding a window."""
        return len(self._requests)

    def reset(self) -> None:
        """Forget all recorded requests."""
        self._requests.clear()


_rate_limiter: SlidingWindowRateLimiter | None = None


def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Get or create the API rate limiter singleton."""
    global _rate_limiter
    if _rate_limiter is None:
        per_minute = get_app_config().security.rate_limiting.api.requests_per_minute
        _rate_limiter = SlidingWindowRateLimiter(per_minute)
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Drop the singleton so the next request rebuilds it from config."""
    global _rate_limiter
    _rate_limiter = None


async def enforce_rate_limit(request: Request) -> None:
    """
    FastAPI dependency gating mutating requests.

    Reads pass through untouched.

    Raises:
        RateLimitError: When the client exceeded its window
    """
    if request.method in ("GET", "HEAD", "OPTIONS"):
        return
    client_id = getattr(request.state, "client_ip", None) or client_address(request)
    result = get_rate_limiter().check(client_id)
    if not result.allowed:
        raise RateLimitError(
            "Too many requests, please try again later",
            retry_after_seconds=result.retry_after_seconds,
        )
