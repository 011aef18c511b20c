"""Fixed-window request rate limiting for the HTTP boundary."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import redis

from impact_cycle.core.settings import settings

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    def hit(self, identifier: str) -> bool:
        """Count one request; return False once the window budget is spent."""
        ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """Per-process limiter; safe for concurrent requests in one process.

    Expired windows are dropped every `purge_every` hits, and also whenever
    the number of tracked callers reaches `max_entries`.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        purge_every: int = 1_000,
        max_entries: int = 10_000,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.purge_every = purge_every
        self.max_entries = max_entries
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._hits = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def hit(self, identifier: str) -> bool:
        now = self._clock()
        with self._lock:
            self._hits += 1
            if self._hits % self.purge_every == 0 or len(self._windows) >= self.max_entries:
                self._purge_locked(now)
            window = self._windows.get(identifier)
            if window is None or now > window.reset_at:
                self._windows[identifier] = _Window(count=1, reset_at=now + self.window_seconds)
                return True
            if window.count >= self.max_requests:
                return False
            window.count += 1
            return True

    def purge_expired(self) -> int:
        """Drop expired windows; returns how many were removed."""
        now = self._clock()
        with self._lock:
            return self._purge_locked(now)

    def _purge_locked(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        return len(expired)


class RedisRateLimiter:
    """Limiter shared across processes through Redis key expiry.

    Falls back to an in-memory limiter if Redis becomes unreachable.
    """

    def __init__(
        self,
        client: Any,
        max_requests: int,
        window_seconds: int,
        *,
        prefix: str = "ratelimit",
    ) -> None:
        self._redis = client
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._prefix = prefix
        self._fallback = InMemoryRateLimiter(max_requests, window_seconds)

    def hit(self, identifier: str) -> bool:
        if self._redis is not None:
            key = f"{self._prefix}:{identifier}"
            try:
                # Only the window's first request sets the expiry, so it does not slide.
                pipe = self._redis.pipeline()
                pipe.set(key, 0, ex=int(self.window_seconds), nx=True)
                pipe.incr(key)
                _, count = pipe.execute()
                return int(count) <= self.max_requests
            except redis.RedisError as exc:
                logger.warning("Redis rate limiter unavailable, using memory: %s", exc)
                self._redis = None
        return self._fallback.hit(identifier)


_LIMITER: RateLimiter | None = None
_LIMITER_LOCK = threading.Lock()


def build_rate_limiter() -> RateLimiter:
    """Construct a limiter from settings."""
    if settings.rate_limit_use_redis:
        client = redis.from_url(settings.redis_url)
        return RedisRateLimiter(
            client,
            settings.rate_limit_max_requests,
            settings.rate_limit_window_seconds,
        )
    return InMemoryRateLimiter(
        settings.rate_limit_max_requests,
        settings.rate_limit_window_seconds,
    )


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide limiter, creating it on first use."""
    global _LIMITER
    with _LIMITER_LOCK:
        if _LIMITER is None:
            _LIMITER = build_rate_limiter()
        return _LIMITER
