# ─────────────────────────────────────────────────────────────────────────────
# Rate Limiting — per-key sliding windows + shared slowapi outer limiter
# ─────────────────────────────────────────────────────────────────────────────
# SlidingWindowRateLimiter is the generation gate. Client side keys it by
# endpoint name, server side by client address. The slowapi Limiter built by
# build_http_limiter() is only a coarse per-IP cap on every route.
#
# Not thread-safe: each instance is owned by one event loop.
# Keys are never evicted; the map grows with distinct client addresses.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from slowapi import Limiter
from starlette.requests import Request

from voxelize.exceptions import RateLimitedError

UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single admit() call."""

    allowed: bool
    retry_after: float = 0.0  # seconds; 0 when allowed


class SlidingWindowRateLimiter:
    """Admit at most ``max_requests`` calls per key in any ``window_seconds``.

    Only admitted calls are recorded. A rejected call never takes a slot,
    so it does not push back the moment the key frees up.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._history: dict[str, deque[float]] = {}

    def admit(self, key: str) -> RateLimitDecision:
        """Record a call for ``key`` if the window has room."""
        now = self._clock()
        history = self._purge(key, now)

        if len(history) >= self.max_requests:
            retry_after = max(0.0, self.window_seconds - (now - history[0]))
            return RateLimitDecision(allowed=False, retry_after=retry_after)

        history.append(now)
        return RateLimitDecision(allowed=True)

    def enforce(self, key: str) -> None:
        """admit(), raising RateLimitedError on rejection."""
        decision = self.admit(key)
        if not decision.allowed:
            raise RateLimitedError(decision.retry_after)

    def recent(self, key: str) -> int:
        """Number of admitted calls for ``key`` still inside the window."""
        return len(self._purge(key, self._clock()))

    def _purge(self, key: str, now: float) -> deque[float]:
        history = self._history.setdefault(key, deque())
        # Timestamps are appended in order, so expired ones sit at the left.
        while history and now - history[0] >= self.window_seconds:
            history.popleft()
        return history


def client_address(request: Request) -> str:
    """First X-Forwarded-For hop, else the peer address, else "unknown"."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip() or UNKNOWN_CLIENT
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def build_http_limiter(default_limit: str, *, enabled: bool = True) -> Limiter:
    """slowapi limiter applying ``default_limit`` to every route, per client address."""
    return Limiter(key_func=client_address, default_limits=[default_limit], enabled=enabled)
