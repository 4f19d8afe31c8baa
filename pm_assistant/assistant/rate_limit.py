"""Per-user rate limiting checked before any provider call."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from pm_assistant.shared.settings import AssistantSettings


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    remaining: int
    reset_at: float


class RateLimiter(Protocol):
    name: str

    def check(self, identifier: str) -> RateLimitResult: ...


class SlidingWindowRateLimiter:
    """In-memory sliding-window counter keyed by identifier.

    A successful check consumes one slot; a rejected check consumes nothing.
    """

    def __init__(
        self,
        name: str,
        limit: int,
        window_s: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError(f"invalid_rate_limit:{name}:{limit}")
        if window_s <= 0:
            raise ValueError(f"invalid_rate_window:{name}:{window_s}")
        self.name = name
        self.limit = limit
        self.window_s = window_s
        self.clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = float("-inf")

    def check(self, identifier: str) -> RateLimitResult:
        now = self.clock()
        if now - self._last_sweep >= self.window_s:
            self._sweep(now)
        hits = self._hits.setdefault(identifier, deque())
        self._prune(hits, now)
        if len(hits) >= self.limit:
            return RateLimitResult(success=False, remaining=0, reset_at=hits[0] + self.window_s)
        hits.append(now)
        return RateLimitResult(
            success=True,
            remaining=self.limit - len(hits),
            reset_at=hits[0] + self.window_s,
        )

    def tracked_identifiers(self) -> int:
        return len(self._hits)

    def _prune(self, hits: deque[float], now: float) -> None:
        while hits and hits[0] <= now - self.window_s:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        """Drop identifiers with no hits left inside the window."""
        for identifier in list(self._hits):
            hits = self._hits[identifier]
            self._prune(hits, now)
            if not hits:
                del self._hits[identifier]
        self._last_sweep = now

    def reset(self, identifier: str | None = None) -> None:
        if identifier is None:
            self._hits.clear()
        else:
            self._hits.pop(identifier, None)


def build_ai_rate_limiters(
    settings: AssistantSettings | None = None,
    clock: Callable[[], float] = time.time,
) -> tuple[RateLimiter, ...]:
    """Daily volume limiter followed by the short-window concurrency limiter."""

    resolved = settings or AssistantSettings()
    return (
        SlidingWindowRateLimiter("ai", resolved.daily_limit, resolved.daily_window_s, clock),
        SlidingWindowRateLimiter(
            "ai_concurrent", resolved.concurrent_limit, resolved.concurrent_window_s, clock
        ),
    )
