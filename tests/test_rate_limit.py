from __future__ import annotations

import pytest

from pm_assistant.assistant.errors import RateLimitError
from pm_assistant.assistant.rate_limit import SlidingWindowRateLimiter, build_ai_rate_limiters
from pm_assistant.shared.settings import AssistantSettings


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_sliding_window_allows_limit_then_blocks() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter("ai_concurrent", limit=3, window_s=60, clock=clock)

    results = [limiter.check("u1") for _ in range(3)]
    assert [result.remaining for result in results] == [2, 1, 0]
    assert all(result.success for result in results)

    blocked = limiter.check("u1")
    assert blocked.success is False
    assert blocked.reset_at == 1_060.0


def test_window_slides_and_identifiers_are_independent() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter("ai", limit=1, window_s=10, clock=clock)

    assert limiter.check("u1").success
    assert limiter.check("u2").success
    assert not limiter.check("u1").success

    clock.now += 10
    assert limiter.check("u1").success


def test_rejected_checks_do_not_consume_capacity() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter("ai", limit=1, window_s=10, clock=clock)
    limiter.check("u1")
    for _ in range(5):
        limiter.check("u1")

    clock.now += 10
    assert limiter.check("u1").success


def test_idle_identifiers_are_dropped_once_their_window_passes() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter("ai", limit=2, window_s=10, clock=clock)
    for identifier in ("u1", "u2", "u3"):
        limiter.check(identifier)
    assert limiter.tracked_identifiers() == 3

    clock.now += 10
    assert limiter.check("u4").success

    assert limiter.tracked_identifiers() == 1


def test_invalid_limits_are_rejected() -> None:
    with pytest.raises(ValueError, match="invalid_rate_limit:ai:0"):
        SlidingWindowRateLimiter("ai", limit=0, window_s=10)
    with pytest.raises(ValueError, match="invalid_rate_window:ai"):
        SlidingWindowRateLimiter("ai", limit=1, window_s=0)


def test_builds_daily_then_concurrent_limiters_from_settings() -> None:
    daily, concurrent = build_ai_rate_limiters(AssistantSettings(daily_limit=7, concurrent_limit=2))

    assert (daily.name, daily.limit, daily.window_s) == ("ai", 7, 86400)  # type: ignore[attr-defined]
    assert (concurrent.name, concurrent.limit, concurrent.window_s) == ("ai_concurrent", 2, 60)  # type: ignore[attr-defined]


def test_rate_limit_error_reports_retry_after() -> None:
    error = RateLimitError(1_042.2, limiter="ai", now=1_000.0)

    assert str(error) == "Rate limit exceeded. Please try again in 43 seconds."
    assert error.as_dict() == {
        "error": "Rate limit exceeded. Please try again in 43 seconds.",
        "reason_code": "rate_limited",
        "limiter": "ai",
        "reset_at": 1_042.2,
        "retry_after_s": 43,
    }
