"""Tests for the persisted rate limiter."""

import pytest

from apitome.errors import RateLimitActiveError
from apitome.rate_limiter import RATE_LIMIT_KEY, RateLimiter, format_time_remaining


@pytest.mark.parametrize(
    "ms,expected",
    [
        (3_600_000, "1 hour 0 minutes"),
        (3_900_000, "1 hour 5 minutes"),
        (7_260_000, "2 hours 1 minute"),
        (121_000, "2 minutes 1 second"),
        (60_000, "1 minute 0 seconds"),
        (42_500, "42 seconds"),
        (1_000, "1 second"),
        (0, "0 seconds"),
    ],
)
def test_format_time_remaining(ms, expected):
    assert format_time_remaining(ms) == expected


def test_starts_inactive(rate_limiter, store):
    assert rate_limiter.is_active is False
    assert rate_limiter.time_remaining == ""
    assert not store.has_item(RATE_LIMIT_KEY)


def test_set_limit_persists_expiry(rate_limiter, store, clock):
    expires_at = rate_limiter.set_limit(3_600_000)

    assert expires_at == int(clock.now * 1000) + 3_600_000
    assert store.get_item(RATE_LIMIT_KEY) == str(expires_at)
    assert rate_limiter.is_active
    assert rate_limiter.time_remaining == "1 hour 0 minutes"


def test_window_clears_after_expiry(rate_limiter, store, clock):
    rate_limiter.set_limit(3_600_000)

    clock.advance(3_600.001)

    assert rate_limiter.poll() is False
    assert rate_limiter.is_active is False
    assert rate_limiter.time_remaining == ""
    assert not store.has_item(RATE_LIMIT_KEY)


def test_window_survives_restart(store, clock):
    RateLimiter(store, clock=clock).set_limit(120_000)
    clock.advance(30)

    reloaded = RateLimiter(store, clock=clock)

    assert reloaded.is_active
    assert reloaded.time_remaining == "1 minute 30 seconds"
    assert reloaded.remaining_ms() == 90_000


def test_expired_window_is_cleared_on_startup(store, clock):
    store.set_item(RATE_LIMIT_KEY, str(int(clock.now * 1000) - 1))

    limiter = RateLimiter(store, clock=clock)

    assert limiter.is_active is False
    assert not store.has_item(RATE_LIMIT_KEY)


def test_non_numeric_value_is_discarded(store, clock):
    store.set_item(RATE_LIMIT_KEY, "soon")

    limiter = RateLimiter(store, clock=clock)

    assert limiter.is_active is False
    assert not store.has_item(RATE_LIMIT_KEY)


def test_check_raises_while_active(rate_limiter):
    rate_limiter.set_limit(5_000)

    with pytest.raises(RateLimitActiveError, match="5 seconds"):
        rate_limiter.check()


def test_clear(rate_limiter, store):
    rate_limiter.set_limit()
    rate_limiter.clear()

    assert rate_limiter.is_active is False
    assert not store.has_item(RATE_LIMIT_KEY)
    rate_limiter.check()


@pytest.mark.asyncio
async def test_run_polls_until_window_clears(rate_limiter, clock):
    rate_limiter.set_limit(3_000)
    seen = []

    def on_tick(limiter):
        seen.append(limiter.time_remaining)
        clock.advance(1)

    await rate_limiter.run(interval=0, on_tick=on_tick)

    assert seen == ["3 seconds", "2 seconds", "1 second", ""]
    assert rate_limiter.is_active is False


@pytest.mark.asyncio
async def test_run_returns_immediately_when_inactive(rate_limiter):
    ticks = []

    await rate_limiter.run(interval=0, on_tick=ticks.append)

    assert ticks == [rate_limiter]
