"""Client-side cooldown gate that mirrors the backend's query quota.

The expiry timestamp is persisted in the durable store, so a cooldown
survives restarts. The in-memory ``is_active`` and ``time_remaining``
fields are only a mirror refreshed by :meth:`RateLimiter.poll`.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from apitome.errors import RateLimitActiveError
from apitome.storage import DurableStore

logger = logging.getLogger(__name__)

RATE_LIMIT_KEY = "chatRateLimitExpiresAt"
DEFAULT_COOLDOWN_MS = 60 * 60 * 1000
POLL_INTERVAL = 1.0


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_time_remaining(ms: int) -> str:
    """Render a remaining duration for display.

    Hours and minutes from one hour up, minutes and seconds from one minute
    up, seconds otherwise.

    Args:
        ms: Remaining time in milliseconds.

    Returns:
        e.g. ``"1 hour 5 minutes"``, ``"2 minutes 1 second"``, ``"42 seconds"``.
    """
    seconds = max(int(ms // 1000), 0)
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{_plural(hours, 'hour')} {_plural(minutes % 60, 'minute')}"
    if minutes > 0:
        return f"{_plural(minutes, 'minute')} {_plural(seconds % 60, 'second')}"
    return _plural(seconds, "second")


class RateLimiter:
    """Persisted, process-wide cooldown window.

    Attributes:
        store: Durable store holding the expiry timestamp.
        is_active: Whether the window was active at the last poll.
        time_remaining: Display string computed at the last poll.
    """

    def __init__(
        self,
        store: DurableStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter and sync it with the persisted state.

        Args:
            store: Durable store to persist the expiry in.
            clock: Returns the current time in seconds since the epoch.
        """
        self.store = store
        self._clock = clock
        self.is_active = False
        self.time_remaining = ""
        self.poll()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def load(self) -> Optional[int]:
        """Return the persisted expiry in epoch milliseconds, or ``None``.

        A value that is not an integer is removed and treated as absent.
        """
        raw = self.store.get_item(RATE_LIMIT_KEY)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable rate limit expiry: {raw!r}")
            self.store.remove_item(RATE_LIMIT_KEY)
            return None

    def save(self, expires_at: int) -> None:
        """Persist an expiry in epoch milliseconds."""
        self.store.set_item(RATE_LIMIT_KEY, str(expires_at))

    @property
    def expires_at(self) -> Optional[int]:
        return self.load()

    def set_limit(self, duration_ms: int = DEFAULT_COOLDOWN_MS) -> int:
        """Start a cooldown lasting ``duration_ms`` from now.

        Returns:
            The persisted expiry in epoch milliseconds.
        """
        expires_at = self._now_ms() + int(duration_ms)
        self.save(expires_at)
        self.is_active = True
        self.time_remaining = format_time_remaining(duration_ms)
        logger.info(f"Rate limited for {self.time_remaining}")
        return expires_at

    def poll(self) -> bool:
        """Refresh the in-memory mirror from the durable store.

        An absent or past expiry clears the persisted key and deactivates the
        window.

        Returns:
            Whether the window is still active.
        """
        expires_at = self.load()
        remaining = None if expires_at is None else expires_at - self._now_ms()

        if remaining is None or remaining <= 0:
            if expires_at is not None:
                self.store.remove_item(RATE_LIMIT_KEY)
                logger.info("Rate limit window expired")
            self.is_active = False
            self.time_remaining = ""
            return False

        self.is_active = True
        self.time_remaining = format_time_remaining(remaining)
        return True

    def remaining_ms(self) -> int:
        """Milliseconds left in the window, 0 when inactive."""
        expires_at = self.load()
        if expires_at is None:
            return 0
        return max(expires_at - self._now_ms(), 0)

    def clear(self) -> None:
        """End the window immediately."""
        self.store.remove_item(RATE_LIMIT_KEY)
        self.is_active = False
        self.time_remaining = ""
        logger.info("Rate limit cleared")

    def check(self) -> None:
        """Refuse work while the window is active.

        Raises:
            RateLimitActiveError: If the window is active.
        """
        if self.poll():
            raise RateLimitActiveError(
                f"Rate limit active. Please try again in {self.time_remaining}."
            )

    async def run(
        self,
        interval: float = POLL_INTERVAL,
        on_tick: Optional[Callable[["RateLimiter"], None]] = None,
    ) -> None:
        """Poll on a fixed cadence until the window clears.

        Args:
            interval: Seconds between polls.
            on_tick: Called with the limiter after every poll.
        """
        while True:
            active = self.poll()
            if on_tick:
                on_tick(self)
            if not active:
                return
            await asyncio.sleep(interval)
