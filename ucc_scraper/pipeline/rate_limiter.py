"""Per-jurisdiction request pacing.

One RateLimiter per scraper instance. The lock is held across the wait, so
concurrent callers are admitted one at a time and no two permits are ever
closer than ``min_interval_seconds``.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforces a minimum interval between permitted requests.

    Usage::

        limiter = RateLimiter.from_requests_per_minute(5)
        await limiter.throttle("CA")   # first call returns at once
        await limiter.throttle("CA")   # waits ~12s
    """

    def __init__(
        self,
        min_interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._min_interval = max(min_interval_seconds, 0.0)
        self._clock = clock
        self._sleep = sleep
        self._last_permit: float | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_requests_per_minute(cls, rpm: float, **kwargs: object) -> "RateLimiter":
        return cls(60.0 / rpm, **kwargs)  # type: ignore[arg-type]

    @property
    def min_interval_seconds(self) -> float:
        return self._min_interval

    @property
    def last_permit(self) -> float | None:
        return self._last_permit

    async def throttle(self, jurisdiction: str) -> float:
        """Wait until the next request is allowed, then record the permit.

        Returns the number of seconds waited (0.0 when admitted at once).
        """
        async with self._lock:
            waited = 0.0
            if self._last_permit is not None:
                remaining = self._min_interval - (self._clock() - self._last_permit)
                if remaining > 0:
                    logger.debug(
                        "Rate limit for %s: waiting %.2fs", jurisdiction, remaining,
                    )
                    await self._do_sleep(remaining)
                    waited = remaining
            self._last_permit = self._clock()
            return waited

    async def _do_sleep(self, seconds: float) -> None:
        if self._sleep is not None:
            await self._sleep(seconds)
        else:
            await asyncio.sleep(seconds)
