"""Rolling-window admission throttle."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import TYPE_CHECKING, Any

from mintbatch.core.exceptions import InvalidInputError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


class RateLimiter:
    """Admit at most ``max_calls`` acquisitions in any ``period`` second window.

    Independent of worker concurrency: this bounds admissions per unit time,
    not operations in flight. ``acquire`` only ever delays, it never rejects.
    """

    def __init__(
        self,
        max_calls: int = 10,
        period: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_calls < 1:
            msg = "rate limit must admit at least one call per period"
            raise InvalidInputError(msg)
        if period <= 0:
            msg = "rate limit period must be positive"
            raise InvalidInputError(msg)
        self.max_calls = max_calls
        self.period = period
        self._clock = clock
        self._sleep = sleep
        self._admitted: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        while self._admitted and now - self._admitted[0] >= self.period:
            self._admitted.popleft()

    async def acquire(self) -> None:
        """Wait until a permit is available, then take it."""
        # Waiters queue on the lock so admissions stay FIFO.
        async with self._lock:
            while True:
                now = self._clock()
                self._evict(now)
                if len(self._admitted) < self.max_calls:
                    self._admitted.append(now)
                    return
                await self._sleep(self.period - (now - self._admitted[0]))

    @property
    def in_window(self) -> int:
        """Admissions counted in the current window."""
        self._evict(self._clock())
        return len(self._admitted)

    async def __aenter__(self) -> RateLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None
