import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class RateLimiter:
    """Admission control for outbound calls.

    At most ``max_concurrent`` callers hold admission at once, and consecutive
    admissions are spaced by at least ``min_interval_seconds``. Callers that
    cannot be admitted wait; they are never rejected.
    """

    def __init__(
        self,
        max_concurrent: int,
        min_interval_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must not be negative")
        self._max_concurrent = max_concurrent
        self._min_interval = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._slots = asyncio.Semaphore(max_concurrent)
        self._start_lock = asyncio.Lock()
        self._next_start = 0.0
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    async def acquire(self) -> None:
        await self._slots.acquire()
        try:
            await self._wait_for_start()
        except BaseException:
            self._slots.release()
            raise
        self._in_flight += 1

    def release(self) -> None:
        self._in_flight -= 1
        self._slots.release()

    @asynccontextmanager
    async def admit(self) -> AsyncIterator[None]:
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    async def _wait_for_start(self) -> None:
        if self._min_interval <= 0:
            return
        async with self._start_lock:
            wait = self._next_start - self._clock()
            if wait > 0:
                logger.debug(f"Rate limited, waiting {wait:.3f}s")
                await self._sleep(wait)
            self._next_start = self._clock() + self._min_interval
