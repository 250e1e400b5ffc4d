from __future__ import annotations
import asyncio
import heapq
import itertools
import time
from typing import List, Optional, Tuple


class Clock:
    """Wall clock and monotonic time, plus the sleep every timed IO goes through.

    ``IO.sleep``, ``IO.timeout`` and the retry policies look the clock up in
    the context, so installing a :class:`TestClock` makes them run on
    virtual time.
    """

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))

    def monotonic(self) -> float:
        return time.monotonic()

    def realtime(self) -> float:
        return time.time()

    def now(self) -> float:
        return self.monotonic()


class TestClock(Clock):
    """Virtual time: sleepers wake only when the test advances the clock.

    Sleepers are kept in a heap of ``(deadline, seq, future)``; ``seq`` keeps
    wake-up order stable for equal deadlines.

    Example:
        ```python
        clock = TestClock()
        fiber = await IO.sleep(10).as_("done").start()._run(ctx)
        await clock.advance(10)
        ```
    """

    __test__ = False

    def __init__(self, start: float = 0.0, epoch: float = 0.0, settle_rounds: int = 64) -> None:
        self._now = float(start)
        self._epoch = float(epoch)
        self._settle_rounds = settle_rounds
        self._seq = itertools.count()
        self._sleepers: List[Tuple[float, int, asyncio.Future[None]]] = []

    def monotonic(self) -> float:  # type: ignore[override]
        return self._now

    def realtime(self) -> float:  # type: ignore[override]
        return self._epoch + self._now

    async def sleep(self, seconds: float) -> None:  # type: ignore[override]
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self._now + seconds, next(self._seq), fut))
        await fut

    def pending(self) -> int:
        """Number of sleepers still waiting."""
        return sum(1 for _, _, f in self._sleepers if not f.done())

    def next_deadline(self) -> Optional[float]:
        self._drop_cancelled()
        return self._sleepers[0][0] if self._sleepers else None

    async def tick(self) -> None:
        """Let every runnable task proceed without moving time."""
        for _ in range(self._settle_rounds):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking due sleepers in deadline order."""
        if seconds < 0:
            raise ValueError("cannot move a clock backwards")
        await self.advance_to(self._now + seconds)

    async def advance_to(self, target: float) -> None:
        await self.tick()
        while True:
            self._drop_cancelled()
            if not self._sleepers or self._sleepers[0][0] > target:
                break
            deadline, _, fut = heapq.heappop(self._sleepers)
            self._now = max(self._now, deadline)
            fut.set_result(None)
            await self.tick()
        self._now = max(self._now, target)
        await self.tick()

    async def run_until_idle(self, limit: int = 10_000) -> None:
        """Jump from deadline to deadline until nobody is sleeping."""
        for _ in range(limit):
            await self.tick()
            deadline = self.next_deadline()
            if deadline is None:
                return
            await self.advance_to(deadline)
        raise RuntimeError(f"clock still busy after {limit} wake-ups")

    def _drop_cancelled(self) -> None:
        while self._sleepers and self._sleepers[0][2].done():
            heapq.heappop(self._sleepers)
