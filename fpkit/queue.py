from __future__ import annotations
import asyncio
from collections import deque
from typing import Any, Deque, Generic, List, Optional, TypeVar

from .context import Context
from .io import IO
from .option import NONE, Option, Some

T = TypeVar("T")


class Queue(Generic[T]):
    """FIFO queue between fibers. ``offer`` suspends while a bounded queue is
    full, ``take`` while it is empty. A dropping queue discards offers
    instead of suspending."""

    def __init__(self, capacity: Optional[int] = None, dropping: bool = False):
        if capacity is not None and capacity < 1:
            raise ValueError("queue capacity must be at least 1")
        self._capacity = capacity
        self._dropping = dropping
        self._buf: Deque[T] = deque()
        self._cond = asyncio.Condition()

    @staticmethod
    def bounded(capacity: int) -> IO["Queue[Any]"]:
        return IO.delay(lambda: Queue(capacity))

    @staticmethod
    def unbounded() -> IO["Queue[Any]"]:
        return IO.delay(lambda: Queue(None))

    @staticmethod
    def dropping(capacity: int) -> IO["Queue[Any]"]:
        return IO.delay(lambda: Queue(capacity, dropping=True))

    def _full(self) -> bool:
        return self._capacity is not None and len(self._buf) >= self._capacity

    def size(self) -> IO[int]:
        return IO.delay(lambda: len(self._buf))

    def offer(self, item: T) -> IO[None]:
        async def run(_: Context) -> None:
            async with self._cond:
                if self._dropping and self._full():
                    return
                while self._full():
                    await self._cond.wait()
                self._buf.append(item)
                self._cond.notify_all()
        return IO(run)

    def try_offer(self, item: T) -> IO[bool]:
        async def run(_: Context) -> bool:
            async with self._cond:
                if self._full():
                    return False
                self._buf.append(item)
                self._cond.notify_all()
                return True
        return IO(run)

    def take(self) -> IO[T]:
        async def run(_: Context) -> T:
            async with self._cond:
                while not self._buf:
                    await self._cond.wait()
                v = self._buf.popleft()
                self._cond.notify_all()
                return v
        return IO(run)

    def try_take(self) -> IO[Option[T]]:
        async def run(_: Context) -> Option[T]:
            async with self._cond:
                if not self._buf:
                    return NONE
                v = self._buf.popleft()
                self._cond.notify_all()
                return Some(v)
        return IO(run)

    def take_all(self) -> IO[List[T]]:
        """Drain whatever is queued now, without waiting."""
        async def run(_: Context) -> List[T]:
            async with self._cond:
                items = list(self._buf)
                self._buf.clear()
                self._cond.notify_all()
                return items
        return IO(run)
