from __future__ import annotations
import asyncio
from typing import Any, Generic, List, TypeVar

from .context import Context
from .io import IO
from .option import NONE, Option, Some

T = TypeVar("T")

_EMPTY: Any = object()


class Deferred(Generic[T]):
    """A value completed once; ``get`` suspends the fiber until then."""

    def __init__(self) -> None:
        self._value: Any = _EMPTY
        self._waiters: List[asyncio.Future[T]] = []

    @staticmethod
    def of() -> IO["Deferred[Any]"]:
        return IO.delay(Deferred)

    def done(self) -> bool:
        return self._value is not _EMPTY

    def get(self) -> IO[T]:
        async def run(_: Context) -> T:
            if self._value is not _EMPTY:
                return self._value
            fut: asyncio.Future[T] = asyncio.get_running_loop().create_future()
            self._waiters.append(fut)
            try:
                return await fut
            finally:
                if fut in self._waiters:
                    self._waiters.remove(fut)
        return IO(run)

    def try_get(self) -> IO[Option[T]]:
        return IO.delay(lambda: NONE if self._value is _EMPTY else Some(self._value))

    def complete(self, value: T) -> IO[bool]:
        """``True`` for the first completion, ``False`` afterwards."""
        def go() -> bool:
            if self._value is not _EMPTY:
                return False
            self._value = value
            waiters, self._waiters = self._waiters, []
            for w in waiters:
                if not w.done():
                    w.set_result(value)
            return True
        return IO.delay(go)
