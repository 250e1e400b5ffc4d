from __future__ import annotations
import asyncio
from typing import Callable, Generic, Tuple, TypeVar

from .context import Context
from .io import IO

T = TypeVar("T")
R = TypeVar("R")


class Ref(Generic[T]):
    """A mutable cell shared between fibers; every operation is an IO and
    each update applies its function atomically."""

    def __init__(self, initial: T):
        self._value: T = initial
        self._lock = asyncio.Lock()

    @staticmethod
    def of(initial: T) -> IO["Ref[T]"]:
        return IO.delay(lambda: Ref(initial))

    def _locked(self, f: Callable[[], R]) -> IO[R]:
        async def run(_: Context) -> R:
            async with self._lock:
                return f()
        return IO(run)

    def get(self) -> IO[T]:
        return self._locked(lambda: self._value)

    def set(self, v: T) -> IO[None]:
        def put() -> None:
            self._value = v
        return self._locked(put)

    def modify(self, f: Callable[[T], Tuple[T, R]]) -> IO[R]:
        """``f`` returns ``(new_value, result)``."""
        def step() -> R:
            new_v, out = f(self._value)
            self._value = new_v
            return out
        return self._locked(step)

    def update(self, f: Callable[[T], T]) -> IO[None]:
        return self.modify(lambda v: (f(v), None))

    def get_and_set(self, v: T) -> IO[T]:
        return self.modify(lambda old: (v, old))

    def get_and_update(self, f: Callable[[T], T]) -> IO[T]:
        return self.modify(lambda old: (f(old), old))

    def update_and_get(self, f: Callable[[T], T]) -> IO[T]:
        def step(old: T) -> Tuple[T, T]:
            new = f(old)
            return new, new
        return self.modify(step)

    def __repr__(self) -> str:
        return f"Ref({self._value!r})"
