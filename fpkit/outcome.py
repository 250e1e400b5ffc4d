from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

if TYPE_CHECKING:
    from .io import IO

A = TypeVar("A")
B = TypeVar("B")


class Outcome(Generic[A]):
    """How a fiber ended: ``Succeeded(value)``, ``Errored(error)`` or ``Canceled()``."""

    def is_succeeded(self) -> bool: return isinstance(self, Succeeded)
    def is_errored(self) -> bool: return isinstance(self, Errored)
    def is_canceled(self) -> bool: return isinstance(self, Canceled)

    def fold(self, canceled: Callable[[], B], errored: Callable[[Any], B], succeeded: Callable[[A], B]) -> B:
        if isinstance(self, Succeeded): return succeeded(self.value)
        if isinstance(self, Errored): return errored(self.error)
        return canceled()

    def embed(self, on_cancel: "IO[A]") -> "IO[A]":
        """Back into IO: the value, the error re-raised, or ``on_cancel``."""
        from .io import IO
        return self.fold(lambda: on_cancel, IO.raise_error, IO.pure)

    def embed_never(self) -> "IO[A]":
        from .io import IO
        return self.embed(IO.never())


@dataclass(frozen=True)
class Succeeded(Outcome[A]):
    value: A


@dataclass(frozen=True)
class Errored(Outcome[Any]):
    error: Any


@dataclass(frozen=True)
class Canceled(Outcome[Any]):
    pass
