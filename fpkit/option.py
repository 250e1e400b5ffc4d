from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class NoSuchElementError(LookupError):
    """Raised by ``Option.get`` on an empty option."""


class Option(Generic[T]):
    """A value that may be absent: ``Some(value)`` or ``NONE``.

    ``Some(None)`` is a present value; use ``from_nullable`` to treat ``None``
    as absence.
    """

    def is_some(self) -> bool: raise NotImplementedError
    def is_none(self) -> bool: return not self.is_some()

    def map(self, f: Callable[[T], U]) -> "Option[U]":
        if self.is_some():
            return Some(f(self.value))  # type: ignore[attr-defined]
        return NONE

    def flat_map(self, f: Callable[[T], "Option[U]"]) -> "Option[U]":
        if self.is_some():
            return f(self.value)  # type: ignore[attr-defined]
        return NONE

    def filter(self, p: Callable[[T], bool]) -> "Option[T]":
        if self.is_some() and p(self.value):  # type: ignore[attr-defined]
            return self
        return NONE

    def fold(self, if_empty: Callable[[], U], f: Callable[[T], U]) -> U:
        if self.is_some():
            return f(self.value)  # type: ignore[attr-defined]
        return if_empty()

    def get(self) -> T:
        if self.is_some():
            return self.value  # type: ignore[attr-defined]
        raise NoSuchElementError("NONE.get")

    def get_or_else(self, default: U) -> T | U:
        return self.value if self.is_some() else default  # type: ignore[attr-defined]

    def or_else(self, alternative: Callable[[], "Option[T]"]) -> "Option[T]":
        return self if self.is_some() else alternative()

    def contains(self, v: T) -> bool:
        return self.is_some() and self.value == v  # type: ignore[attr-defined]

    def exists(self, p: Callable[[T], bool]) -> bool:
        return self.is_some() and p(self.value)  # type: ignore[attr-defined]

    def for_all(self, p: Callable[[T], bool]) -> bool:
        return self.is_none() or p(self.value)  # type: ignore[attr-defined]

    def to_list(self) -> List[T]:
        return [self.value] if self.is_some() else []  # type: ignore[attr-defined]

    def to_either(self, left: Callable[[], E]) -> "Either[E, T]":
        from .either import Left, Right
        if self.is_some():
            return Right(self.value)  # type: ignore[attr-defined]
        return Left(left())

    def __iter__(self) -> Iterator[T]:
        return iter(self.to_list())

    @staticmethod
    def when(cond: bool, value: Callable[[], T]) -> "Option[T]":
        return Some(value()) if cond else NONE  # type: ignore[return-value]


@dataclass(frozen=True)
class Some(Option[T]):
    value: T
    def is_some(self) -> bool: return True


class _None(Option[None]):
    __slots__ = ()
    _instance: Optional["_None"] = None

    def __new__(cls) -> "_None":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str: return "NONE"
    def __reduce__(self): return (_None, ())
    def is_some(self) -> bool: return False


NONE: Option[None] = _None()


def from_nullable(v: Optional[T]) -> Option[T]:
    return Some(v) if v is not None else NONE  # type: ignore[return-value]


