from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

A = TypeVar("A")
B = TypeVar("B")


class Try(Generic[A]):
    """Result of a computation that may raise: ``Success(value)`` or ``Failed(exception)``.

    Only ``Exception`` subclasses are captured; ``KeyboardInterrupt``,
    ``SystemExit`` and ``asyncio.CancelledError`` always propagate.
    """

    def is_success(self) -> bool: raise NotImplementedError
    def is_failure(self) -> bool: return not self.is_success()

    @staticmethod
    def of(thunk: Callable[[], A]) -> "Try[A]":
        try:
            return Success(thunk())
        except Exception as ex:
            return Failed(ex)

    def map(self, f: Callable[[A], B]) -> "Try[B]":
        if self.is_success():
            return Try.of(lambda: f(self.value))  # type: ignore[attr-defined]
        return self  # type: ignore[return-value]

    def flat_map(self, f: Callable[[A], "Try[B]"]) -> "Try[B]":
        if self.is_failure():
            return self  # type: ignore[return-value]
        try:
            return f(self.value)  # type: ignore[attr-defined]
        except Exception as ex:
            return Failed(ex)

    def recover(self, f: Callable[[Exception], A]) -> "Try[A]":
        if self.is_failure():
            return Try.of(lambda: f(self.exception))  # type: ignore[attr-defined]
        return self

    def recover_with(self, f: Callable[[Exception], "Try[A]"]) -> "Try[A]":
        if self.is_success():
            return self
        try:
            return f(self.exception)  # type: ignore[attr-defined]
        except Exception as ex:
            return Failed(ex)

    def fold(self, on_failure: Callable[[Exception], B], on_success: Callable[[A], B]) -> B:
        if self.is_success():
            return on_success(self.value)  # type: ignore[attr-defined]
        return on_failure(self.exception)  # type: ignore[attr-defined]

    def get(self) -> A:
        if self.is_success():
            return self.value  # type: ignore[attr-defined]
        raise self.exception  # type: ignore[attr-defined]

    def get_or_else(self, default: A) -> A:
        return self.value if self.is_success() else default  # type: ignore[attr-defined]

    def to_either(self) -> "Either[Exception, A]":
        from .either import Left, Right
        if self.is_success():
            return Right(self.value)  # type: ignore[attr-defined]
        return Left(self.exception)  # type: ignore[attr-defined]

    def to_option(self) -> "Option[A]":
        from .option import NONE, Some
        return Some(self.value) if self.is_success() else NONE  # type: ignore[attr-defined,return-value]


@dataclass(frozen=True)
class Success(Try[A]):
    value: A
    def is_success(self) -> bool: return True


@dataclass(frozen=True)
class Failed(Try[A]):
    exception: Exception
    def is_success(self) -> bool: return False
