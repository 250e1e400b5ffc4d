from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Generic, Tuple, Type, TypeVar

E = TypeVar("E")
A = TypeVar("A")
B = TypeVar("B")
C = TypeVar("C")


class Either(Generic[E, A]):
    """Right-biased two-armed value: ``Left(error)`` or ``Right(value)``.

    Sequencing with ``flat_map`` fails fast: the first ``Left`` short-circuits
    every later step.
    """

    def is_left(self) -> bool: raise NotImplementedError
    def is_right(self) -> bool: return not self.is_left()

    def map(self, f: Callable[[A], B]) -> "Either[E, B]":
        if self.is_right():
            return Right(f(self.value))  # type: ignore[attr-defined]
        return self  # type: ignore[return-value]

    def flat_map(self, f: Callable[[A], "Either[E, B]"]) -> "Either[E, B]":
        if self.is_right():
            return f(self.value)  # type: ignore[attr-defined]
        return self  # type: ignore[return-value]

    def map_left(self, f: Callable[[E], B]) -> "Either[B, A]":
        if self.is_left():
            return Left(f(self.error))  # type: ignore[attr-defined]
        return self  # type: ignore[return-value]

    def bimap(self, on_left: Callable[[E], C], on_right: Callable[[A], B]) -> "Either[C, B]":
        return self.map_left(on_left).map(on_right)

    def fold(self, on_left: Callable[[E], C], on_right: Callable[[A], C]) -> C:
        if self.is_left():
            return on_left(self.error)  # type: ignore[attr-defined]
        return on_right(self.value)  # type: ignore[attr-defined]

    def swap(self) -> "Either[A, E]":
        if self.is_left():
            return Right(self.error)  # type: ignore[attr-defined]
        return Left(self.value)  # type: ignore[attr-defined]

    def get_or_else(self, default: A) -> A:
        return self.value if self.is_right() else default  # type: ignore[attr-defined]

    def or_else(self, alternative: Callable[[], "Either[E, A]"]) -> "Either[E, A]":
        return self if self.is_right() else alternative()

    def ensure(self, pred: Callable[[A], bool], error: Callable[[], E]) -> "Either[E, A]":
        if self.is_right() and not pred(self.value):  # type: ignore[attr-defined]
            return Left(error())
        return self

    def to_option(self) -> "Option[A]":
        from .option import NONE, Some
        return Some(self.value) if self.is_right() else NONE  # type: ignore[attr-defined,return-value]

    def to_validated(self) -> "Validated[E, A]":
        from .validated import Invalid, Valid
        if self.is_right():
            return Valid(self.value)  # type: ignore[attr-defined]
        return Invalid(self.error)  # type: ignore[attr-defined]

    def to_validated_nec(self) -> "Validated[NonEmptyChain[E], A]":
        from .validated import Valid, invalid_nec
        if self.is_right():
            return Valid(self.value)  # type: ignore[attr-defined]
        return invalid_nec(self.error)  # type: ignore[attr-defined]

    def to_try(self) -> "Try[A]":
        from .trial import Failed, Success
        if self.is_right():
            return Success(self.value)  # type: ignore[attr-defined]
        err = self.error  # type: ignore[attr-defined]
        return Failed(err if isinstance(err, Exception) else ValueError(err))

    @staticmethod
    def cond(test: bool, right: Callable[[], A], left: Callable[[], E]) -> "Either[E, A]":
        return Right(right()) if test else Left(left())

    @staticmethod
    def catching(thunk: Callable[[], A], *exc_types: Type[Exception]) -> "Either[Exception, A]":
        """Run ``thunk``; exceptions of ``exc_types`` (default: any ``Exception``) become ``Left``."""
        catch: Tuple[Type[Exception], ...] = exc_types or (Exception,)
        try:
            return Right(thunk())
        except catch as ex:
            return Left(ex)


@dataclass(frozen=True)
class Left(Either[E, A]):
    error: E
    def is_left(self) -> bool: return True


@dataclass(frozen=True)
class Right(Either[E, A]):
    value: A
    def is_left(self) -> bool: return False
