from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Generic, Tuple, TypeVar

from .chain import NonEmptyChain, NonEmptyList

E = TypeVar("E")
A = TypeVar("A")
B = TypeVar("B")
C = TypeVar("C")


def _combine_errors(left: Any, right: Any) -> Any:
    # Errors accumulate through the Semigroup of the error type.
    from .kernel import combine
    return combine(left, right)


class Validated(Generic[E, A]):
    """Accumulating counterpart of ``Either``.

    Independent checks composed with ``product``/``map_n`` report every
    ``Invalid`` they meet, combined with the error type's Semigroup.
    ``and_then`` chains dependent checks and stops at the first failure.
    """

    def is_valid(self) -> bool: raise NotImplementedError
    def is_invalid(self) -> bool: return not self.is_valid()

    def map(self, f: Callable[[A], B]) -> "Validated[E, B]":
        if self.is_valid():
            return Valid(f(self.value))  # type: ignore[attr-defined]
        return self  # type: ignore[return-value]

    def map_error(self, f: Callable[[E], C]) -> "Validated[C, A]":
        if self.is_invalid():
            return Invalid(f(self.error))  # type: ignore[attr-defined]
        return self  # type: ignore[return-value]

    def product(self, other: "Validated[E, B]") -> "Validated[E, Tuple[A, B]]":
        if self.is_valid() and other.is_valid():
            return Valid((self.value, other.value))  # type: ignore[attr-defined]
        if self.is_invalid() and other.is_invalid():
            return Invalid(_combine_errors(self.error, other.error))  # type: ignore[attr-defined]
        return self if self.is_invalid() else other  # type: ignore[return-value]

    def ap(self, vf: "Validated[E, Callable[[A], B]]") -> "Validated[E, B]":
        return vf.product(self).map(lambda p: p[0](p[1]))

    def product_l(self, other: "Validated[E, B]") -> "Validated[E, A]":
        return self.product(other).map(lambda p: p[0])

    def product_r(self, other: "Validated[E, B]") -> "Validated[E, B]":
        return self.product(other).map(lambda p: p[1])

    def and_then(self, f: Callable[[A], "Validated[E, B]"]) -> "Validated[E, B]":
        if self.is_valid():
            return f(self.value)  # type: ignore[attr-defined]
        return self  # type: ignore[return-value]

    def fold(self, on_invalid: Callable[[E], C], on_valid: Callable[[A], C]) -> C:
        if self.is_valid():
            return on_valid(self.value)  # type: ignore[attr-defined]
        return on_invalid(self.error)  # type: ignore[attr-defined]

    def get_or_else(self, default: A) -> A:
        return self.value if self.is_valid() else default  # type: ignore[attr-defined]

    def to_either(self) -> "Either[E, A]":
        from .either import Left, Right
        if self.is_valid():
            return Right(self.value)  # type: ignore[attr-defined]
        return Left(self.error)  # type: ignore[attr-defined]

    def to_option(self) -> "Option[A]":
        from .option import NONE, Some
        return Some(self.value) if self.is_valid() else NONE  # type: ignore[attr-defined,return-value]

    @staticmethod
    def from_either(e: "Either[E, A]") -> "Validated[E, A]":
        return e.to_validated()

    @staticmethod
    def cond(test: bool, value: Callable[[], A], error: Callable[[], E]) -> "Validated[E, A]":
        return Valid(value()) if test else Invalid(error())

    @staticmethod
    def cond_nec(test: bool, value: Callable[[], A], error: Callable[[], E]) -> "Validated[NonEmptyChain[E], A]":
        return Valid(value()) if test else invalid_nec(error())


@dataclass(frozen=True)
class Valid(Validated[E, A]):
    value: A
    def is_valid(self) -> bool: return True


@dataclass(frozen=True)
class Invalid(Validated[E, A]):
    error: E
    def is_valid(self) -> bool: return False


def valid(value: A) -> Validated[Any, A]:
    return Valid(value)


def invalid(error: E) -> Validated[E, Any]:
    return Invalid(error)


def valid_nec(value: A) -> Validated[NonEmptyChain[Any], A]:
    return Valid(value)


def invalid_nec(error: E) -> Validated[NonEmptyChain[E], Any]:
    return Invalid(NonEmptyChain.one(error))


def invalid_nel(error: E) -> Validated[NonEmptyList[E], Any]:
    return Invalid(NonEmptyList.one(error))


def map_n(*args: Any) -> Validated[Any, Any]:
    """``map_n(v1, v2, ..., f)``: apply ``f`` to every value, or accumulate every error."""
    *vs, f = args
    if not vs:
        raise TypeError("map_n needs at least one Validated")
    acc: Validated[Any, Tuple[Any, ...]] = vs[0].map(lambda a: (a,))
    for v in vs[1:]:
        acc = acc.product(v).map(lambda p: p[0] + (p[1],))
    return acc.map(lambda t: f(*t))
