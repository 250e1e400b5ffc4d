from __future__ import annotations
from functools import reduce
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from .chain import Chain, NonEmptyChain, NonEmptyList
from .either import Either
from .option import NONE, Option, Some
from .trial import Try
from .typeclass import TypeClass, instance
from .validated import Validated

A = TypeVar("A")
B = TypeVar("B")


class Eq(TypeClass, Generic[A], typeclass=True):
    """Type-safe equality."""

    def eqv(self, x: A, y: A) -> bool:
        return x == y

    def neqv(self, x: A, y: A) -> bool:
        return not self.eqv(x, y)


class Show(TypeClass, Generic[A], typeclass=True):
    """Type-safe ``str``: only types with an instance can be shown."""

    def show(self, a: A) -> str:
        raise NotImplementedError

    @staticmethod
    def from_function(f: Callable[[A], str]) -> "Show[A]":
        class _FnShow(Show):
            def show(self, a: A) -> str: return f(a)
        return _FnShow()


class Order(Eq[A], typeclass=True):
    def compare(self, x: A, y: A) -> int:
        raise NotImplementedError

    def eqv(self, x: A, y: A) -> bool: return self.compare(x, y) == 0
    def lt(self, x: A, y: A) -> bool: return self.compare(x, y) < 0
    def lteqv(self, x: A, y: A) -> bool: return self.compare(x, y) <= 0
    def gt(self, x: A, y: A) -> bool: return self.compare(x, y) > 0
    def gteqv(self, x: A, y: A) -> bool: return self.compare(x, y) >= 0
    def min(self, x: A, y: A) -> A: return x if self.lteqv(x, y) else y
    def max(self, x: A, y: A) -> A: return x if self.gteqv(x, y) else y

    @staticmethod
    def by(f: Callable[[B], A], order: Optional["Order[A]"] = None) -> "Order[B]":
        """Order values of ``B`` by the ``A`` that ``f`` maps them to."""
        class _ByOrder(Order):
            def compare(self, x: B, y: B) -> int:
                fx, fy = f(x), f(y)
                return (order or Order.for_value(fx)).compare(fx, fy)
        return _ByOrder()


class Semigroup(TypeClass, Generic[A], typeclass=True):
    """Associative combination: ``combine(x, combine(y, z)) == combine(combine(x, y), z)``."""

    def combine(self, x: A, y: A) -> A:
        raise NotImplementedError

    def combine_n(self, x: A, n: int) -> A:
        if n < 1:
            raise ValueError("combine_n needs n >= 1 for a Semigroup")
        acc = x
        for _ in range(n - 1):
            acc = self.combine(acc, x)
        return acc

    def combine_all_option(self, xs: Iterable[A]) -> Option[A]:
        items = list(xs)
        if not items:
            return NONE  # type: ignore[return-value]
        return Some(reduce(self.combine, items))

    @staticmethod
    def instance(f: Callable[[A, A], A]) -> "Semigroup[A]":
        class _FnSemigroup(Semigroup):
            def combine(self, x: A, y: A) -> A: return f(x, y)
        return _FnSemigroup()


class Monoid(Semigroup[A], typeclass=True):
    """A Semigroup with an identity: ``combine(empty, x) == x == combine(x, empty)``."""

    def empty(self) -> A:
        raise NotImplementedError

    def is_empty(self, a: A) -> bool:
        return a == self.empty()

    def combine_all(self, xs: Iterable[A]) -> A:
        return reduce(self.combine, xs, self.empty())

    def combine_n(self, x: A, n: int) -> A:
        if n < 0:
            raise ValueError("combine_n needs n >= 0")
        return self.empty() if n == 0 else super().combine_n(x, n)

    @staticmethod
    def instance(empty: Callable[[], A], f: Callable[[A, A], A]) -> "Monoid[A]":
        class _FnMonoid(Monoid):
            def empty(self) -> A: return empty()
            def combine(self, x: A, y: A) -> A: return f(x, y)
        return _FnMonoid()


# ---------------------------------------------------------------- instances

@instance(object)
class _UniversalEq(Eq):
    pass


@instance(int, float, str, bytes, tuple)
class _NaturalOrder(Order):
    def compare(self, x: Any, y: Any) -> int:
        return (x > y) - (x < y)


@instance(bool, int, float)
class _NumberShow(Show):
    def show(self, a: Any) -> str: return str(a)


@instance(str)
class _StrShow(Show):
    def show(self, a: str) -> str: return a


@instance(list, tuple)
class _SeqShow(Show):
    def show(self, a: Any) -> str:
        inner = ", ".join(show(x) for x in a)
        return f"[{inner}]" if isinstance(a, list) else f"({inner})"


@instance(dict)
class _DictShow(Show):
    def show(self, a: dict) -> str:
        return "{" + ", ".join(f"{show(k)}: {show(v)}" for k, v in a.items()) + "}"


@instance(Option)
class _OptionShow(Show):
    def show(self, a: Option[Any]) -> str:
        return a.fold(lambda: "NONE", lambda v: f"Some({show(v)})")


@instance(Either)
class _EitherShow(Show):
    def show(self, a: Either[Any, Any]) -> str:
        return a.fold(lambda e: f"Left({show(e)})", lambda v: f"Right({show(v)})")


@instance(Validated)
class _ValidatedShow(Show):
    def show(self, a: Validated[Any, Any]) -> str:
        return a.fold(lambda e: f"Invalid({show(e)})", lambda v: f"Valid({show(v)})")


@instance(Try)
class _TryShow(Show):
    def show(self, a: Try[Any]) -> str:
        return a.fold(lambda ex: f"Failed({type(ex).__name__}: {ex})", lambda v: f"Success({show(v)})")


@instance(Chain, NonEmptyChain, NonEmptyList)
class _ChainShow(Show):
    def show(self, a: Any) -> str:
        return f"{type(a).__name__}(" + ", ".join(show(x) for x in a) + ")"


@instance(int, float)
class _SumMonoid(Monoid):
    def empty(self) -> Any: return 0
    def combine(self, x: Any, y: Any) -> Any: return x + y


@instance(str)
class _StrMonoid(Monoid):
    def empty(self) -> str: return ""
    def combine(self, x: str, y: str) -> str: return x + y


@instance(list)
class _ListMonoid(Monoid):
    def empty(self) -> list: return []
    def combine(self, x: list, y: list) -> list: return x + y


@instance(tuple)
class _TupleMonoid(Monoid):
    def empty(self) -> tuple: return ()
    def combine(self, x: tuple, y: tuple) -> tuple: return x + y


@instance(set, frozenset)
class _SetMonoid(Monoid):
    def empty(self) -> Any: return set()
    def combine(self, x: Any, y: Any) -> Any: return x | y


@instance(dict)
class _DictMonoid(Monoid):
    """Key-wise merge; values under the same key are combined with their own Semigroup."""

    def empty(self) -> dict: return {}

    def combine(self, x: dict, y: dict) -> dict:
        out = dict(x)
        for k, v in y.items():
            out[k] = combine(out[k], v) if k in out else v
        return out


@instance(Option)
class _OptionMonoid(Monoid):
    """Built from the Semigroup of the wrapped values; ``NONE`` is the identity."""

    def empty(self) -> Option[Any]: return NONE

    def combine(self, x: Option[Any], y: Option[Any]) -> Option[Any]:
        if isinstance(x, Some) and isinstance(y, Some):
            return Some(combine(x.value, y.value))
        return x if x.is_some() else y


@instance(Chain)
class _ChainMonoid(Monoid):
    def empty(self) -> Chain[Any]: return Chain.empty()
    def combine(self, x: Chain[Any], y: Chain[Any]) -> Chain[Any]: return x.concat(y)


@instance(NonEmptyChain)
class _NecSemigroup(Semigroup):
    def combine(self, x: NonEmptyChain[Any], y: NonEmptyChain[Any]) -> NonEmptyChain[Any]: return x.concat(y)


@instance(NonEmptyList)
class _NelSemigroup(Semigroup):
    def combine(self, x: NonEmptyList[Any], y: NonEmptyList[Any]) -> NonEmptyList[Any]: return x.concat(y)


# ------------------------------------------------------------------- syntax

def _check_same_type(x: Any, y: Any) -> None:
    if not (isinstance(y, type(x)) or isinstance(x, type(y))):
        raise TypeError(f"cannot compare {type(x).__name__} with {type(y).__name__}")


def eqv(x: A, y: A) -> bool:
    _check_same_type(x, y)
    return Eq.for_value(x).eqv(x, y)


def neqv(x: A, y: A) -> bool:
    return not eqv(x, y)


def compare(x: A, y: A) -> int:
    _check_same_type(x, y)
    return Order.for_value(x).compare(x, y)


def show(a: Any) -> str:
    return Show.for_value(a).show(a)


def combine(x: A, y: A) -> A:
    return Semigroup.for_value(x).combine(x, y)


def combine_n(x: A, n: int) -> A:
    return Semigroup.for_value(x).combine_n(x, n)


def combine_all(xs: Iterable[A], monoid: Optional[Monoid[A]] = None) -> A:
    items = list(xs)
    if monoid is None:
        if not items:
            raise ValueError("combine_all of an empty iterable needs an explicit Monoid")
        monoid = Monoid.for_value(items[0])
    return monoid.combine_all(items)


def combine_all_option(xs: Iterable[A]) -> Option[A]:
    items = list(xs)
    if not items:
        return NONE  # type: ignore[return-value]
    return Semigroup.for_value(items[0]).combine_all_option(items)
