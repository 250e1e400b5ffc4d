"""Functor, Applicative, Monad, MonadError and Traverse.

Python has no higher-kinded types, so instances are registered against the
runtime class of the container (``list``, ``Option``, ``Either``, ...) and the
container is always the first argument: ``Functor.of(list).map([1, 2], f)``.

            applies          to
Functor     pure fn          one F[A]
Applicative pure fn          a fixed number of independent F[A]
Traverse    effectful fn     every element of a container
Monad       effectful fn     one F[A], each step depending on the last
"""
from __future__ import annotations
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

from .chain import Chain, NonEmptyChain, NonEmptyList
from .either import Either, Left, Right
from .eval import Eval
from .option import NONE, Option, Some
from .trial import Failed, Success, Try
from .typeclass import TypeClass, instance
from .validated import Valid, Validated
from .validated import map_n as _validated_map_n

A = TypeVar("A")
B = TypeVar("B")
C = TypeVar("C")


class Functor(TypeClass, typeclass=True):
    def map(self, fa: Any, f: Callable[[Any], Any]) -> Any:
        raise NotImplementedError

    def lift(self, f: Callable[[A], B]) -> Callable[[Any], Any]:
        """Turn ``A -> B`` into ``F[A] -> F[B]``."""
        return lambda fa: self.map(fa, f)

    def as_(self, fa: Any, b: B) -> Any:
        return self.map(fa, lambda _: b)

    def void(self, fa: Any) -> Any:
        return self.as_(fa, None)

    def fproduct(self, fa: Any, f: Callable[[A], B]) -> Any:
        return self.map(fa, lambda a: (a, f(a)))


class Applicative(Functor, typeclass=True):
    def pure(self, a: A) -> Any:
        raise NotImplementedError

    def ap(self, ff: Any, fa: Any) -> Any:
        return self.map(self.product(ff, fa), lambda p: p[0](p[1]))

    def product(self, fa: Any, fb: Any) -> Any:
        return self.ap(self.map(fa, lambda a: lambda b: (a, b)), fb)

    def map2(self, fa: Any, fb: Any, f: Callable[[A, B], C]) -> Any:
        return self.map(self.product(fa, fb), lambda p: f(p[0], p[1]))

    def product_l(self, fa: Any, fb: Any) -> Any:
        return self.map2(fa, fb, lambda a, _: a)

    def product_r(self, fa: Any, fb: Any) -> Any:
        return self.map2(fa, fb, lambda _, b: b)

    def replicate_a(self, n: int, fa: Any) -> Any:
        acc = self.pure(Chain.empty())
        for _ in range(n):
            acc = self.map2(acc, fa, lambda c, a: c.append(a))
        return self.map(acc, list)


class Monad(Applicative, typeclass=True):
    # True when flat_map may call its continuation more than once
    multi_shot = False

    def flat_map(self, fa: Any, f: Callable[[Any], Any]) -> Any:
        raise NotImplementedError

    def map(self, fa: Any, f: Callable[[Any], Any]) -> Any:
        return self.flat_map(fa, lambda a: self.pure(f(a)))

    def product(self, fa: Any, fb: Any) -> Any:
        return self.flat_map(fa, lambda a: self.map(fb, lambda b: (a, b)))

    def ap(self, ff: Any, fa: Any) -> Any:
        return self.flat_map(ff, lambda f: self.map(fa, f))

    def flatten(self, ffa: Any) -> Any:
        return self.flat_map(ffa, lambda fa: fa)

    def if_m(self, fcond: Any, if_true: Callable[[], Any], if_false: Callable[[], Any]) -> Any:
        return self.flat_map(fcond, lambda c: if_true() if c else if_false())

    def tail_rec_m(self, a: A, f: Callable[[A], Any]) -> Any:
        """Loop ``f`` from ``a`` until it yields ``Right(b)``.

        This default relies on ``flat_map`` being lazy (Eval, IO); strict
        instances override it with an explicit loop.
        """
        return self.flat_map(f(a), lambda e: self.tail_rec_m(e.error, f) if e.is_left() else self.pure(e.value))


class MonadError(Monad, typeclass=True):
    def raise_error(self, e: Any) -> Any:
        raise NotImplementedError

    def handle_error_with(self, fa: Any, f: Callable[[Any], Any]) -> Any:
        raise NotImplementedError

    def handle_error(self, fa: Any, f: Callable[[Any], Any]) -> Any:
        return self.handle_error_with(fa, lambda e: self.pure(f(e)))

    def attempt(self, fa: Any) -> Any:
        return self.handle_error_with(self.map(fa, Right), lambda e: self.pure(Left(e)))

    def redeem(self, fa: Any, recover: Callable[[Any], B], f: Callable[[Any], B]) -> Any:
        return self.map(self.attempt(fa), lambda e: e.fold(recover, f))

    def ensure(self, fa: Any, pred: Callable[[Any], bool], error: Callable[[], Any]) -> Any:
        return self.flat_map(fa, lambda a: self.pure(a) if pred(a) else self.raise_error(error()))


class Traverse(Functor, typeclass=True):
    def traverse(self, fa: Any, f: Callable[[Any], Any], applicative: Optional[Applicative] = None) -> Any:
        raise NotImplementedError

    def sequence(self, fga: Any, applicative: Optional[Applicative] = None) -> Any:
        return self.traverse(fga, lambda ga: ga, applicative)


class Parallel(TypeClass, typeclass=True):
    """Independent composition that a Monad would otherwise sequence."""

    def par_map_n(self, fas: Tuple[Any, ...], f: Callable[..., Any]) -> Any:
        raise NotImplementedError


def _traverse_iterable(items: Iterable[Any], f: Callable[[Any], Any], applicative: Optional[Applicative]) -> Any:
    # Returns G[list]; the Applicative is inferred from the first result.
    gbs = [f(a) for a in items]
    if not gbs:
        if applicative is None:
            raise ValueError("traversing an empty container needs an explicit Applicative")
        return applicative.pure([])
    G = applicative or Applicative.for_value(gbs[0])
    acc = G.map(gbs[0], Chain.one)
    for gb in gbs[1:]:
        acc = G.map2(acc, gb, lambda c, b: c.append(b))
    return G.map(acc, list)


# ---------------------------------------------------------------- instances

@instance(list)
class ListInstance(Monad, Traverse):
    """Non-deterministic choice: each step may produce several (or no) results."""

    multi_shot = True

    def pure(self, a: A) -> List[A]: return [a]
    def map(self, fa: List[Any], f: Callable[[Any], Any]) -> List[Any]: return [f(a) for a in fa]

    def flat_map(self, fa: List[Any], f: Callable[[Any], List[Any]]) -> List[Any]:
        return [b for a in fa for b in f(a)]

    def tail_rec_m(self, a: A, f: Callable[[A], List[Either[A, B]]]) -> List[B]:
        out: List[B] = []
        stack = [iter(f(a))]
        while stack:
            try:
                e = next(stack[-1])
            except StopIteration:
                stack.pop()
                continue
            if e.is_left():
                stack.append(iter(f(e.error)))  # type: ignore[attr-defined]
            else:
                out.append(e.value)  # type: ignore[attr-defined]
        return out

    def traverse(self, fa: List[Any], f: Callable[[Any], Any], applicative: Optional[Applicative] = None) -> Any:
        return _traverse_iterable(fa, f, applicative)


@instance(Option)
class OptionInstance(MonadError, Traverse):
    """The error channel of Option carries no information: ``raise_error`` gives ``NONE``."""

    def pure(self, a: A) -> Option[A]: return Some(a)
    def map(self, fa: Option[Any], f: Callable[[Any], Any]) -> Option[Any]: return fa.map(f)
    def flat_map(self, fa: Option[Any], f: Callable[[Any], Option[Any]]) -> Option[Any]: return fa.flat_map(f)
    def raise_error(self, e: Any) -> Option[Any]: return NONE

    def handle_error_with(self, fa: Option[Any], f: Callable[[Any], Option[Any]]) -> Option[Any]:
        return fa if fa.is_some() else f(None)

    def tail_rec_m(self, a: A, f: Callable[[A], Option[Either[A, B]]]) -> Option[B]:
        cur = f(a)
        while isinstance(cur, Some) and cur.value.is_left():
            cur = f(cur.value.error)
        return cur.map(lambda e: e.value)

    def traverse(self, fa: Option[Any], f: Callable[[Any], Any], applicative: Optional[Applicative] = None) -> Any:
        if isinstance(fa, Some):
            gb = f(fa.value)
            return (applicative or Applicative.for_value(gb)).map(gb, Some)
        if applicative is None:
            raise ValueError("traversing NONE needs an explicit Applicative")
        return applicative.pure(NONE)


@instance(Either)
class EitherInstance(MonadError, Traverse):
    def pure(self, a: A) -> Either[Any, A]: return Right(a)
    def map(self, fa: Either[Any, Any], f: Callable[[Any], Any]) -> Either[Any, Any]: return fa.map(f)
    def flat_map(self, fa: Either[Any, Any], f: Callable[[Any], Either[Any, Any]]) -> Either[Any, Any]: return fa.flat_map(f)
    def raise_error(self, e: Any) -> Either[Any, Any]: return Left(e)

    def handle_error_with(self, fa: Either[Any, Any], f: Callable[[Any], Either[Any, Any]]) -> Either[Any, Any]:
        return fa.fold(f, lambda _: fa)

    def tail_rec_m(self, a: A, f: Callable[[A], Either[Any, Either[A, B]]]) -> Either[Any, B]:
        cur = f(a)
        while isinstance(cur, Right) and cur.value.is_left():
            cur = f(cur.value.error)
        return cur.map(lambda e: e.value)

    def traverse(self, fa: Either[Any, Any], f: Callable[[Any], Any], applicative: Optional[Applicative] = None) -> Any:
        if isinstance(fa, Right):
            gb = f(fa.value)
            return (applicative or Applicative.for_value(gb)).map(gb, Right)
        if applicative is None:
            raise ValueError("traversing a Left needs an explicit Applicative")
        return applicative.pure(fa)


@instance(Either)
class EitherParallel(Parallel):
    """Run Either checks as Validated: every Left is reported, combined with its Semigroup."""

    def par_map_n(self, fas: Tuple[Any, ...], f: Callable[..., Any]) -> Any:
        return _validated_map_n(*[fa.to_validated() for fa in fas], f).to_either()


@instance(Try)
class TryInstance(MonadError):
    def pure(self, a: A) -> Try[A]: return Success(a)
    def map(self, fa: Try[Any], f: Callable[[Any], Any]) -> Try[Any]: return fa.map(f)
    def flat_map(self, fa: Try[Any], f: Callable[[Any], Try[Any]]) -> Try[Any]: return fa.flat_map(f)
    def raise_error(self, e: Exception) -> Try[Any]: return Failed(e)
    def handle_error_with(self, fa: Try[Any], f: Callable[[Exception], Try[Any]]) -> Try[Any]: return fa.recover_with(f)

    def tail_rec_m(self, a: A, f: Callable[[A], Try[Either[A, B]]]) -> Try[B]:
        cur = Try.of(lambda: f(a)).flat_map(lambda t: t)
        while isinstance(cur, Success) and cur.value.is_left():
            nxt = cur.value.error
            cur = Try.of(lambda: f(nxt)).flat_map(lambda t: t)
        return cur.map(lambda e: e.value)


@instance(Validated)
class ValidatedInstance(Applicative):
    """Applicative only: a Monad would have to stop at the first error."""

    def pure(self, a: A) -> Validated[Any, A]: return Valid(a)
    def map(self, fa: Validated[Any, Any], f: Callable[[Any], Any]) -> Validated[Any, Any]: return fa.map(f)
    def product(self, fa: Validated[Any, Any], fb: Validated[Any, Any]) -> Validated[Any, Any]: return fa.product(fb)


@instance(Eval)
class EvalInstance(Monad):
    def pure(self, a: A) -> Eval[A]: return Eval.now(a)
    def map(self, fa: Eval[Any], f: Callable[[Any], Any]) -> Eval[Any]: return fa.map(f)
    def flat_map(self, fa: Eval[Any], f: Callable[[Any], Eval[Any]]) -> Eval[Any]: return fa.flat_map(f)

    def suspend(self, thunk: Callable[[], Eval[Any]]) -> Eval[Any]:
        return Eval.defer(thunk)


@instance(Chain)
class ChainInstance(Traverse):
    def map(self, fa: Chain[Any], f: Callable[[Any], Any]) -> Chain[Any]: return fa.map(f)

    def traverse(self, fa: Chain[Any], f: Callable[[Any], Any], applicative: Optional[Applicative] = None) -> Any:
        gl = _traverse_iterable(fa, f, applicative)
        return (applicative or Applicative.for_value(gl)).map(gl, Chain.from_iterable)


@instance(NonEmptyChain, NonEmptyList)
class NonEmptyInstance(Traverse):
    def map(self, fa: Any, f: Callable[[Any], Any]) -> Any: return fa.map(f)

    def traverse(self, fa: Any, f: Callable[[Any], Any], applicative: Optional[Applicative] = None) -> Any:
        gl = _traverse_iterable(fa, f, applicative)
        return (applicative or Applicative.for_value(gl)).map(gl, type(fa).from_iterable)


# ------------------------------------------------------------------- syntax

def map_n(*args: Any) -> Any:
    """``map_n(fa, fb, ..., f)`` with the Applicative of ``fa``."""
    *fas, f = args
    if not fas:
        raise TypeError("map_n needs at least one value")
    G = Applicative.for_value(fas[0])
    acc = G.map(fas[0], lambda a: (a,))
    for fx in fas[1:]:
        acc = G.map2(acc, fx, lambda t, x: t + (x,))
    return G.map(acc, lambda t: f(*t))


def par_map_n(*args: Any) -> Any:
    """Like ``map_n`` but independent: Either accumulates errors, IO runs concurrently."""
    *fas, f = args
    if not fas:
        raise TypeError("par_map_n needs at least one value")
    return Parallel.for_value(fas[0]).par_map_n(tuple(fas), f)


def traverse(fa: Any, f: Callable[[Any], Any], applicative: Optional[Applicative] = None) -> Any:
    return Traverse.for_value(fa).traverse(fa, f, applicative)


def sequence(fga: Any, applicative: Optional[Applicative] = None) -> Any:
    return Traverse.for_value(fga).sequence(fga, applicative)


def flat_traverse(fa: Any, f: Callable[[Any], Any], applicative: Optional[Applicative] = None) -> Any:
    T = Traverse.for_value(fa)
    M = Monad.for_value(fa)
    gfb = T.traverse(fa, f, applicative)
    G = applicative or Applicative.for_value(gfb)
    return G.map(gfb, M.flatten)
