"""``Resource``: acquisition paired with its release, composable like a value.

    db = Resource.make(open_db, lambda c: c.close())
    cache = Resource.make(open_cache, lambda c: c.close())
    both = db.flat_map(lambda d: cache.map(lambda c: (d, c)))
    both.use(lambda dc: query(*dc))   # cache released, then db

Acquisition is uncancelable, the body given to ``use`` is cancelable, and
every acquired part is released exactly once in reverse order, whatever
the body's Outcome.
"""
from __future__ import annotations
import asyncio
from typing import Any, Callable, Generic, Tuple, TypeVar

from .io import IO, Failure
from .outcome import Canceled, Errored, Outcome, Succeeded
from .scope import Scope

A = TypeVar("A"); B = TypeVar("B")


class Resource(Generic[A]):
    def __init__(self, acquire: Callable[[Scope], IO[A]]):
        # acquire registers its own release in the scope it is given
        self._acquire = acquire

    @staticmethod
    def make(acquire: IO[A], release: Callable[[A], IO[Any]]) -> "Resource[A]":
        return Resource.make_case(acquire, lambda a, _: release(a))

    @staticmethod
    def make_case(acquire: IO[A], release: Callable[[A, Outcome[Any]], IO[Any]]) -> "Resource[A]":
        def go(scope: Scope) -> IO[A]:
            return acquire.flat_tap(lambda a: scope.add_finalizer(lambda oc: release(a, oc)))
        return Resource(go)

    @staticmethod
    def pure(a: A) -> "Resource[A]":
        return Resource(lambda _: IO.pure(a))

    @staticmethod
    def eval(io: IO[A]) -> "Resource[A]":
        return Resource(lambda _: io)

    @staticmethod
    def from_context_manager(factory: Callable[[], Any]) -> "Resource[Any]":
        """Enter the (async or plain) context manager ``factory()`` and exit it on release.

        The exit sees the error that ended ``use``, or ``CancelledError``.
        """
        def exit_args(oc: Outcome[Any]) -> Tuple[Any, Any, Any]:
            if isinstance(oc, Errored):
                ex = oc.error if isinstance(oc.error, BaseException) else Failure(oc.error)
                return type(ex), ex, ex.__traceback__
            if isinstance(oc, Canceled):
                ex = asyncio.CancelledError()
                return type(ex), ex, None
            return None, None, None

        def go(scope: Scope) -> IO[Any]:
            async def enter(_: Any) -> Any:
                cm = factory()
                if hasattr(cm, "__aenter__"):
                    value = await cm.__aenter__()
                    release = lambda oc: IO.from_async(lambda: cm.__aexit__(*exit_args(oc)))
                else:
                    value = cm.__enter__()
                    release = lambda oc: IO.delay(lambda: cm.__exit__(*exit_args(oc)))
                return value, release
            return IO(enter).flat_map(
                lambda vr: scope.add_finalizer(vr[1]).as_(vr[0]))
        return Resource(go)

    def map(self, f: Callable[[A], B]) -> "Resource[B]":
        return Resource(lambda scope: self._acquire(scope).map(f))

    def flat_map(self, f: Callable[[A], "Resource[B]"]) -> "Resource[B]":
        return Resource(lambda scope: self._acquire(scope).flat_map(lambda a: f(a)._acquire(scope)))

    def eval_map(self, f: Callable[[A], IO[B]]) -> "Resource[B]":
        return Resource(lambda scope: self._acquire(scope).flat_map(f))

    def product(self, other: "Resource[B]") -> "Resource[Tuple[A, B]]":
        return self.flat_map(lambda a: other.map(lambda b: (a, b)))

    def both(self, other: "Resource[B]") -> "Resource[Tuple[A, B]]":
        """Acquire both concurrently; each side releases its own parts."""
        def go(scope: Scope) -> IO[Tuple[A, B]]:
            left, right = Scope(), Scope()
            close = lambda oc: right.close(oc).guarantee(left.close(oc))
            return scope.add_finalizer(close) >> IO.both(self._acquire(left), other._acquire(right))
        return Resource(go)

    def use(self, f: Callable[[A], IO[B]]) -> IO[B]:
        def go(scope: Scope) -> IO[B]:
            return IO.uncancelable(
                lambda poll: self._acquire(scope).flat_map(lambda a: poll(IO.defer(lambda: f(a))))
                .guarantee_case(scope.close))
        return IO.defer(lambda: go(Scope()))

    def use_forever(self) -> IO[Any]:
        return self.use(lambda _: IO.never())

    def allocated(self) -> IO[Tuple[A, IO[None]]]:
        """The value and the IO that releases it; releasing is up to the caller."""
        def go(scope: Scope) -> IO[Tuple[A, IO[None]]]:
            acquired = self._acquire(scope).guarantee_case(
                lambda oc: IO.unit() if oc.is_succeeded() else scope.close(oc))
            return IO.uncancelable(lambda _: acquired.map(lambda a: (a, scope.close(Succeeded(None)))))
        return IO.defer(lambda: go(Scope()))
