from __future__ import annotations
from typing import Any, Callable, Generic, List, Optional, TypeVar, cast

A = TypeVar("A")
B = TypeVar("B")

_UNSET: Any = object()


class Eval(Generic[A]):
    """Control over when a pure computation runs.

    - ``Eval.now(v)``: already computed.
    - ``Eval.later(thunk)``: computed on first ``.value``, then cached.
    - ``Eval.always(thunk)``: computed on every ``.value``.

    ``map``/``flat_map`` only build a description; ``.value`` runs it on a
    loop with an explicit continuation stack, so long chains and deep
    recursion through ``Eval.defer`` do not grow the Python stack.
    """

    @staticmethod
    def now(value: A) -> "Eval[A]":
        return _Now(value)

    @staticmethod
    def later(thunk: Callable[[], A]) -> "Eval[A]":
        return _Later(thunk)

    @staticmethod
    def always(thunk: Callable[[], A]) -> "Eval[A]":
        return _Always(thunk)

    @staticmethod
    def defer(thunk: Callable[[], "Eval[A]"]) -> "Eval[A]":
        return _Defer(thunk)

    @staticmethod
    def unit() -> "Eval[None]":
        return _Now(None)

    def map(self, f: Callable[[A], B]) -> "Eval[B]":
        return _FlatMap(self, lambda a: _Now(f(a)))

    def flat_map(self, f: Callable[[A], "Eval[B]"]) -> "Eval[B]":
        return _FlatMap(self, f)

    def memoize(self) -> "Eval[A]":
        return _Later(lambda: self.value)

    def _leaf(self) -> A:
        raise NotImplementedError

    @property
    def value(self) -> A:
        stack: List[Callable[[Any], Eval[Any]]] = []
        cur: Eval[Any] = self
        while True:
            if isinstance(cur, _FlatMap):
                stack.append(cur._f)
                cur = cur._source
                continue
            if isinstance(cur, _Defer):
                cur = cur._thunk()
                continue
            v = cur._leaf()
            if not stack:
                return v
            cur = stack.pop()(v)


class _Now(Eval[A]):
    __slots__ = ("_value",)

    def __init__(self, value: A):
        self._value = value

    def _leaf(self) -> A:
        return self._value

    def __repr__(self) -> str:
        return f"Eval.now({self._value!r})"


class _Later(Eval[A]):
    __slots__ = ("_thunk", "_value")

    def __init__(self, thunk: Callable[[], A]):
        self._thunk: Optional[Callable[[], A]] = thunk
        self._value: Any = _UNSET

    def _leaf(self) -> A:
        if self._value is _UNSET:
            thunk = cast(Callable[[], A], self._thunk)
            self._value = thunk()
            # release captured state once the value is cached
            self._thunk = None
        return self._value

    def __repr__(self) -> str:
        shown = "?" if self._value is _UNSET else repr(self._value)
        return f"Eval.later({shown})"


class _Always(Eval[A]):
    __slots__ = ("_thunk",)

    def __init__(self, thunk: Callable[[], A]):
        self._thunk = thunk

    def _leaf(self) -> A:
        return self._thunk()

    def __repr__(self) -> str:
        return "Eval.always(...)"


class _Defer(Eval[A]):
    __slots__ = ("_thunk",)

    def __init__(self, thunk: Callable[[], Eval[A]]):
        self._thunk = thunk


class _FlatMap(Eval[B]):
    __slots__ = ("_source", "_f")

    def __init__(self, source: Eval[A], f: Callable[[A], Eval[B]]):
        self._source = source
        self._f = f
