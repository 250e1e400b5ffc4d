"""Generator-based do-notation.

A ``@do`` function is a generator that yields monadic values and receives
their contents back, which reads like a for-comprehension:

    @do
    def address(request):
        user_id = yield parse_id(request)      # Either[Error, str]
        account = yield fetch_account(user_id) # Either[Error, Account]
        return account.address                 # wrapped with pure

The monad is inferred from the first yielded value, or declared with
``@do(IO)``. Declaring it is required for generators that may return before
yielding, and recommended for lazy monads (IO, Eval): the body then runs
only when the result is run, and runs again on every run.
"""
from __future__ import annotations
import inspect
from functools import wraps
from typing import Any, Callable, List, Optional, Tuple

from .functor import Monad


def _advance(func: Callable[..., Any], args: tuple, kwargs: dict, history: List[Any]) -> Tuple[bool, Any]:
    # Replays the generator through ``history``: (True, next yield) or (False, return value).
    gen = func(*args, **kwargs)
    try:
        current = next(gen)
        for v in history:
            current = gen.send(v)
    except StopIteration as stop:
        return False, stop.value
    gen.close()
    return True, current


def _replay(func: Callable[..., Any], args: tuple, kwargs: dict, M: Monad, history: List[Any]) -> Any:
    yielded, value = _advance(func, args, kwargs, history)
    if not yielded:
        return M.pure(value)
    return M.flat_map(value, lambda v: _replay(func, args, kwargs, M, history + [v]))


def _step(gen: Any, current: Any, M: Monad) -> Any:
    def cont(value: Any) -> Any:
        try:
            nxt = gen.send(value)
        except StopIteration as stop:
            return M.pure(stop.value)
        return _step(gen, nxt, M)
    return M.flat_map(current, cont)


def _run(func: Callable[..., Any], args: tuple, kwargs: dict, M: Optional[Monad]) -> Any:
    gen = func(*args, **kwargs)
    if not inspect.isgenerator(gen):
        if M is None:
            raise TypeError(f"@do function {func.__name__} is not a generator; declare its monad with @do(<type>)")
        return M.pure(gen)
    try:
        first = next(gen)
    except StopIteration as stop:
        if M is None:
            raise TypeError(f"cannot infer the monad of {func.__name__}: it returned before yielding") from None
        return M.pure(stop.value)
    if M is None:
        M = Monad.for_value(first)
        suspend = getattr(M, "suspend", None)
        if suspend is not None:
            # Lazy monad discovered by running the body: restart it on every run.
            gen.close()
            inferred = M
            return suspend(lambda: _run(func, args, kwargs, inferred))
    if M.multi_shot:
        gen.close()
        return _replay(func, args, kwargs, M, [])
    return _step(gen, first, M)


def _make(func: Callable[..., Any], tpe: Optional[type]) -> Callable[..., Any]:
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if tpe is None:
            return _run(func, args, kwargs, None)
        M = Monad.of(tpe)
        suspend = getattr(M, "suspend", None)
        if suspend is None:
            return _run(func, args, kwargs, M)
        return suspend(lambda: _run(func, args, kwargs, M))
    return wrapper


def do(arg: Any = None) -> Any:
    """Use as ``@do`` or ``@do(SomeMonadType)``."""
    if arg is None:
        return lambda func: _make(func, None)
    if isinstance(arg, type):
        return lambda func: _make(func, arg)
    if callable(arg):
        return _make(arg, None)
    raise TypeError(f"@do expects a function or a type, got {arg!r}")
