from __future__ import annotations
from typing import Any, Callable, List, Optional

from .context import Context
from .io import IO
from .outcome import Outcome, Succeeded

Finalizer = Callable[[Outcome[Any]], IO[Any]]


class Scope:
    """Finalizers released together, last in first out.

    A finalizer receives the Outcome of the code the scope guarded, so it
    can commit on success and roll back otherwise. Every finalizer runs even
    when some fail; the first failure is raised once all of them ran and the
    rest are logged.

    Example:
        ```python
        scope = Scope()
        program = (
            scope.add_finalizer(lambda _: db.close())
            >> scope.add_finalizer(lambda oc: cache.flush() if oc.is_succeeded() else IO.unit())
            >> work
        ).guarantee_case(scope.close)  # flushes the cache, then closes the db
        ```
    """

    def __init__(self) -> None:
        self._finalizers: List[Finalizer] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def add_finalizer(self, fin: Finalizer) -> IO[None]:
        """Register ``fin``; on an already closed scope it runs immediately."""
        async def run(ctx: Context) -> None:
            if self._closed:
                await IO.defer(lambda: fin(Succeeded(None)))._run(ctx)
            else:
                self._finalizers.append(fin)
        return IO(run)

    def close(self, outcome: Optional[Outcome[Any]] = None) -> IO[None]:
        oc: Outcome[Any] = outcome if outcome is not None else Succeeded(None)

        async def run(ctx: Context) -> None:
            if self._closed:
                return
            self._closed = True
            first: Optional[Exception] = None
            while self._finalizers:
                fin = self._finalizers.pop()
                try:
                    await IO.defer(lambda: fin(oc))._run(ctx)
                except Exception as ex:
                    if first is None:
                        first = ex
                    else:
                        from .logger import from_context
                        await from_context(ctx).error("finalizer failed", exc=ex)._run(ctx)
            if first is not None:
                raise first
        return IO(run)
