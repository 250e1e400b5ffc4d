from __future__ import annotations
from typing import Any, Callable, Generic, Optional, TypeVar
import anyio
import anyio.abc
from .context import Context
from .io import IO, _unmasked, error_value
from .outcome import Canceled, Errored, Outcome, Succeeded

A = TypeVar('A')

class AnyIOFiber(Generic[A]):
    def __init__(self, done_event: anyio.Event, get_outcome: Callable[[], Outcome[A]], cancel_scope: anyio.CancelScope):
        self._done = done_event; self._get_outcome = get_outcome; self._scope = cancel_scope
    def join(self) -> IO[Outcome[A]]:
        async def run(_: Context) -> Outcome[A]:
            await self._done.wait(); return self._get_outcome()
        return IO(run)
    def cancel(self) -> IO[None]:
        async def run(_: Context) -> None:
            self._scope.cancel(); await self._done.wait()
        return IO(run)
    def join_with(self, on_cancel: IO[A]) -> IO[A]:
        return self.join().flat_map(lambda oc: oc.embed(on_cancel))

class AnyIORuntime:
    """Structured runtime: fibers live inside an anyio task group and the
    ``async with`` block does not exit until all of them have finished."""
    def __init__(self, base: Optional[Context] = None): self.base = base or Context(); self._tg: Optional[anyio.abc.TaskGroup] = None
    async def __aenter__(self) -> 'AnyIORuntime': self._tg = await anyio.create_task_group().__aenter__(); return self
    async def __aexit__(self, et, e, tb): assert self._tg is not None; tg, self._tg = self._tg, None; return await tg.__aexit__(et, e, tb)
    async def run(self, io: IO[A]) -> A:
        return await io._run(self.base)
    async def fork(self, io: IO[A]) -> AnyIOFiber[A]:
        if self._tg is None: raise RuntimeError("Use AnyIORuntime in 'async with' context")
        done = anyio.Event(); result: dict[str, Outcome[Any]] = {}
        async def worker(task_status=anyio.TASK_STATUS_IGNORED):
            with anyio.CancelScope() as scope:
                task_status.started(scope)
                try: result['outcome'] = Succeeded(await _unmasked(io, self.base))
                except anyio.get_cancelled_exc_class(): result['outcome'] = Canceled(); raise
                except Exception as ex: result['outcome'] = Errored(error_value(ex))
                finally: done.set()
        scope = await self._tg.start(worker)  # type: ignore
        return AnyIOFiber(done, lambda: result.get('outcome', Canceled()), scope)
