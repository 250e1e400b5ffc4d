from __future__ import annotations
import asyncio
import concurrent.futures
import threading
from typing import Any, Callable, Optional, TypeVar, Union

import anyio

from .clock import Clock
from .config import RuntimeConfig
from .context import Context
from .duration import DurationLike, to_seconds
from .either import Either, Left, Right
from .io import IO, Fiber, _spawn, error_value
from .logger import ConsoleLogger, Logger, from_context
from .option import NONE, Option, Some

A = TypeVar("A")

AnyFuture = Union["asyncio.Future[Any]", "concurrent.futures.Future[Any]"]


def _either_of(fut: Any) -> Either[Any, Any]:
    if fut.cancelled():
        return Left(asyncio.CancelledError())
    ex = fut.exception()
    if ex is not None:
        return Left(error_value(ex))
    return Right(fut.result())


class Runtime:
    """Runs IO programs against a base Context.

    Args:
        base: Services every program sees (default: empty Context, so the
            system clock and a default ConsoleLogger are used)
        config: Event-loop and logging settings

    Example:
        ```python
        runtime = Runtime.default()
        runtime.run_sync(program)                 # from plain code
        value = await runtime.run(program)        # from async code
        fiber = runtime.fork(worker, name="poller")
        ```
    """

    _default: Optional["Runtime"] = None

    def __init__(self, base: Optional[Context] = None, config: Optional[RuntimeConfig] = None):
        self.base = base or Context()
        self.config = config or RuntimeConfig()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @staticmethod
    def from_config(config: RuntimeConfig) -> "Runtime":
        logger = ConsoleLogger(config.logger_name, level=config.log_level, json_output=config.log_json)
        return Runtime(Context().add(Clock, Clock()).add(Logger, logger), config)

    @classmethod
    def default(cls) -> "Runtime":
        """Process-wide runtime configured from ``FPKIT_*`` environment variables."""
        if cls._default is None:
            cls._default = cls.from_config(RuntimeConfig.from_env())
        return cls._default

    async def run(self, io: IO[A]) -> A:
        return await io._run(self.base)

    def run_sync(self, io: IO[A]) -> A:
        """Drive ``io`` on a fresh event loop; not callable from async code."""
        return anyio.run(self.run, io, backend="asyncio", backend_options={"debug": self.config.async_debug})

    def run_timed(self, io: IO[A], limit: DurationLike) -> Option[A]:
        """``Some(result)``, or ``NONE`` when ``io`` is still running after ``limit`` (it is then canceled)."""
        seconds = to_seconds(limit)

        async def timed() -> Option[A]:
            with anyio.move_on_after(seconds):
                return Some(await self.run(io))
            return NONE
        return anyio.run(timed, backend="asyncio", backend_options={"debug": self.config.async_debug})

    def to_future(self, io: IO[A]) -> AnyFuture:
        """Start ``io`` now. Inside a running loop this is an ``asyncio.Task``;
        elsewhere the IO runs on the runtime's background loop and a
        ``concurrent.futures.Future`` is returned."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run_coroutine_threadsafe(self.run(io), self._background_loop())
        return asyncio.ensure_future(self.run(io))

    def run_async(self, io: IO[A], callback: Optional[Callable[[Either[Any, A]], None]] = None) -> AnyFuture:
        """Start ``io``; ``callback`` receives ``Right(value)`` or ``Left(error)``."""
        fut = self.to_future(io)
        if callback is not None:
            fut.add_done_callback(lambda f: callback(_either_of(f)))
        return fut

    def fork(self, io: IO[A], name: Optional[str] = None) -> Fiber[A]:
        """Start ``io`` as a fiber on the running loop; failures nobody joins are logged."""
        task = _spawn(io, self.base, name)
        logger = from_context(self.base)

        def report(t: asyncio.Task) -> None:
            if t.cancelled() or t.exception() is None:
                return
            if logger.is_enabled("ERROR"):
                logger.emit("ERROR", "fiber failed", {"fiber": t.get_name(), "error": repr(error_value(t.exception()))})

        task.add_done_callback(report)
        return Fiber(task, name)

    def _background_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                loop.set_debug(self.config.async_debug)
                thread = threading.Thread(target=loop.run_forever, name="fpkit-runtime", daemon=True)
                thread.start()
                self._loop, self._thread = loop, thread
            return self._loop

    def shutdown(self) -> None:
        """Stop the background loop, if one was started."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = self._thread = None
        if loop is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join()
        loop.close()
