"""``IO``: a lazy description of an asynchronous computation.

Building an IO runs nothing. A runtime interprets it against a
:class:`Context` that carries services (clock, logger, algebras).

    program = IO.delay(read_config).flat_map(connect).handle_error(fallback)
    Runtime.default().run_sync(program)

Errors travel two ways. Exceptions are raised as they are
(``IO.raise_error(KeyError("id"))``), any other value is a typed error
carried by :class:`Failure` (``IO.fail("not found")``). Handlers always
receive the error itself. ``asyncio.CancelledError`` is cancellation, never
an error.
"""
from __future__ import annotations
from dataclasses import dataclass, field
import asyncio
import concurrent.futures
import contextvars
from typing import Any, Awaitable, Callable, Generic, Iterable, List, Optional, Set, Tuple, TypeVar

import anyio.to_thread

from .clock import Clock
from .context import Context
from .duration import DurationLike, to_seconds
from .either import Either, Left, Right
from .functor import MonadError, Parallel
from .option import NONE, Option, Some
from .outcome import Canceled, Errored, Outcome, Succeeded
from .typeclass import instance

A = TypeVar("A"); B = TypeVar("B"); C = TypeVar("C"); T = TypeVar("T")

# synchronous steps the interpreter takes before yielding to the event loop
AUTO_CEDE_STEPS = 1024


class Failure(Exception, Generic[A]):
    """Carries a typed (non-exception) error through the exception channel."""

    def __init__(self, error: A):
        super().__init__(repr(error)); self.error = error


def error_value(ex: BaseException) -> Any:
    return ex.error if isinstance(ex, Failure) else ex


def _as_exception(e: Any) -> BaseException:
    return e if isinstance(e, BaseException) else Failure(e)


_SYSTEM_CLOCK = Clock()


def _clock(ctx: Context) -> Clock:
    return ctx.get_or(Clock, _SYSTEM_CLOCK)


class IO(Generic[A]):
    def __init__(self, run: Callable[[Context], Awaitable[A]]): self._run_impl = run
    async def _run(self, ctx: Context) -> A: return await _interpret(self, ctx)

    # ------------------------------------------------------------ construction

    @staticmethod
    def pure(a: A) -> "IO[A]":
        return _Pure(a)

    @staticmethod
    def unit() -> "IO[None]":
        return _UNIT

    @staticmethod
    def delay(thunk: Callable[[], A]) -> "IO[A]":
        return _Delay(thunk)

    of = delay

    @staticmethod
    def defer(thunk: Callable[[], "IO[A]"]) -> "IO[A]":
        return _Suspend(thunk)

    @staticmethod
    def raise_error(e: Any) -> "IO[Any]":
        ex = _as_exception(e)
        def boom() -> Any: raise ex
        return _Delay(boom)

    @staticmethod
    def fail(e: Any) -> "IO[Any]":
        def boom() -> Any: raise Failure(e)
        return _Delay(boom)

    @staticmethod
    def from_async(thunk: Callable[[], Awaitable[A]]) -> "IO[A]":
        async def run(_: Context) -> A: return await thunk()
        return IO(run)

    @staticmethod
    def from_future(fio: "IO[Any]") -> "IO[Any]":
        """Await the asyncio or ``concurrent.futures`` future produced by ``fio``."""
        async def wait(f: Any) -> Any:
            if isinstance(f, concurrent.futures.Future):
                return await asyncio.wrap_future(f)
            return await f
        return fio.flat_map(lambda f: IO.from_async(lambda: wait(f)))

    @staticmethod
    def from_either(e: Either[Any, A]) -> "IO[A]":
        return e.fold(IO.raise_error, IO.pure)

    @staticmethod
    def from_option(o: Option[A], if_empty: Callable[[], Any]) -> "IO[A]":
        return o.fold(lambda: IO.raise_error(if_empty()), IO.pure)

    @staticmethod
    def async_(register: Callable[[Callable[[Either[Any, A]], None]], None]) -> "IO[A]":
        """Wrap a callback API. The callback takes ``Right(value)`` or ``Left(error)``
        and may be called from any thread; calls after the first are ignored."""
        def reg(cb: Callable[[Either[Any, A]], None]) -> None:
            register(cb)
            return None
        return IO.async_cancelable(reg)

    @staticmethod
    def async_cancelable(register: Callable[[Callable[[Either[Any, A]], None]], Optional["IO[None]"]]) -> "IO[A]":
        """Like :meth:`async_`; ``register`` may return a finalizer that runs on cancellation."""
        async def run(ctx: Context) -> A:
            loop = asyncio.get_running_loop()
            fut: asyncio.Future[A] = loop.create_future()

            def complete(result: Either[Any, A]) -> None:
                if fut.done():
                    return
                if result.is_right():
                    fut.set_result(result.value)  # type: ignore[attr-defined]
                else:
                    fut.set_exception(_as_exception(result.error))  # type: ignore[attr-defined]

            def callback(result: Either[Any, A]) -> None:
                loop.call_soon_threadsafe(complete, result)

            fin = register(callback)
            try:
                return await fut
            except asyncio.CancelledError:
                if fin is not None:
                    await _masked(fin, ctx)
                raise
        return IO(run)

    @staticmethod
    def never() -> "IO[Any]":
        async def run(_: Context) -> Any:
            return await asyncio.get_running_loop().create_future()
        return IO(run)

    @staticmethod
    def cede() -> "IO[None]":
        async def run(_: Context) -> None: await asyncio.sleep(0)
        return IO(run)

    @staticmethod
    def canceled() -> "IO[None]":
        """Cancel the running fiber; inside an uncancelable region this takes
        effect when the region ends."""
        async def run(_: Context) -> None:
            mask = _MASK.get()
            if mask is not None:
                mask.cancel_requested = True
                return None
            raise asyncio.CancelledError()
        return IO(run)

    @staticmethod
    def sleep(d: DurationLike) -> "IO[None]":
        seconds = to_seconds(d)
        async def run(ctx: Context) -> None: await _clock(ctx).sleep(seconds)
        return IO(run)

    @staticmethod
    def monotonic() -> "IO[float]":
        return _access(lambda ctx: _clock(ctx).monotonic())

    @staticmethod
    def realtime() -> "IO[float]":
        return _access(lambda ctx: _clock(ctx).realtime())

    @staticmethod
    def blocking(thunk: Callable[[], A]) -> "IO[A]":
        """Run ``thunk`` on a worker thread; cancellation waits for it to return."""
        async def run(_: Context) -> A: return await anyio.to_thread.run_sync(thunk)
        return IO(run)

    @staticmethod
    def interruptible(thunk: Callable[[], A]) -> "IO[A]":
        """Run ``thunk`` on a worker thread; cancellation abandons the thread."""
        async def run(_: Context) -> A: return await anyio.to_thread.run_sync(thunk, abandon_on_cancel=True)
        return IO(run)

    @staticmethod
    def eval_on(io: "IO[A]", executor: concurrent.futures.Executor) -> "IO[A]":
        """Run ``io`` on its own event loop inside ``executor``."""
        async def run(ctx: Context) -> A:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(executor, lambda: asyncio.run(io._run(ctx)))
        return IO(run)

    @staticmethod
    def service(t: type[T]) -> "IO[T]":
        return _access(lambda ctx: ctx.get(t))

    @staticmethod
    def context() -> "IO[Context]":
        return _access(lambda ctx: ctx)

    @staticmethod
    def logger() -> "IO[Any]":
        from .logger import from_context
        return _access(from_context)

    # ------------------------------------------------------------- composition

    def map(self, f: Callable[[A], B]) -> "IO[B]":
        return _Bind(self, lambda a: _Pure(f(a)))

    def flat_map(self, f: Callable[[A], "IO[B]"]) -> "IO[B]":
        return _Bind(self, f)

    def flat_tap(self, f: Callable[[A], "IO[Any]"]) -> "IO[A]":
        return self.flat_map(lambda a: f(a).as_(a))

    def flatten(self: "IO[IO[B]]") -> "IO[B]":
        return self.flat_map(lambda io: io)

    def as_(self, b: B) -> "IO[B]":
        return self.map(lambda _: b)

    def void(self) -> "IO[None]":
        return self.as_(None)

    def product(self, other: "IO[B]") -> "IO[Tuple[A, B]]":
        return self.flat_map(lambda a: other.map(lambda b: (a, b)))

    zip = product

    def map2(self, other: "IO[B]", f: Callable[[A, B], C]) -> "IO[C]":
        return self.flat_map(lambda a: other.map(lambda b: f(a, b)))

    def product_l(self, other: "IO[Any]") -> "IO[A]":
        return self.flat_map(lambda a: other.as_(a))

    def product_r(self, other: "IO[B]") -> "IO[B]":
        return self.flat_map(lambda _: other)

    def __rshift__(self, other: "IO[B]") -> "IO[B]":
        return self.product_r(other)

    def __lshift__(self, other: "IO[Any]") -> "IO[A]":
        return self.product_l(other)

    def replicate(self, n: int) -> "IO[List[A]]":
        def go(i: int, acc: List[A]) -> "IO[List[A]]":
            if i >= n:
                return IO.pure(acc)
            return self.flat_map(lambda a: go(i + 1, acc + [a]))
        return IO.defer(lambda: go(0, []))

    def forever(self) -> "IO[Any]":
        return self.flat_map(lambda _: self.forever())

    def iterate_while(self, p: Callable[[A], bool]) -> "IO[A]":
        return self.flat_map(lambda a: self.iterate_while(p) if p(a) else IO.pure(a))

    def iterate_until(self, p: Callable[[A], bool]) -> "IO[A]":
        return self.iterate_while(lambda a: not p(a))

    def delay_by(self, d: DurationLike) -> "IO[A]":
        return IO.sleep(d) >> self

    def and_wait(self, d: DurationLike) -> "IO[A]":
        return self << IO.sleep(d)

    def timeout(self, d: DurationLike) -> "IO[A]":
        """Cancel after ``d`` and raise ``TimeoutError``."""
        return self.timeout_to(d, IO.defer(lambda: IO.raise_error(TimeoutError(f"timed out after {d}"))))

    def timeout_to(self, d: DurationLike, fallback: "IO[A]") -> "IO[A]":
        return IO.race(self, IO.sleep(d)).flat_map(lambda e: e.fold(IO.pure, lambda _: fallback))

    def timeout_option(self, d: DurationLike) -> "IO[Option[A]]":
        return self.map(Some).timeout_to(d, IO.pure(NONE))

    def timed(self) -> "IO[Tuple[float, A]]":
        return IO.monotonic().flat_map(
            lambda start: self.flat_map(lambda a: IO.monotonic().map(lambda end: (end - start, a))))

    def debug(self, prefix: str = "") -> "IO[A]":
        """Log the result (or the error) through the context logger."""
        def ok(a: A) -> IO[A]:
            return IO.logger().flat_map(lambda lg: lg.info(f"{prefix}{a!r}")).as_(a)

        def err(e: Any) -> IO[A]:
            return IO.logger().flat_map(lambda lg: lg.info(f"{prefix}error: {e!r}")) >> IO.raise_error(e)
        return self.attempt().flat_map(lambda r: r.fold(err, ok))

    def provide_service(self, t: type[T], v: T) -> "IO[A]":
        async def run(ctx: Context) -> A: return await self._run(ctx.add(t, v))
        return IO(run)

    def provide_context(self, ctx: Context) -> "IO[A]":
        async def run(_: Context) -> A: return await self._run(ctx)
        return IO(run)

    # ------------------------------------------------------------------ errors

    def handle_error_with(self, f: Callable[[Any], "IO[A]"]) -> "IO[A]":
        return _Handle(self, f)

    def handle_error(self, f: Callable[[Any], A]) -> "IO[A]":
        return _Handle(self, lambda e: _Pure(f(e)))

    def attempt(self) -> "IO[Either[Any, A]]":
        return self.map(Right).handle_error(Left)

    def option(self) -> "IO[Option[A]]":
        return self.map(Some).handle_error(lambda _: NONE)

    def redeem(self, recover: Callable[[Any], B], f: Callable[[A], B]) -> "IO[B]":
        return self.attempt().map(lambda r: r.fold(recover, f))

    def redeem_with(self, recover: Callable[[Any], "IO[B]"], bind: Callable[[A], "IO[B]"]) -> "IO[B]":
        return self.attempt().flat_map(lambda r: r.fold(recover, bind))

    def map_error(self, f: Callable[[Any], Any]) -> "IO[A]":
        return self.handle_error_with(lambda e: IO.raise_error(f(e)))

    def adapt_error(self, pf: Callable[[Any], Optional[Any]]) -> "IO[A]":
        """Replace errors ``pf`` maps to a value; others pass through unchanged."""
        def adapt(e: Any) -> IO[A]:
            new = pf(e)
            return IO.raise_error(e if new is None else new)
        return self.handle_error_with(adapt)

    def on_error(self, f: Callable[[Any], "IO[Any]"]) -> "IO[A]":
        return self.handle_error_with(lambda e: f(e) >> IO.raise_error(e))

    def ensure(self, pred: Callable[[A], bool], error: Callable[[], Any]) -> "IO[A]":
        return self.flat_map(lambda a: IO.pure(a) if pred(a) else IO.raise_error(error()))

    def rethrow(self: "IO[Either[Any, B]]") -> "IO[B]":
        return self.flat_map(IO.from_either)

    def retry(self, policy: Any, on_error: Optional[Callable[[Any, Any], "IO[None]"]] = None) -> "IO[A]":
        from .retry import retrying_on_all_errors
        return retrying_on_all_errors(policy, on_error)(self)

    # ------------------------------------------------- cancellation, resources

    @staticmethod
    def uncancelable(body: Callable[["Poll"], "IO[A]"]) -> "IO[A]":
        """Run ``body(poll)`` masked: a cancel request waits for the region to
        end, except inside ``poll(io)`` where it interrupts ``io``."""
        async def run(ctx: Context) -> A:
            if _MASK.get() is not None:
                return await body(_NO_POLL)._run(ctx)
            mask = _Mask()

            async def masked() -> A:
                _MASK.set(mask)
                return await body(Poll(mask))._run(ctx)

            task = asyncio.create_task(masked())
            task.add_done_callback(_consume)
            # a cancel from outside is re-raised as the same exception object
            received: Optional[asyncio.CancelledError] = None
            while not task.done():
                try:
                    await asyncio.wait({task})
                except asyncio.CancelledError as ex:
                    received = received or ex
                    mask.cancel_requested = True
                    for p in list(mask.polls):
                        p.cancel()
            if received is not None:
                raise received
            if task.cancelled() or mask.cancel_requested:
                raise asyncio.CancelledError()
            return task.result()
        return IO(run)

    def guarantee_case(self, fin: Callable[[Outcome[A]], "IO[Any]"]) -> "IO[A]":
        """Run ``fin`` uncancelably with the outcome. A finalizer error is
        raised after success; after an error or cancellation it is logged."""
        async def run(ctx: Context) -> A:
            try:
                a = await self._run(ctx)
            except asyncio.CancelledError:
                await _finalize_quietly(IO.defer(lambda: fin(Canceled())), ctx, "canceled")
                raise
            except Exception as ex:
                err = error_value(ex)
                await _finalize_quietly(IO.defer(lambda: fin(Errored(err))), ctx, "errored")
                raise
            await _masked(IO.defer(lambda: fin(Succeeded(a))), ctx)
            return a
        return IO(run)

    def guarantee(self, fin: "IO[Any]") -> "IO[A]":
        return self.guarantee_case(lambda _: fin)

    def on_cancel(self, fin: "IO[Any]") -> "IO[A]":
        return self.guarantee_case(lambda oc: fin if oc.is_canceled() else _UNIT)

    @staticmethod
    def bracket_full(acquire: Callable[["Poll"], "IO[A]"], use: Callable[[A], "IO[B]"],
                     release: Callable[[A, Outcome[B]], "IO[Any]"]) -> "IO[B]":
        """``acquire`` may make parts of itself cancelable with ``poll``."""
        return IO.uncancelable(lambda poll: acquire(poll).flat_map(
            lambda a: poll(IO.defer(lambda: use(a))).guarantee_case(lambda oc: release(a, oc))))

    def bracket_case(self, use: Callable[[A], "IO[B]"], release: Callable[[A, Outcome[B]], "IO[Any]"]) -> "IO[B]":
        return IO.bracket_full(lambda _: self, use, release)

    def bracket(self, use: Callable[[A], "IO[B]"], release: Callable[[A], "IO[Any]"]) -> "IO[B]":
        return self.bracket_case(use, lambda a, _: release(a))

    # ----------------------------------------------------- fibers, concurrency

    def start(self, name: Optional[str] = None) -> "IO[Fiber[A]]":
        async def run(ctx: Context) -> Fiber[A]:
            return Fiber(_spawn(self, ctx, name), name)
        return IO(run)

    def background(self) -> "Any":
        """A Resource whose fiber is canceled when the resource is released."""
        from .resource import Resource
        return Resource.make(self.start(), lambda f: f.cancel()).map(lambda f: f.join())

    @staticmethod
    def race_outcome(a: "IO[A]", b: "IO[B]") -> "IO[Either[Outcome[A], Outcome[B]]]":
        """Outcome of whichever side finishes first; the other is canceled."""
        async def run(ctx: Context) -> Either[Outcome[A], Outcome[B]]:
            ta, tb = _spawn(a, ctx), _spawn(b, ctx)
            try:
                done, _ = await asyncio.wait({ta, tb}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                await _cancel_and_wait(ta, tb)
            return Left(_outcome_of(ta)) if ta in done else Right(_outcome_of(tb))
        return IO(run)

    @staticmethod
    def race(a: "IO[A]", b: "IO[B]") -> "IO[Either[A, B]]":
        """First to succeed or fail wins and the loser is canceled. A side that
        cancels itself lets the other one finish."""
        async def run(ctx: Context) -> Either[A, B]:
            ta, tb = _spawn(a, ctx), _spawn(b, ctx)
            try:
                done, _ = await asyncio.wait({ta, tb}, return_when=asyncio.FIRST_COMPLETED)
                winner, loser, left = (ta, tb, True) if ta in done else (tb, ta, False)
                if winner.cancelled():
                    await asyncio.wait({loser})
                    winner, left = loser, not left
                else:
                    await _cancel_and_wait(loser)
                value = winner.result()
            finally:
                await _cancel_and_wait(ta, tb)
            return Left(value) if left else Right(value)
        return IO(run)

    @staticmethod
    def race_first(ios: Iterable["IO[A]"]) -> "IO[A]":
        """First of many to finish, success or error; the rest are canceled."""
        seq = list(ios)
        async def run(ctx: Context) -> A:
            if not seq:
                raise ValueError("race_first needs at least one IO")
            tasks = [_spawn(io, ctx) for io in seq]
            try:
                done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
                winner = next(t for t in tasks if t in done)
            finally:
                await _cancel_and_wait(*tasks)
            return winner.result()
        return IO(run)

    @staticmethod
    def both(a: "IO[A]", b: "IO[B]") -> "IO[Tuple[A, B]]":
        """Run concurrently; the first error or cancellation cancels the other."""
        async def run(ctx: Context) -> Tuple[A, B]:
            x, y = await _gather([a, b], ctx, None)
            return x, y
        return IO(run)

    @staticmethod
    def par_map_n(*args: Any) -> "IO[Any]":
        """``IO.par_map_n(io1, io2, ..., f)``"""
        *ios, f = args
        return IO.par_sequence(ios).map(lambda xs: f(*xs))

    @staticmethod
    def par_sequence(ios: Iterable["IO[A]"], parallelism: Optional[int] = None) -> "IO[List[A]]":
        seq = list(ios)
        async def run(ctx: Context) -> List[A]: return await _gather(seq, ctx, parallelism)
        return IO(run)

    @staticmethod
    def par_traverse(items: Iterable[T], f: Callable[[T], "IO[A]"], parallelism: Optional[int] = None) -> "IO[List[A]]":
        """``f`` over every item concurrently, at most ``parallelism`` at a time; results keep input order."""
        seq = list(items)
        return IO.defer(lambda: IO.par_sequence([f(x) for x in seq], parallelism))

    @staticmethod
    def sequence(ios: Iterable["IO[A]"]) -> "IO[List[A]]":
        return IO.traverse(ios, lambda io: io)

    @staticmethod
    def traverse(items: Iterable[T], f: Callable[[T], "IO[A]"]) -> "IO[List[A]]":
        seq = list(items)
        def go(i: int, acc: List[A]) -> IO[List[A]]:
            if i >= len(seq):
                return IO.pure(acc)
            return f(seq[i]).flat_map(lambda a: go(i + 1, acc + [a]))
        return IO.defer(lambda: go(0, []))

    # ----------------------------------------------------------------- running

    def unsafe_run_sync(self) -> A:
        from .runtime import Runtime
        return Runtime.default().run_sync(self)

    def unsafe_run_timed(self, d: DurationLike) -> Option[A]:
        from .runtime import Runtime
        return Runtime.default().run_timed(self, d)

    def unsafe_to_future(self) -> "Any":
        from .runtime import Runtime
        return Runtime.default().to_future(self)

    def __repr__(self) -> str:
        return f"IO({getattr(self._run_impl, '__qualname__', '?')})"


class _Pure(IO[A]):
    def __init__(self, value: A): self._value = value
    def __repr__(self) -> str: return f"IO.pure({self._value!r})"


class _Delay(IO[A]):
    def __init__(self, thunk: Callable[[], A]): self._thunk = thunk
    def __repr__(self) -> str: return "IO.delay(...)"


class _Suspend(IO[A]):
    def __init__(self, thunk: Callable[[], IO[A]]): self._thunk = thunk
    def __repr__(self) -> str: return "IO.defer(...)"


class _Bind(IO[B]):
    def __init__(self, source: IO[A], f: Callable[[A], IO[B]]): self._source = source; self._f = f
    def __repr__(self) -> str: return f"{self._source!r}.flat_map(...)"


class _Handle(IO[A]):
    def __init__(self, source: IO[A], handler: Callable[[Any], IO[A]]): self._source = source; self._handler = handler
    def __repr__(self) -> str: return f"{self._source!r}.handle_error_with(...)"


_UNIT: IO[None] = _Pure(None)


async def _interpret(io: IO[Any], ctx: Context) -> Any:
    # Continuations are (is_handler, fn). A value skips handlers, an error skips binds.
    stack: List[Tuple[bool, Callable[[Any], IO[Any]]]] = []
    cur: IO[Any] = io
    steps = 0
    while True:
        try:
            while True:
                if isinstance(cur, _Bind):
                    stack.append((False, cur._f)); cur = cur._source; continue
                if isinstance(cur, _Handle):
                    stack.append((True, cur._handler)); cur = cur._source; continue
                if isinstance(cur, _Suspend):
                    cur = cur._thunk(); continue
                steps += 1
                if steps >= AUTO_CEDE_STEPS:
                    steps = 0
                    await asyncio.sleep(0)
                if isinstance(cur, _Pure):
                    value = cur._value
                elif isinstance(cur, _Delay):
                    value = cur._thunk()
                else:
                    value = await cur._run_impl(ctx)
                f = None
                while stack:
                    is_handler, fn = stack.pop()
                    if not is_handler:
                        f = fn
                        break
                if f is None:
                    return value
                cur = f(value)
        except Exception as ex:
            handler = None
            while stack:
                is_handler, fn = stack.pop()
                if is_handler:
                    handler = fn
                    break
            if handler is None:
                raise
            err = error_value(ex)
            h = handler
            cur = _Suspend(lambda: h(err))


def _access(f: Callable[[Context], A]) -> IO[A]:
    async def run(ctx: Context) -> A: return f(ctx)
    return IO(run)


# ------------------------------------------------------------------ masking

@dataclass
class _Mask:
    cancel_requested: bool = False
    polls: Set[asyncio.Task] = field(default_factory=set)


_MASK: contextvars.ContextVar[Optional[_Mask]] = contextvars.ContextVar("fpkit_mask", default=None)


class Poll:
    """Passed to an ``uncancelable`` body; ``poll(io)`` makes ``io`` cancelable again."""

    def __init__(self, mask: Optional[_Mask]): self._mask = mask

    def __call__(self, io: IO[A]) -> IO[A]:
        mask = self._mask
        if mask is None:
            return io

        async def run(ctx: Context) -> A:
            task = _spawn(io, ctx)
            mask.polls.add(task)
            if mask.cancel_requested:
                task.cancel()
            try:
                await asyncio.wait({task})
            finally:
                mask.polls.discard(task)
                await _cancel_and_wait(task)
            return task.result()
        return IO(run)


_NO_POLL = Poll(None)


async def _masked(io: IO[Any], ctx: Context) -> Any:
    return await IO.uncancelable(lambda _: io)._run(ctx)


async def _finalize_quietly(fin: IO[Any], ctx: Context, after: str) -> None:
    try:
        await _masked(fin, ctx)
    except Exception as ex:
        from .logger import from_context
        await from_context(ctx).error("finalizer failed", exc=ex, after=after)._run(ctx)


# ------------------------------------------------------------------- fibers

def _consume(task: asyncio.Task) -> None:
    # Joined or not, a fiber's error is reported through its Outcome.
    if not task.cancelled():
        task.exception()


async def _unmasked(io: IO[A], ctx: Context) -> A:
    _MASK.set(None)
    return await io._run(ctx)


def _spawn(io: IO[A], ctx: Context, name: Optional[str] = None) -> asyncio.Task:
    task = asyncio.create_task(_unmasked(io, ctx), name=name)
    task.add_done_callback(_consume)
    return task


async def _cancel_and_wait(*tasks: asyncio.Task) -> None:
    pending = [t for t in tasks if not t.done()]
    for t in pending:
        t.cancel()
    if pending:
        await asyncio.wait(pending)


def _outcome_of(task: asyncio.Task) -> Outcome[Any]:
    if task.cancelled():
        return Canceled()
    ex = task.exception()
    if ex is not None:
        return Errored(error_value(ex))
    return Succeeded(task.result())


async def _gather(ios: List[IO[A]], ctx: Context, parallelism: Optional[int]) -> List[A]:
    sem = asyncio.Semaphore(parallelism) if parallelism else None

    def bounded(io: IO[A]) -> IO[A]:
        if sem is None:
            return io
        async def run(c: Context) -> A:
            async with sem:
                return await io._run(c)
        return IO(run)

    tasks = [_spawn(bounded(io), ctx) for io in ios]
    try:
        pending = set(tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for t in done:
                if t.cancelled():
                    raise asyncio.CancelledError()
                if t.exception() is not None:
                    raise t.exception()  # type: ignore[misc]
    finally:
        await _cancel_and_wait(*tasks)
    return [t.result() for t in tasks]


class Fiber(Generic[A]):
    """A running IO. ``join`` waits for its Outcome; ``cancel`` waits for its finalizers."""

    def __init__(self, task: asyncio.Task, name: Optional[str] = None):
        self._task = task
        self.name = name

    def join(self) -> IO[Outcome[A]]:
        async def run(_: Context) -> Outcome[A]:
            await asyncio.wait({self._task})
            return _outcome_of(self._task)
        return IO(run)

    def cancel(self) -> IO[None]:
        async def run(_: Context) -> None:
            self._task.cancel()
            await asyncio.wait({self._task})
        return IO(run)

    def join_with(self, on_cancel: IO[A]) -> IO[A]:
        return self.join().flat_map(lambda oc: oc.embed(on_cancel))

    def join_with_never(self) -> IO[A]:
        return self.join().flat_map(lambda oc: oc.embed_never())

    def is_done(self) -> bool:
        return self._task.done()

    def __repr__(self) -> str:
        state = "done" if self._task.done() else "running"
        return f"Fiber({self.name or self._task.get_name()}, {state})"


# ---------------------------------------------------------------- instances

@instance(IO)
class IOInstance(MonadError, Parallel):
    def pure(self, a: A) -> IO[A]: return IO.pure(a)
    def map(self, fa: IO[Any], f: Callable[[Any], Any]) -> IO[Any]: return fa.map(f)
    def flat_map(self, fa: IO[Any], f: Callable[[Any], IO[Any]]) -> IO[Any]: return fa.flat_map(f)
    def raise_error(self, e: Any) -> IO[Any]: return IO.raise_error(e)
    def handle_error_with(self, fa: IO[Any], f: Callable[[Any], IO[Any]]) -> IO[Any]: return fa.handle_error_with(f)
    def attempt(self, fa: IO[Any]) -> IO[Any]: return fa.attempt()
    def suspend(self, thunk: Callable[[], IO[Any]]) -> IO[Any]: return IO.defer(thunk)

    def par_map_n(self, fas: Tuple[Any, ...], f: Callable[..., Any]) -> IO[Any]:
        return IO.par_map_n(*fas, f)
