"""Retry policies and combinators.

A :class:`RetryPolicy` looks at the :class:`RetryStatus` after a failed
attempt and decides to give up or to wait and retry:

    policy = RetryPolicy.limit_retries(5) & RetryPolicy.exponential_backoff(0.1)
    fetch = retrying_on_some_errors(policy, lambda e: isinstance(e, ConnectionError))(http_get(url))

Waiting goes through the context Clock, so a TestClock drives retries on
virtual time.
"""
from __future__ import annotations
from dataclasses import dataclass
import random
from typing import Any, Callable, Optional, TypeVar

from .duration import DurationLike, to_seconds
from .io import IO
from .option import NONE, Option, Some

A = TypeVar("A")


@dataclass(frozen=True)
class RetryStatus:
    retries_so_far: int = 0
    cumulative_delay: float = 0.0
    previous_delay: Option[float] = NONE

    def add_retry(self, delay: float) -> "RetryStatus":
        return RetryStatus(self.retries_so_far + 1, self.cumulative_delay + delay, Some(delay))


@dataclass(frozen=True)
class PolicyDecision:
    # delay is None when giving up
    delay: Optional[float]

    @property
    def gives_up(self) -> bool:
        return self.delay is None

    @staticmethod
    def give_up() -> "PolicyDecision":
        return _GIVE_UP

    @staticmethod
    def delay_and_retry(delay: DurationLike) -> "PolicyDecision":
        return PolicyDecision(to_seconds(delay))


_GIVE_UP = PolicyDecision(None)


@dataclass(frozen=True)
class RetryDetails:
    """What ``on_error`` hooks see about the attempt that just failed."""

    retries_so_far: int
    cumulative_delay: float
    given_up: bool
    upcoming_delay: Optional[float]


class RetryPolicy:
    def __init__(self, decide: Callable[[RetryStatus], PolicyDecision], name: str = "RetryPolicy"):
        self.decide = decide
        self.name = name

    def __repr__(self) -> str:
        return self.name

    # Factories
    @staticmethod
    def limit_retries(n: int) -> "RetryPolicy":
        return RetryPolicy(
            lambda s: PolicyDecision.give_up() if s.retries_so_far >= n else PolicyDecision.delay_and_retry(0),
            f"limit_retries({n})")

    @staticmethod
    def constant_delay(d: DurationLike) -> "RetryPolicy":
        delay = to_seconds(d)
        return RetryPolicy(lambda _: PolicyDecision.delay_and_retry(delay), f"constant_delay({delay})")

    @staticmethod
    def exponential_backoff(base: DurationLike) -> "RetryPolicy":
        b = to_seconds(base)
        return RetryPolicy(lambda s: PolicyDecision.delay_and_retry(b * 2 ** s.retries_so_far),
                           f"exponential_backoff({b})")

    @staticmethod
    def fibonacci_backoff(base: DurationLike) -> "RetryPolicy":
        b = to_seconds(base)
        return RetryPolicy(lambda s: PolicyDecision.delay_and_retry(b * fibonacci(s.retries_so_far + 1)),
                           f"fibonacci_backoff({b})")

    @staticmethod
    def full_jitter(base: DurationLike, rng: Optional[random.Random] = None) -> "RetryPolicy":
        """Uniform in ``[0, base * 2**retries]``."""
        b = to_seconds(base)
        r = rng or random.Random()
        return RetryPolicy(lambda s: PolicyDecision.delay_and_retry(r.uniform(0.0, b * 2 ** s.retries_so_far)),
                           f"full_jitter({b})")

    # Transformations
    def map_delay(self, f: Callable[[float], float]) -> "RetryPolicy":
        def decide(s: RetryStatus) -> PolicyDecision:
            d = self.decide(s)
            return d if d.gives_up else PolicyDecision(f(d.delay))  # type: ignore[arg-type]
        return RetryPolicy(decide, f"{self.name}.map_delay(...)")

    def cap_delay(self, cap: DurationLike) -> "RetryPolicy":
        c = to_seconds(cap)
        return RetryPolicy(self.map_delay(lambda d: min(d, c)).decide, f"cap_delay({c}, {self.name})")

    def limit_retries_by_delay(self, threshold: DurationLike) -> "RetryPolicy":
        """Give up instead of waiting longer than ``threshold``."""
        t = to_seconds(threshold)
        def decide(s: RetryStatus) -> PolicyDecision:
            d = self.decide(s)
            return PolicyDecision.give_up() if d.gives_up or d.delay > t else d  # type: ignore[operator]
        return RetryPolicy(decide, f"limit_retries_by_delay({t}, {self.name})")

    def limit_retries_by_cumulative_delay(self, threshold: DurationLike) -> "RetryPolicy":
        """Give up once the total wait would reach ``threshold``."""
        t = to_seconds(threshold)
        def decide(s: RetryStatus) -> PolicyDecision:
            d = self.decide(s)
            if d.gives_up or s.cumulative_delay + d.delay >= t:  # type: ignore[operator]
                return PolicyDecision.give_up()
            return d
        return RetryPolicy(decide, f"limit_retries_by_cumulative_delay({t}, {self.name})")

    def join(self, other: "RetryPolicy") -> "RetryPolicy":
        """Retry only while both do, waiting the longer of the two delays."""
        def decide(s: RetryStatus) -> PolicyDecision:
            a, b = self.decide(s), other.decide(s)
            if a.gives_up or b.gives_up:
                return PolicyDecision.give_up()
            return PolicyDecision(max(a.delay, b.delay))  # type: ignore[type-var]
        return RetryPolicy(decide, f"({self.name} & {other.name})")

    def meet(self, other: "RetryPolicy") -> "RetryPolicy":
        """Retry while either does, waiting the shorter delay when both do."""
        def decide(s: RetryStatus) -> PolicyDecision:
            a, b = self.decide(s), other.decide(s)
            if a.gives_up: return b
            if b.gives_up: return a
            return PolicyDecision(min(a.delay, b.delay))  # type: ignore[type-var]
        return RetryPolicy(decide, f"({self.name} | {other.name})")

    def followed_by(self, other: "RetryPolicy") -> "RetryPolicy":
        """``self`` until it gives up, then ``other`` counting from zero."""
        def decide(s: RetryStatus) -> PolicyDecision:
            d = self.decide(s)
            if not d.gives_up:
                return d
            handover = _handover_point(self, s)
            return other.decide(RetryStatus(s.retries_so_far - handover, s.cumulative_delay, s.previous_delay))
        return RetryPolicy(decide, f"{self.name}.followed_by({other.name})")

    __and__ = join
    __or__ = meet


def _handover_point(policy: RetryPolicy, s: RetryStatus) -> int:
    # first retry count at which ``policy`` gives up
    for i in range(s.retries_so_far + 1):
        if policy.decide(RetryStatus(i, s.cumulative_delay, s.previous_delay)).gives_up:
            return i
    return s.retries_so_far


def fibonacci(n: int) -> int:
    a, b = 0, 1
    for _ in range(n):
        a, b = b, a + b
    return a


OnError = Callable[[Any, RetryDetails], IO[Any]]


def _no_op(_e: Any, _d: RetryDetails) -> IO[None]:
    return IO.unit()


def _retry_loop(io: IO[A], policy: RetryPolicy, retry_on: Callable[[Any], IO[bool]],
                on_error: OnError, status: RetryStatus) -> IO[A]:
    def recover(e: Any) -> IO[A]:
        def decide(worth: bool) -> IO[A]:
            if not worth:
                return IO.raise_error(e)
            decision = policy.decide(status)
            details = RetryDetails(status.retries_so_far, status.cumulative_delay,
                                   decision.gives_up, decision.delay)
            if decision.gives_up:
                return on_error(e, details) >> IO.raise_error(e)
            delay = decision.delay or 0.0
            return (on_error(e, details) >> IO.sleep(delay)
                    >> IO.defer(lambda: _retry_loop(io, policy, retry_on, on_error, status.add_retry(delay))))
        return retry_on(e).flat_map(decide)
    return io.handle_error_with(recover)


def retrying_on_all_errors(policy: RetryPolicy, on_error: Optional[OnError] = None) -> Callable[[IO[A]], IO[A]]:
    """Retry every error until ``policy`` gives up; then the last error is raised."""
    return retrying_on_some_errors(policy, lambda _: True, on_error)


def retrying_on_some_errors(policy: RetryPolicy, is_worth_retrying: Callable[[Any], Any],
                            on_error: Optional[OnError] = None) -> Callable[[IO[A]], IO[A]]:
    """``is_worth_retrying`` returns a bool or an ``IO[bool]``."""
    def check(e: Any) -> IO[bool]:
        r = is_worth_retrying(e)
        return r if isinstance(r, IO) else IO.pure(bool(r))
    hook = on_error or _no_op
    return lambda io: IO.defer(lambda: _retry_loop(io, policy, check, hook, RetryStatus()))


def retrying_on_failures(policy: RetryPolicy, was_successful: Callable[[A], bool],
                         on_failure: Optional[Callable[[A, RetryDetails], IO[Any]]] = None) -> Callable[[IO[A]], IO[A]]:
    """Retry while the result is unsatisfactory; after giving up the last result is returned."""
    hook = on_failure or _no_op

    def loop(io: IO[A], status: RetryStatus) -> IO[A]:
        def check(a: A) -> IO[A]:
            if was_successful(a):
                return IO.pure(a)
            decision = policy.decide(status)
            details = RetryDetails(status.retries_so_far, status.cumulative_delay,
                                   decision.gives_up, decision.delay)
            if decision.gives_up:
                return hook(a, details).as_(a)
            delay = decision.delay or 0.0
            return hook(a, details) >> IO.sleep(delay) >> IO.defer(lambda: loop(io, status.add_retry(delay)))
        return io.flat_map(check)
    return lambda io: IO.defer(lambda: loop(io, RetryStatus()))


def log_retry(message: str = "retrying") -> OnError:
    """An ``on_error`` hook that warns through the context logger."""
    def hook(e: Any, d: RetryDetails) -> IO[None]:
        def emit(lg: Any) -> IO[None]:
            if d.given_up:
                return lg.error(f"{message}: giving up", retries=d.retries_so_far, error=repr(e))
            return lg.warn(message, retries=d.retries_so_far, delay=d.upcoming_delay, error=repr(e))
        return IO.logger().flat_map(emit)
    return hook
