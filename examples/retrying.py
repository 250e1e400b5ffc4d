"""
Retrying: composable policies, decided per attempt, waiting on the context clock.

Run: python examples/retrying.py
"""
from fpkit import (
    IO, Context, Clock, TestClock, Runtime, RetryPolicy, RetryStatus,
    retrying_on_some_errors, retrying_on_failures, log_retry,
)


class FlakyGateway:
    def __init__(self, outages: int):
        self.outages = outages
        self.calls = 0

    def charge(self, cents: int) -> IO[str]:
        def call():
            self.calls += 1
            if self.calls <= self.outages:
                raise ConnectionError(f"gateway unavailable (call {self.calls})")
            return f"charged {cents}"
        return IO.delay(call)


def preview(policy: RetryPolicy, n: int = 8):
    status, out = RetryStatus(), []
    for _ in range(n):
        decision = policy.decide(status)
        if decision.gives_up:
            break
        out.append(decision.delay)
        status = status.add_retry(decision.delay)
    return out


def main():
    backoff = (RetryPolicy.exponential_backoff(0.01).cap_delay(0.05)
               & RetryPolicy.limit_retries(5))
    print(backoff, preview(backoff))
    print(preview(RetryPolicy.fibonacci_backoff(1).limit_retries_by_cumulative_delay(20)))
    print(preview(RetryPolicy.limit_retries(2).followed_by(RetryPolicy.constant_delay(10) & RetryPolicy.limit_retries(2))))

    runtime = Runtime.default()
    retry_outages = retrying_on_some_errors(backoff, lambda e: isinstance(e, ConnectionError),
                                            log_retry("charge failed"))
    gateway = FlakyGateway(outages=2)
    print(runtime.run_sync(retry_outages(gateway.charge(1299))), "after", gateway.calls, "calls")
    print(runtime.run_sync(retry_outages(FlakyGateway(outages=10).charge(5)).attempt()))

    # Retry on an unsatisfying result instead of an error
    readings = iter([None, None, 21.5])
    poll = retrying_on_failures(RetryPolicy.constant_delay(0.01) & RetryPolicy.limit_retries(5),
                                lambda r: r is not None)
    print(runtime.run_sync(poll(IO.delay(lambda: next(readings)))))

    # A minute of back-off takes no real time on a TestClock
    async def virtual():
        clock = TestClock()
        slow = RetryPolicy.constant_delay(60) & RetryPolicy.limit_retries(3)
        fiber = await FlakyGateway(outages=3).charge(1).retry(slow).start()._run(
            runtime.base.add(Clock, clock))
        await clock.run_until_idle()
        return await fiber.join()._run(Context()), clock.monotonic()

    print(runtime.run_sync(IO.from_async(virtual)))


if __name__ == "__main__":
    main()
