"""
Fibers: start, join, cancel and race lightweight concurrent computations.

Run: python examples/fibers.py
"""
from fpkit import IO, IOApp, ExitCode, Deferred, Ref, Queue, do


def worker(name: str, jobs: Queue, done: Ref) -> IO[None]:
    def handle(job: int) -> IO[None]:
        return IO.sleep(0.01 * job) >> done.update(lambda xs: xs + [(name, job)])
    return jobs.take().flat_map(handle).forever()


class FiberTour(IOApp):
    @do(IO)
    def run(self, args):
        log = yield IO.logger()

        # start/join: a fiber reports how it ended as an Outcome
        fast = yield IO.sleep(0.02).as_("fast result").start("fast")
        broken = yield IO.fail("disk full").start("broken")
        fast_outcome = yield fast.join()
        broken_outcome = yield broken.join()
        yield log.info("joined", fast=fast_outcome, broken=broken_outcome)

        # cancel: finalizers run before cancel returns
        sleeper = yield IO.never().on_cancel(log.info("sleeper interrupted")).start("sleeper")
        yield IO.sleep(0.01)
        yield sleeper.cancel()

        # race: the loser is canceled
        winner = yield IO.race(IO.sleep(0.2).as_("slow mirror"), IO.sleep(0.02).as_("near mirror"))
        yield log.info("race", winner=winner.fold(str, str))

        # a Deferred hands a value from one fiber to another
        ready = Deferred()
        waiter = yield ready.get().map(str.upper).start("waiter")
        yield ready.complete("go")
        handed = yield waiter.join_with(IO.pure("canceled"))
        yield log.info("handoff", value=handed)

        # a small worker pool draining a bounded queue
        jobs, done = Queue(capacity=2), Ref([])
        pool = yield IO.traverse(["w1", "w2", "w3"], lambda n: worker(n, jobs, done).start(n))
        yield IO.traverse([3, 1, 2, 1, 3], jobs.offer)
        yield (IO.sleep(0.005) >> jobs.size()).iterate_until(lambda n: n == 0)
        yield IO.sleep(0.05)
        yield IO.traverse(pool, lambda f: f.cancel())
        finished = yield done.get()
        yield log.info("pool", handled=len(finished))

        # bounded parallelism keeps result order
        squares = yield IO.par_traverse(range(6), lambda i: IO.sleep(0.01).as_(i * i), parallelism=2)
        yield log.info("squares", values=squares)
        return ExitCode.SUCCESS


if __name__ == "__main__":
    FiberTour().main()
