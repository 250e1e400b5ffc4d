"""
Resource safety: bracket, Resource and Scope release what they acquire,
in reverse order, on success, error and cancellation.

Run: python examples/resources.py
"""
import contextlib
import tempfile

from fpkit import IO, Resource, SimpleIOApp, do


class Connection:
    def __init__(self, dsn: str):
        self.dsn = dsn
        self.open = True

    def query(self, sql: str) -> IO[list]:
        return IO.delay(lambda: [f"{self.dsn}: {sql}"])

    def close(self) -> IO[None]:
        return IO.delay(lambda: setattr(self, "open", False))


def connection(dsn: str) -> Resource[Connection]:
    def acquire():
        return IO.logger().flat_map(lambda log: log.info("connect", dsn=dsn)).as_(Connection(dsn))

    def release(c: Connection, outcome):
        return IO.logger().flat_map(lambda log: log.info("disconnect", dsn=c.dsn, outcome=repr(outcome))) >> c.close()
    return Resource.make_case(IO.defer(acquire), release)


def scratch_dir() -> Resource[str]:
    return Resource.from_context_manager(tempfile.TemporaryDirectory)


@contextlib.contextmanager
def transaction(name: str):
    print("begin", name)
    try:
        yield name
        print("commit", name)
    except Exception:
        print("rollback", name)
        raise


class ResourceTour(SimpleIOApp):
    @do(IO)
    def run_simple(self):
        log = yield IO.logger()

        # bracket: release runs whatever use does
        rows = yield IO.pure(Connection("primary")).bracket(lambda c: c.query("select 1"), lambda c: c.close())
        yield log.info("bracket", rows=rows)

        # Resources compose; the last acquired is released first
        both = connection("orders").product(connection("audit"))
        yield both.use(lambda conns: IO.traverse(conns, lambda c: c.query("select count(*)")))

        # the failing body still releases, with the Errored outcome
        failed = yield connection("reports").use(lambda c: IO.fail("query timeout")).attempt()
        yield log.info("failed use", result=repr(failed))

        # plain and async context managers lift into Resource
        path = yield scratch_dir().use(IO.pure)
        yield log.info("scratch dir", path=path)
        yield Resource.from_context_manager(lambda: transaction("t1")).use(lambda _: IO.unit())
        yield Resource.from_context_manager(lambda: transaction("t2")).use(lambda _: IO.raise_error(ValueError("bad row"))).attempt()

        # cancellation also releases
        fiber = yield connection("stream").use_forever().start()
        yield IO.sleep(0.01) >> fiber.cancel()


if __name__ == "__main__":
    ResourceTour().main()
