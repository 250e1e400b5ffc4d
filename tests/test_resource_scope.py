import asyncio
import contextlib
import unittest

from fpkit import IO, Context, Resource, Scope, Logger, TestingLogger, Succeeded, Errored, Canceled, Left


def mark(log, item):
    return IO.delay(lambda: log.append(item))


def tracked(log, name):
    return Resource.make(mark(log, f"open {name}").as_(name), lambda n: mark(log, f"close {n}"))


class TestScope(unittest.IsolatedAsyncioTestCase):
    async def test_finalizers_run_in_reverse_order(self):
        log = []
        scope = Scope()
        await (scope.add_finalizer(lambda _: mark(log, "first"))
               >> scope.add_finalizer(lambda _: mark(log, "second")))._run(Context())
        await scope.close()._run(Context())
        self.assertEqual(log, ["second", "first"])
        self.assertTrue(scope.closed)

    async def test_close_is_idempotent_and_late_finalizers_run_now(self):
        log = []
        scope = Scope()
        await scope.add_finalizer(lambda _: mark(log, "once"))._run(Context())
        await scope.close()._run(Context())
        await scope.close()._run(Context())
        await scope.add_finalizer(lambda oc: mark(log, f"late {oc!r}"))._run(Context())
        self.assertEqual(log, ["once", "late Succeeded(value=None)"])

    async def test_finalizers_see_outcome(self):
        seen = []
        scope = Scope()
        await scope.add_finalizer(lambda oc: IO.delay(lambda: seen.append(oc)))._run(Context())
        await scope.close(Errored("boom"))._run(Context())
        self.assertEqual(seen, [Errored("boom")])

    async def test_all_finalizers_run_and_first_error_wins(self):
        log = []
        lg = TestingLogger()
        ctx = Context().with_service(Logger, lg)
        scope = Scope()
        await (scope.add_finalizer(lambda _: mark(log, "a"))
               >> scope.add_finalizer(lambda _: IO.fail("b failed"))
               >> scope.add_finalizer(lambda _: IO.fail("c failed")))._run(ctx)
        r = await scope.close().attempt()._run(ctx)
        self.assertEqual(r, Left("c failed"))
        self.assertEqual(log, ["a"])
        self.assertEqual(lg.messages("ERROR"), ["finalizer failed"])


class TestResource(unittest.IsolatedAsyncioTestCase):
    async def test_use_releases_after_body(self):
        log = []
        r = await tracked(log, "db").use(lambda n: mark(log, f"use {n}").as_(n.upper()))._run(Context())
        self.assertEqual(r, "DB")
        self.assertEqual(log, ["open db", "use db", "close db"])

    async def test_nested_resources_release_in_reverse(self):
        log = []
        both = tracked(log, "db").flat_map(lambda d: tracked(log, "cache").map(lambda c: (d, c)))
        await both.use(lambda dc: mark(log, f"use {dc}"))._run(Context())
        self.assertEqual(log, ["open db", "open cache", "use ('db', 'cache')", "close cache", "close db"])

    async def test_release_on_error(self):
        log = []
        r = await tracked(log, "f").use(lambda _: IO.fail("oops")).attempt()._run(Context())
        self.assertEqual(r, Left("oops"))
        self.assertEqual(log, ["open f", "close f"])

    async def test_failed_acquisition_releases_acquired_parts(self):
        log = []
        broken = Resource.make(IO.fail("cannot open"), lambda _: mark(log, "never"))
        r = await tracked(log, "a").product(broken).use(lambda _: mark(log, "use")).attempt()._run(Context())
        self.assertEqual(r, Left("cannot open"))
        self.assertEqual(log, ["open a", "close a"])

    async def test_release_on_cancel(self):
        log = []
        res = Resource.make_case(IO.pure("r"), lambda a, oc: mark(log, oc))
        fiber = await res.use(lambda _: IO.never()).start()._run(Context())
        await asyncio.sleep(0.01)
        await fiber.cancel()._run(Context())
        self.assertEqual(log, [Canceled()])

    async def test_make_case_sees_outcome(self):
        log = []
        res = Resource.make_case(IO.pure("tx"), lambda a, oc: mark(log, "commit" if oc.is_succeeded() else "rollback"))
        await res.use(lambda _: IO.unit())._run(Context())
        await res.use(lambda _: IO.fail("x")).attempt()._run(Context())
        self.assertEqual(log, ["commit", "rollback"])

    async def test_pure_eval_eval_map(self):
        self.assertEqual(await Resource.pure(1).use(IO.pure)._run(Context()), 1)
        self.assertEqual(await Resource.eval(IO.pure(2)).eval_map(lambda x: IO.pure(x * 3)).use(IO.pure)._run(Context()), 6)

    async def test_both_acquires_concurrently(self):
        log = []
        a = Resource.make(IO.sleep(0.05).as_("a"), lambda _: mark(log, "close a"))
        b = Resource.make(IO.sleep(0.05).as_("b"), lambda _: mark(log, "close b"))
        r = await a.both(b).use(IO.pure).timeout(0.09)._run(Context())
        self.assertEqual(r, ("a", "b"))
        self.assertEqual(sorted(log), ["close a", "close b"])

    async def test_allocated(self):
        log = []
        value, release = await tracked(log, "conn").allocated()._run(Context())
        self.assertEqual(value, "conn")
        self.assertEqual(log, ["open conn"])
        await release._run(Context())
        self.assertEqual(log, ["open conn", "close conn"])

    async def test_from_sync_context_manager(self):
        log = []

        @contextlib.contextmanager
        def session():
            log.append("enter")
            try:
                yield "s"
            except ValueError:
                log.append("saw error")
                raise
            finally:
                log.append("exit")

        self.assertEqual(await Resource.from_context_manager(session).use(IO.pure)._run(Context()), "s")
        r = await Resource.from_context_manager(session).use(lambda _: IO.raise_error(ValueError("v"))).attempt()._run(Context())
        self.assertIsInstance(r.error, ValueError)
        self.assertEqual(log, ["enter", "exit", "enter", "saw error", "exit"])

    async def test_from_async_context_manager(self):
        log = []

        @contextlib.asynccontextmanager
        async def connection():
            log.append("connect")
            yield "c"
            log.append("disconnect")

        self.assertEqual(await Resource.from_context_manager(connection).use(IO.pure)._run(Context()), "c")
        self.assertEqual(log, ["connect", "disconnect"])

    async def test_use_forever_is_released_on_cancel(self):
        log = []
        fiber = await tracked(log, "server").use_forever().start()._run(Context())
        await asyncio.sleep(0.01)
        await fiber.cancel()._run(Context())
        self.assertEqual(log, ["open server", "close server"])
