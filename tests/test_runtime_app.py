import asyncio
import os
import threading
import unittest
from unittest import mock

from fpkit import (
    IO, Context, Runtime, RuntimeConfig, IOApp, SimpleIOApp, ExitCode, AnyIORuntime,
    Logger, ConsoleLogger, TestingLogger, Clock, Failure, Left, Right, Some, NONE,
    Succeeded, Errored, Canceled, Resource,
)


def quiet_runtime():
    lg = TestingLogger()
    return Runtime(Context().with_service(Logger, lg)), lg


class TestRuntimeSync(unittest.TestCase):
    def test_run_sync(self):
        rt, _ = quiet_runtime()
        self.assertEqual(rt.run_sync(IO.pure(1).map(lambda x: x + 1)), 2)
        self.assertEqual(rt.run_sync(IO.sleep(0.001).as_("slept")), "slept")

    def test_run_sync_raises_errors(self):
        rt, _ = quiet_runtime()
        with self.assertRaises(KeyError):
            rt.run_sync(IO.raise_error(KeyError("k")))
        with self.assertRaises(Failure) as cm:
            rt.run_sync(IO.fail("typed"))
        self.assertEqual(cm.exception.error, "typed")

    def test_run_sync_sees_base_services(self):
        rt, lg = quiet_runtime()
        rt.run_sync(IO.logger().flat_map(lambda l: l.info("hello")))
        self.assertEqual(lg.messages(), ["hello"])

    def test_run_timed(self):
        rt, _ = quiet_runtime()
        self.assertEqual(rt.run_timed(IO.pure(2), 1), Some(2))
        self.assertIs(rt.run_timed(IO.never(), 0.01), NONE)

    def test_run_timed_cancels_with_finalizers(self):
        rt, _ = quiet_runtime()
        log = []
        rt.run_timed(IO.never().on_cancel(IO.delay(lambda: log.append("canceled"))), 0.01)
        self.assertEqual(log, ["canceled"])

    def test_run_timed_through_masked_regions(self):
        rt, _ = quiet_runtime()
        released = []
        rel = lambda name: lambda _: IO.delay(lambda: released.append(name))
        self.assertIs(rt.run_timed(IO.unit().bracket(lambda _: IO.sleep(10), rel("bracket")), 0.05), NONE)
        conn = Resource.make(IO.pure("conn"), rel("resource"))
        self.assertIs(rt.run_timed(conn.use(lambda _: IO.sleep(10)), 0.05), NONE)
        self.assertIs(rt.run_timed(IO.uncancelable(lambda poll: poll(IO.sleep(10))), 0.05), NONE)
        self.assertEqual(released, ["bracket", "resource"])

    def test_to_future_outside_a_loop(self):
        rt, _ = quiet_runtime()
        try:
            fut = rt.to_future(IO.sleep(0.001).as_(3))
            self.assertEqual(fut.result(timeout=2), 3)
        finally:
            rt.shutdown()
        rt.shutdown()

    def test_run_async_callback(self):
        rt, _ = quiet_runtime()
        results = []
        done = threading.Event()

        def callback(r):
            results.append(r)
            if len(results) == 2:
                done.set()

        try:
            rt.run_async(IO.pure("ok"), callback)
            rt.run_async(IO.fail("bad"), callback)
            self.assertTrue(done.wait(2))
        finally:
            rt.shutdown()
        self.assertCountEqual(results, [Right("ok"), Left("bad")])

    def test_from_config(self):
        rt = Runtime.from_config(RuntimeConfig(log_level="DEBUG", logger_name="svc"))
        self.assertIsInstance(rt.base.get(Clock), Clock)
        lg = rt.base.get(Logger)
        self.assertIsInstance(lg, ConsoleLogger)
        self.assertEqual((lg.name, lg.level_name), ("svc", "DEBUG"))

    def test_default_reads_environment_once(self):
        saved = Runtime._default
        Runtime._default = None
        try:
            with mock.patch.dict(os.environ, {"FPKIT_LOGGER_NAME": "from-env"}):
                rt = Runtime.default()
            self.assertIs(Runtime.default(), rt)
            self.assertEqual(rt.config.logger_name, "from-env")
        finally:
            Runtime._default = saved


class TestUnsafeRunners(unittest.TestCase):
    def test_unsafe_run_sync_and_timed(self):
        self.assertEqual(IO.pure(5).unsafe_run_sync(), 5)
        self.assertEqual(IO.pure(6).unsafe_run_timed(1), Some(6))
        self.assertIs(IO.never().unsafe_run_timed(0.01), NONE)

    def test_unsafe_to_future(self):
        self.assertEqual(IO.pure(7).unsafe_to_future().result(timeout=2), 7)


class TestRuntimeInLoop(unittest.IsolatedAsyncioTestCase):
    async def test_run_and_to_future(self):
        rt, _ = quiet_runtime()
        self.assertEqual(await rt.run(IO.pure(1)), 1)
        fut = rt.to_future(IO.sleep(0.001).as_(2))
        self.assertIsInstance(fut, asyncio.Future)
        self.assertEqual(await fut, 2)

    async def test_fork_logs_unjoined_failures(self):
        rt, lg = quiet_runtime()
        fiber = rt.fork(IO.fail("boom"), name="worker")
        self.assertEqual(await fiber.join()._run(rt.base), Errored("boom"))
        await asyncio.sleep(0)
        self.assertEqual(lg.messages("ERROR"), ["fiber failed"])
        self.assertEqual(lg.entries[0].fields, {"fiber": "worker", "error": "'boom'"})

    async def test_fork_success_and_cancel_are_not_logged(self):
        rt, lg = quiet_runtime()
        ok = rt.fork(IO.pure(1))
        stuck = rt.fork(IO.never())
        self.assertEqual(await ok.join()._run(rt.base), Succeeded(1))
        await stuck.cancel()._run(rt.base)
        await asyncio.sleep(0)
        self.assertEqual(lg.entries, [])


class TestAnyIORuntime(unittest.IsolatedAsyncioTestCase):
    async def test_fork_join_cancel(self):
        ctx = Context()
        async with AnyIORuntime() as rt:
            self.assertEqual(await rt.run(IO.pure(3)), 3)
            f = await rt.fork(IO.sleep(0.01).as_(1))
            self.assertEqual(await f.join()._run(ctx), Succeeded(1))
            g = await rt.fork(IO.never())
            await g.cancel()._run(ctx)
            self.assertEqual(await g.join()._run(ctx), Canceled())
            h = await rt.fork(IO.fail("x"))
            self.assertEqual(await h.join()._run(ctx), Errored("x"))
            self.assertEqual(await h.join_with(IO.pure(0)).attempt()._run(ctx), Left("x"))

    async def test_canceling_a_bracketed_fiber_keeps_the_block_running(self):
        ctx, steps = Context(), []
        release = lambda _: IO.delay(lambda: steps.append("released"))
        async with AnyIORuntime() as rt:
            f = await rt.fork(IO.unit().bracket(lambda _: IO.never(), release))
            await asyncio.sleep(0.01)
            await f.cancel()._run(ctx)
            self.assertEqual(await f.join()._run(ctx), Canceled())
            await asyncio.sleep(0)
            steps.append("still inside block")
        self.assertEqual(steps, ["released", "still inside block"])

    async def test_block_waits_for_fibers(self):
        log = []
        async with AnyIORuntime() as rt:
            await rt.fork(IO.sleep(0.02) >> IO.delay(lambda: log.append("finished")))
        self.assertEqual(log, ["finished"])

    async def test_fork_needs_async_with(self):
        with self.assertRaises(RuntimeError):
            await AnyIORuntime().fork(IO.unit())


class Echo(IOApp):
    def __init__(self, runtime):
        self.runtime = runtime
        self.seen = []

    def run(self, args):
        return IO.delay(lambda: self.seen.extend(args)).as_(ExitCode.SUCCESS)


class Broken(IOApp):
    def __init__(self, runtime, error):
        self.runtime = runtime
        self.error = error

    def run(self, args):
        return IO.raise_error(self.error)


class Quiet(SimpleIOApp):
    def __init__(self, runtime):
        self.runtime = runtime
        self.ran = False

    def run_simple(self):
        return IO.delay(lambda: setattr(self, "ran", True))


class SelfCanceling(IOApp):
    def __init__(self, runtime):
        self.runtime = runtime

    def run(self, args):
        return IO.canceled().as_(ExitCode.SUCCESS)


class TestIOApp(unittest.TestCase):
    def test_success(self):
        rt, _ = quiet_runtime()
        app = Echo(rt)
        self.assertEqual(app.run_main(["a", "b"]), 0)
        self.assertEqual(app.seen, ["a", "b"])

    def test_typed_error_exits_with_error_code(self):
        rt, lg = quiet_runtime()
        self.assertEqual(Broken(rt, "bad config").run_main([]), ExitCode.ERROR)
        self.assertEqual(lg.messages("ERROR"), ["application failed"])
        self.assertEqual(lg.entries[0].fields, {"app": "Broken", "error": "'bad config'"})

    def test_exception_is_logged(self):
        rt, lg = quiet_runtime()
        self.assertEqual(Broken(rt, RuntimeError("crash")).run_main([]), 1)
        self.assertEqual(lg.entries[0].fields["error"], "RuntimeError: crash")

    def test_canceled_main_exits_with_error_code(self):
        rt, lg = quiet_runtime()
        self.assertEqual(SelfCanceling(rt).run_main([]), ExitCode.ERROR)
        self.assertEqual(lg.messages("ERROR"), ["application canceled"])
        self.assertEqual(lg.entries[0].fields, {"app": "SelfCanceling"})

    def test_main_exits(self):
        rt, _ = quiet_runtime()
        with self.assertRaises(SystemExit) as cm:
            Echo(rt).main(["x"])
        self.assertEqual(cm.exception.code, 0)

    def test_simple_app(self):
        rt, _ = quiet_runtime()
        app = Quiet(rt)
        self.assertEqual(app.run_main([]), 0)
        self.assertTrue(app.ran)
