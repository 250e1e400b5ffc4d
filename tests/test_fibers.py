import asyncio
import unittest

from fpkit import IO, Context, Deferred, Ref, Left, Right, Succeeded, Errored, Canceled, Fiber


def mark(log, item):
    return IO.delay(lambda: log.append(item))


class TestFiber(unittest.IsolatedAsyncioTestCase):
    async def test_join_outcomes(self):
        ctx = Context()
        ok = await IO.pure(1).start()._run(ctx)
        typed = await IO.fail("x").start()._run(ctx)
        raised = await IO.raise_error(KeyError("k")).start()._run(ctx)
        self.assertEqual(await ok.join()._run(ctx), Succeeded(1))
        self.assertEqual(await typed.join()._run(ctx), Errored("x"))
        self.assertIsInstance((await raised.join()._run(ctx)).error, KeyError)

    async def test_start_runs_concurrently(self):
        ctx = Context()
        d = Deferred()
        fiber = await d.get().map(lambda v: v * 2).start("waiter")._run(ctx)
        self.assertIsInstance(fiber, Fiber)
        await asyncio.sleep(0)
        self.assertFalse(fiber.is_done())
        self.assertIn("waiter", repr(fiber))
        await d.complete(21)._run(ctx)
        self.assertEqual(await fiber.join_with(IO.pure(0))._run(ctx), 42)
        self.assertTrue(fiber.is_done())

    async def test_cancel_waits_for_finalizers(self):
        log = []
        ctx = Context()
        fiber = await IO.never().guarantee(IO.sleep(0.02) >> mark(log, "closed")).start()._run(ctx)
        await asyncio.sleep(0.01)
        await fiber.cancel()._run(ctx)
        self.assertEqual(log, ["closed"])
        self.assertEqual(await fiber.join_with(IO.pure("fallback"))._run(ctx), "fallback")

    async def test_join_with_never_reraises(self):
        ctx = Context()
        fiber = await IO.fail("bad").start()._run(ctx)
        self.assertEqual(await fiber.join_with_never().attempt()._run(ctx), Left("bad"))
        ok = await IO.pure(3).start()._run(ctx)
        self.assertEqual(await ok.join_with_never()._run(ctx), 3)

    async def test_background_cancels_on_release(self):
        log = []
        bg = IO.never().on_cancel(mark(log, "stopped")).background()
        r = await bg.use(lambda join: IO.sleep(0.01).as_("used"))._run(Context())
        self.assertEqual(r, "used")
        self.assertEqual(log, ["stopped"])


class TestRace(unittest.IsolatedAsyncioTestCase):
    async def test_faster_side_wins_and_loser_is_canceled(self):
        log = []
        slow = IO.sleep(0.2).as_("slow").on_cancel(mark(log, "slow canceled"))
        fast = IO.sleep(0.01).as_("fast")
        self.assertEqual(await IO.race(slow, fast)._run(Context()), Right("fast"))
        self.assertEqual(await IO.race(fast, slow)._run(Context()), Left("fast"))
        self.assertEqual(log, ["slow canceled", "slow canceled"])

    async def test_winner_error_propagates(self):
        r = await IO.race(IO.fail("lost"), IO.never()).attempt()._run(Context())
        self.assertEqual(r, Left("lost"))

    async def test_self_canceled_side_lets_other_finish(self):
        r = await IO.race(IO.canceled(), IO.sleep(0.01).as_("b"))._run(Context())
        self.assertEqual(r, Right("b"))

    async def test_race_outcome(self):
        r = await IO.race_outcome(IO.fail("x"), IO.never())._run(Context())
        self.assertEqual(r, Left(Errored("x")))
        r = await IO.race_outcome(IO.never(), IO.pure(2))._run(Context())
        self.assertEqual(r, Right(Succeeded(2)))

    async def test_race_first(self):
        ios = [IO.sleep(0.1).as_(1), IO.sleep(0.01).as_(2), IO.never()]
        self.assertEqual(await IO.race_first(ios)._run(Context()), 2)
        with self.assertRaises(ValueError):
            await IO.race_first([])._run(Context())


class TestParallel(unittest.IsolatedAsyncioTestCase):
    async def test_both(self):
        self.assertEqual(await IO.both(IO.sleep(0.01).as_("a"), IO.pure("b"))._run(Context()), ("a", "b"))

    async def test_both_cancels_other_on_error(self):
        log = []
        io = IO.both(IO.sleep(0.01) >> IO.fail("left failed"), IO.never().on_cancel(mark(log, "right canceled")))
        self.assertEqual(await io.attempt()._run(Context()), Left("left failed"))
        self.assertEqual(log, ["right canceled"])

    async def test_canceling_parent_cancels_children(self):
        log = []
        io = IO.both(IO.never().on_cancel(mark(log, "a")), IO.never().on_cancel(mark(log, "b")))
        fiber = await io.start()._run(Context())
        await asyncio.sleep(0.01)
        await fiber.cancel()._run(Context())
        self.assertEqual(sorted(log), ["a", "b"])

    async def test_par_map_n_runs_concurrently(self):
        # each side waits for the other, so sequential execution would never finish
        ctx = Context()
        d1, d2 = Deferred(), Deferred()
        left = d1.complete("ping") >> d2.get()
        right = d1.get().flat_map(lambda v: d2.complete(v + "/pong").as_(v))
        r = await IO.par_map_n(left, right, lambda a, b: (a, b)).timeout(1)._run(ctx)
        self.assertEqual(r, ("ping/pong", "ping"))

    async def test_par_traverse_keeps_order_and_bounds_concurrency(self):
        ctx = Context()
        active = Ref(0)
        peak = Ref(0)

        def work(i):
            enter = active.update_and_get(lambda n: n + 1).flat_map(lambda n: peak.update(lambda p: max(p, n)))
            leave = active.update(lambda n: n - 1)
            return (enter >> IO.sleep(0.01 * (5 - i)) >> leave).as_(i * i)

        r = await IO.par_traverse(range(5), work, parallelism=2)._run(ctx)
        self.assertEqual(r, [0, 1, 4, 9, 16])
        self.assertEqual(await peak.get()._run(ctx), 2)

    async def test_par_sequence_first_error_cancels_rest(self):
        log = []
        ios = [IO.never().on_cancel(mark(log, "x")), IO.fail("bad"), IO.never().on_cancel(mark(log, "y"))]
        self.assertEqual(await IO.par_sequence(ios).attempt()._run(Context()), Left("bad"))
        self.assertEqual(sorted(log), ["x", "y"])

    async def test_par_sequence_empty(self):
        self.assertEqual(await IO.par_sequence([])._run(Context()), [])
