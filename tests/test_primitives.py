import asyncio
import unittest

from fpkit import IO, Context, Ref, Deferred, Queue, Some, NONE


class TestRef(unittest.IsolatedAsyncioTestCase):
    async def test_get_set_update(self):
        ctx = Context()
        ref = await Ref.of(1)._run(ctx)
        await ref.set(5)._run(ctx)
        await ref.update(lambda x: x * 2)._run(ctx)
        self.assertEqual(await ref.get()._run(ctx), 10)
        self.assertEqual(repr(ref), "Ref(10)")

    async def test_modify_returns_result(self):
        ctx = Context()
        ref = Ref([1, 2, 3])
        head = await ref.modify(lambda xs: (xs[1:], xs[0]))._run(ctx)
        self.assertEqual(head, 1)
        self.assertEqual(await ref.get()._run(ctx), [2, 3])

    async def test_get_and_update_family(self):
        ctx = Context()
        ref = Ref(1)
        self.assertEqual(await ref.get_and_set(2)._run(ctx), 1)
        self.assertEqual(await ref.get_and_update(lambda x: x + 10)._run(ctx), 2)
        self.assertEqual(await ref.update_and_get(lambda x: x + 100)._run(ctx), 112)

    async def test_concurrent_updates_are_not_lost(self):
        ctx = Context()
        ref = Ref(0)
        incr = ref.update(lambda x: x + 1)
        await IO.par_traverse(range(200), lambda _: IO.cede() >> incr)._run(ctx)
        self.assertEqual(await ref.get()._run(ctx), 200)


class TestDeferred(unittest.IsolatedAsyncioTestCase):
    async def test_get_waits_for_completion(self):
        ctx = Context()
        d = await Deferred.of()._run(ctx)
        waiters = [await d.get().start()._run(ctx) for _ in range(3)]
        await asyncio.sleep(0)
        self.assertFalse(any(w.is_done() for w in waiters))
        self.assertIs(await d.try_get()._run(ctx), NONE)
        self.assertTrue(await d.complete("v")._run(ctx))
        for w in waiters:
            self.assertEqual(await w.join_with(IO.pure(None))._run(ctx), "v")

    async def test_completes_only_once(self):
        ctx = Context()
        d = Deferred()
        self.assertTrue(await d.complete(1)._run(ctx))
        self.assertFalse(await d.complete(2)._run(ctx))
        self.assertEqual(await d.get()._run(ctx), 1)
        self.assertEqual(await d.try_get()._run(ctx), Some(1))
        self.assertTrue(d.done())

    async def test_canceled_waiter_is_forgotten(self):
        ctx = Context()
        d = Deferred()
        w = await d.get().start()._run(ctx)
        await asyncio.sleep(0)
        await w.cancel()._run(ctx)
        self.assertTrue(await d.complete(1)._run(ctx))
        self.assertTrue((await w.join()._run(ctx)).is_canceled())


class TestQueue(unittest.IsolatedAsyncioTestCase):
    async def test_fifo(self):
        ctx = Context()
        q = await Queue.unbounded()._run(ctx)
        await (q.offer(1) >> q.offer(2) >> q.offer(3))._run(ctx)
        self.assertEqual(await q.size()._run(ctx), 3)
        self.assertEqual(await q.take().replicate(3)._run(ctx), [1, 2, 3])

    async def test_take_waits_for_offer(self):
        ctx = Context()
        q = Queue()
        taker = await q.take().start()._run(ctx)
        await asyncio.sleep(0)
        self.assertFalse(taker.is_done())
        await q.offer("x")._run(ctx)
        self.assertEqual(await taker.join_with(IO.pure(None))._run(ctx), "x")

    async def test_bounded_offer_waits_for_room(self):
        ctx = Context()
        q = await Queue.bounded(1)._run(ctx)
        await q.offer(1)._run(ctx)
        self.assertFalse(await q.try_offer(2)._run(ctx))
        offerer = await q.offer(2).start()._run(ctx)
        await asyncio.sleep(0.01)
        self.assertFalse(offerer.is_done())
        self.assertEqual(await q.take()._run(ctx), 1)
        await offerer.join()._run(ctx)
        self.assertEqual(await q.take_all()._run(ctx), [2])

    async def test_dropping(self):
        ctx = Context()
        q = await Queue.dropping(2)._run(ctx)
        await IO.traverse(range(5), q.offer)._run(ctx)
        self.assertEqual(await q.take_all()._run(ctx), [0, 1])

    async def test_try_take(self):
        ctx = Context()
        q = Queue(capacity=3)
        self.assertIs(await q.try_take()._run(ctx), NONE)
        self.assertTrue(await q.try_offer("a")._run(ctx))
        self.assertEqual(await q.try_take()._run(ctx), Some("a"))

    async def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            Queue(capacity=0)

    async def test_producer_consumer(self):
        ctx = Context()
        q = Queue(capacity=2)
        producer = IO.traverse(range(10), q.offer)
        consumer = q.take().replicate(10)
        _, got = await IO.both(producer, consumer)._run(ctx)
        self.assertEqual(got, list(range(10)))
