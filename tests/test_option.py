import copy
import unittest

from fpkit import Option, Some, NONE, NoSuchElementError, from_nullable, Left, Right


class TestOption(unittest.TestCase):
    def test_some_and_none(self):
        self.assertIsInstance(Some(1), Option)
        self.assertIsInstance(NONE, Option)
        self.assertTrue(Some(1).is_some())
        self.assertTrue(NONE.is_none())
        self.assertEqual(Some(1), Some(1))
        self.assertNotEqual(Some(1), NONE)

    def test_map_flat_map_filter(self):
        self.assertEqual(Some(2).map(lambda x: x + 1), Some(3))
        self.assertIs(NONE.map(lambda x: x + 1), NONE)
        self.assertIs(Some(2).flat_map(lambda _: NONE), NONE)
        self.assertEqual(Some(2).flat_map(lambda x: Some(x * 5)), Some(10))
        self.assertEqual(Some(4).filter(lambda x: x % 2 == 0), Some(4))
        self.assertIs(Some(3).filter(lambda x: x % 2 == 0), NONE)

    def test_map_is_not_called_on_none(self):
        calls = []
        NONE.map(calls.append)
        self.assertEqual(calls, [])

    def test_fold_and_defaults(self):
        self.assertEqual(Some(2).fold(lambda: 0, lambda x: x * 10), 20)
        self.assertEqual(NONE.fold(lambda: 0, lambda x: x * 10), 0)
        self.assertEqual(NONE.get_or_else(5), 5)
        self.assertEqual(Some(1).get_or_else(5), 1)
        self.assertEqual(NONE.or_else(lambda: Some(2)), Some(2))
        self.assertEqual(Some(1).or_else(lambda: Some(2)), Some(1))

    def test_get_on_none_raises(self):
        self.assertEqual(Some("x").get(), "x")
        with self.assertRaises(NoSuchElementError):
            NONE.get()
        with self.assertRaises(LookupError):
            NONE.get()

    def test_nullable(self):
        self.assertIs(from_nullable(None), NONE)
        self.assertEqual(from_nullable(0), Some(0))
        self.assertTrue(Some(None).is_some())

    def test_predicates(self):
        self.assertTrue(Some(3).contains(3))
        self.assertFalse(NONE.contains(3))
        self.assertTrue(Some(3).exists(lambda x: x > 2))
        self.assertFalse(NONE.exists(lambda x: True))
        self.assertTrue(NONE.for_all(lambda x: False))
        self.assertFalse(Some(1).for_all(lambda x: x > 1))

    def test_conversions(self):
        self.assertEqual(Some(1).to_either(lambda: "missing"), Right(1))
        self.assertEqual(NONE.to_either(lambda: "missing"), Left("missing"))
        self.assertEqual(Some(3).to_list(), [3])
        self.assertEqual(list(NONE), [])
        self.assertEqual([x for x in Some("a")], ["a"])

    def test_when_is_lazy(self):
        self.assertIs(Option.when(False, lambda: 1 / 0), NONE)
        self.assertEqual(Option.when(True, lambda: 1), Some(1))

    def test_none_is_a_singleton(self):
        self.assertIs(copy.deepcopy(NONE), NONE)
        self.assertIs(copy.copy(NONE), NONE)
        self.assertEqual(repr(NONE), "NONE")
