import unittest

from fpkit import (
    Functor, Applicative, Monad, MonadError, Traverse, Parallel,
    map_n, par_map_n, traverse, sequence, flat_traverse,
    Option, Either, Some, NONE, Left, Right, Valid, Invalid, Try, Success, Chain, NonEmptyList, Eval,
    invalid_nec, NoInstanceError,
)


def parse(s: str):
    return Right(int(s)) if s.isdigit() else Left([f"bad: {s}"])


class TestFunctorApplicative(unittest.TestCase):
    def test_lift_and_map(self):
        inc = Functor.of(list).lift(lambda x: x + 1)
        self.assertEqual(inc([1, 2]), [2, 3])
        self.assertEqual(Functor.of(Option).map(Some(1), str), Some("1"))
        self.assertEqual(Functor.for_value(Right(1)).fproduct(Right(2), lambda x: x * 2), Right((2, 4)))
        self.assertEqual(Functor.of(list).void([1, 2]), [None, None])

    def test_applicative_product_and_ap(self):
        A = Applicative.of(list)
        self.assertEqual(A.product([1, 2], ["a"]), [(1, "a"), (2, "a")])
        self.assertEqual(A.ap([lambda x: x + 1, lambda x: x * 10], [1, 2]), [2, 3, 10, 20])
        self.assertEqual(Applicative.for_value(Some(1)).product_l(Some(1), Some(2)), Some(1))
        self.assertEqual(Applicative.for_value(Some(1)).product_r(Some(1), NONE), NONE)

    def test_replicate_a(self):
        self.assertEqual(Applicative.of(list).replicate_a(2, [0, 1]), [[0, 0], [0, 1], [1, 0], [1, 1]])
        self.assertEqual(Applicative.for_value(Some(1)).replicate_a(3, Some("x")), Some(["x", "x", "x"]))

    def test_map_n_per_instance(self):
        self.assertEqual(map_n(Some(1), Some(2), lambda a, b: a + b), Some(3))
        self.assertIs(map_n(Some(1), NONE, lambda a, b: a + b), NONE)
        self.assertEqual(map_n(Left("a"), Left("b"), lambda a, b: a), Left("a"))
        r = map_n(invalid_nec("a"), invalid_nec("b"), lambda a, b: a)
        self.assertEqual(r.error.to_list(), ["a", "b"])


class TestMonad(unittest.TestCase):
    def test_flatten_and_if_m(self):
        M = Monad.of(list)
        self.assertEqual(M.flatten([[1], [2, 3]]), [1, 2, 3])
        O = Monad.for_value(Some(True))
        self.assertEqual(O.if_m(Some(True), lambda: Some("yes"), lambda: Some("no")), Some("yes"))
        self.assertEqual(O.if_m(Some(False), lambda: Some("yes"), lambda: Some("no")), Some("no"))

    def test_tail_rec_m_is_stack_safe(self):
        def step(n):
            return Right(Left(n - 1)) if n > 0 else Right(Right("done"))

        self.assertEqual(Monad.for_value(Right(0)).tail_rec_m(100000, step), Right("done"))
        self.assertEqual(Monad.of(Eval).tail_rec_m(
            50000, lambda n: Eval.now(Left(n - 1) if n > 0 else Right(n))).value, 0)
        self.assertEqual(Monad.of(list).tail_rec_m(
            3, lambda n: [Left(n - 1), Right(n)] if n > 0 else [Right(0)]), [0, 1, 2, 3])

    def test_monad_laws(self):
        f = lambda x: Some(x + 1)
        g = lambda x: Some(x * 2) if x < 100 else NONE
        M = Monad.for_value(Some(0))
        for a in (0, 5, 99):
            with self.subTest(a=a):
                self.assertEqual(M.flat_map(M.pure(a), f), f(a))
                self.assertEqual(M.flat_map(Some(a), M.pure), Some(a))
                self.assertEqual(M.flat_map(M.flat_map(Some(a), f), g),
                                 M.flat_map(Some(a), lambda x: M.flat_map(f(x), g)))


class TestMonadError(unittest.TestCase):
    def test_either(self):
        ME = MonadError.for_value(Right(1))
        self.assertEqual(ME.attempt(Left("e")), Right(Left("e")))
        self.assertEqual(ME.handle_error(Left("e"), len), Right(1))
        self.assertEqual(ME.redeem(Left("e"), lambda e: 0, lambda a: a), Right(0))
        self.assertEqual(ME.ensure(Right(1), lambda x: x > 1, lambda: "small"), Left("small"))

    def test_try_and_option(self):
        ME = MonadError.of(Try)
        err = ValueError("x")
        self.assertEqual(ME.handle_error_with(ME.raise_error(err), lambda e: Success(str(e))), Success("x"))
        self.assertIs(MonadError.of(Option).raise_error("ignored"), NONE)

    def test_validated_is_not_a_monad(self):
        with self.assertRaises(NoInstanceError):
            Monad.for_value(Valid(1))


class TestTraverse(unittest.TestCase):
    def test_traverse_either_fails_fast(self):
        self.assertEqual(traverse(["1", "2"], parse), Right([1, 2]))
        self.assertEqual(traverse(["1", "x", "y"], parse), Left(["bad: x"]))

    def test_traverse_validated_accumulates(self):
        r = traverse(["1", "x", "y"], lambda s: parse(s).to_validated())
        self.assertEqual(r, Invalid(["bad: x", "bad: y"]))

    def test_traverse_preserves_container(self):
        self.assertEqual(traverse(Chain.of("1", "2"), parse), Right(Chain.of(1, 2)))
        self.assertEqual(traverse(NonEmptyList.of("3"), parse), Right(NonEmptyList.of(3)))
        self.assertEqual(traverse(Some("4"), parse), Right(Some(4)))

    def test_empty_traversal_needs_applicative(self):
        with self.assertRaises(ValueError):
            traverse([], parse)
        self.assertEqual(traverse([], parse, Applicative.of(Either)), Right([]))
        self.assertEqual(traverse(NONE, parse, Applicative.for_value(Right(0))), Right(NONE))

    def test_sequence(self):
        self.assertEqual(sequence([Some(1), Some(2)]), Some([1, 2]))
        self.assertIs(sequence([Some(1), NONE]), NONE)
        self.assertEqual(sequence([[1, 2], [3]]), [[1, 3], [2, 3]])

    def test_flat_traverse(self):
        r = flat_traverse([1, 2], lambda x: Some([x, x]))
        self.assertEqual(r, Some([1, 1, 2, 2]))


class TestParallel(unittest.TestCase):
    def test_either_par_map_n_accumulates(self):
        self.assertEqual(par_map_n(parse("x"), parse("1"), parse("y"), lambda *xs: xs), Left(["bad: x", "bad: y"]))
        self.assertEqual(par_map_n(parse("1"), parse("2"), lambda a, b: a + b), Right(3))
        self.assertTrue(Parallel.has_instance(Right))

    def test_needs_arguments(self):
        with self.assertRaises(TypeError):
            par_map_n(lambda: None)
        with self.assertRaises(TypeError):
            map_n(lambda: None)
