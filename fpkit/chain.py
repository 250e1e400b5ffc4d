from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class Chain(Generic[T]):
    """Persistent sequence with constant-time append, prepend and concat.

    A chain is either a leaf holding a tuple or a concatenation of two
    non-empty chains. Iteration walks the tree with an explicit stack, so
    chains built from many nested appends do not hit the recursion limit.
    """

    __slots__ = ("_leaf", "_left", "_right", "_size")

    def __init__(self, leaf: Tuple[T, ...] = (), left: Optional["Chain[T]"] = None, right: Optional["Chain[T]"] = None):
        self._leaf = leaf
        self._left = left
        self._right = right
        if left is not None and right is not None:
            self._size = left._size + right._size
        else:
            self._size = len(leaf)

    @staticmethod
    def empty() -> "Chain[Any]":
        return _EMPTY

    @staticmethod
    def one(item: T) -> "Chain[T]":
        return Chain((item,))

    @staticmethod
    def of(*items: T) -> "Chain[T]":
        return Chain(tuple(items)) if items else _EMPTY

    @staticmethod
    def from_iterable(items: Iterable[T]) -> "Chain[T]":
        return Chain.of(*items)

    def is_empty(self) -> bool:
        return self._size == 0

    def concat(self, other: "Chain[T]") -> "Chain[T]":
        if other._size == 0:
            return self
        if self._size == 0:
            return other
        return Chain(left=self, right=other)

    def append(self, x: T) -> "Chain[T]":
        return self.concat(Chain((x,)))

    def prepend(self, x: T) -> "Chain[T]":
        return Chain((x,)).concat(self)

    def __add__(self, other: "Chain[T]") -> "Chain[T]":
        return self.concat(other)

    def __iter__(self) -> Iterator[T]:
        stack: List[Chain[T]] = [self]
        while stack:
            node = stack.pop()
            if node._left is None or node._right is None:
                yield from node._leaf
            else:
                stack.append(node._right)
                stack.append(node._left)

    def __len__(self) -> int:
        return self._size

    def to_list(self) -> List[T]:
        return list(self)

    def head_option(self) -> "Option[T]":
        from .option import NONE, Some
        for x in self:
            return Some(x)
        return NONE  # type: ignore[return-value]

    def map(self, f: Callable[[T], U]) -> "Chain[U]":
        return Chain.from_iterable(f(x) for x in self)

    def flat_map(self, f: Callable[[T], "Chain[U]"]) -> "Chain[U]":
        out: List[U] = []
        for x in self:
            out.extend(f(x))
        return Chain.from_iterable(out)

    def filter(self, p: Callable[[T], bool]) -> "Chain[T]":
        return Chain.from_iterable(x for x in self if p(x))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Chain):
            return NotImplemented
        return self._size == other._size and self.to_list() == other.to_list()

    def __hash__(self) -> int:
        return hash(tuple(self))

    def __repr__(self) -> str:
        return "Chain(" + ", ".join(repr(x) for x in self) + ")"


_EMPTY: Chain[Any] = Chain()


@dataclass(frozen=True)
class NonEmptyChain(Generic[T]):
    """A chain with at least one element; the usual carrier for accumulated errors."""

    _chain: Chain[T]

    def __post_init__(self) -> None:
        if self._chain.is_empty():
            raise ValueError("NonEmptyChain cannot be empty")

    @staticmethod
    def one(item: T) -> "NonEmptyChain[T]":
        return NonEmptyChain(Chain.one(item))

    @staticmethod
    def of(head: T, *tail: T) -> "NonEmptyChain[T]":
        return NonEmptyChain(Chain.of(head, *tail))

    @staticmethod
    def from_iterable(items: Iterable[T]) -> "NonEmptyChain[T]":
        return NonEmptyChain(Chain.from_iterable(items))

    @property
    def head(self) -> T:
        return next(iter(self._chain))

    @property
    def tail(self) -> Chain[T]:
        it = iter(self._chain)
        next(it)
        return Chain.from_iterable(it)

    def concat(self, other: "NonEmptyChain[T] | Chain[T]") -> "NonEmptyChain[T]":
        right = other._chain if isinstance(other, NonEmptyChain) else other
        return NonEmptyChain(self._chain.concat(right))

    def __add__(self, other: "NonEmptyChain[T] | Chain[T]") -> "NonEmptyChain[T]":
        return self.concat(other)

    def append(self, x: T) -> "NonEmptyChain[T]":
        return NonEmptyChain(self._chain.append(x))

    def prepend(self, x: T) -> "NonEmptyChain[T]":
        return NonEmptyChain(self._chain.prepend(x))

    def map(self, f: Callable[[T], U]) -> "NonEmptyChain[U]":
        return NonEmptyChain(self._chain.map(f))

    def to_chain(self) -> Chain[T]:
        return self._chain

    def to_list(self) -> List[T]:
        return self._chain.to_list()

    def __iter__(self) -> Iterator[T]:
        return iter(self._chain)

    def __len__(self) -> int:
        return len(self._chain)

    def __repr__(self) -> str:
        return "NonEmptyChain(" + ", ".join(repr(x) for x in self._chain) + ")"


@dataclass(frozen=True)
class NonEmptyList(Generic[T]):
    head: T
    tail: Tuple[T, ...] = ()

    @staticmethod
    def one(item: T) -> "NonEmptyList[T]":
        return NonEmptyList(item)

    @staticmethod
    def of(head: T, *tail: T) -> "NonEmptyList[T]":
        return NonEmptyList(head, tuple(tail))

    @staticmethod
    def from_iterable(items: Iterable[T]) -> "NonEmptyList[T]":
        xs = tuple(items)
        if not xs:
            raise ValueError("NonEmptyList cannot be empty")
        return NonEmptyList(xs[0], xs[1:])

    def concat(self, other: Iterable[T]) -> "NonEmptyList[T]":
        return NonEmptyList(self.head, self.tail + tuple(other))

    def __add__(self, other: Iterable[T]) -> "NonEmptyList[T]":
        return self.concat(other)

    def append(self, x: T) -> "NonEmptyList[T]":
        return NonEmptyList(self.head, self.tail + (x,))

    def map(self, f: Callable[[T], U]) -> "NonEmptyList[U]":
        return NonEmptyList(f(self.head), tuple(f(x) for x in self.tail))

    def to_list(self) -> List[T]:
        return [self.head, *self.tail]

    def __iter__(self) -> Iterator[T]:
        yield self.head
        yield from self.tail

    def __len__(self) -> int:
        return 1 + len(self.tail)

    def __repr__(self) -> str:
        return "NonEmptyList(" + ", ".join(repr(x) for x in self) + ")"
