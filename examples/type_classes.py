"""
Type classes: Eq, Order, Show, Semigroup and Monoid, plus one of our own.

Run: python examples/type_classes.py
"""
from dataclasses import dataclass

from fpkit import (
    TypeClass, instance, Eq, Order, Show, Monoid, Some, NONE,
    eqv, compare, show, combine, combine_all, combine_all_option,
)


@dataclass(frozen=True)
class Inventory:
    counts: dict


@instance(Inventory)
class InventoryInstances(Eq, Show, Monoid):
    def eqv(self, x, y): return x.counts == y.counts
    def show(self, a): return ", ".join(f"{k}x{v}" for k, v in sorted(a.counts.items())) or "(empty)"
    def empty(self): return Inventory({})
    def combine(self, x, y): return Inventory(combine(x.counts, y.counts))


class Describe(TypeClass, typeclass=True):
    """A custom type class: a one-line description for humans."""

    def describe(self, a) -> str:
        raise NotImplementedError


@instance(int)
class DescribeInt(Describe):
    def describe(self, a): return "nothing" if a == 0 else f"{a} item{'s' if a != 1 else ''}"


@instance(Inventory)
class DescribeInventory(Describe):
    def describe(self, a):
        total = sum(a.counts.values())
        return f"{len(a.counts)} products, {Describe.of(int).describe(total)}"


def main():
    warehouse = [Inventory({"bolt": 40, "nut": 10}), Inventory({"nut": 5}), Inventory({"washer": 100})]
    total = combine_all(warehouse)
    print(show(total))
    print(Describe.for_value(total).describe(total))
    print(show(combine_all([], InventoryInstances())))

    # Eq refuses to compare unrelated types instead of answering False
    print(eqv(Inventory({"nut": 1}), Inventory({"nut": 1})))
    try:
        eqv(1, "1")
    except TypeError as ex:
        print("eqv:", ex)

    by_size = Order.by(lambda inv: sum(inv.counts.values()))
    print(show(by_size.max(warehouse[0], warehouse[2])))
    print(compare("apple", "banana"), sorted(["pear", "fig", "kiwi"], key=len))

    # Monoids compose: an Option of a Monoid is a Monoid
    print(combine(Some([1]), Some([2, 3])), combine(NONE, Some("x")), combine_all_option([]))
    print(Monoid.of(str).combine_all(["fp", "kit"]), Show.for_value(3.5).show(3.5))


if __name__ == "__main__":
    main()
