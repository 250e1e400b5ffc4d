"""
Eval: choosing when a pure computation runs, and running deep recursion safely.

Run: python examples/lazy_eval.py
"""
from fpkit import Eval, do


def collatz_steps(n: int, steps: int = 0) -> Eval[int]:
    if n == 1:
        return Eval.now(steps)
    nxt = n // 2 if n % 2 == 0 else 3 * n + 1
    return Eval.defer(lambda: collatz_steps(nxt, steps + 1))


def depth(n: int) -> Eval[int]:
    # non tail-recursive: each level adds one after the level below returns
    return Eval.now(0) if n == 0 else Eval.defer(lambda: depth(n - 1)).map(lambda d: d + 1)


def main():
    loads = []

    def load_table():
        loads.append("loaded")
        return {"eur": 1.0, "usd": 1.08}

    rates = Eval.later(load_table)
    in_usd = rates.map(lambda t: round(250 * t["usd"], 2))
    print(loads, in_usd.value, in_usd.value, loads)

    ticks = []
    sample = Eval.always(lambda: ticks.append(1) or len(ticks))
    print(sample.value, sample.value, sample.memoize().value)

    print(collatz_steps(27).value, depth(100_000).value)

    @do(Eval)
    def invoice_total():
        table = yield rates
        net = yield Eval.now(120.0)
        return round(net * table["usd"] * 1.2, 2)

    print(invoice_total().value)


if __name__ == "__main__":
    main()
