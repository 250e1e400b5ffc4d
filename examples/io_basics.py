"""
IO basics: describing effects, composing them, handling errors, running them.

Run: python examples/io_basics.py
"""
from fpkit import IO, Runtime, RuntimeConfig, do, Left, Right


class StockError(Exception):
    pass


STOCK = {"kettle": 3, "toaster": 0}


def reserve(item: str, qty: int) -> IO[int]:
    def take():
        available = STOCK.get(item)
        if available is None:
            raise KeyError(item)
        if available < qty:
            raise StockError(f"only {available} {item} left")
        STOCK[item] = available - qty
        return STOCK[item]
    return IO.delay(take)


@do(IO)
def place_order(item: str, qty: int):
    log = yield IO.logger()
    yield log.info("reserving", item=item, qty=qty)
    left = yield reserve(item, qty)
    yield log.info("reserved", item=item, remaining=left)
    return f"order for {qty} {item}"


def main():
    runtime = Runtime.from_config(RuntimeConfig(log_level="INFO"))

    # Nothing happens until the runtime interprets the description
    program = place_order("kettle", 2)
    print(runtime.run_sync(program))

    # Errors are values once attempted; typed errors travel alongside exceptions
    for item, qty in (("kettle", 5), ("teapot", 1)):
        result = runtime.run_sync(place_order(item, qty).attempt())
        print(result.fold(lambda e: f"failed: {e!r}", lambda ok: ok))

    fallback = place_order("toaster", 1).handle_error(lambda e: f"back-ordered ({e})")
    print(runtime.run_sync(fallback))

    typed = IO.fail({"code": "OUT_OF_STOCK"}).redeem(lambda e: e["code"], lambda v: v)
    print(runtime.run_sync(typed))

    # Composition and concurrency
    pair = IO.pure(2).map2(IO.delay(lambda: STOCK["kettle"]), lambda a, b: a + b)
    print(runtime.run_sync(pair), runtime.run_sync(IO.both(IO.pure(Left("l")), IO.pure(Right("r")))))
    print(runtime.run_sync(IO.sleep(0.05).as_("done").timed()))
    print(runtime.run_timed(IO.never(), 0.05))


if __name__ == "__main__":
    main()
