"""
Functor, Applicative, Monad and Traverse across the built-in containers.

Run: python examples/functor_hierarchy.py
"""
from fpkit import (
    Functor, Applicative, Monad, Some, NONE, Right, Left, Chain, NonEmptyList,
    map_n, traverse, sequence, flat_traverse, do,
)


def parse_port(raw: str):
    return Right(int(raw)) if raw.isdigit() and 0 < int(raw) < 65536 else Left(f"bad port {raw!r}")


def main():
    # Functor: one pure function, one container
    double = Functor.of(list).lift(lambda x: x * 2)
    print(double([1, 2, 3]), Functor.for_value(Some(4)).map(Some(4), str))

    # Applicative: independent values combined with a pure function
    print(map_n(Some("db.local"), Some(5432), lambda host, port: f"{host}:{port}"))
    print(map_n(Some("db.local"), NONE, lambda host, port: f"{host}:{port}"))
    sizes, colors = ["S", "M"], ["red", "blue"]
    print(Applicative.of(list).product(sizes, colors))

    # Monad: each step depends on the previous one
    M = Monad.for_value(Right(0))
    print(M.flat_map(parse_port("8080"), lambda p: Right(p + 1)))
    print(M.tail_rec_m(1, lambda n: Right(Left(n * 3) if n < 1000 else Right(n))))

    @do
    def endpoint(host, raw_port):
        port = yield parse_port(raw_port)
        name = yield Right(host.strip()) if host.strip() else Left("empty host")
        return f"http://{name}:{port}"

    print(endpoint(" api ", "8443"), endpoint("api", "99999"))

    # Traverse: an effectful function over every element
    print(traverse(["80", "443"], parse_port))
    print(traverse(["80", "http", "ssh"], parse_port))
    print(traverse(Chain.of("1", "2"), parse_port), traverse(NonEmptyList.of("22"), parse_port))
    print(sequence([Some(1), Some(2)]), sequence([Some(1), NONE]))
    print(flat_traverse(["a", "b"], lambda s: Some([s, s.upper()])))


if __name__ == "__main__":
    main()
