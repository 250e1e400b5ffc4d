from __future__ import annotations
from typing import Any, Dict, Optional, TypeVar, overload

A = TypeVar("A")
B = TypeVar("B")


class Context:
    """Immutable map from a service type to the capability an IO runs with.

    The runtime hands a Context to every IO it interprets. Interpreters of an
    algebra (a clock, a logger, a file store, ...) are installed under the
    algebra's type, which is how the same program runs against production and
    in-memory implementations.

    Example:
        ```python
        ctx = Context().with_service(Clock, TestClock())
        ctx.get(Clock).now()
        ```
    """

    def __init__(self, values: Dict[type, Any] | None = None):
        self._values = dict(values or {})

    def get(self, t: type[A]) -> A:
        """Service installed under ``t``; ``KeyError`` when there is none."""
        if t not in self._values:
            raise KeyError(f"Missing service: {t.__name__}")
        return self._values[t]

    @overload
    def get_or(self, t: type[A], default: A) -> A: ...
    @overload
    def get_or(self, t: type[A], default: None) -> Optional[A]: ...

    def get_or(self, t: type[A], default: Optional[A]) -> Optional[A]:
        return self._values.get(t, default)

    def add(self, t: type[A], v: A) -> "Context":
        c = dict(self._values); c[t] = v; return Context(c)

    def with_service(self, t: type[A], v: A) -> "Context":
        return self.add(t, v)

    def merge(self, other: "Context") -> "Context":
        """Services of ``other`` win on conflicts."""
        c = dict(self._values); c.update(other._values); return Context(c)

    def __contains__(self, t: object) -> bool:
        return t in self._values

    def __repr__(self) -> str:
        names = ", ".join(sorted(t.__name__ for t in self._values))
        return f"Context({names})"
