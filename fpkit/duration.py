from __future__ import annotations
from dataclasses import dataclass
from functools import total_ordering
from typing import Union


@total_ordering
@dataclass(frozen=True)
class Duration:
    """A finite, non-negative span of time, stored in seconds."""

    seconds: float

    def __post_init__(self) -> None:
        if self.seconds < 0:
            raise ValueError(f"Duration must be non-negative, got {self.seconds}")

    @staticmethod
    def seconds_(s: float) -> "Duration":
        return Duration(float(s))

    @staticmethod
    def millis(ms: float) -> "Duration":
        return Duration(float(ms) / 1000.0)

    @staticmethod
    def minutes(m: float) -> "Duration":
        return Duration(float(m) * 60.0)

    @staticmethod
    def hours(h: float) -> "Duration":
        return Duration(float(h) * 3600.0)

    @staticmethod
    def zero() -> "Duration":
        return Duration(0.0)

    @property
    def millis_(self) -> float:
        return self.seconds * 1000.0

    def __add__(self, other: "Duration") -> "Duration":
        return Duration(self.seconds + other.seconds)

    def __sub__(self, other: "Duration") -> "Duration":
        return Duration(max(0.0, self.seconds - other.seconds))

    def __mul__(self, k: float) -> "Duration":
        return Duration(self.seconds * float(k))

    __rmul__ = __mul__

    def __lt__(self, other: "Duration") -> bool:
        return self.seconds < other.seconds

    def __str__(self) -> str:
        s = self.seconds
        if s < 1.0:
            return f"{int(round(s * 1000))}ms"
        if s < 60.0:
            return f"{s:.3f}s"
        m = int(s // 60)
        rem = s - m * 60
        return f"{m}m{rem:.3f}s"


DurationLike = Union[Duration, int, float]


def to_seconds(d: DurationLike) -> float:
    """Accept a Duration or a plain number of seconds."""
    if isinstance(d, Duration):
        return d.seconds
    if d < 0:
        raise ValueError(f"duration must be non-negative, got {d}")
    return float(d)
