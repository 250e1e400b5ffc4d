from __future__ import annotations
import sys, datetime as _dt, json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TextIO

from .context import Context
from .io import IO


LEVELS = {"TRACE": 5, "DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def level_value(level: str) -> int:
    try:
        return LEVELS[level.upper()]
    except KeyError:
        raise ValueError(f"unknown log level {level!r}; expected one of {', '.join(LEVELS)}") from None


class Logger:
    """Logging capability looked up in the Context under ``Logger``.

    Every method returns an ``IO[None]``: logging is an effect like any
    other and happens when the program runs, not when it is built. Concrete
    loggers only implement :meth:`emit`.
    """

    name: str = "fpkit"
    context: Dict[str, Any]

    def emit(self, level: str, msg: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    def is_enabled(self, level: str) -> bool:
        return True

    def bind(self, **fields: Any) -> "Logger":
        raise NotImplementedError

    def log(self, level: str, msg: str, **fields: Any) -> IO[None]:
        level = level.upper()
        level_value(level)

        async def run(_: Context) -> None:
            if self.is_enabled(level):
                self.emit(level, msg, fields)
        return IO(run)

    def trace(self, msg: str, **fields: Any) -> IO[None]: return self.log("TRACE", msg, **fields)
    def debug(self, msg: str, **fields: Any) -> IO[None]: return self.log("DEBUG", msg, **fields)
    def info(self, msg: str, **fields: Any) -> IO[None]: return self.log("INFO", msg, **fields)
    def warn(self, msg: str, **fields: Any) -> IO[None]: return self.log("WARN", msg, **fields)

    def error(self, msg: str, exc: Optional[BaseException] = None, **fields: Any) -> IO[None]:
        if exc is not None:
            fields["error"] = f"{type(exc).__name__}: {exc}"
        return self.log("ERROR", msg, **fields)


class ConsoleLogger(Logger):
    def __init__(self, name: str = "fpkit", level: str = "INFO", json_output: bool = False,
                 context: Optional[Dict[str, Any]] = None, stream: Optional[TextIO] = None):
        self.name = name
        self.level = level_value(level)
        self.json_output = json_output
        self.context = dict(context or {})
        self.stream = stream

    def set_level(self, level: str) -> None:
        self.level = level_value(level)

    @property
    def level_name(self) -> str:
        for k, v in LEVELS.items():
            if v == self.level: return k
        return "INFO"

    def bind(self, **fields: Any) -> "ConsoleLogger":
        ctx = dict(self.context); ctx.update(fields)
        return ConsoleLogger(self.name, level=self.level_name, json_output=self.json_output, context=ctx, stream=self.stream)

    def is_enabled(self, level: str) -> bool:
        return LEVELS[level] >= self.level

    def emit(self, level: str, msg: str, fields: Dict[str, Any]) -> None:
        out = self.stream if self.stream is not None else sys.stderr
        ts = _dt.datetime.now(_dt.timezone.utc).isoformat()
        all_fields: Dict[str, Any] = {}
        all_fields.update(self.context)
        all_fields.update(fields)
        if self.json_output:
            data: Dict[str, Any] = {"ts": ts, "name": self.name, "level": level, "msg": msg}
            if all_fields:
                data["fields"] = all_fields
            print(json.dumps(data, separators=(",", ":"), default=repr), file=out)
        else:
            extras = "".join(f" {k}={v}" for k, v in sorted(all_fields.items()))
            print(f"[{ts}] {self.name} {level}: {msg}{extras}", file=out)


class NoOpLogger(Logger):
    def __init__(self) -> None:
        self.context = {}

    def is_enabled(self, level: str) -> bool:
        return False

    def emit(self, level: str, msg: str, fields: Dict[str, Any]) -> None:
        return None

    def bind(self, **fields: Any) -> "NoOpLogger":
        return self


@dataclass(frozen=True)
class LogEntry:
    level: str
    msg: str
    fields: Dict[str, Any] = field(default_factory=dict)


class TestingLogger(Logger):
    """Records entries in memory; bound children share the parent's record."""

    __test__ = False

    def __init__(self, name: str = "test", context: Optional[Dict[str, Any]] = None,
                 entries: Optional[List[LogEntry]] = None):
        self.name = name
        self.context = dict(context or {})
        self.entries: List[LogEntry] = entries if entries is not None else []

    def emit(self, level: str, msg: str, fields: Dict[str, Any]) -> None:
        all_fields = dict(self.context); all_fields.update(fields)
        self.entries.append(LogEntry(level, msg, all_fields))

    def bind(self, **fields: Any) -> "TestingLogger":
        ctx = dict(self.context); ctx.update(fields)
        return TestingLogger(self.name, ctx, self.entries)

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [e.msg for e in self.entries if level is None or e.level == level.upper()]


_DEFAULT: Optional[Logger] = None


def from_context(ctx: Context) -> Logger:
    """The context logger, or a process-wide ``ConsoleLogger`` when none is installed."""
    global _DEFAULT
    found = ctx.get_or(Logger, None)
    if found is not None:
        return found
    if _DEFAULT is None:
        _DEFAULT = ConsoleLogger()
    return _DEFAULT
