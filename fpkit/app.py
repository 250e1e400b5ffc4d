from __future__ import annotations
import asyncio
import sys
from enum import IntEnum
from typing import Any, List, NoReturn, Optional, Sequence

from .io import IO
from .runtime import Runtime


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1


class IOApp:
    """Entry point for a program written as one IO.

    Example:
        ```python
        class Greeter(IOApp):
            def run(self, args):
                return IO.delay(lambda: print("hello", *args)).as_(ExitCode.SUCCESS)

        if __name__ == "__main__":
            Greeter().main()
        ```
    """

    runtime: Optional[Runtime] = None

    def run(self, args: List[str]) -> IO[ExitCode]:
        raise NotImplementedError

    def run_main(self, argv: Optional[Sequence[str]] = None) -> int:
        """Run the program and return its exit code; errors are logged as ``ExitCode.ERROR``."""
        runtime = self.runtime or Runtime.default()
        args = list(sys.argv[1:] if argv is None else argv)

        def failed(e: Any) -> IO[ExitCode]:
            exc = e if isinstance(e, BaseException) else None
            log = IO.logger().flat_map(
                lambda lg: lg.error("application failed", exc=exc, app=type(self).__name__,
                                    **({} if exc is not None else {"error": repr(e)})))
            return log.as_(ExitCode.ERROR)

        program = IO.defer(lambda: self.run(args)).handle_error_with(failed)
        try:
            return int(runtime.run_sync(program))
        except KeyboardInterrupt:
            return 130
        except asyncio.CancelledError:
            runtime.run_sync(IO.logger().flat_map(
                lambda lg: lg.error("application canceled", app=type(self).__name__)))
            return ExitCode.ERROR

    def main(self, argv: Optional[Sequence[str]] = None) -> NoReturn:
        sys.exit(self.run_main(argv))


class SimpleIOApp(IOApp):
    """An IOApp that ignores arguments and exits with SUCCESS unless it fails."""

    def run_simple(self) -> IO[None]:
        raise NotImplementedError

    def run(self, args: List[str]) -> IO[ExitCode]:
        return self.run_simple().as_(ExitCode.SUCCESS)
