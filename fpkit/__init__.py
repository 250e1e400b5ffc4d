from .option import Option, Some, NONE, NoSuchElementError, from_nullable
from .either import Either, Left, Right
from .trial import Try, Success, Failed
from .chain import Chain, NonEmptyChain, NonEmptyList
from .validated import (
    Validated,
    Valid,
    Invalid,
    valid,
    invalid,
    valid_nec,
    invalid_nec,
    invalid_nel,
)
from .typeclass import TypeClass, NoInstanceError, instance, register, summon
from .kernel import (
    Eq,
    Order,
    Show,
    Semigroup,
    Monoid,
    eqv,
    neqv,
    compare,
    show,
    combine,
    combine_n,
    combine_all,
    combine_all_option,
)
from .functor import (
    Functor,
    Applicative,
    Monad,
    MonadError,
    Traverse,
    Parallel,
    map_n,
    par_map_n,
    traverse,
    sequence,
    flat_traverse,
)
from .eval import Eval
from .do import do
from .context import Context
from .duration import Duration
from .clock import Clock, TestClock
from .outcome import Outcome, Succeeded, Errored, Canceled
from .io import IO, Failure, Fiber, Poll
from .logger import Logger, ConsoleLogger, NoOpLogger, TestingLogger, LogEntry
from .config import RuntimeConfig, ConfigError
from .scope import Scope
from .resource import Resource
from .ref import Ref
from .deferred import Deferred
from .queue import Queue
from .retry import (
    RetryPolicy,
    RetryStatus,
    RetryDetails,
    PolicyDecision,
    retrying_on_all_errors,
    retrying_on_some_errors,
    retrying_on_failures,
    log_retry,
)
from .runtime import Runtime
from .app import IOApp, SimpleIOApp, ExitCode
from .anyio_runtime import AnyIORuntime, AnyIOFiber
