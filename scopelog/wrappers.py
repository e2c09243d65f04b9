"""
Execution wrappers that are transparent to log context.

Each wrapper layers one unrelated execution concern (retry, resource cleanup,
fallback, value accumulation) on top of an inner layer: a `ScopeCarrier`,
`AMBIENT`, or another wrapper. Rules every wrapper follows:
- `get_log_env` / `get_context` / `get_namespace` forward to `inner` unchanged
- `run` executes the body through `inner.run`, so the body sees the same
  ambient scope it would without the wrapper

Wrappers run synchronous callables. Per-run state (retry attempt, open
resources, told values) lives in a `ContextVar`, so one wrapper instance can
be shared between threads and tasks.
"""

from __future__ import annotations

import logging
import random
import time
from contextlib import AbstractContextManager, ExitStack, contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Generic, Iterator, Mapping, Protocol, Sequence, TypeVar, runtime_checkable

from scopelog.contexts import LogContexts
from scopelog.log_env import LogEnv
from scopelog.namespace import Namespace
from scopelog.scope import AmbientContext

T = TypeVar("T")
C = TypeVar("C")
S = TypeVar("S")
W = TypeVar("W")
logger = logging.getLogger(__name__)

# id(wrapper) -> state of that wrapper's innermost active run in this context.
_RUN_STATE: ContextVar[Mapping[int, Any]] = ContextVar("scopelog_wrapper_runs", default={})


@contextmanager
def _active_run(owner: object, state: S) -> Iterator[S]:
    runs = dict(_RUN_STATE.get())
    runs[id(owner)] = state
    token = _RUN_STATE.set(runs)
    try:
        yield state
    finally:
        _RUN_STATE.reset(token)


def _run_state(owner: object, what: str) -> Any:
    try:
        return _RUN_STATE.get()[id(owner)]
    except KeyError:
        raise RuntimeError(f"{what} is only valid while run() is active") from None


@runtime_checkable
class ExecutionLayer(AmbientContext, Protocol):
    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        ...


class ExecutionWrapper:
    """Base class: forwards ambient queries and execution to `inner`."""

    def __init__(self, inner: ExecutionLayer) -> None:
        self.inner = inner

    def get_log_env(self) -> LogEnv:
        return self.inner.get_log_env()

    def get_context(self) -> LogContexts:
        return self.inner.get_context()

    def get_namespace(self) -> Namespace:
        return self.inner.get_namespace()

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return self.inner.run(fn, *args, **kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.inner!r})"


class Identity(ExecutionWrapper):
    pass


class Retrying(ExecutionWrapper):
    """
    Retry the body on `retry_on` exceptions with exponential backoff + full jitter.

    The final failure is re-raised unchanged.
    """

    def __init__(
        self,
        inner: ExecutionLayer,
        *,
        max_attempts: int = 3,
        base_delay_s: float = 0.2,
        max_delay_s: float = 5.0,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(inner)
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = int(max_attempts)
        self.base_delay_s = float(base_delay_s)
        self.max_delay_s = float(max_delay_s)
        self.retry_on = retry_on
        self._sleep = sleep

    def current_attempt(self) -> int:
        """1-based attempt number of the run active in the calling context."""
        return _run_state(self, "current_attempt()")[0]

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        attempt = [1]
        with _active_run(self, attempt):
            while True:
                try:
                    return self.inner.run(fn, *args, **kwargs)
                except self.retry_on:
                    if attempt[0] >= self.max_attempts:
                        raise
                    sleep_s = min(self.max_delay_s, self.base_delay_s * (2 ** (attempt[0] - 1)))
                    logger.info("scopelog.retry iteration=%d sleep_s=%.3f", attempt[0], float(sleep_s))
                    self._sleep(float(random.random() * sleep_s))
                    attempt[0] += 1


class Managed(ExecutionWrapper):
    """
    Resource scope: context managers / callbacks registered while the body runs
    are closed (LIFO) when it returns or raises.
    """

    def enter(self, cm: AbstractContextManager[C]) -> C:
        stack: ExitStack = _run_state(self, "Managed.enter()")
        return stack.enter_context(cm)

    def callback(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        stack: ExitStack = _run_state(self, "Managed.callback()")
        stack.callback(fn, *args, **kwargs)

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with ExitStack() as stack, _active_run(self, stack):
            return self.inner.run(fn, *args, **kwargs)


class Fallback(ExecutionWrapper):
    """
    Choice: run the body; if it raises one of `catch`, try each alternative in
    order (same arguments). The last failure propagates when all fail.
    """

    def __init__(
        self,
        inner: ExecutionLayer,
        alternatives: Sequence[Callable[..., Any]] = (),
        *,
        catch: tuple[type[BaseException], ...] = (Exception,),
    ) -> None:
        super().__init__(inner)
        self.alternatives = tuple(alternatives)
        self.catch = catch

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        *earlier, final = (fn, *self.alternatives)
        for candidate in earlier:
            try:
                return self.inner.run(candidate, *args, **kwargs)
            except self.catch as e:
                logger.debug("scopelog.fallback candidate=%s failed: %r", getattr(candidate, "__name__", candidate), e)
        return self.inner.run(final, *args, **kwargs)


class Accumulating(ExecutionWrapper, Generic[W]):
    """Writer-style layer: the body `tell`s values; they are collected per run."""

    def tell(self, *values: W) -> None:
        out: list[W] = _run_state(self, "tell()")
        out.extend(values)

    def _run_into(self, out: list[W], fn: Callable[..., T], args: tuple, kwargs: dict) -> T:
        with _active_run(self, out):
            return self.inner.run(fn, *args, **kwargs)

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return self._run_into([], fn, args, kwargs)

    def run_collect(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> tuple[T, list[W]]:
        """Run the body; return its result with the values told during this run."""
        out: list[W] = []
        result = self._run_into(out, fn, args, kwargs)
        return result, out


TRANSPARENT_WRAPPERS: tuple[type[ExecutionWrapper], ...] = (Identity, Retrying, Managed, Fallback, Accumulating)
