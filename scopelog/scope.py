"""
Scope carriers and the ambient scope.

Design:
- A `ScopeCarrier` bundles {log env, contexts, namespace}; it is immutable.
  Nested scopes derive a new carrier; the caller's carrier never changes.
- The ambient carrier lives in a `ContextVar`, set on scope entry and reset by
  token on exit (normal or exceptional), so scopes nest with stack discipline.
- asyncio tasks copy the ambient carrier when created. Threads/executors start
  empty: hand them a carrier explicitly (`scoped(fn)` / `carrier.bind(fn)`).
- Outside any bound scope, a default root carrier built from `Settings` is used,
  so logging never fails for lack of a scope.
"""

from __future__ import annotations

import functools
import inspect
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Iterator, Optional, Protocol, TypeVar, Union, runtime_checkable

from scopelog.contexts import LogContexts, lift_payload
from scopelog.log_env import LogEnv
from scopelog.namespace import Namespace, as_namespace

T = TypeVar("T")
logger = logging.getLogger(__name__)

NamespaceLike = Union[Namespace, Iterable[str], str, None]


@runtime_checkable
class AmbientContext(Protocol):
    """Anything that can answer "which env / context / namespace am I logging under?"."""

    def get_log_env(self) -> LogEnv:
        ...

    def get_context(self) -> LogContexts:
        ...

    def get_namespace(self) -> Namespace:
        ...


@dataclass(frozen=True)
class ScopeCarrier:
    log_env: LogEnv
    contexts: LogContexts = field(default_factory=LogContexts.empty)
    namespace: Namespace = field(default_factory=Namespace)

    @classmethod
    def root(cls, log_env: LogEnv, payload: Any = None, namespace: NamespaceLike = None) -> "ScopeCarrier":
        contexts = LogContexts.empty() if payload is None else lift_payload(payload)
        return cls(log_env=log_env, contexts=contexts, namespace=as_namespace(namespace))

    # AmbientContext

    def get_log_env(self) -> LogEnv:
        return self.log_env

    def get_context(self) -> LogContexts:
        return self.contexts

    def get_namespace(self) -> Namespace:
        return self.namespace

    # Derivation

    def with_namespace(self, *segments: str) -> "ScopeCarrier":
        return replace(self, namespace=self.namespace.append(*segments))

    def with_context(self, payload: Any) -> "ScopeCarrier":
        return replace(self, contexts=self.contexts.append(payload))

    # Execution

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run `fn` with this carrier as the ambient scope (coroutine functions supported)."""
        return _run_with(self, fn, args, kwargs)

    def bind(self, fn: Callable[..., T]) -> Callable[..., T]:
        """
        Wrap `fn` so that, wherever it is eventually called (another thread, an
        executor, a callback), it runs under this carrier.
        """

        @functools.wraps(fn)
        def _bound(*args: Any, **kwargs: Any) -> T:
            return self.run(fn, *args, **kwargs)

        return _bound


_CURRENT: ContextVar[Optional[ScopeCarrier]] = ContextVar("scopelog_carrier", default=None)
_DEFAULT_ROOT: Optional[ScopeCarrier] = None


def _default_root() -> ScopeCarrier:
    global _DEFAULT_ROOT
    if _DEFAULT_ROOT is None:
        from scopelog.config import apply_log_level, default_log_env  # noqa: WPS433 - avoid import cycle

        # Assign before logging: a filter on the root handler calls back in here.
        root = ScopeCarrier(log_env=default_log_env())
        _DEFAULT_ROOT = root
        apply_log_level()
        logger.debug("scopelog.scope.default_root_created logger=%s", getattr(root.log_env, "logger_name", ""))
        return root
    return _DEFAULT_ROOT


def reset_default_root() -> None:
    """Drop the cached default root (e.g. after settings changed)."""
    global _DEFAULT_ROOT
    _DEFAULT_ROOT = None


def current_carrier() -> ScopeCarrier:
    """Snapshot of the ambient carrier; safe to hand to another thread."""
    c = _CURRENT.get()
    return c if c is not None else _default_root()


def get_log_env() -> LogEnv:
    return current_carrier().log_env


def get_context() -> LogContexts:
    return current_carrier().contexts


def get_namespace() -> Namespace:
    return current_carrier().namespace


class _AmbientScope:
    """`AmbientContext` backed by the contextvar; `run` just calls through."""

    def get_log_env(self) -> LogEnv:
        return get_log_env()

    def get_context(self) -> LogContexts:
        return get_context()

    def get_namespace(self) -> Namespace:
        return get_namespace()

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return fn(*args, **kwargs)

    def __repr__(self) -> str:
        return "AMBIENT"


AMBIENT = _AmbientScope()


@contextmanager
def _installed(carrier: ScopeCarrier) -> Iterator[ScopeCarrier]:
    token = _CURRENT.set(carrier)
    try:
        yield carrier
    finally:
        _CURRENT.reset(token)


def _run_with(carrier: ScopeCarrier, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
    if inspect.iscoroutinefunction(fn):

        async def _scoped_coro() -> Any:
            with _installed(carrier):
                return await fn(*args, **kwargs)

        return _scoped_coro()
    with _installed(carrier):
        return fn(*args, **kwargs)


@contextmanager
def bind_scope(log_env: LogEnv, payload: Any = None, namespace: NamespaceLike = None) -> Iterator[ScopeCarrier]:
    """
    Root of a scope tree: fixes the log env and seeds context/namespace.

    Usage:
        with bind_scope(env, {"request_id": rid}, ["api"]):
            handle(request)
    """
    with _installed(ScopeCarrier.root(log_env, payload, namespace)) as carrier:
        yield carrier


@contextmanager
def add_namespace(*segments: str) -> Iterator[ScopeCarrier]:
    """Extend the ambient namespace for the `with` body."""
    with _installed(current_carrier().with_namespace(*segments)) as carrier:
        yield carrier


@contextmanager
def add_context(payload: Any) -> Iterator[ScopeCarrier]:
    """Append a payload to the ambient contexts for the `with` body."""
    with _installed(current_carrier().with_context(payload)) as carrier:
        yield carrier


def run_scope(
    log_env: LogEnv,
    payload: Any,
    namespace: NamespaceLike,
    fn: Callable[..., T],
    *args: Any,
    **kwargs: Any,
) -> T:
    return ScopeCarrier.root(log_env, payload, namespace).run(fn, *args, **kwargs)


def with_added_namespace(segments: NamespaceLike, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    ns = as_namespace(segments)
    return current_carrier().with_namespace(*ns).run(fn, *args, **kwargs)


def with_added_context(payload: Any, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    return current_carrier().with_context(payload).run(fn, *args, **kwargs)


def scoped(fn: Callable[..., T]) -> Callable[..., T]:
    """Capture the ambient carrier *now* for `fn` to run under later (thread/executor handoff)."""
    return current_carrier().bind(fn)
