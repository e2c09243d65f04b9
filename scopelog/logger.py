"""
Logging entry points that pick up payload + namespace automatically.

Every function reads env/contexts/namespace from `source` (an `AmbientContext`,
default: the ambient scope), flattens the contexts at the env's verbosity and
hands the result to `LogEnv.emit`.

    with add_namespace("handler"), add_context({"user_id": uid}):
        log_f(Severity.INFO, "done")
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

from scopelog.contexts import flatten_for_verbosity
from scopelog.location import Loc, get_loc
from scopelog.scope import AMBIENT, AmbientContext
from scopelog.severity import Severity, normalize_severity

T = TypeVar("T")
logger = logging.getLogger(__name__)

EXCEPTION_MESSAGE_PREFIX = "An exception has occurred: "


def log_item(
    loc: Optional[Loc],
    severity: Severity | str | int,
    message: str,
    *,
    source: Optional[AmbientContext] = None,
) -> None:
    """Lowest-level entry point: explicit (optional) location."""
    src = source if source is not None else AMBIENT
    env = src.get_log_env()
    payload = flatten_for_verbosity(src.get_context(), env.current_verbosity())
    env.emit(payload, src.get_namespace(), loc, normalize_severity(severity), str(message))


def log_f(severity: Severity | str | int, message: str, *, source: Optional[AmbientContext] = None) -> None:
    """Log with full context, without a code location."""
    log_item(None, severity, message, source=source)


def log_loc(
    severity: Severity | str | int,
    message: str,
    *,
    source: Optional[AmbientContext] = None,
    stacklevel: int = 1,
) -> None:
    """
    Log with full context and the caller's location (`stacklevel=1` is the
    direct caller). Location is None when frames can't be inspected.
    """
    log_item(get_loc(stacklevel + 1), severity, message, source=source)


def _log_failure(exc: BaseException, severity: Severity | str | int, source: Optional[AmbientContext]) -> None:
    log_f(severity, EXCEPTION_MESSAGE_PREFIX + repr(exc), source=source)


@contextmanager
def log_exception(severity: Severity | str | int = Severity.ERROR, *, source: Optional[AmbientContext] = None) -> Iterator[None]:
    """
    Log any exception raised by the `with` body, then re-raise it unchanged.

    Task cancellation passes through unlogged. A failure while emitting the
    log line never replaces the original exception.
    """
    try:
        yield
    except asyncio.CancelledError:
        raise
    except BaseException as e:
        try:
            _log_failure(e, severity, source)
        except Exception:
            logger.exception("scopelog.log_exception.emit_failed")
        raise


def log_guarding_exceptions(
    action: Callable[..., T],
    severity: Severity | str | int = Severity.ERROR,
    *args: Any,
    source: Optional[AmbientContext] = None,
    **kwargs: Any,
) -> T:
    """Callable form of `log_exception`; coroutine functions return an awaitable."""
    if inspect.iscoroutinefunction(action):

        async def _guarded() -> Any:
            with log_exception(severity, source=source):
                return await action(*args, **kwargs)

        return _guarded()  # type: ignore[return-value]
    with log_exception(severity, source=source):
        return action(*args, **kwargs)
