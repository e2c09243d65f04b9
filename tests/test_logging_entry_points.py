from __future__ import annotations

import asyncio

import pytest

from scopelog.errors import PayloadSerializationError
from scopelog.logger import EXCEPTION_MESSAGE_PREFIX, log_exception, log_f, log_guarding_exceptions, log_item, log_loc
from scopelog.location import Loc, get_loc
from scopelog.payload import AllKeys, SimplePayload
from scopelog.scope import ScopeCarrier, add_context, bind_scope
from scopelog.severity import Severity, Verbosity


class TaggedError(Exception):
    def __init__(self, tag: str):
        super().__init__(tag)
        self.tag = tag


class _Broken:
    def to_object(self):
        raise PayloadSerializationError("_Broken", "boom")

    def payload_keys(self, verbosity):
        return AllKeys


def test_log_loc_records_caller_location(log_env):
    with bind_scope(log_env, None, ["app"]):
        log_loc(Severity.WARNING, "here")

    (line,) = log_env.lines
    assert line.location is not None
    assert line.location.filename.endswith("test_logging_entry_points.py")
    assert line.location.module == __name__
    assert line.location.function == "test_log_loc_records_caller_location"
    assert line.severity is Severity.WARNING


def test_log_item_accepts_absent_location(log_env):
    with bind_scope(log_env, {"a": 1}, ["app"]):
        log_item(None, "notice", "no location")
    (line,) = log_env.lines
    assert line.location is None
    assert line.severity is Severity.NOTICE


def test_get_loc_stacklevel_points_at_outer_frames():
    def helper():
        return get_loc(stacklevel=2)

    loc = helper()
    assert isinstance(loc, Loc)
    assert loc.function == "test_get_loc_stacklevel_points_at_outer_frames"


def test_severity_aliases_are_normalized(log_env):
    with bind_scope(log_env):
        log_f("warn", "a")
        log_f("FATAL", "b")
        log_f(40, "c")
        log_f("bogus", "d")
    assert [ln.severity for ln in log_env.lines] == [Severity.WARNING, Severity.CRITICAL, Severity.ERROR, Severity.INFO]


def test_explicit_source_is_used_instead_of_ambient(log_env):
    carrier = ScopeCarrier.root(log_env, {"worker": "w1"}, ["jobs"])
    log_f(Severity.DEBUG, "explicit", source=carrier)
    (line,) = log_env.lines
    assert line.namespace == ["jobs"]
    assert line.context == {"worker": "w1"}


def test_flatten_uses_env_verbosity(log_env):
    log_env.verbosity = Verbosity.V1
    with bind_scope(log_env, {"a": 1}):
        with add_context(SimplePayload({"debug_only": True}, min_verbosity=Verbosity.V3)):
            log_f(Severity.INFO, "x")
    assert log_env.lines[0].context == {"a": 1}


def test_guarded_action_logs_once_and_reraises_same_exception(log_env):
    err = TaggedError("e-42")

    def action():
        raise err

    with bind_scope(log_env, {"reqId": "r1"}, ["app"]):
        with pytest.raises(TaggedError) as ei:
            log_guarding_exceptions(action, Severity.ERROR)

    assert ei.value is err
    assert ei.value.tag == "e-42"
    (line,) = log_env.lines
    assert line.severity is Severity.ERROR
    assert line.message == EXCEPTION_MESSAGE_PREFIX + repr(err)
    assert line.context == {"reqId": "r1"}
    assert line.namespace == ["app"]


def test_guarded_action_returns_result_without_logging(log_env):
    with bind_scope(log_env):
        assert log_guarding_exceptions(lambda x: x * 2, Severity.ERROR, 21) == 42
    assert log_env.lines == []


def test_log_exception_context_manager(log_env):
    with bind_scope(log_env, None, ["app"]):
        with pytest.raises(KeyError):
            with log_exception(Severity.CRITICAL):
                with add_context({"step": "lookup"}):
                    raise KeyError("missing")
    (line,) = log_env.lines
    assert line.severity is Severity.CRITICAL
    assert line.message.startswith("An exception has occurred: KeyError(")
    # Logged after the inner scope unwound.
    assert line.context == {}


@pytest.mark.parametrize("exc", [KeyboardInterrupt(), SystemExit(3)], ids=lambda e: type(e).__name__)
def test_base_exceptions_are_logged_once_and_reraised(exc, log_env):
    def action():
        raise exc

    with bind_scope(log_env, {"job": "j1"}):
        with pytest.raises(type(exc)) as ei:
            log_guarding_exceptions(action)
    assert ei.value is exc
    (line,) = log_env.lines
    assert line.message == EXCEPTION_MESSAGE_PREFIX + repr(exc)
    assert line.context == {"job": "j1"}


def test_cancellation_passes_through_unlogged(log_env):
    with bind_scope(log_env):
        with pytest.raises(asyncio.CancelledError):
            with log_exception():
                raise asyncio.CancelledError()
    assert log_env.lines == []


def test_failed_log_emit_keeps_original_exception(log_env, caplog):
    err = TaggedError("original")

    def action():
        raise err

    with bind_scope(log_env, _Broken(), ["app"]):
        with pytest.raises(TaggedError) as ei:
            log_guarding_exceptions(action)
    assert ei.value is err
    assert log_env.lines == []
    (rec,) = [r for r in caplog.records if r.getMessage() == "scopelog.log_exception.emit_failed"]
    assert rec.name == "scopelog.logger"
    assert isinstance(rec.exc_info[1], PayloadSerializationError)


def test_raising_log_env_keeps_original_exception(log_env, caplog):
    err = TaggedError("original")

    def boom(*_args):
        raise OSError("sink down")

    log_env.emit = boom
    with bind_scope(log_env):
        with pytest.raises(TaggedError) as ei:
            with log_exception():
                raise err
    assert ei.value is err
    assert any(r.getMessage() == "scopelog.log_exception.emit_failed" for r in caplog.records)


@pytest.mark.asyncio
async def test_guarding_coroutines(log_env):
    err = TaggedError("async")

    async def action():
        await asyncio.sleep(0)
        raise err

    with bind_scope(log_env, {"reqId": "r2"}):
        with pytest.raises(TaggedError) as ei:
            await log_guarding_exceptions(action, Severity.ERROR)

    assert ei.value is err
    assert len(log_env.lines) == 1
    assert log_env.lines[0].context == {"reqId": "r2"}
