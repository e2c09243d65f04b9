from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import pytest

from scopelog.config import get_settings
from scopelog.location import Loc
from scopelog.namespace import Namespace
from scopelog.scope import reset_default_root
from scopelog.severity import Severity, Verbosity


@dataclass(frozen=True)
class EmittedLine:
    context: dict[str, Any]
    namespace: list[str]
    location: Optional[Loc]
    severity: Severity
    message: str


@dataclass(eq=False)
class RecordingLogEnv:
    """In-memory stand-in for the log sink."""

    verbosity: Verbosity = Verbosity.V3
    lines: list[EmittedLine] = field(default_factory=list)

    def emit(
        self,
        context: Mapping[str, Any],
        namespace: Namespace,
        location: Optional[Loc],
        severity: Severity,
        message: str,
    ) -> None:
        self.lines.append(EmittedLine(dict(context), list(namespace), location, severity, message))

    def current_verbosity(self) -> Verbosity:
        return self.verbosity


@pytest.fixture
def log_env() -> RecordingLogEnv:
    return RecordingLogEnv()


@pytest.fixture(autouse=True)
def _fresh_defaults():
    # Settings / default root are process-wide caches; isolate tests from env changes.
    get_settings.cache_clear()
    reset_default_root()
    yield
    get_settings.cache_clear()
    reset_default_root()
