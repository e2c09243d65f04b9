"""
Severity and verbosity tiers.

Severity names follow the Cloud Logging set (DEFAULT excluded) so log lines stay
queryable by `severity` downstream. Verbosity is independent of severity: it
only decides which payload keys get exported.
"""

from __future__ import annotations

import logging
from enum import Enum, IntEnum
from typing import Any

from scopelog.errors import ConfigurationError


class Severity(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    NOTICE = "NOTICE"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
    ALERT = "ALERT"
    EMERGENCY = "EMERGENCY"

    @property
    def level(self) -> int:
        return _STDLIB_LEVELS[self]


class Verbosity(IntEnum):
    V0 = 0
    V1 = 1
    V2 = 2
    V3 = 3


_STDLIB_LEVELS: dict[Severity, int] = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.NOTICE: 25,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
    Severity.ALERT: 60,
    Severity.EMERGENCY: 70,
}

_LEVELS_REGISTERED = False


def register_level_names() -> None:
    """Teach stdlib logging the extra level names (NOTICE/ALERT/EMERGENCY). Idempotent."""
    global _LEVELS_REGISTERED
    if _LEVELS_REGISTERED:
        return
    for sev in (Severity.NOTICE, Severity.ALERT, Severity.EMERGENCY):
        logging.addLevelName(sev.level, sev.value)
    _LEVELS_REGISTERED = True


def normalize_severity(level: Severity | str | int | None) -> Severity:
    if isinstance(level, Severity):
        return level
    if isinstance(level, int):
        # Highest severity whose stdlib level does not exceed `level`.
        out = Severity.DEBUG
        for sev, lvl in _STDLIB_LEVELS.items():
            if lvl <= level:
                out = sev
        return out
    s = str(level or "INFO").strip().upper()
    if s in Severity.__members__:
        return Severity[s]
    if s == "WARN":
        return Severity.WARNING
    if s == "FATAL":
        return Severity.CRITICAL
    return Severity.INFO


def parse_verbosity(value: Any) -> Verbosity:
    """
    Accept 0..3, "2", "V2" (case-insensitive) or a Verbosity member.
    """
    if isinstance(value, Verbosity):
        return value
    s = str(value).strip().upper()
    if s.startswith("V"):
        s = s[1:]
    try:
        return Verbosity(int(s))
    except ValueError as e:
        raise ConfigurationError(f"invalid verbosity {value!r}; expected one of 0..3 or V0..V3") from e
