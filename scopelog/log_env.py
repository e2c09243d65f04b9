"""
The log sink handle.

scopelog never formats or transports log lines itself. A `LogEnv` receives the
fully resolved pieces (flattened payload, namespace, location, severity,
message) and does the I/O. `StdlibLogEnv` hands them to stdlib `logging`, so
handlers/formatters/levels configured there apply unchanged.
"""

from __future__ import annotations

import logging
import os
import socket
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from scopelog.location import Loc
from scopelog.namespace import Namespace
from scopelog.severity import Severity, Verbosity, register_level_names


@runtime_checkable
class LogEnv(Protocol):
    def emit(
        self,
        context: Mapping[str, Any],
        namespace: Namespace,
        location: Optional[Loc],
        severity: Severity,
        message: str,
    ) -> None:
        ...

    def current_verbosity(self) -> Verbosity:
        ...


def _hostname() -> str:
    try:
        return socket.gethostname() or "unknown"
    except OSError:
        return "unknown"


@dataclass(frozen=True)
class StdlibLogEnv:
    """
    Forward log items to `logging.getLogger("<logger_name>.<app...>.<namespace...>")`.

    Structured fields travel on the record (via `extra`):
    - payload: flattened context dict
    - namespace: list of segments (without the app prefix)
    - location: dict or None
    - severity, app, env, host, pid
    """

    app: Namespace = field(default_factory=Namespace)
    env: str = "production"
    verbosity: Verbosity = Verbosity.V2
    logger_name: str = "scopelog"
    host: str = field(default_factory=_hostname)
    pid: int = field(default_factory=os.getpid)

    def __post_init__(self) -> None:
        register_level_names()

    def current_verbosity(self) -> Verbosity:
        return self.verbosity

    def logger_for(self, namespace: Namespace) -> logging.Logger:
        parts = [p for p in (self.logger_name, *self.app, *namespace) if p]
        return logging.getLogger(".".join(parts))

    def emit(
        self,
        context: Mapping[str, Any],
        namespace: Namespace,
        location: Optional[Loc],
        severity: Severity,
        message: str,
    ) -> None:
        lg = self.logger_for(namespace)
        if not lg.isEnabledFor(severity.level):
            return
        lg.log(
            severity.level,
            message,
            extra={
                "payload": dict(context),
                "namespace": list(namespace),
                "location": location.to_dict() if location is not None else None,
                "severity": severity.value,
                "app": list(self.app),
                "env": self.env,
                "host": self.host,
                "pid": self.pid,
            },
        )
