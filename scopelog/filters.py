"""
Ambient context for plain `logging` calls.

Code that logs through `logging.getLogger(...).info(...)` instead of the
scopelog entry points can still carry the ambient payload/namespace: install
`AmbientContextFilter` on the handlers that format records.

Fields added (never overwriting attributes already on the record, e.g. from
`StdlibLogEnv.emit`):
- payload: flattened ambient contexts
- namespace: list of ambient namespace segments
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from scopelog.contexts import flatten_for_verbosity
from scopelog.errors import PayloadSerializationError
from scopelog.scope import AMBIENT, AmbientContext
from scopelog.severity import Verbosity


class AmbientContextFilter(logging.Filter):
    def __init__(self, *, verbosity: Optional[Verbosity] = None, source: Optional[AmbientContext] = None) -> None:
        super().__init__(name="")
        self._verbosity = verbosity
        self._source = source if source is not None else AMBIENT

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (filter is required name)
        if not hasattr(record, "payload"):
            verbosity = self._verbosity
            if verbosity is None:
                verbosity = self._source.get_log_env().current_verbosity()
            try:
                record.payload = flatten_for_verbosity(self._source.get_context(), verbosity)
            except PayloadSerializationError as e:
                # A broken payload must not take the log line down with it.
                record.payload = {}
                record.payload_error = str(e)
        if not hasattr(record, "namespace"):
            record.namespace = list(self._source.get_namespace())
        return True


def install_ambient_context_filter(
    target: Union[logging.Handler, logging.Logger, None] = None,
    *,
    verbosity: Optional[Verbosity] = None,
) -> AmbientContextFilter:
    """
    Attach an `AmbientContextFilter`.

    - Handler: filter that handler
    - Logger: filter records logged directly on it (not ones propagated from children)
    - None: every handler currently on the root logger

    Idempotent per target.
    """
    flt = AmbientContextFilter(verbosity=verbosity)
    if target is None:
        targets: list[Union[logging.Handler, logging.Logger]] = list(logging.getLogger().handlers)
    else:
        targets = [target]
    for t in targets:
        if any(isinstance(f, AmbientContextFilter) for f in t.filters):
            continue
        t.addFilter(flt)
    return flt
