"""
Heterogeneous sequence of log payloads.

`LogContexts` lets code deep down a call stack add its own payload without
knowing (or caring) what the enclosing scopes already attached. Contexts are a
sequence, and appending puts the new payload on the right-hand side.

On conflicting keys the *right side takes precedence*. That is the opposite of
`dict(a, **b)`-style "first wins" merging people sometimes expect from a
monoid on maps: a scope that sequentially adds a payload intends to overwrite
with the newer value.

Contexts retain every payload ever appended; do not keep appending in an
unbounded loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping

from scopelog.payload import LogItem, PayloadSelection, SomeKeys, as_log_item, checked_object, resolve_keys
from scopelog.severity import Verbosity


@dataclass(frozen=True)
class AnyLogContext:
    """A payload whose concrete type no longer matters once it joins a context."""

    value: LogItem

    def to_object(self) -> dict[str, Any]:
        return checked_object(self.value)

    def visible_object(self, verbosity: Verbosity) -> dict[str, Any]:
        if isinstance(self.value, LogContexts):
            # Nested contexts filter per inner payload, like the outer merge.
            return flatten_for_verbosity(self.value, verbosity)
        obj = self.to_object()
        keys = resolve_keys(self.value, verbosity, obj)
        return {k: v for k, v in obj.items() if k in keys}

    def resolved_keys(self, verbosity: Verbosity) -> frozenset[str]:
        return resolve_keys(self.value, verbosity)


@dataclass(frozen=True)
class LogContexts:
    items: tuple[AnyLogContext, ...] = ()

    @classmethod
    def empty(cls) -> "LogContexts":
        return _EMPTY

    @classmethod
    def of(cls, *payloads: Any) -> "LogContexts":
        return cls(tuple(AnyLogContext(as_log_item(p)) for p in payloads))

    def append(self, value: Any) -> "LogContexts":
        return LogContexts(self.items + (AnyLogContext(as_log_item(value)),))

    def concat(self, other: "LogContexts") -> "LogContexts":
        if not other.items:
            return self
        if not self.items:
            return other
        return LogContexts(self.items + other.items)

    def __add__(self, other: "LogContexts") -> "LogContexts":
        if not isinstance(other, LogContexts):
            return NotImplemented
        return self.concat(other)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[AnyLogContext]:
        return iter(self.items)

    # LogItem: contexts nest inside contexts.

    def to_object(self) -> Mapping[str, Any]:
        out: dict[str, Any] = {}
        for ctx in self.items:
            out.update(ctx.to_object())
        return out

    def payload_keys(self, verbosity: Verbosity) -> PayloadSelection:
        keys: set[str] = set()
        for ctx in self.items:
            keys |= ctx.resolved_keys(verbosity)
        return SomeKeys(keys)

    def flatten(self, verbosity: Verbosity) -> dict[str, Any]:
        return flatten_for_verbosity(self, verbosity)


_EMPTY = LogContexts()


def lift_payload(value: Any) -> LogContexts:
    """Wrap one payload as a single-element context so it can be combined."""
    return LogContexts((AnyLogContext(as_log_item(value)),))


def concat_all(contexts: Iterable[LogContexts]) -> LogContexts:
    out = LogContexts.empty()
    for c in contexts:
        out = out.concat(c)
    return out


def flatten_for_verbosity(ctx: LogContexts, verbosity: Verbosity) -> dict[str, Any]:
    """
    Merge every payload into one object at `verbosity`.

    Per payload, left to right: project to an object, keep only the keys it
    exports at `verbosity` (AllKeys resolved against its own keys), then merge
    so that later payloads overwrite earlier ones.
    """
    out: dict[str, Any] = {}
    for item in ctx.items:
        out.update(item.visible_object(verbosity))
    return out
