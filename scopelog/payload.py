"""
Typed log payloads.

A payload is anything that can:
- project itself into a flat `{str: value}` object (`to_object`)
- say which of its keys are exported at a given verbosity (`payload_keys`)

Two ready-made payload types are provided:
- `SimplePayload` for ad-hoc key/value pairs (`sl("user_id", uid) + sl("tenant", t)`)
- `ModelPayload` for pydantic models (validated schemas attached to log lines)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

from scopelog.errors import PayloadSerializationError
from scopelog.severity import Verbosity


@dataclass(frozen=True)
class _AllKeys:
    def __repr__(self) -> str:
        return "AllKeys"


AllKeys = _AllKeys()


@dataclass(frozen=True)
class SomeKeys:
    keys: frozenset[str] = frozenset()

    def __init__(self, keys: Iterable[str] = ()) -> None:
        object.__setattr__(self, "keys", frozenset(keys))


PayloadSelection = Union[_AllKeys, SomeKeys]


def combine_selections(a: PayloadSelection, b: PayloadSelection) -> PayloadSelection:
    """AllKeys absorbs; SomeKeys union."""
    if isinstance(a, _AllKeys) or isinstance(b, _AllKeys):
        return AllKeys
    return SomeKeys(a.keys | b.keys)


@runtime_checkable
class LogItem(Protocol):
    def to_object(self) -> Mapping[str, Any]:
        ...

    def payload_keys(self, verbosity: Verbosity) -> PayloadSelection:
        ...


def _type_name(obj: Any) -> str:
    return type(obj).__qualname__


def checked_object(item: LogItem) -> dict[str, Any]:
    """
    Call `item.to_object()` and make sure it really is a flat string-keyed mapping.
    """
    obj = item.to_object()
    if not isinstance(obj, Mapping):
        raise PayloadSerializationError(_type_name(item), f"to_object() returned {type(obj).__name__}, not a mapping")
    out: dict[str, Any] = {}
    for k, v in obj.items():
        if not isinstance(k, str):
            raise PayloadSerializationError(_type_name(item), f"non-string key {k!r}")
        out[k] = v
    return out


def resolve_keys(item: LogItem, verbosity: Verbosity, obj: Optional[Mapping[str, Any]] = None) -> frozenset[str]:
    """
    Concrete key set exported by `item` at `verbosity`.

    AllKeys is resolved against the item's *own* object so it can never leak keys
    that belong to other payloads once merged.
    """
    sel = item.payload_keys(verbosity)
    if isinstance(sel, _AllKeys):
        if obj is None:
            obj = checked_object(item)
        return frozenset(obj.keys())
    return sel.keys


def payload_object(item: LogItem, verbosity: Verbosity) -> dict[str, Any]:
    """The item's object, restricted to the keys visible at `verbosity`."""
    obj = checked_object(item)
    keys = resolve_keys(item, verbosity, obj)
    return {k: v for k, v in obj.items() if k in keys}


@dataclass(frozen=True)
class SimplePayload:
    """
    Ad-hoc key/value payload.

    Everything is exported from `min_verbosity` upwards; nothing below it.
    """

    fields: Mapping[str, Any] = field(default_factory=dict)
    min_verbosity: Verbosity = Verbosity.V1

    def to_object(self) -> Mapping[str, Any]:
        for k in self.fields:
            if not isinstance(k, str):
                raise PayloadSerializationError(_type_name(self), f"non-string key {k!r}")
        return dict(self.fields)

    def payload_keys(self, verbosity: Verbosity) -> PayloadSelection:
        if verbosity >= self.min_verbosity:
            return AllKeys
        return SomeKeys()

    def __add__(self, other: "SimplePayload") -> "SimplePayload":
        if not isinstance(other, SimplePayload):
            return NotImplemented
        merged = dict(self.fields)
        merged.update(other.fields)
        return SimplePayload(merged, min(self.min_verbosity, other.min_verbosity))


def sl(key: str, value: Any) -> SimplePayload:
    """Single key/value payload; combine with `+`."""
    return SimplePayload({key: value})


@dataclass(frozen=True)
class ModelPayload:
    """
    A pydantic model attached as a payload.

    `visible` maps a verbosity tier to the keys exported from that tier upwards;
    tiers below the lowest configured one export nothing. Without `visible`,
    every field is exported at every tier.
    """

    model: BaseModel
    visible: Optional[Mapping[Verbosity, frozenset[str]]] = None

    def to_object(self) -> Mapping[str, Any]:
        try:
            return self.model.model_dump(mode="json")
        except PydanticSerializationError as e:
            raise PayloadSerializationError(_type_name(self.model), str(e)) from e

    def payload_keys(self, verbosity: Verbosity) -> PayloadSelection:
        if self.visible is None:
            return AllKeys
        tiers = [v for v in self.visible if v <= verbosity]
        if not tiers:
            return SomeKeys()
        return SomeKeys(self.visible[max(tiers)])


def as_log_item(value: Any) -> LogItem:
    """
    Coerce plain mappings and pydantic models into payloads; pass LogItems through.
    """
    if isinstance(value, LogItem):
        return value
    if isinstance(value, BaseModel):
        return ModelPayload(value)
    if isinstance(value, Mapping):
        return SimplePayload(dict(value))
    raise TypeError(f"cannot use {type(value).__name__} as a log payload")
