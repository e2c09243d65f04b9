from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Union


@dataclass(frozen=True)
class Namespace:
    """
    Ordered path of scope labels, e.g. ("api", "orders", "create").

    Not a set: appending keeps order and keeps duplicates.
    """

    segments: tuple[str, ...] = ()

    def __init__(self, segments: Union[Iterable[str], str] = ()) -> None:
        if isinstance(segments, str):
            segments = (segments,)
        object.__setattr__(self, "segments", tuple(str(s) for s in segments))

    @classmethod
    def of(cls, *segments: str) -> "Namespace":
        return cls(segments)

    def append(self, *segments: str) -> "Namespace":
        return Namespace(self.segments + tuple(str(s) for s in segments))

    def __add__(self, other: Union["Namespace", Iterable[str], str]) -> "Namespace":
        if isinstance(other, Namespace):
            return Namespace(self.segments + other.segments)
        if isinstance(other, str):
            return self.append(other)
        try:
            return Namespace(self.segments + tuple(str(s) for s in other))
        except TypeError:
            return NotImplemented

    def __iter__(self) -> Iterator[str]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return ".".join(self.segments)


def as_namespace(value: Union[Namespace, Iterable[str], str, None]) -> Namespace:
    if value is None:
        return Namespace()
    if isinstance(value, Namespace):
        return value
    return Namespace(value)
