"""
Call-site location capture (best-effort).

Location is optional metadata: interpreters without frame introspection yield
`None`, which every entry point accepts.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Loc:
    filename: str
    line: int
    module: str
    function: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.filename, "line": self.line, "module": self.module, "function": self.function}

    def __str__(self) -> str:
        return f"{self.module}:{self.filename}:{self.line}"


def get_loc(stacklevel: int = 1) -> Optional[Loc]:
    """
    Location of the frame `stacklevel` levels above the caller of `get_loc`.

    `stacklevel=1` is the function that called `get_loc`.
    """
    frame = inspect.currentframe()
    if frame is None:
        return None
    try:
        target = frame.f_back
        for _ in range(max(0, stacklevel - 1)):
            if target is None:
                break
            target = target.f_back
        if target is None:
            return None
        code = target.f_code
        return Loc(
            filename=code.co_filename,
            line=target.f_lineno,
            module=str(target.f_globals.get("__name__", "?")),
            function=code.co_name,
        )
    finally:
        # Break the frame reference cycle.
        del frame
