# contract_runner/jsonpath.py
"""
Minimal JSON path selection used by expectations and captures.

Accepted forms: ``token``, ``booking.firstname``, ``$.booking.firstname``,
``[0].bookingid``, ``data[2].id`` and ``0.bookingid``. ``$`` or an empty
path selects the whole document.
"""

from __future__ import annotations

import re
from typing import Any, List, Union

_TOKEN_RE = re.compile(r"([^.\[\]]+)|\[(-?\d+)\]")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def split_path(path: str) -> List[Union[str, int]]:
    """Break a path into dict keys (str) and list indexes (int)."""
    p = (path or "").strip()
    if p.startswith("$"):
        p = p[1:]
    parts: List[Union[str, int]] = []
    for m in _TOKEN_RE.finditer(p):
        name, index = m.group(1), m.group(2)
        if index is not None:
            parts.append(int(index))
        else:
            parts.append(name)
    return parts


def select(obj: Any, path: str) -> Any:
    """Return the value at `path`, or MISSING when any segment is absent."""
    cur = obj
    for part in split_path(path):
        if isinstance(cur, list):
            try:
                idx = int(part)
            except (TypeError, ValueError):
                return MISSING
            if idx < -len(cur) or idx >= len(cur):
                return MISSING
            cur = cur[idx]
        elif isinstance(cur, dict):
            if isinstance(part, int):
                part = str(part)
            if part not in cur:
                return MISSING
            cur = cur[part]
        else:
            return MISSING
    return cur


def display_path(path: str) -> str:
    """Normalize a path for messages: always rooted at ``$``."""
    p = (path or "").strip()
    if not p or p == "$":
        return "$"
    if p.startswith("$"):
        return p
    return "$." + p if not p.startswith("[") else "$" + p
