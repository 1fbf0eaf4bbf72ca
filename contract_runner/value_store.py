# contract_runner/value_store.py
"""
Run-scoped key/value store for captured runtime values (tokens, ids).

Placeholders are resolved against it at send time:

* ``Placeholder("bookingId")`` resolves to the raw stored value;
* a string that is exactly ``"$S{bookingId}"`` does the same (type kept);
* ``"token=$S{authToken}"`` embeds the stringified value;
* ``Literal(...)`` is passed through untouched.

A missing key always raises ``UnresolvedReferenceError``; nothing is ever
substituted with a blank.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterator, Optional, Set

from contract_runner.errors import UnresolvedReferenceError
from contract_runner.types import Literal, Placeholder

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\$S\{\s*([^}\s]+)\s*\}")

_SENSITIVE_HINTS = ("token", "password", "secret", "cookie", "authorization", "session", "jwt")


def stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def is_sensitive_key(key: str) -> bool:
    k = key.lower()
    return any(hint in k for hint in _SENSITIVE_HINTS)


class ValueStore:
    """Mutable key/value table shared by the test cases of one suite run."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(initial or {})

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def set(self, key: str, value: Any) -> None:
        if not key:
            raise ValueError("store key must be a non-empty string")
        if key in self._values:
            logger.debug("Overwriting stored value '%s'", key)
        self._values[key] = value

    def get(self, key: str) -> Any:
        try:
            return self._values[key]
        except KeyError:
            raise UnresolvedReferenceError(key) from None

    def has(self, key: str) -> bool:
        return key in self._values

    def keys(self) -> Set[str]:
        return set(self._values)

    def clear(self) -> None:
        self._values.clear()

    def export(self, redact: bool = True) -> Dict[str, Any]:
        """Snapshot for debugging; sensitive keys are masked unless `redact` is False."""
        if not redact:
            return dict(self._values)
        return {
            k: "[REDACTED]" if is_sensitive_key(k) else v
            for k, v in self._values.items()
        }

    # ==================== Resolution ====================

    def resolve(self, template: Any) -> Any:
        """Deep-substitute every placeholder in `template`."""
        if isinstance(template, Literal):
            return template.value

        if isinstance(template, Placeholder):
            return self.get(template.key)

        if isinstance(template, str):
            whole = TOKEN_RE.fullmatch(template.strip())
            if whole:
                return self.get(whole.group(1))
            return TOKEN_RE.sub(lambda m: stringify(self.get(m.group(1))), template)

        if isinstance(template, dict):
            return {k: self.resolve(v) for k, v in template.items()}

        if isinstance(template, (list, tuple)):
            return [self.resolve(v) for v in template]

        return template

    def __repr__(self) -> str:
        return f"ValueStore(keys={sorted(self._values)})"


def references(template: Any) -> Set[str]:
    """Every store key `template` refers to."""
    found: Set[str] = set()

    def walk(node: Any) -> None:
        if isinstance(node, Literal):
            return
        if isinstance(node, Placeholder):
            found.add(node.key)
        elif isinstance(node, str):
            found.update(m.group(1) for m in TOKEN_RE.finditer(node))
        elif isinstance(node, dict):
            for v in node.values():
                walk(v)
        elif isinstance(node, (list, tuple)):
            for v in node:
                walk(v)

    walk(template)
    return found
