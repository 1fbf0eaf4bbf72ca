# contract_runner/errors.py
"""
Error taxonomy for contract runs.

Every error carries enough structured detail (expected vs actual, path) to
render a diagnostic without re-running the request. Assertion failures are
collected per test case; the rest are raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional


@dataclass
class FailureDetail:
    """Renderable description of one failure inside a test case."""
    kind: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class ContractError(Exception):
    """Base exception for contract runner errors."""

    def details(self) -> Dict[str, Any]:
        return {}

    def to_detail(self) -> FailureDetail:
        return FailureDetail(
            kind=type(self).__name__,
            message=str(self),
            details=self.details(),
        )


class UnresolvedReferenceError(ContractError):
    """Raised when a placeholder refers to a key that was never captured."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"no value captured for '{key}'")

    def details(self) -> Dict[str, Any]:
        return {"key": self.key}


class SpecBuildError(ContractError):
    """Raised when a request template cannot be turned into a request."""

    def __init__(self, message: str, template: Optional[str] = None):
        self.template = template
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        return {"template": self.template}


# ==================== Assertion failures ====================

class ExpectationFailure(ContractError):
    """Base class for a single failed expectation."""


class StatusMismatch(ExpectationFailure):
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"status {actual} != {expected}")

    def details(self) -> Dict[str, Any]:
        return {"expected": self.expected, "actual": self.actual}


class SchemaViolation(ExpectationFailure):
    def __init__(self, path: str, expected_type: Any, actual_type: str, reason: Optional[str] = None):
        self.path = path
        self.expected_type = expected_type
        self.actual_type = actual_type
        self.reason = reason
        msg = f"{path}: expected {expected_type}, got {actual_type}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)

    def details(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "expected_type": self.expected_type,
            "actual_type": self.actual_type,
        }


class JsonMismatch(ExpectationFailure):
    def __init__(self, path: str, expected: Any, actual: Any, reason: Optional[str] = None):
        self.path = path
        self.expected = expected
        self.actual = actual
        self.reason = reason
        msg = f"{path}: expected {expected!r}, got {actual!r}"
        if reason:
            msg = f"{path}: {reason}"
        super().__init__(msg)

    def details(self) -> Dict[str, Any]:
        return {"path": self.path, "expected": self.expected, "actual": self.actual}


class LengthMismatch(ExpectationFailure):
    def __init__(self, expected: int, actual: Optional[int], path: str = "$"):
        self.expected = expected
        self.actual = actual
        self.path = path
        if actual is None:
            msg = f"{path}: expected array of length {expected}, got non-array"
        else:
            msg = f"{path}: array length {actual} != {expected}"
        super().__init__(msg)

    def details(self) -> Dict[str, Any]:
        return {"expected": self.expected, "actual": self.actual, "path": self.path}


class HeaderMismatch(ExpectationFailure):
    def __init__(self, name: str, expected: str, actual: Optional[str]):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(f"header {name} != {expected!r} (got {actual!r})")

    def details(self) -> Dict[str, Any]:
        return {"name": self.name, "expected": self.expected, "actual": self.actual}


class SlowResponse(ExpectationFailure):
    def __init__(self, limit_ms: int, elapsed_ms: int):
        self.limit_ms = limit_ms
        self.elapsed_ms = elapsed_ms
        super().__init__(f"slow response: {elapsed_ms}ms > {limit_ms}ms")

    def details(self) -> Dict[str, Any]:
        return {"expected": self.limit_ms, "actual": self.elapsed_ms}


# ==================== Capture / transport ====================

class CaptureFieldMissing(ContractError):
    def __init__(self, path: str, store_key: Optional[str] = None):
        self.path = path
        self.store_key = store_key
        super().__init__(f"nothing to capture at '{path}'")

    def details(self) -> Dict[str, Any]:
        return {"path": self.path, "store_key": self.store_key}


class RequestTimeout(ContractError):
    def __init__(self, method: str, url: str, timeout_s: float):
        self.method = method
        self.url = url
        self.timeout_s = timeout_s
        super().__init__(f"{method} {url} timed out after {timeout_s}s")

    def details(self) -> Dict[str, Any]:
        return {"method": self.method, "url": self.url, "timeout_s": self.timeout_s}


class TransportError(ContractError):
    """Network-level failure passed through from the HTTP client."""

    def __init__(self, method: str, url: str, original_error: Exception):
        self.method = method
        self.url = url
        self.original_error = original_error
        super().__init__(f"{method} {url} failed: {original_error!r}")

    def details(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "error_type": type(self.original_error).__name__,
        }


def unexpected_failure(exc: Exception) -> FailureDetail:
    """Wrap an exception that is not part of the taxonomy."""
    return FailureDetail(
        kind="UnexpectedError",
        message=str(exc),
        details={"error_type": type(exc).__name__},
    )
