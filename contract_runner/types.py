# contract_runner/types.py
"""
Shared types, enums, and dataclasses for the contract runner.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from contract_runner.errors import FailureDetail


# ==================== Placeholders ====================

@dataclass(frozen=True)
class Placeholder:
    """Reference to a value in the store, resolved at send time."""
    key: str

    def __str__(self) -> str:
        return f"$S{{{self.key}}}"


@dataclass(frozen=True)
class Literal:
    """Value sent as-is; never scanned for placeholder tokens."""
    value: Any


# ==================== Request ====================

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


@dataclass(frozen=True)
class RequestSpec:
    """Declarative description of one HTTP request."""
    method: str
    url_template: str
    path_params: Dict[str, Any] = field(default_factory=dict)
    query_params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, Any] = field(default_factory=dict)
    body: Any = None
    timeout_s: Optional[float] = None


@dataclass(frozen=True)
class ResolvedRequest:
    """Request with every placeholder substituted, ready for the transport."""
    method: str
    url: str
    params: List[Tuple[str, str]] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)
    json_body: Any = None
    timeout_s: Optional[float] = None


@dataclass
class Response:
    """What the transport hands back: status, headers, parsed body.

    `body` holds the decoded JSON when `is_json` is set, otherwise None.
    """
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    text: str = ""
    is_json: bool = False
    elapsed_ms: Optional[int] = None

    def header(self, name: str) -> Optional[str]:
        lname = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lname:
                return v
        return None


# ==================== Expectations ====================

@dataclass(frozen=True)
class StatusCode:
    code: int


@dataclass(frozen=True)
class JsonSchema:
    schema: Dict[str, Any]


@dataclass(frozen=True)
class JsonLike:
    value: Any
    path: Optional[str] = None


@dataclass(frozen=True)
class JsonArrayLength:
    length: int
    path: Optional[str] = None


@dataclass(frozen=True)
class HeaderEquals:
    name: str
    value: str


@dataclass(frozen=True)
class ResponseTimeBelow:
    ms: int


Expectation = Union[StatusCode, JsonSchema, JsonLike, JsonArrayLength, HeaderEquals, ResponseTimeBelow]


# ==================== Captures & cases ====================

@dataclass(frozen=True)
class CaptureRule:
    """Copy `source` out of a response into the store under `store_key`.

    `source` is a JSON path into the body, `header.<Name>`, or `$status`.
    """
    source: str
    store_key: str


@dataclass(frozen=True)
class TestCase:
    """One request, its expectations and what it captures."""
    __test__ = False

    name: str
    spec: RequestSpec
    expectations: Tuple[Expectation, ...] = ()
    captures: Tuple[CaptureRule, ...] = ()
    setup_deps: FrozenSet[str] = frozenset()

    @property
    def expected_status(self) -> Optional[int]:
        for exp in self.expectations:
            if isinstance(exp, StatusCode):
                return exp.code
        return None

    @property
    def captured_keys(self) -> FrozenSet[str]:
        return frozenset(rule.store_key for rule in self.captures)


@dataclass
class Suite:
    """Ordered test cases sharing one store and one setup/teardown pair."""
    name: str
    cases: List[TestCase] = field(default_factory=list)
    setup: Optional[TestCase] = None
    base_url: str = ""
    default_headers: Dict[str, str] = field(default_factory=dict)
    timeout_s: Optional[float] = None


# ==================== Results ====================

class CaseStatus(str, Enum):
    """Outcome of a test case"""
    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"


@dataclass
class TestResult:
    """Outcome of one test case."""
    __test__ = False

    name: str
    status: CaseStatus
    failures: List[FailureDetail] = field(default_factory=list)
    method: Optional[str] = None
    url: Optional[str] = None
    status_code: Optional[int] = None
    elapsed_ms: Optional[int] = None

    @property
    def passed(self) -> bool:
        return self.status == CaseStatus.PASS

    def failure_kinds(self) -> List[str]:
        return [f.kind for f in self.failures]

    def to_dict(self) -> Dict[str, Any]:
        return {
            **asdict(self),
            "status": self.status.value,
            "passed": self.passed,
            "failures": [f.to_dict() for f in self.failures],
        }


@dataclass
class SuiteResult:
    """Aggregated outcome of a suite run."""
    suite_name: str
    results: List[TestResult] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    finished_at: Optional[str] = None
    setup: Optional[TestResult] = None
    fatal: Optional[FailureDetail] = None

    @property
    def passed(self) -> bool:
        return self.fatal is None and all(r.passed for r in self.results)

    def result(self, name: str) -> TestResult:
        for r in self.results:
            if r.name == name:
                return r
        raise KeyError(name)

    def summary(self) -> Dict[str, int]:
        return {
            "total": len(self.results),
            "passed": sum(1 for r in self.results if r.status == CaseStatus.PASS),
            "failed": sum(1 for r in self.results if r.status == CaseStatus.FAIL),
            "errors": sum(1 for r in self.results if r.status == CaseStatus.ERROR),
            "skipped": sum(1 for r in self.results if r.status == CaseStatus.SKIPPED),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suite_name": self.suite_name,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "passed": self.passed,
            "setup": self.setup.to_dict() if self.setup else None,
            "fatal": self.fatal.to_dict() if self.fatal else None,
            "summary": self.summary(),
            "results": [r.to_dict() for r in self.results],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)
