# contract_runner/__init__.py
"""
Contract runner: declarative, stateful HTTP contract tests.

Build cases with ``spec()``, group them in a ``Suite`` and hand the suite to
a ``SuiteRunner`` with a transport.
"""

from contract_runner.capture import CaptureEngine
from contract_runner.config import Settings, get_settings, setup_logging
from contract_runner.errors import (
    CaptureFieldMissing,
    ContractError,
    ExpectationFailure,
    FailureDetail,
    HeaderMismatch,
    JsonMismatch,
    LengthMismatch,
    RequestTimeout,
    SchemaViolation,
    SlowResponse,
    SpecBuildError,
    StatusMismatch,
    TransportError,
    UnresolvedReferenceError,
)
from contract_runner.expectations import ExpectationEngine, SchemaValidator, match_json_like
from contract_runner.orchestrator import SuiteRunner, check_order
from contract_runner.reporter import CollectingReporter, LoggingReporter, Reporter
from contract_runner.request_builder import RequestBuilder, build_request, spec
from contract_runner.transport import HttpxTransport, Transport
from contract_runner.types import (
    CaptureRule,
    CaseStatus,
    HeaderEquals,
    JsonArrayLength,
    JsonLike,
    JsonSchema,
    Literal,
    Placeholder,
    RequestSpec,
    ResolvedRequest,
    Response,
    ResponseTimeBelow,
    StatusCode,
    Suite,
    SuiteResult,
    TestCase,
    TestResult,
)
from contract_runner.value_store import ValueStore

__all__ = [
    "CaptureEngine",
    "CaptureFieldMissing",
    "CaptureRule",
    "CaseStatus",
    "CollectingReporter",
    "ContractError",
    "ExpectationEngine",
    "ExpectationFailure",
    "FailureDetail",
    "HeaderEquals",
    "HeaderMismatch",
    "HttpxTransport",
    "JsonArrayLength",
    "JsonLike",
    "JsonMismatch",
    "JsonSchema",
    "LengthMismatch",
    "Literal",
    "LoggingReporter",
    "Placeholder",
    "Reporter",
    "RequestBuilder",
    "RequestSpec",
    "RequestTimeout",
    "ResolvedRequest",
    "Response",
    "ResponseTimeBelow",
    "SchemaValidator",
    "SchemaViolation",
    "Settings",
    "SlowResponse",
    "SpecBuildError",
    "StatusCode",
    "StatusMismatch",
    "Suite",
    "SuiteResult",
    "SuiteRunner",
    "TestCase",
    "TestResult",
    "Transport",
    "TransportError",
    "UnresolvedReferenceError",
    "ValueStore",
    "build_request",
    "check_order",
    "get_settings",
    "match_json_like",
    "setup_logging",
    "spec",
]
