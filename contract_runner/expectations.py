# contract_runner/expectations.py
"""
Response Expectation Engine

Evaluates every expectation attached to a test case against one response
and returns all failures together; nothing short-circuits, so a single
HTTP exchange yields the full diagnostic picture.

Supported expectations:
✅ StatusCode        exact status match
✅ JsonSchema        structural validation via jsonschema
✅ JsonLike          partial deep match (extra keys ignored)
✅ JsonArrayLength   top-level or path-selected array length
✅ HeaderEquals      case-insensitive header lookup
✅ ResponseTimeBelow elapsed time budget
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Set

from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from contract_runner.errors import (
    ExpectationFailure,
    HeaderMismatch,
    JsonMismatch,
    LengthMismatch,
    SchemaViolation,
    SlowResponse,
    StatusMismatch,
)
from contract_runner.jsonpath import MISSING, display_path, select
from contract_runner.types import (
    Expectation,
    HeaderEquals,
    JsonArrayLength,
    JsonLike,
    JsonSchema,
    Response,
    ResponseTimeBelow,
    StatusCode,
)
from contract_runner.value_store import ValueStore, references, stringify

logger = logging.getLogger(__name__)


def json_type(value: Any) -> str:
    """JSON Schema type name of a Python value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _join(path: str, part: Any) -> str:
    if isinstance(part, int):
        return f"{path}[{part}]"
    return f"{path}.{part}"


# ==================== Schema Validation ====================

class SchemaValidator:
    """Validate response bodies against JSON schemas"""

    def __init__(self, cache_size: int = 64):
        # keyed by canonical schema JSON
        self._compiled = lru_cache(maxsize=cache_size)(self._compile)

    @staticmethod
    def _compile(schema_json: str):
        schema = json.loads(schema_json)
        cls = validator_for(schema)
        cls.check_schema(schema)
        return cls(schema)

    def _validator(self, schema: Dict[str, Any]):
        return self._compiled(json.dumps(schema, sort_keys=True, default=str))

    def cache_info(self):
        return self._compiled.cache_info()

    def validate(self, data: Any, schema: Dict[str, Any]) -> List[SchemaViolation]:
        """Return one SchemaViolation per problem; empty when valid."""
        try:
            validator = self._validator(schema)
        except SchemaError as e:
            return [SchemaViolation("$", "valid schema", "invalid schema", reason=e.message)]

        violations: List[SchemaViolation] = []
        seen_required = set()
        errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])

        for err in errors:
            path = "$"
            for part in err.absolute_path:
                path = _join(path, part)

            if err.validator == "type":
                violations.append(SchemaViolation(path, err.validator_value, json_type(err.instance)))

            elif err.validator == "required" and isinstance(err.instance, dict):
                props = (err.schema or {}).get("properties", {})
                for name in err.validator_value:
                    missing_path = _join(path, name)
                    if name in err.instance or missing_path in seen_required:
                        continue
                    seen_required.add(missing_path)
                    expected = props.get(name, {}).get("type", "present")
                    violations.append(SchemaViolation(missing_path, expected, "missing", reason="required property"))

            else:
                violations.append(SchemaViolation(
                    path,
                    f"{err.validator} {err.validator_value!r}",
                    json_type(err.instance),
                    reason=err.message,
                ))

        return violations


# ==================== JSON-like matching ====================

def _scalar_equal(expected: Any, actual: Any) -> bool:
    if isinstance(expected, bool) or isinstance(actual, bool):
        return isinstance(expected, bool) and isinstance(actual, bool) and expected == actual
    if isinstance(expected, (int, float)) and isinstance(actual, (int, float)):
        return expected == actual
    return type(expected) is type(actual) and expected == actual


def match_json_like(expected: Any, actual: Any, path: str = "$") -> List[JsonMismatch]:
    """Partial deep match: everything in `expected` must be found in `actual`.

    Objects: every expected key must exist with a matching value; extra keys
    are ignored. Arrays: each expected element must match some element of
    the actual array, in any order, and each actual element is used once.
    """
    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            return [JsonMismatch(path, expected, actual, reason=f"expected object, got {json_type(actual)}")]
        mismatches: List[JsonMismatch] = []
        for key, exp_val in expected.items():
            sub = _join(path, key)
            if key not in actual:
                mismatches.append(JsonMismatch(sub, exp_val, None, reason="missing key"))
                continue
            mismatches.extend(match_json_like(exp_val, actual[key], sub))
        return mismatches

    if isinstance(expected, list):
        if not isinstance(actual, list):
            return [JsonMismatch(path, expected, actual, reason=f"expected array, got {json_type(actual)}")]
        if len(expected) > len(actual):
            return [JsonMismatch(
                path, expected, actual,
                reason=f"expected at least {len(expected)} element(s), got {len(actual)}",
            )]
        mismatches = []
        used: Set[int] = set()
        for idx, exp_item in enumerate(expected):
            hit = next(
                (i for i, act_item in enumerate(actual)
                 if i not in used and not match_json_like(exp_item, act_item)),
                None,
            )
            if hit is None:
                mismatches.append(JsonMismatch(f"{path}[{idx}]", exp_item, actual, reason=f"no element matching {exp_item!r}"))
            else:
                used.add(hit)
        return mismatches

    if not _scalar_equal(expected, actual):
        return [JsonMismatch(path, expected, actual)]
    return []


# ==================== Engine ====================

class ExpectationEngine:
    """Evaluates expectations against a response, collecting every failure."""

    def __init__(self, schema_validator: Optional[SchemaValidator] = None):
        self.schema_validator = schema_validator or SchemaValidator()

    def evaluate(self, expectations: Iterable[Expectation], resp: Response) -> List[ExpectationFailure]:
        failures: List[ExpectationFailure] = []
        for exp in expectations:
            failures.extend(self._check(exp, resp))
        if failures:
            logger.debug("%d expectation(s) failed: %s", len(failures), "; ".join(str(f) for f in failures))
        return failures

    def _check(self, exp: Expectation, resp: Response) -> List[ExpectationFailure]:
        if isinstance(exp, StatusCode):
            if resp.status_code != exp.code:
                return [StatusMismatch(exp.code, resp.status_code)]
            return []

        if isinstance(exp, HeaderEquals):
            actual = resp.header(exp.name)
            if actual != exp.value:
                return [HeaderMismatch(exp.name, exp.value, actual)]
            return []

        if isinstance(exp, ResponseTimeBelow):
            if resp.elapsed_ms is not None and resp.elapsed_ms > exp.ms:
                return [SlowResponse(exp.ms, resp.elapsed_ms)]
            return []

        if isinstance(exp, JsonSchema):
            if not resp.is_json:
                return [SchemaViolation("$", exp.schema.get("type", "JSON"), "non-json", reason="response is not valid JSON")]
            return list(self.schema_validator.validate(resp.body, exp.schema))

        if isinstance(exp, JsonLike):
            path = display_path(exp.path or "")
            if not resp.is_json:
                return [JsonMismatch("$", "JSON body", resp.text[:200], reason="response is not valid JSON")]
            target = resp.body if not exp.path else select(resp.body, exp.path)
            if target is MISSING:
                return [JsonMismatch(path, exp.value, None, reason="path not found")]
            return list(match_json_like(exp.value, target, path))

        if isinstance(exp, JsonArrayLength):
            path = display_path(exp.path or "")
            target = resp.body if not exp.path else select(resp.body, exp.path)
            if not resp.is_json or not isinstance(target, list):
                return [LengthMismatch(exp.length, None, path)]
            if len(target) != exp.length:
                return [LengthMismatch(exp.length, len(target), path)]
            return []

        raise TypeError(f"unknown expectation {exp!r}")


def status_failed(failures: Iterable[ExpectationFailure]) -> bool:
    return any(isinstance(f, StatusMismatch) for f in failures)


def resolve_expectations(expectations: Iterable[Expectation], store: ValueStore) -> List[Expectation]:
    """Substitute placeholders inside expected values (JsonLike, HeaderEquals)."""
    out: List[Expectation] = []
    for exp in expectations:
        if isinstance(exp, JsonLike):
            exp = replace(exp, value=store.resolve(exp.value))
        elif isinstance(exp, HeaderEquals):
            exp = replace(exp, value=stringify(store.resolve(exp.value)))
        out.append(exp)
    return out


def expectation_references(expectations: Iterable[Expectation]) -> Set[str]:
    keys: Set[str] = set()
    for exp in expectations:
        if isinstance(exp, JsonLike):
            keys |= references(exp.value)
        elif isinstance(exp, HeaderEquals):
            keys |= references(exp.value)
    return keys
