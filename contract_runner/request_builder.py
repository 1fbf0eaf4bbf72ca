# contract_runner/request_builder.py
"""
Request Spec Builder

Two halves:

* ``spec()`` returns an immutable fluent builder used to declare a test
  case. Every call returns a new builder, so a half-built chain can be
  shared between cases without leaking state.
* ``build_request()`` turns a ``RequestSpec`` into a ``ResolvedRequest`` at
  send time: path slots filled, placeholders resolved, headers merged.

Usage:
    case = (
        spec("create booking")
        .post("/booking")
        .with_json({"firstname": "Jim"})
        .expect_status(200)
        .stores("bookingId", "bookingid")
        .build()
    )
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union
from urllib.parse import quote

from contract_runner.errors import SpecBuildError
from contract_runner.expectations import expectation_references
from contract_runner.types import (
    HTTP_METHODS,
    CaptureRule,
    Expectation,
    HeaderEquals,
    JsonArrayLength,
    JsonLike,
    JsonSchema,
    RequestSpec,
    ResolvedRequest,
    ResponseTimeBelow,
    StatusCode,
    TestCase,
)
from contract_runner.value_store import ValueStore, references, stringify

logger = logging.getLogger(__name__)

# `{id}` path slots; `$S{...}` tokens are left for the store
_PATH_SLOT_RE = re.compile(r"(?<!\$S)\{([A-Za-z_][A-Za-z0-9_]*)\}")
_ABSOLUTE_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


# ==================== Resolution ====================

def path_slots(url_template: str) -> List[str]:
    return _PATH_SLOT_RE.findall(url_template or "")


def spec_references(spec: RequestSpec) -> FrozenSet[str]:
    """Store keys a request spec reads at send time."""
    keys = set()
    for part in (spec.url_template, spec.path_params, spec.query_params, spec.headers, spec.body):
        keys |= references(part)
    return frozenset(keys)


def merge_headers(defaults: Optional[Dict[str, Any]], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Case-insensitive merge; overrides win and keep their own spelling."""
    merged: Dict[str, Any] = dict(defaults or {})
    for name, value in (overrides or {}).items():
        for existing in [k for k in merged if k.lower() == name.lower()]:
            del merged[existing]
        merged[name] = value
    return merged


def _join_url(base_url: str, url: str) -> str:
    if _ABSOLUTE_RE.match(url):
        return url
    if not base_url:
        raise SpecBuildError(f"relative URL '{url}' with no base URL", template=url)
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def _query_pairs(params: Dict[str, Any]) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for k, v in params.items():
        if v is None:
            continue
        if isinstance(v, (list, tuple)):
            pairs.extend((k, stringify(item)) for item in v)
        else:
            pairs.append((k, stringify(v)))
    return pairs


def check_spec(spec: RequestSpec) -> str:
    """Store-independent checks on a request spec; returns the upper-cased method.

    Raises:
        SpecBuildError: unknown method, empty URL, or a path slot with no
            supplied parameter.
    """
    method = (spec.method or "").upper()
    if method not in HTTP_METHODS:
        raise SpecBuildError(f"unsupported HTTP method {spec.method!r}", template=spec.url_template)
    if not spec.url_template:
        raise SpecBuildError("request has no URL", template=spec.url_template)

    missing = [s for s in path_slots(spec.url_template) if s not in spec.path_params]
    if missing:
        raise SpecBuildError(
            f"path parameter(s) {', '.join(missing)} not supplied for '{spec.url_template}'",
            template=spec.url_template,
        )
    return method


def build_request(
    spec: RequestSpec,
    store: ValueStore,
    base_url: str = "",
    default_headers: Optional[Dict[str, Any]] = None,
    default_timeout_s: Optional[float] = None,
) -> ResolvedRequest:
    """Resolve a request spec against the store.

    Raises:
        SpecBuildError: unknown method, empty URL, or a path slot with no
            supplied parameter.
        UnresolvedReferenceError: a placeholder names a key not in the store.
    """
    method = check_spec(spec)
    slots = path_slots(spec.url_template)
    unused = set(spec.path_params) - set(slots)
    if unused:
        logger.warning("Unused path parameter(s) %s for '%s'", sorted(unused), spec.url_template)

    def fill(m: re.Match) -> str:
        value = store.resolve(spec.path_params[m.group(1)])
        return quote(stringify(value), safe="")

    url = _PATH_SLOT_RE.sub(fill, spec.url_template)
    url = stringify(store.resolve(url))
    url = _join_url(base_url, url)

    headers = merge_headers(default_headers, spec.headers)
    resolved_headers = {k: stringify(store.resolve(v)) for k, v in headers.items()}

    return ResolvedRequest(
        method=method,
        url=url,
        params=_query_pairs(store.resolve(dict(spec.query_params))),
        headers=resolved_headers,
        json_body=store.resolve(spec.body),
        timeout_s=spec.timeout_s if spec.timeout_s is not None else default_timeout_s,
    )


# ==================== Fluent builder ====================

@dataclass(frozen=True)
class RequestBuilder:
    """Immutable fluent builder for a TestCase."""
    name: Optional[str] = None
    method: str = "GET"
    url_template: str = ""
    path_params: Dict[str, Any] = field(default_factory=dict)
    query_params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, Any] = field(default_factory=dict)
    body: Any = None
    timeout_s: Optional[float] = None
    expectations: Tuple[Expectation, ...] = ()
    captures: Tuple[CaptureRule, ...] = ()
    deps: FrozenSet[str] = frozenset()

    # ---- request ----

    def named(self, name: str) -> "RequestBuilder":
        return replace(self, name=name)

    def request(self, method: str, url: str) -> "RequestBuilder":
        return replace(self, method=method.upper(), url_template=url)

    def get(self, url: str) -> "RequestBuilder":
        return self.request("GET", url)

    def post(self, url: str) -> "RequestBuilder":
        return self.request("POST", url)

    def put(self, url: str) -> "RequestBuilder":
        return self.request("PUT", url)

    def patch(self, url: str) -> "RequestBuilder":
        return self.request("PATCH", url)

    def delete(self, url: str) -> "RequestBuilder":
        return self.request("DELETE", url)

    def head(self, url: str) -> "RequestBuilder":
        return self.request("HEAD", url)

    def with_path_params(self, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> "RequestBuilder":
        return replace(self, path_params={**self.path_params, **(params or {}), **kwargs})

    def with_query_params(self, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> "RequestBuilder":
        return replace(self, query_params={**self.query_params, **(params or {}), **kwargs})

    def with_headers(self, headers: Union[Dict[str, Any], str], value: Any = None) -> "RequestBuilder":
        """Accepts a dict, or a single ``name, value`` pair."""
        if isinstance(headers, str):
            headers = {headers: value}
        return replace(self, headers=merge_headers(self.headers, headers))

    def with_cookies(self, name: str, value: Any) -> "RequestBuilder":
        cookie = f"{name}={value}"
        existing = next((v for k, v in self.headers.items() if k.lower() == "cookie"), None)
        if existing:
            cookie = f"{existing}; {cookie}"
        return self.with_headers("Cookie", cookie)

    def with_json(self, body: Any) -> "RequestBuilder":
        return replace(self, body=body)

    def with_timeout(self, seconds: float) -> "RequestBuilder":
        return replace(self, timeout_s=float(seconds))

    # ---- expectations ----

    def _expect(self, expectation: Expectation) -> "RequestBuilder":
        return replace(self, expectations=self.expectations + (expectation,))

    def expect_status(self, code: int) -> "RequestBuilder":
        return self._expect(StatusCode(int(code)))

    def expect_json_schema(self, schema: Dict[str, Any]) -> "RequestBuilder":
        return self._expect(JsonSchema(schema))

    def expect_json_like(self, value: Any, path: Optional[str] = None) -> "RequestBuilder":
        return self._expect(JsonLike(value, path))

    def expect_json_length(self, length: int, path: Optional[str] = None) -> "RequestBuilder":
        return self._expect(JsonArrayLength(int(length), path))

    def expect_header(self, name: str, value: str) -> "RequestBuilder":
        return self._expect(HeaderEquals(name, value))

    def expect_response_time(self, ms: int) -> "RequestBuilder":
        return self._expect(ResponseTimeBelow(int(ms)))

    # ---- captures & deps ----

    def stores(self, store_key: str, source: str) -> "RequestBuilder":
        return replace(self, captures=self.captures + (CaptureRule(source=source, store_key=store_key),))

    def depends_on(self, *keys: str) -> "RequestBuilder":
        return replace(self, deps=self.deps | frozenset(keys))

    # ---- terminal ----

    def to_spec(self) -> RequestSpec:
        return RequestSpec(
            method=self.method,
            url_template=self.url_template,
            path_params=dict(self.path_params),
            query_params=dict(self.query_params),
            headers=dict(self.headers),
            body=self.body,
            timeout_s=self.timeout_s,
        )

    def build(self) -> TestCase:
        request_spec = self.to_spec()
        return TestCase(
            name=self.name or f"{self.method} {self.url_template}",
            spec=request_spec,
            expectations=self.expectations,
            captures=self.captures,
            setup_deps=self.deps | spec_references(request_spec) | expectation_references(self.expectations),
        )


def spec(name: Optional[str] = None) -> RequestBuilder:
    """Start a new request declaration."""
    return RequestBuilder(name=name)
