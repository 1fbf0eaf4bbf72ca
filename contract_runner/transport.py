# contract_runner/transport.py
"""
HTTP transport: the single ``send(request) -> response`` capability the
runner needs from its environment. Retries, pooling and TLS are left to
httpx; timeouts and network errors are mapped onto the runner's taxonomy.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from contract_runner.errors import RequestTimeout, TransportError
from contract_runner.types import ResolvedRequest, Response

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS = {
    "authorization", "x-api-key", "api_key", "apikey", "token",
    "access_token", "cookie", "set-cookie", "x-auth-token", "x-access-token",
    "password", "session", "csrf", "jwt",
}


def redact_sensitive(data: Any) -> Any:
    """Recursively redact sensitive information"""
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in _SENSITIVE_KEYS else redact_sensitive(v)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [redact_sensitive(item) for item in data]
    return data


def to_response(resp: httpx.Response, elapsed_ms: Optional[int] = None) -> Response:
    """Convert an httpx response, decoding JSON when the body is JSON."""
    body = None
    is_json = False
    if resp.content:
        try:
            body = resp.json()
            is_json = True
        except ValueError:
            body = None

    return Response(
        status_code=resp.status_code,
        headers=dict(resp.headers.items()),
        body=body,
        text=resp.text,
        is_json=is_json,
        elapsed_ms=elapsed_ms,
    )


class Transport(ABC):
    """Sends one resolved request and returns the response."""

    @abstractmethod
    def send(self, request: ResolvedRequest) -> Response:
        """
        Raises:
            RequestTimeout: the request did not complete in time
            TransportError: any other network-level failure
        """

    def close(self) -> None:
        pass

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class HttpxTransport(Transport):
    """Transport backed by a synchronous httpx client."""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout_s: float = 30.0,
        verify_ssl: bool = True,
        follow_redirects: bool = True,
    ):
        self.timeout_s = timeout_s
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout_s),
            verify=verify_ssl,
            follow_redirects=follow_redirects,
        )

    @classmethod
    def from_settings(cls, settings) -> "HttpxTransport":
        return cls(
            timeout_s=settings.request_timeout_s,
            verify_ssl=settings.verify_ssl,
            follow_redirects=settings.follow_redirects,
        )

    def send(self, request: ResolvedRequest) -> Response:
        timeout = request.timeout_s if request.timeout_s is not None else self.timeout_s
        kwargs: Dict[str, Any] = {
            "params": request.params or None,
            "headers": request.headers or None,
            "timeout": timeout,
        }
        if request.json_body is not None:
            kwargs["json"] = request.json_body

        logger.debug(
            "→ %s %s headers=%s body=%s",
            request.method, request.url,
            redact_sensitive(request.headers), redact_sensitive(request.json_body),
        )

        t0 = time.perf_counter()
        try:
            resp = self._client.request(request.method, request.url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"⏱️ {request.method} {request.url}: request timeout after {timeout}s")
            raise RequestTimeout(request.method, request.url, timeout) from e
        except httpx.HTTPError as e:
            logger.error(f"🔌 {request.method} {request.url}: {e!r}")
            raise TransportError(request.method, request.url, e) from e
        elapsed_ms = int((time.perf_counter() - t0) * 1000)

        logger.debug("← %s %s %d (%dms)", request.method, request.url, resp.status_code, elapsed_ms)
        return to_response(resp, elapsed_ms)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
