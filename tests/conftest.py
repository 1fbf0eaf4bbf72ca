"""Shared fixtures: settings pointed at the in-process booker, transports, runner."""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from contract_runner import CollectingReporter, HttpxTransport, Settings, SuiteRunner
from tests.fake_booker import create_app


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        base_url="http://testserver",
        request_timeout_s=5.0,
        default_headers={"Accept": "application/json"},
    )


@pytest.fixture
def booker_app():
    return create_app()


@pytest.fixture
def transport(booker_app):
    client = TestClient(booker_app)
    yield HttpxTransport(client=client)
    client.close()


@pytest.fixture
def reporter() -> CollectingReporter:
    return CollectingReporter()


@pytest.fixture
def runner(transport, settings, reporter) -> SuiteRunner:
    return SuiteRunner(transport, reporters=[reporter], settings=settings)


@pytest.fixture
def mock_transport():
    """Factory: HttpxTransport over httpx.MockTransport(handler)."""
    clients = []

    def make(handler) -> HttpxTransport:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return HttpxTransport(client=client, timeout_s=1.0)

    yield make
    for client in clients:
        client.close()
