"""Pytest fixtures for host and configuration tests"""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from confighost.core.config import HostSettings
from confighost.hosting.environment import HostingEnvironment


def config_payload(source: dict[str, Any], name: str = "confighost", **extra: Any) -> dict[str, Any]:
    """Build a config server response body with a single property source"""
    body = {
        "name": name,
        "profiles": ["Development"],
        "label": None,
        "version": None,
        "state": None,
        "propertySources": [{"name": f"file:./{name}.yml", "source": source}],
    }
    body.update(extra)
    return body


@pytest.fixture
def environment() -> HostingEnvironment:
    """Development environment for the default application"""
    return HostingEnvironment(environment_name="Development", application_name="confighost")


@pytest.fixture
def host_settings(tmp_path) -> HostSettings:
    """Host settings isolated from the working directory"""
    return HostSettings(
        ENVIRONMENT="Development",
        APPLICATION_NAME="confighost",
        CONTENT_ROOT=str(tmp_path),
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def mock_config_server() -> Callable[..., httpx.MockTransport]:
    """Factory for a mocked config server that records received requests"""

    def factory(payload: dict[str, Any] | None = None, status_code: int = 200) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if payload is None:
                return httpx.Response(status_code)
            return httpx.Response(status_code, json=payload)

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport

    return factory


@pytest.fixture
def refusing_transport() -> httpx.MockTransport:
    """Transport that behaves like an unreachable server"""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    return httpx.MockTransport(handler)


@pytest.fixture
def no_config_server(monkeypatch):
    """Disable the remote config client for tests that go through the default builder"""
    monkeypatch.setenv("SPRING__CLOUD__CONFIG__ENABLED", "false")
