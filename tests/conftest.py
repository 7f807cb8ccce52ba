"""
Shared fixtures for the ACCA client tests.

No real network: every test talks to a FakeServer through
httpx.MockTransport.
"""

from typing import Any, Callable, Union

import httpx
import pytest

from acca_client.audit import AuditLogger
from acca_client.config import ApiSettings, ReconcileSettings, SessionSettings
from acca_client.services.api import ApiClient
from acca_client.services.storage import InMemoryAuditStorage, InMemoryTokenStorage


BASE_URL = "https://acca.test/api"
API_PREFIX = "/api"

Reply = Union[tuple, httpx.Response, Exception, Callable[[httpx.Request], Any]]


class FakeServer:
    """
    Route table for httpx.MockTransport.

    A route reply is one of:
    - (status, json_body)
    - an httpx.Response
    - an exception instance, raised as a transport failure
    - a callable taking the request and returning any of the above
    Registering a list of replies serves them in order, repeating the last.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Reply]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Reply) -> None:
        self.routes[(method.upper(), path)] = list(replies)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method.upper() and self._path(r) == path
        ]

    @staticmethod
    def _path(request: httpx.Request) -> str:
        path = request.url.path
        return path[len(API_PREFIX):] if path.startswith(API_PREFIX) else path

    def _render(self, reply: Reply, request: httpx.Request) -> httpx.Response:
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        if callable(reply):
            return self._render(reply(request), request)
        status, body = reply
        return httpx.Response(status, json=body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, self._path(request)))
        if not replies:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        return self._render(reply, request)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def api_settings() -> ApiSettings:
    return ApiSettings(base_url=BASE_URL, timeout_seconds=5, retry_attempts=1)


@pytest.fixture
def session_settings(tmp_path) -> SessionSettings:
    return SessionSettings(
        check_interval_seconds=30,
        token_storage_path=tmp_path / "credentials.json",
    )


@pytest.fixture
def reconcile_settings() -> ReconcileSettings:
    return ReconcileSettings()


@pytest.fixture
def token_storage() -> InMemoryTokenStorage:
    return InMemoryTokenStorage()


@pytest.fixture
def api_client(server, token_storage, api_settings) -> ApiClient:
    return ApiClient(
        token_storage,
        settings=api_settings,
        transport=httpx.MockTransport(server),
    )


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)
