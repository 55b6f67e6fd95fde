"""
OpenTrade Test Configuration
----------------------------
Shared fixtures: a fake clock for cache expiry and a fake REST service
served through httpx.MockTransport that records every request.
"""

import sys
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from api.client import ClientSettings
from api.config import StaticApiConfig
from api.rest_request import RestRequest
from core.cache import TTLCache

BASE_URL = "https://api.opentrade.test"
AUTH_PATH = "/oauth/authorization"


def ok(data: Any = None, code: int = 2000) -> Dict[str, Any]:
    """Success envelope."""
    return {"code": code, "status": "success", "data": data}


def failure(message: str = "Item not found", http_code: int = 404,
            debug: Any = "stack trace", code: int = 4004) -> Dict[str, Any]:
    """Error envelope."""
    return {
        "code": code,
        "status": "error",
        "data": {"message": message, "httpCode": http_code, "debug": debug},
    }


class FakeClock:
    """Monotonic clock driven by the test."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeService:
    """
    In-memory OpenTrade service.

    Routes map (method, path) to a canned response. The authorization
    endpoint issues token-1, token-2... and counts its calls.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.requests: List[httpx.Request] = []
        self.token_status = 200
        self.token_body: Optional[Any] = None
        self.token_delay = 0.0
        self._tokens_issued = 0
        self._lock = threading.Lock()

    def add(self, method: str, path: str, status: int = 200,
            json: Any = None, text: Optional[str] = None, delay: float = 0.0) -> None:
        self.routes[(method, path)] = (status, json, text, delay)

    def fail_with(self, method: str, path: str, error: Exception) -> None:
        """Make a route raise a transport error."""
        self.routes[(method, path)] = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)

        if request.url.path == AUTH_PATH:
            return self._token(request)

        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json=failure("No such route"))
        if isinstance(route, Exception):
            raise route

        status, body, text, delay = route
        if delay:
            time.sleep(delay)
        if body is not None:
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=text or "")

    def _token(self, request: httpx.Request) -> httpx.Response:
        if self.token_delay:
            time.sleep(self.token_delay)
        if self.token_status != 200:
            return httpx.Response(self.token_status, text='{"error": "invalid_client"}')
        if self.token_body is not None:
            return httpx.Response(200, json=self.token_body)
        with self._lock:
            self._tokens_issued += 1
            token = f"token-{self._tokens_issued}"
        return httpx.Response(200, json={"access_token": token, "token_type": "bearer"})

    @property
    def auth_calls(self) -> int:
        return sum(1 for r in self.requests if r.url.path == AUTH_PATH)

    @property
    def api_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path != AUTH_PATH]

    def last(self) -> httpx.Request:
        return self.api_requests[-1]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def api_config():
    return StaticApiConfig(client_id="shop-42", secret="s3cret", url_rest=BASE_URL)


@pytest.fixture
def api(api_config, service, clock):
    """RestRequest talking to the fake service, cache driven by the fake clock."""
    client = RestRequest(
        api_config,
        settings=ClientSettings(timeout_seconds=5.0),
        cache=TTLCache(clock=clock),
        transport=httpx.MockTransport(service.handler),
    )
    yield client
    client.close()


@pytest.fixture(scope="session")
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT
