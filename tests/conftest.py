from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest
from typer.testing import CliRunner

from doggocli.core.services.aggregation_service import AggregationService
from doggocli.core.services.resource_service import ResourceClient
from doggocli.core.services.session_service import SessionManager
from doggocli.infrastructure.http.gateway import ResilientGateway
from doggocli.infrastructure.resilience.api_retry import (
    RETRYABLE_EXCEPTIONS, ApiRetryService, is_transient_response
)
from doggocli.infrastructure.resilience.circuit_breaker import CircuitBreaker
from doggocli.infrastructure.resilience.errors import MaxRetryError
from doggocli.infrastructure.storage.token_store import InMemoryTokenStore

BASE_URL = "http://doggo.test/"

Responder = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeBackend:
    """In-process stand-in for the REST API, used as an httpx.MockTransport handler.

    Each route holds a queue of responders; the last one is reused once the
    queue is drained. A responder is a Response, an exception to raise, or a
    callable (sync or async) taking the request.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Responder]] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, *responders: Responder) -> "FakeBackend":
        self.routes[(method.upper(), path.strip("/"))] = list(responders)
        return self

    def requests_to(self, method: str, path: str) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method.upper() and r.url.path.strip("/") == path.strip("/")
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path.strip("/"))
        queue = self.routes.get(key)
        if not queue:
            return httpx.Response(404, json={"message": f"No route for {key}"})
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(responder, Exception):
            raise responder
        if isinstance(responder, httpx.Response):
            # Fresh copy so a queued response can be served more than once
            return httpx.Response(responder.status_code, headers=responder.headers, content=responder.content)
        return responder(request)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def events() -> List[Any]:
    return []


@pytest.fixture
def gateway(backend: FakeBackend, sleep_recorder: SleepRecorder, fake_clock: FakeClock, events: List[Any]) -> ResilientGateway:
    return ResilientGateway(
        base_url=BASE_URL,
        retry_service=ApiRetryService(sleep=sleep_recorder, event_handler=events.append),
        circuit_breaker=CircuitBreaker(
            failure_exceptions=(MaxRetryError,) + RETRYABLE_EXCEPTIONS,
            is_failure_result=is_transient_response,
            clock=fake_clock,
            event_handler=events.append,
        ),
        transport=httpx.MockTransport(backend),
        event_handler=events.append,
    )


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def session_manager(gateway: ResilientGateway, token_store: InMemoryTokenStore) -> SessionManager:
    return SessionManager(gateway=gateway, token_store=token_store)


@pytest.fixture
def resource_client(gateway: ResilientGateway, session_manager: SessionManager) -> ResourceClient:
    return ResourceClient(gateway=gateway, session_manager=session_manager)


@pytest.fixture
def aggregation_service(resource_client: ResourceClient) -> AggregationService:
    return AggregationService(resource_client=resource_client)


# --- Sample payloads (wire format) ---

USER_PAYLOAD = {
    "id": 7,
    "username": "alice",
    "email": "alice@example.com",
    "created_at": "2024-03-01T10:00:00Z",
    "updated_at": "2024-03-02T10:00:00Z",
}

LOCATIONS_PAYLOAD = [
    {"id": 1, "name": "Bark Park", "lat": 52.37, "lng": 4.89, "description": "Big fenced field", "allowed": True, "user_id": 7},
    {"id": 2, "name": "Cafe Woof", "lat": 52.36, "lng": 4.90, "description": "Water bowls inside", "allowed": True},
    {"id": 3, "name": "Museum", "lat": 52.35, "lng": 4.88, "description": "No dogs", "allowed": False},
]

RATINGS_PAYLOAD = [
    {"id": 10, "stars": 5, "description": "Great", "location_id": 1, "user_id": 7},
    {"id": 11, "stars": 4, "description": "Nice", "location_id": 1, "user_id": 8},
    {"id": 12, "stars": 2, "description": "Muddy", "location_id": 1, "user_id": 9},
    {"id": 13, "stars": 3, "description": "Okay", "location_id": 2, "user_id": 7},
]


@pytest.fixture
def user_payload() -> Dict[str, Any]:
    return dict(USER_PAYLOAD)


@pytest.fixture
def locations_payload() -> List[Dict[str, Any]]:
    return [dict(item) for item in LOCATIONS_PAYLOAD]


@pytest.fixture
def ratings_payload() -> List[Dict[str, Any]]:
    return [dict(item) for item in RATINGS_PAYLOAD]


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()
