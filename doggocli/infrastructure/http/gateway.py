"""Resilient gateway: the only component that talks to the network.

Every request goes through two independent policies composed by wrapping:

    breaker.call( retry.execute_with_retry( send_once ) )

The breaker therefore sees one outcome per logical request, a request through
an open breaker consumes no retry budget, and retries stop as soon as the
breaker opens.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from doggocli.domain.events.api_events import (
    ApiCallFailed, ApiCallInitiated, ApiCallSucceeded, DomainEvent, EventHandler
)
from doggocli.domain.models.common import ApiPath, AuthToken
from doggocli.infrastructure.resilience.api_retry import (
    RETRYABLE_EXCEPTIONS, ApiRetryService, describe_outcome, is_transient_response
)
from doggocli.infrastructure.resilience.circuit_breaker import CircuitBreaker
from doggocli.infrastructure.resilience.errors import MaxRetryError, ResilienceError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:8000/"
DEFAULT_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class ApiRequest:
    """A single logical request to the backend."""
    method: str
    path: ApiPath
    body: Optional[Any] = None
    token: Optional[AuthToken] = None

    def __repr__(self) -> str:
        return f"ApiRequest({self.method} {self.path}, auth={'yes' if self.token else 'no'})"


class ResilientGateway:
    """Executes ApiRequests over a shared httpx.AsyncClient with retry and circuit breaking."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        retry_service: Optional[ApiRetryService] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        event_handler: Optional[EventHandler] = None,
    ):
        """Initializes the gateway.

        Args:
            base_url: Backend root; request paths are resolved against it.
            timeout_s: Per-attempt timeout. Exceeding it is a transient failure.
            retry_service: Retry policy (defaults to 3 retries, 1s/2s/4s).
            circuit_breaker: Shared breaker (defaults to 5 failures / 30s).
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
            event_handler: Optional receiver for API call events.
        """
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout_s = timeout_s
        self.retry_service = retry_service or ApiRetryService(event_handler=event_handler)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_exceptions=(MaxRetryError,) + RETRYABLE_EXCEPTIONS,
            is_failure_result=is_transient_response,
            event_handler=event_handler,
        )
        self._transport = transport
        self._event_handler = event_handler
        self._client: Optional[httpx.AsyncClient] = None
        logger.info(f"ResilientGateway initialized for {self.base_url} (timeout={timeout_s}s)")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_s,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Closes the underlying HTTP client; a new one is created on next use."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_handler:
            try:
                self._event_handler(event)
            except Exception as e:
                logger.error(f"Event handler failed for {type(event).__name__}: {e}", exc_info=True)

    @staticmethod
    def _headers(request: ApiRequest) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if request.token:
            headers["Authorization"] = f"Bearer {request.token}"
        return headers

    async def execute(self, request: ApiRequest) -> httpx.Response:
        """Sends a request through the breaker and retry policies.

        Returns:
            The backend response. Non-transient statuses (2xx, 4xx other than
            408) come back on the first attempt; a transient status is returned
            only after retries are exhausted.

        Raises:
            CircuitOpenError: The breaker rejected the call.
            MaxRetryError: Every attempt failed at the transport level.
        """
        client = self._get_client()
        endpoint = f"{request.method} {request.path}"
        attempts = 0

        async def send_once() -> httpx.Response:
            nonlocal attempts
            attempts += 1
            self._dispatch_event(ApiCallInitiated(method=request.method, path=request.path, attempt_number=attempts))
            # httpx timeouts bound each socket step; this bounds the whole attempt
            return await asyncio.wait_for(
                client.request(
                    request.method,
                    request.path,
                    json=request.body,
                    headers=self._headers(request),
                ),
                timeout=self.timeout_s,
            )

        async def with_retry() -> httpx.Response:
            return await self.retry_service.execute_with_retry(
                send_once,
                endpoint_name=endpoint,
                should_continue=self.circuit_breaker.allows_retry,
            )

        start_time = time.perf_counter()
        try:
            response = await self.circuit_breaker.call(with_retry)
        except ResilienceError as e:
            logger.error(f"{endpoint} failed after {attempts} attempt(s): {e}")
            self._dispatch_event(ApiCallFailed(
                method=request.method, path=request.path,
                error_type=type(e).__name__, error_message=str(e),
            ))
            raise
        latency_ms = (time.perf_counter() - start_time) * 1000

        if is_transient_response(response):
            self._dispatch_event(ApiCallFailed(
                method=request.method, path=request.path,
                error_type="TransientStatus", error_message=describe_outcome(response),
                status_code=response.status_code,
            ))
        else:
            logger.debug(f"{endpoint} -> {response.status_code} in {latency_ms:.2f}ms ({attempts} attempt(s))")
            self._dispatch_event(ApiCallSucceeded(
                method=request.method, path=request.path,
                status_code=response.status_code, latency_ms=latency_ms,
            ))
        return response
