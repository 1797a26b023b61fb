"""Service for executing API calls with automatic retries.

Implements exponential backoff for transient failures: connection errors,
timeouts, and HTTP 408 or 5xx responses. Everything else passes through on
the first attempt.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

import httpx

from doggocli.domain.events.api_events import DomainEvent, EventHandler, RetryScheduled
from doggocli.infrastructure.resilience.errors import CircuitOpenError, MaxRetryError

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF_S = 1.0
DEFAULT_BACKOFF_FACTOR = 2.0

# httpx.TimeoutException is a subclass of httpx.TransportError
RETRYABLE_EXCEPTIONS = (httpx.TransportError, asyncio.TimeoutError)


def is_transient_status(status_code: int) -> bool:
    """408 Request Timeout and every 5xx are worth another attempt."""
    return status_code == 408 or 500 <= status_code <= 599


def is_transient_response(result: Any) -> bool:
    status_code = getattr(result, "status_code", None)
    return isinstance(status_code, int) and is_transient_status(status_code)


def describe_outcome(outcome: Any) -> str:
    """Short human-readable cause for logs and events."""
    if isinstance(outcome, BaseException):
        return f"{type(outcome).__name__}: {outcome}"
    status_code = getattr(outcome, "status_code", None)
    return f"HTTP {status_code}" if status_code is not None else repr(outcome)


class ApiRetryService:
    """Retries an async call on transient failures with exponential backoff."""

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff_s: float = DEFAULT_INITIAL_BACKOFF_S,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        jitter_s: float = 0.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        event_handler: Optional[EventHandler] = None,
    ):
        """Initializes the ApiRetryService.

        Args:
            max_retries: Maximum number of retry attempts after the first call.
            initial_backoff_s: Delay in seconds before the first retry.
            backoff_factor: Multiplier applied to the delay for each further retry.
            jitter_s: Upper bound of random extra delay added to each backoff.
            sleep: Awaitable sleep function (injectable for tests).
            event_handler: Optional receiver for RetryScheduled events.
        """
        self.max_retries = max_retries
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self.jitter_s = jitter_s
        self.retryable_exceptions = RETRYABLE_EXCEPTIONS
        self._sleep = sleep
        self._event_handler = event_handler

        logger.info(
            f"ApiRetryService initialized: max_retries={max_retries}, "
            f"initial_backoff={initial_backoff_s}s, factor={backoff_factor}, jitter={jitter_s}s"
        )

    def backoff_for(self, retry_number: int) -> float:
        """Base delay before retry `retry_number` (1-based), without jitter."""
        return self.initial_backoff_s * (self.backoff_factor ** (retry_number - 1))

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_handler:
            try:
                self._event_handler(event)
            except Exception as e:
                logger.error(f"Event handler failed for {type(event).__name__}: {e}", exc_info=True)

    async def execute_with_retry(
        self,
        func: Callable[[], Awaitable[Any]],
        endpoint_name: Optional[str] = None,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> Any:
        """Executes an async call, retrying transient failures.

        Args:
            func: Zero-argument coroutine function performing one attempt.
            endpoint_name: Label used in logs and events.
            should_continue: Checked before every retry; returning False stops
                retrying (the circuit breaker opened in the meantime).

        Returns:
            The first non-transient result, or the last transient response once
            retries are exhausted.

        Raises:
            MaxRetryError: If every attempt ended in a retryable exception.
            CircuitOpenError: If `should_continue` vetoed a retry.
            Exception: Any non-retryable exception, on the attempt it occurred.
        """
        effective_endpoint = endpoint_name or getattr(func, "__name__", "call")
        total_attempts = self.max_retries + 1
        last_exception: Optional[BaseException] = None
        last_result: Any = None
        previous_delay = 0.0

        for attempt in range(total_attempts):
            if attempt > 0 and should_continue is not None and not should_continue():
                logger.warning(f"Stopping retries for {effective_endpoint}: circuit opened during retry loop.")
                raise CircuitOpenError()

            try:
                result = await func()
            except self.retryable_exceptions as e:
                last_exception, last_result = e, None
                outcome: Any = e
            else:
                if not is_transient_response(result):
                    return result
                last_exception, last_result = None, result
                outcome = result

            if attempt >= self.max_retries:
                break

            retry_number = attempt + 1
            delay = self.backoff_for(retry_number)
            if self.jitter_s > 0:
                delay += random.uniform(0, self.jitter_s)
            delay = max(delay, previous_delay)
            previous_delay = delay

            cause = describe_outcome(outcome)
            logger.warning(
                f"Transient failure calling {effective_endpoint} on attempt {attempt + 1}/{total_attempts}: {cause}. "
                f"Retry {retry_number} in {delay:.2f}s..."
            )
            self._dispatch_event(RetryScheduled(
                endpoint=effective_endpoint, attempt_number=retry_number, delay_seconds=delay, cause=cause
            ))
            await self._sleep(delay)

        logger.error(
            f"Max retries ({self.max_retries}) reached for {effective_endpoint}. "
            f"Last outcome: {describe_outcome(last_exception or last_result)}"
        )
        if last_exception is not None:
            raise MaxRetryError(last_exception, total_attempts)
        return last_result
