"""Circuit breaker guarding every call to the backend.

A single breaker instance is shared by all callers of the gateway, so a run of
failures seen by one request makes concurrent siblings fail fast. State
transitions are serialized with an asyncio.Lock.

    CLOSED --(N consecutive failures)--> OPEN --(break elapsed)--> HALF_OPEN
    HALF_OPEN --(trial succeeds)--> CLOSED
    HALF_OPEN --(trial fails)--> OPEN (timer restarts)
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from doggocli.domain.events.api_events import (
    CircuitHalfOpened, CircuitOpened, CircuitReset, DomainEvent, EventHandler
)
from doggocli.infrastructure.resilience.errors import CircuitOpenError

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_BREAK_DURATION_S = 30.0


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Consecutive-failure circuit breaker for async calls."""

    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        break_duration_s: float = DEFAULT_BREAK_DURATION_S,
        failure_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
        is_failure_result: Optional[Callable[[Any], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
        event_handler: Optional[EventHandler] = None,
    ):
        """Initializes the breaker.

        Args:
            failure_threshold: Consecutive failures that open the circuit.
            break_duration_s: How long the circuit stays open before a trial call.
            failure_exceptions: Exceptions counted as failures. Others propagate
                without affecting the failure tally.
            is_failure_result: Predicate marking a returned value as a failure
                (e.g. a 5xx response).
            clock: Monotonic time source (injectable for tests).
            event_handler: Optional receiver for circuit events.
        """
        self.failure_threshold = failure_threshold
        self.break_duration_s = break_duration_s
        self.failure_exceptions = failure_exceptions
        self.is_failure_result = is_failure_result or (lambda _result: False)
        self._clock = clock
        self._event_handler = event_handler

        self._lock = asyncio.Lock()
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at: Optional[float] = None
        self._trial_in_flight = False

        logger.info(f"CircuitBreaker initialized: threshold={failure_threshold}, break={break_duration_s}s")

    # --- Introspection ---

    @property
    def state(self) -> CircuitState:
        """Current state; an OPEN circuit whose break has elapsed reports HALF_OPEN."""
        if self._state == CircuitState.OPEN and self._remaining_break() <= 0:
            return CircuitState.HALF_OPEN
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def allows_retry(self) -> bool:
        """False once the circuit has opened; used to stop in-flight retry loops."""
        return self._state != CircuitState.OPEN

    def _remaining_break(self) -> float:
        if self._opened_at is None:
            return 0.0
        return max(0.0, self._opened_at + self.break_duration_s - self._clock())

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_handler:
            try:
                self._event_handler(event)
            except Exception as e:
                logger.error(f"Event handler failed for {type(event).__name__}: {e}", exc_info=True)

    # --- State transitions (callers hold the lock) ---

    def _trip(self, cause: str) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._trial_in_flight = False
        logger.warning(
            f"Circuit breaker opened for {self.break_duration_s}s after "
            f"{self._consecutive_failures} consecutive failure(s). Cause: {cause}"
        )
        self._dispatch_event(CircuitOpened(
            break_duration_seconds=self.break_duration_s,
            consecutive_failures=self._consecutive_failures,
            cause=cause,
        ))

    async def _before_call(self) -> None:
        async with self._lock:
            if self._state == CircuitState.OPEN:
                remaining = self._remaining_break()
                if remaining > 0:
                    raise CircuitOpenError(remaining)
                self._state = CircuitState.HALF_OPEN
                self._trial_in_flight = True
                logger.info("Circuit breaker half-open: admitting one trial call.")
                self._dispatch_event(CircuitHalfOpened())
                return
            if self._state == CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    raise CircuitOpenError(0.0)
                self._trial_in_flight = True

    async def _record_success(self) -> None:
        async with self._lock:
            if self._state == CircuitState.OPEN:
                # Late success of a call admitted before the circuit opened
                return
            was_half_open = self._state == CircuitState.HALF_OPEN
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._opened_at = None
            self._trial_in_flight = False
            if was_half_open:
                logger.info("Circuit breaker reset.")
                self._dispatch_event(CircuitReset())

    async def _record_failure(self, cause: str) -> None:
        async with self._lock:
            self._consecutive_failures += 1
            if self._state == CircuitState.HALF_OPEN:
                self._trip(cause)
            elif self._state == CircuitState.CLOSED and self._consecutive_failures >= self.failure_threshold:
                self._trip(cause)

    async def _release_trial(self) -> None:
        async with self._lock:
            self._trial_in_flight = False

    # --- Public API ---

    async def call(self, func: Callable[[], Awaitable[Any]]) -> Any:
        """Runs `func` under the breaker.

        Raises:
            CircuitOpenError: If the circuit is open (no call is attempted).
        """
        await self._before_call()
        try:
            result = await func()
        except CircuitOpenError:
            # A sibling opened the circuit while this call was retrying
            await self._release_trial()
            raise
        except self.failure_exceptions as e:
            await self._record_failure(f"{type(e).__name__}: {e}")
            raise
        except BaseException:
            await self._release_trial()
            raise

        if self.is_failure_result(result):
            await self._record_failure(f"result {getattr(result, 'status_code', result)!r}")
        else:
            await self._record_success()
        return result
