"""Domain Events related to API calls and resilience.

Examples include events for when calls are retried, fail, succeed, or when
the circuit breaker changes state.
"""

from dataclasses import dataclass, field
import time
from typing import Callable, Optional

@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass

# Receives every event emitted by the gateway, breaker and session manager
EventHandler = Callable[[DomainEvent], None]

# --- Specific API Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when a request is about to be sent."""
    method: str
    path: str
    attempt_number: int = 1
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when a logical call completes without a transient failure."""
    method: str
    path: str
    status_code: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a logical call fails definitively (after retries)."""
    method: str
    path: str
    error_type: str
    error_message: str
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a transient failure."""
    endpoint: str
    attempt_number: int
    delay_seconds: float
    cause: str
    timestamp: float = field(default_factory=time.time)

# --- Circuit Breaker Events ---

@dataclass
class CircuitOpened(DomainEvent):
    """Event triggered when the breaker trips and starts failing fast."""
    break_duration_seconds: float
    consecutive_failures: int
    cause: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class CircuitHalfOpened(DomainEvent):
    """Event triggered when the break elapses and a trial call is admitted."""
    timestamp: float = field(default_factory=time.time)

@dataclass
class CircuitReset(DomainEvent):
    """Event triggered when the breaker closes again after a successful call."""
    timestamp: float = field(default_factory=time.time)
