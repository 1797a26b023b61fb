"""Exceptions raised inside the resilience layer.

They never cross the service boundary: the session and resource services
convert them into `ApiResult` failures.
"""

class ResilienceError(Exception):
    """Base class for failures produced by the retry and breaker policies."""


class MaxRetryError(ResilienceError):
    """Exception raised when max retries are exceeded."""
    def __init__(self, original_exception: Exception, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(f"Max retries exceeded after {attempts} attempts. Last error: {original_exception}")


class CircuitOpenError(ResilienceError):
    """Exception raised when a call is rejected by an open circuit breaker."""
    def __init__(self, retry_after_s: float = 0.0):
        self.retry_after_s = retry_after_s
        super().__init__(f"Circuit is open; calls are rejected for another {retry_after_s:.1f}s")
