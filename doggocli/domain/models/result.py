"""Explicit result types returned across the client boundary.

Public service operations never raise; they return an `ApiResult` carrying
either a value or an `ApiError` describing the failure class.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure taxonomy for client operations."""
    VALIDATION = "validation"            # Malformed local input, no request sent
    UNAUTHENTICATED = "unauthenticated"  # Operation needs a token and none is stored
    AUTHENTICATION = "authentication"    # Backend answered 401
    TRANSIENT = "transient"              # Network error, timeout, 408 or 5xx after retries
    CIRCUIT_OPEN = "circuit_open"        # Rejected fast by the circuit breaker
    CLIENT = "client"                    # Any other 4xx
    UNEXPECTED = "unexpected"            # Serialization failure or unforeseen exception


@dataclass(frozen=True)
class ApiError:
    """Describes why an operation failed."""
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None
    payload: Optional[Any] = None

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


# Session operations report failures with the same shape
AuthError = ApiError


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """Either a value or an error, never both."""
    value: Optional[T] = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ApiResult[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[Any] = None,
    ) -> "ApiResult[T]":
        return cls(error=ApiError(kind=kind, message=message, status_code=status_code, payload=payload))

    @classmethod
    def from_error(cls, error: ApiError) -> "ApiResult[T]":
        return cls(error=error)
