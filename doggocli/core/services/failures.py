"""Conversion of gateway outcomes into explicit ApiResult failures.

Raw causes are only logged by the callers; what crosses the service boundary
is an ApiError carrying the failure class, status and backend payload.
"""

from typing import Any

import httpx

from doggocli.domain.models.result import ApiResult, ErrorKind
from doggocli.infrastructure.resilience.errors import CircuitOpenError, MaxRetryError


def response_payload(response: httpx.Response) -> Any:
    """Best-effort decode of an error body: JSON if possible, else text."""
    try:
        return response.json()
    except ValueError:
        return response.text or None


def failure_from_response(response: httpx.Response, what: str) -> ApiResult:
    """Maps a non-2xx response onto the error taxonomy."""
    status = response.status_code
    if status == 401:
        kind = ErrorKind.AUTHENTICATION
    elif status == 408 or status >= 500:
        kind = ErrorKind.TRANSIENT
    else:
        kind = ErrorKind.CLIENT
    return ApiResult.failure(kind, f"{what} failed", status_code=status, payload=response_payload(response))


def failure_from_exception(e: Exception, what: str) -> ApiResult:
    """Maps a gateway or decoding exception onto the error taxonomy."""
    if isinstance(e, CircuitOpenError):
        return ApiResult.failure(ErrorKind.CIRCUIT_OPEN, f"{what} rejected: backend temporarily unavailable")
    if isinstance(e, MaxRetryError):
        return ApiResult.failure(ErrorKind.TRANSIENT, f"{what} failed after {e.attempts} attempts")
    if isinstance(e, ValueError):  # WireFormatError and malformed JSON
        return ApiResult.failure(ErrorKind.UNEXPECTED, f"{what} returned an unexpected payload: {e}")
    return ApiResult.failure(ErrorKind.UNEXPECTED, f"{what} failed unexpectedly: {e}")
