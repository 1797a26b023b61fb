"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like tokens, identifiers
and policy settings, ensuring consistency and type safety.
"""

from typing import NewType, TypedDict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are plain values at runtime.
AuthToken = NewType("AuthToken", str)      # Opaque bearer token issued on login
StorageKey = NewType("StorageKey", str)    # Key in the external key-value token store
ApiPath = NewType("ApiPath", str)          # Path relative to the API base URL, e.g. 'api/locations'

# === Identifiers ===
UserId = NewType("UserId", int)
LocationId = NewType("LocationId", int)
RatingId = NewType("RatingId", int)

TOKEN_STORAGE_KEY = StorageKey("token")

# --- Structured Data ---

class BackoffPolicy(TypedDict):
    """Value Object representing retry backoff configuration."""
    max_retries: int
    initial_delay: float
    factor: float

class BreakerPolicy(TypedDict):
    """Value Object representing circuit breaker configuration."""
    failure_threshold: int
    break_duration: float
