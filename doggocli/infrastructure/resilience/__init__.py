"""API Resilience Implementations.

Contains the retry policy with exponential backoff and the circuit breaker
that together guard every call to the backend.
Bounded Context: API Resilience
"""
