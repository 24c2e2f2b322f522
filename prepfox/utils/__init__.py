"""Utility modules."""

from .circuit_breaker import CircuitBreaker
from .retry import (
    DEFAULT_RETRYABLE_ERRORS,
    RetryPolicy,
    is_retryable_error,
    log_retries,
    retryable,
    with_retry,
)

__all__ = [
    "with_retry",
    "RetryPolicy",
    "retryable",
    "log_retries",
    "is_retryable_error",
    "DEFAULT_RETRYABLE_ERRORS",
    "CircuitBreaker",
]
