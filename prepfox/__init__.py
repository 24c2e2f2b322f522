"""PrepFox resilience core: retrying remote calls with structured errors."""

from prepfox.errors import EnhancedError, ErrorKind, OperationContext
from prepfox.utils import CircuitBreaker, RetryPolicy, with_retry

__all__ = [
    "with_retry",
    "RetryPolicy",
    "OperationContext",
    "EnhancedError",
    "ErrorKind",
    "CircuitBreaker",
]
