"""Retry logic with exponential backoff for unreliable remote calls."""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from prepfox.config import Settings
from prepfox.errors import EnhancedError, ErrorKind, OperationContext
from prepfox.logger import log_manager
from prepfox.utils.circuit_breaker import CircuitBreaker

T = TypeVar('T')

RetryHook = Callable[[Exception, int, float], None]

DEFAULT_RETRYABLE_ERRORS: tuple[str, ...] = (
    "fetch failed",
    "network error",
    "timeout",
    "connection refused",
    "rate limit",
    "service unavailable",
    "internal server error",
)


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior.

    Delays are in milliseconds. Matching against retryable_errors is a
    case-insensitive substring check on the failure message; it is only a
    fallback for failures that do not carry an explicit retryable flag
    (see EnhancedError), since upstream wording changes silently break it.

    Attributes:
        max_attempts: Total attempts including the first (default: 3)
        base_delay: Delay before the first retry (default: 1000)
        max_delay: Ceiling on the computed delay (default: 5000)
        backoff_multiplier: Growth factor per retry (default: 2.0)
        retryable_errors: Message substrings that mark a failure as transient
    """
    max_attempts: int = 3
    base_delay: float = 1000.0
    max_delay: float = 5000.0
    backoff_multiplier: float = 2.0
    retryable_errors: tuple[str, ...] = DEFAULT_RETRYABLE_ERRORS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must not be negative, got {self.base_delay}")
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must not be below base_delay ({self.base_delay})"
            )
        if self.backoff_multiplier <= 1:
            raise ValueError(f"backoff_multiplier must be greater than 1, got {self.backoff_multiplier}")
        if isinstance(self.retryable_errors, str):
            raise ValueError("retryable_errors must be a collection of strings, not a string")
        object.__setattr__(self, "retryable_errors", tuple(self.retryable_errors))

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "RetryPolicy":
        """Build a policy from application settings, with per-call overrides."""
        values: dict[str, Any] = {
            "max_attempts": settings.retry_max_attempts,
            "base_delay": settings.retry_base_delay_ms,
            "max_delay": settings.retry_max_delay_ms,
            "backoff_multiplier": settings.retry_backoff_multiplier,
        }
        values.update(overrides)
        return cls(**values)

    def calculate_delay(self, attempt: int) -> float:
        """Calculate the delay that follows a failed attempt.

        Args:
            attempt: Number of the attempt that just failed (1-indexed)

        Returns:
            Delay in milliseconds
        """
        delay = self.base_delay * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_delay)


def is_retryable_error(error: BaseException, retryable_errors: tuple[str, ...]) -> bool:
    """Decide whether a failure is transient.

    An EnhancedError is trusted as-is; anything else is retryable when its
    message contains one of retryable_errors, ignoring case.
    """
    if isinstance(error, EnhancedError):
        return error.retryable

    message = str(error).lower()
    return any(pattern.lower() in message for pattern in retryable_errors)


def _message_of(error: BaseException) -> str:
    if isinstance(error, EnhancedError):
        return error.message
    return str(error) or type(error).__name__


def _cancelled(context: OperationContext, attempts: int) -> EnhancedError:
    return EnhancedError(
        f"Operation {context.operation} was cancelled after {attempts} "
        f"attempt{'s' if attempts != 1 else ''}",
        context,
        retryable=False,
        kind=ErrorKind.CANCELLED,
        metadata={"attempts": attempts},
    )


async def _backoff(
    delay_ms: float,
    cancel_event: asyncio.Event | None,
    context: OperationContext,
    attempts: int,
) -> None:
    if cancel_event is None:
        await asyncio.sleep(delay_ms / 1000)
        return

    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay_ms / 1000)
    except asyncio.TimeoutError:
        return
    raise _cancelled(context, attempts)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    context: OperationContext,
    *,
    cancel_event: asyncio.Event | None = None,
    circuit_breaker: CircuitBreaker | None = None,
    on_retry: RetryHook | None = None,
) -> T:
    """Run an operation, retrying transient failures with exponential backoff.

    The operation must be safe to invoke more than once. The executor does
    not log; pass on_retry (see log_retries) to observe each backoff.

    Args:
        operation: Zero-argument coroutine function to run
        policy: Retry policy for this call
        context: Attribution attached to any error raised
        cancel_event: When set, aborts before the next attempt or during a delay
        circuit_breaker: Optional breaker shared across calls of the same operation
        on_retry: Callback called before each backoff with (exception, attempt, delay_ms)

    Returns:
        Result of the operation

    Raises:
        EnhancedError: kind NON_RETRYABLE when a failure is not transient,
            EXHAUSTED when attempts ran out, CANCELLED when cancel_event was
            set, CIRCUIT_OPEN when the breaker refused the call. Terminal
            failures carry the attempts made in metadata["attempts"].

    Example:
        context = OperationContext.create("sync_orders", "order_sync")
        orders = await with_retry(lambda: client.fetch_orders(shop), RetryPolicy(), context)
    """
    if circuit_breaker is not None and circuit_breaker.is_open(context.operation):
        raise EnhancedError(
            f"Circuit breaker is open for operation: {context.operation}",
            context,
            retryable=False,
            kind=ErrorKind.CIRCUIT_OPEN,
            metadata={"attempts": 0},
        )

    attempt = 1
    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise _cancelled(context, attempt - 1)

        try:
            result = await operation()
        except Exception as e:
            transient = is_retryable_error(e, policy.retryable_errors)

            if not transient or attempt >= policy.max_attempts:
                if circuit_breaker is not None:
                    circuit_breaker.record_failure(context.operation)
                raise EnhancedError(
                    f"Operation failed after {attempt} attempt{'s' if attempt != 1 else ''}: "
                    f"{_message_of(e)}",
                    context,
                    cause=e,
                    retryable=False,
                    kind=ErrorKind.EXHAUSTED if transient else ErrorKind.NON_RETRYABLE,
                    metadata={"attempts": attempt, "max_attempts": policy.max_attempts},
                ) from e

            delay = policy.calculate_delay(attempt)
            if on_retry:
                on_retry(e, attempt, delay)

            await _backoff(delay, cancel_event, context, attempt)
            attempt += 1
        else:
            if circuit_breaker is not None:
                circuit_breaker.record_success(context.operation)
            return result


def log_retries(context: OperationContext, logger: logging.Logger | None = None) -> RetryHook:
    """Build an on_retry callback that logs each backoff against a context.

    Logs to the "retry" component logger unless another logger is given.
    """
    if logger is None:
        logger = log_manager.get_retry_logger()

    def _on_retry(error: Exception, attempt: int, delay: float) -> None:
        logger.warning(
            f"[{context.correlation_id}] Attempt {attempt} of {context.operation} "
            f"failed: {_message_of(error)}. Retrying in {delay:.0f}ms..."
        )

    return _on_retry


def retryable(
    policy: RetryPolicy | None = None,
    component: str | None = None,
    circuit_breaker: CircuitBreaker | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator running every call of a coroutine function through with_retry.

    Each call gets a fresh OperationContext named after the function. Pass
    ``_context=`` at call time to supply one explicitly.

    Example:
        @retryable(RetryPolicy(max_attempts=5), component="shopify")
        async def fetch_products(shop_id):
            return await api.get_products(shop_id)
    """
    if policy is None:
        policy = RetryPolicy()

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, _context: OperationContext | None = None, **kwargs) -> T:
            context = _context or OperationContext.create(
                func.__name__, component or func.__module__
            )
            return await with_retry(
                lambda: func(*args, **kwargs),
                policy,
                context,
                circuit_breaker=circuit_breaker,
            )

        return wrapper

    return decorator
