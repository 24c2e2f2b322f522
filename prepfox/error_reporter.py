"""Structured reporting of failures raised around remote calls."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from prepfox.errors import EnhancedError, ErrorKind, OperationContext
from prepfox.logger import log_manager

ErrorSink = Callable[[dict[str, Any]], Awaitable[None]]

USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.CANCELLED: "The action was cancelled.",
    ErrorKind.CIRCUIT_OPEN: "This service is temporarily unavailable. Please try again in a few minutes.",
    ErrorKind.EXHAUSTED: "We couldn't reach the service after several tries. Please try again later.",
}
GENERIC_USER_MESSAGE = "Something went wrong. Please try again or contact support."


class ErrorReporter:
    """Logs failures with their context and forwards them to an audit sink.

    Usage:
        reporter = ErrorReporter(sink=audit_log.insert)
        try:
            await with_retry(sync_orders, policy, context)
        except EnhancedError as e:
            await reporter.report(e)
            notify(reporter.user_message(e))
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        sink: ErrorSink | None = None,
    ) -> None:
        """Initialize error reporter.

        Args:
            logger: Logger for structured records (defaults to the "errors" component)
            sink: Async callable receiving each record, e.g. an audit log writer
        """
        self._logger = logger or log_manager.get_error_logger()
        self._sink = sink

    @staticmethod
    def enhance(error: BaseException, context: OperationContext) -> EnhancedError:
        """Wrap a raw exception in an EnhancedError, leaving enhanced ones alone."""
        if isinstance(error, EnhancedError):
            return error
        return EnhancedError(str(error) or type(error).__name__, context, cause=error)

    async def report(
        self,
        error: BaseException,
        context: OperationContext | None = None,
    ) -> EnhancedError:
        """Log an error and hand it to the sink.

        Args:
            error: The failure; raw exceptions require a context
            context: Attribution for raw exceptions

        Returns:
            The EnhancedError that was reported
        """
        if not isinstance(error, EnhancedError):
            if context is None:
                raise ValueError("context is required to report a raw exception")
            error = self.enhance(error, context)

        record = error.to_dict()
        self._logger.error(
            f"[{error.correlation_id}] {error.context.component}.{error.context.operation} "
            f"failed ({error.kind.value}, retryable={error.retryable}): {error.message}",
            extra={"error_record": record},
        )

        if self._sink is not None:
            try:
                await self._sink(record)
            except Exception as e:
                self._logger.warning(
                    f"[{error.correlation_id}] Failed to store error record: {e}"
                )

        return error

    @staticmethod
    def user_message(error: BaseException) -> str:
        """Map an error to a short notification safe to show end users."""
        if isinstance(error, EnhancedError):
            return USER_MESSAGES.get(error.kind, GENERIC_USER_MESSAGE)
        return GENERIC_USER_MESSAGE
