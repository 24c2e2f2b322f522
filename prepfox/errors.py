"""Operation context and structured error types for remote calls."""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any


class ErrorKind(str, Enum):
    """Machine-readable classification of an EnhancedError."""
    UNCLASSIFIED = "unclassified"
    NON_RETRYABLE = "non_retryable"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
    CIRCUIT_OPEN = "circuit_open"


def _freeze(metadata: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(metadata or {}))


@dataclass(frozen=True)
class OperationContext:
    """Describes why an operation is being run.

    Created once per call site right before the executor is invoked and
    passed by reference into every error raised on its behalf.

    Attributes:
        correlation_id: Token joining all log/error records of one invocation
        operation: Name of the logical operation (e.g. "sync_orders")
        component: Module or component that started the operation
        user_id: Optional user the operation runs for
        metadata: Free-form key/value details
        timestamp: Creation time (UTC)
    """
    correlation_id: str
    operation: str
    component: str
    user_id: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze(self.metadata))

    def __hash__(self) -> int:
        return hash((self.correlation_id, self.operation, self.component, self.user_id, self.timestamp))

    def __reduce__(self):
        return (
            type(self),
            (self.correlation_id, self.operation, self.component,
             self.user_id, dict(self.metadata), self.timestamp),
        )

    @classmethod
    def create(
        cls,
        operation: str,
        component: str,
        *,
        user_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> "OperationContext":
        """Build a context with a fresh correlation id unless one is given."""
        return cls(
            correlation_id=correlation_id or str(uuid.uuid4()),
            operation=operation,
            component=component,
            user_id=user_id,
            metadata=metadata or {},
        )

    def with_metadata(self, **extra: Any) -> "OperationContext":
        """Return a copy with extra metadata merged in."""
        return replace(self, metadata={**self.metadata, **extra})

    def to_dict(self) -> dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "operation": self.operation,
            "component": self.component,
            "user_id": self.user_id,
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp.isoformat(),
        }


class EnhancedError(Exception):
    """A failure attributed to an OperationContext.

    Raisers set ``retryable`` explicitly; the retry executor trusts that flag
    over any message matching.
    """

    def __init__(
        self,
        message: str,
        context: OperationContext,
        cause: BaseException | None = None,
        retryable: bool = False,
        *,
        kind: ErrorKind = ErrorKind.UNCLASSIFIED,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context
        self.cause = cause
        self.retryable = retryable
        self.kind = kind
        self.metadata = _freeze(metadata)
        if cause is not None:
            self.__cause__ = cause

    @property
    def correlation_id(self) -> str:
        return self.context.correlation_id

    @property
    def attempts(self) -> int | None:
        """Attempts made before the executor gave up, if recorded."""
        return self.metadata.get("attempts")

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a flat record for logs and audit sinks."""
        return {
            "message": self.message,
            "kind": self.kind.value,
            "retryable": self.retryable,
            "cause": str(self.cause) if self.cause is not None else None,
            "cause_type": type(self.cause).__name__ if self.cause is not None else None,
            "metadata": dict(self.metadata),
            **{f"context_{k}" if k == "metadata" else k: v for k, v in self.context.to_dict().items()},
        }

    def __reduce__(self):
        return (
            _rebuild_error,
            (type(self), self.message, self.context, self.cause,
             self.retryable, self.kind, dict(self.metadata)),
        )

    def __repr__(self) -> str:
        return (
            f"EnhancedError({self.message!r}, kind={self.kind.value}, "
            f"retryable={self.retryable}, correlation_id={self.correlation_id!r})"
        )


def _rebuild_error(cls, message, context, cause, retryable, kind, metadata):
    return cls(message, context, cause, retryable, kind=kind, metadata=metadata)
