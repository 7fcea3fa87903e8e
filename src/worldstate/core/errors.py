"""
Typed failures reported by the minute pipeline.

The orchestrator never inspects exception messages; it branches on the
class of the error found inside an ``Err``:

    ValidationError    malformed metadata, cursors, CLI input
    ExternalApiError   quote source or image provider (provider, status)
    StorageError       object store, archive index, state (op, key)
      StateConflictError   GlobalState write lost a version race
    InternalError      clock failures, inconsistent state

Market-data failures degrade one symbol to zero and are only logged.
Image-provider and storage failures abort the tick and leave GlobalState
untouched. Revenue and rollback failures never block publication.

    >>> error = StorageError("put failed", op="put", key="images/a.webp")
    >>> error.category
    <ErrorCategory.STORAGE: 'STORAGE'>
    >>> error.to_dict()["key"]
    'images/a.webp'
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    VALIDATION = "VALIDATION"
    EXTERNAL_API = "EXTERNAL_API"
    STORAGE = "STORAGE"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Where an error happened; unset fields are left out of log output."""

    stage: str | None = None
    minute_bucket: str | None = None
    ticker: str | None = None
    url: str | None = None
    http_status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        fields = asdict(self)
        extra = fields.pop("metadata")
        known = {name: value for name, value in fields.items() if value is not None}
        return {**known, **extra}


class WorldStateError(Exception):
    """
    Root of the taxonomy.

    ``category`` and ``retryable`` come from class attributes unless given.
    ``retryable`` means a later tick may succeed; nothing retries in-process.

        >>> WorldStateError("x").with_context(stage="prompt").context.stage
        'prompt'
    """

    category: ErrorCategory = ErrorCategory.INTERNAL
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable
        self.context = context if context is not None else ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **values: Any) -> WorldStateError:
        """Fill context fields in place; unknown names go to ``metadata``."""
        for name, value in values.items():
            if name != "metadata" and hasattr(self.context, name):
                setattr(self.context, name, value)
            else:
                self.context.metadata[name] = value
        return self

    def _details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Flat structure suitable for ``log.error(event, **error.to_dict())``."""
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        data.update(self._details())
        if context := self.context.to_dict():
            data["context"] = context
        if self.cause is not None:
            data["cause"] = str(self.cause)
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ValidationError(WorldStateError):
    category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint

    def _details(self) -> dict[str, Any]:
        details: dict[str, Any] = {}
        if self.field:
            details["field"] = self.field
        if self.value is not None:
            details["value"] = repr(self.value)
        if self.constraint:
            details["constraint"] = self.constraint
        return details


class ExternalApiError(WorldStateError):
    """Non-2xx, timeout, or unusable body from a remote service."""

    category = ErrorCategory.EXTERNAL_API
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status: int | None = None,
        ticker: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.provider = provider
        self.status = status
        self.ticker = ticker
        self.with_context(**{k: v for k, v in (("http_status", status), ("ticker", ticker)) if v is not None})

    def _details(self) -> dict[str, Any]:
        details: dict[str, Any] = {"provider": self.provider}
        if self.status is not None:
            details["status"] = self.status
        if self.ticker is not None:
            details["ticker"] = self.ticker
        return details


STORAGE_OPS = frozenset({"get", "put", "delete", "list"})


class StorageError(WorldStateError):
    category = ErrorCategory.STORAGE
    retryable = True

    def __init__(self, message: str, *, op: str, key: str, **kwargs: Any):
        if op not in STORAGE_OPS:
            raise ValueError(f"Unknown storage op: {op!r}")
        super().__init__(message, **kwargs)
        self.op = op
        self.key = key

    def _details(self) -> dict[str, Any]:
        return {"op": self.op, "key": self.key}


class StateConflictError(StorageError):
    """Compare-and-swap on the state version found a newer writer."""

    retryable = False

    def __init__(
        self,
        key: str,
        *,
        expected_version: int | None,
        actual_version: int | None,
        **kwargs: Any,
    ):
        super().__init__(
            f"State version conflict on {key}: expected {expected_version}, found {actual_version}",
            op="put",
            key=key,
            **kwargs,
        )
        self.expected_version = expected_version
        self.actual_version = actual_version

    def _details(self) -> dict[str, Any]:
        return {
            **super()._details(),
            "expected_version": self.expected_version,
            "actual_version": self.actual_version,
        }


class InternalError(WorldStateError):
    category = ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "WorldStateError",
    "ValidationError",
    "ExternalApiError",
    "StorageError",
    "StateConflictError",
    "InternalError",
    "STORAGE_OPS",
]
