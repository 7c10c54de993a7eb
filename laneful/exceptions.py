"""
Error Taxonomy
==============

Every failure raised by the client derives from ``LanefulError`` and
carries a stable ``ErrorCode``, a human readable message, and an
``ErrorContext`` for logs and JSON error bodies.

Keyword details passed to any error (``field``, ``status_code``,
``retry_after``...) are folded into the context so they show up in
``to_dict()`` without every subclass re-implementing serialization.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Stable error codes, grouped by area."""

    # Client side (1xxx)
    CLIENT_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    RATE_LIMIT_EXCEEDED = "ERR_1002"
    TIMEOUT = "ERR_1003"
    CONNECTION_ERROR = "ERR_1004"

    # Remote API (2xxx)
    API_ERROR = "ERR_2000"
    AUTH_ERROR = "ERR_2001"

    # Webhooks (3xxx)
    WEBHOOK_ERROR = "ERR_3000"
    WEBHOOK_INVALID_PAYLOAD = "ERR_3001"
    WEBHOOK_BATCH_FAILED = "ERR_3002"


@dataclass
class ErrorContext:
    """Where an error happened plus any structured details."""

    operation: str = ""
    additional_info: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"operation": self.operation, **self.additional_info}


class LanefulError(Exception):
    """
    Base exception for all Laneful client errors.

    Also raised directly for failures that have no more specific kind,
    such as an exhausted retry budget or a timed out request.

    Example:
        >>> raise LanefulError(
        ...     "Request timed out",
        ...     code=ErrorCode.TIMEOUT,
        ...     context=ErrorContext(operation="make_request")
        ... )
    """

    default_code = ErrorCode.CLIENT_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
        **details: Any
    ) -> None:
        """
        Args:
            message: Human readable description.
            code: Error code; defaults to the class's ``default_code``.
            context: Operation name and structured details.
            cause: Underlying exception, if any.
            **details: Extra context entries; ``None`` values are skipped.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context or ErrorContext()
        self.context.additional_info.update(
            (key, value) for key, value in details.items() if value is not None
        )
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready error body."""
        body: dict[str, Any] = {
            "error": True,
            "code": self.code.value,
            "message": self.message,
        }
        if self.context.operation:
            body["context"] = self.context.to_dict()
        return body

    def __str__(self) -> str:
        text = f"[{self.code.value}] {self.message}"
        if self.context.operation:
            text += f" (operation: {self.context.operation})"
        if self.cause is not None:
            text += f" Caused by: {self.cause}"
        return text


class LanefulAPIError(LanefulError):
    """The API answered with a 4xx/5xx status."""

    default_code = ErrorCode.API_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict[str, Any]] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, status_code=status_code, **kwargs)
        self.status_code = status_code
        self.response_data = response_data or {}


class LanefulAuthError(LanefulError):
    """The API rejected the authentication token."""

    default_code = ErrorCode.AUTH_ERROR

    def __init__(self, message: str = "Authentication failed", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class LanefulValidationError(LanefulError):
    """Input failed validation before any network activity."""

    default_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, field: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, field=field, **kwargs)
        self.field = field


class LanefulRateLimitError(LanefulError):
    """The client-side request window is exhausted."""

    default_code = ErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(self, retry_after: float, message: Optional[str] = None, **kwargs: Any) -> None:
        if message is None:
            message = f"Rate limit exceeded. Try again in {max(0, math.ceil(retry_after))} seconds."
        super().__init__(message, retry_after=retry_after, **kwargs)
        self.retry_after = retry_after


class WebhookError(LanefulError):
    """Base exception for webhook processing errors."""

    default_code = ErrorCode.WEBHOOK_ERROR


class WebhookPayloadError(WebhookError):
    """A webhook payload cannot be parsed into an event."""

    default_code = ErrorCode.WEBHOOK_INVALID_PAYLOAD

    def __init__(self, message: str, field: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, field=field, **kwargs)
        self.field = field


class WebhookBatchError(WebhookError):
    """
    Raised after a batch payload finished dispatching with failures.

    Every element of the batch is dispatched; ``errors`` holds one
    ``(index, exception)`` pair per element that failed to parse or
    whose handler raised.
    """

    default_code = ErrorCode.WEBHOOK_BATCH_FAILED

    def __init__(self, errors: list[tuple[int, BaseException]], total: int, **kwargs: Any) -> None:
        summary = ", ".join(f"[{index}] {_describe(error)}" for index, error in errors)
        kwargs.setdefault("context", ErrorContext(operation="process_webhook"))
        super().__init__(
            f"{len(errors)} of {total} webhook events failed: {summary}",
            failed=len(errors),
            total=total,
            **kwargs
        )
        self.errors = errors
        self.total = total


def _describe(error: BaseException) -> str:
    if isinstance(error, LanefulError):
        return error.message
    return f"{type(error).__name__}: {error}"
