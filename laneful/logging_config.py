"""
Structured Logging
==================

JSON logging with keyword fields and a per-context correlation id.

Library loggers stay silent until the application opts in with
``configure_logging``; until then records propagate to whatever the
host application has configured on the root logger.

Example:
    >>> configure_logging("DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.info("Batch sent", batch_size=3, status="accepted")
    {"severity": "INFO", "message": "Batch sent", "batch_size": 3, ...}
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, MutableMapping, Optional, Protocol, TypeVar, Union
from uuid import uuid4

ROOT_LOGGER_NAME = "laneful"

# Correlation id of the batch or webhook request being handled
request_id_var: ContextVar[str] = ContextVar("laneful_request_id", default="")

F = TypeVar("F", bound=Callable[..., Any])

# Keyword arguments understood by logging itself; everything else is a field
_LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})


class LoggerLike(Protocol):
    """Minimal logger surface accepted by the client."""

    def debug(self, message: str, **kwargs: Any) -> None: ...

    def info(self, message: str, **kwargs: Any) -> None: ...

    def warn(self, message: str, **kwargs: Any) -> None: ...

    def error(self, message: str, **kwargs: Any) -> None: ...


class LanefulFormatter(logging.Formatter):
    """Renders each record as a single-line JSON document."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "sourceLocation": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id

        entry.update(getattr(record, "extra_fields", {}))

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str, ensure_ascii=False)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter that turns keyword arguments into JSON fields.

    ``logger.error("Send failed", attempt=2)`` emits a record whose
    formatted output contains ``"attempt": 2``. Disabled levels are
    filtered before any field handling.
    """

    def __init__(self, name: str) -> None:
        super().__init__(logging.getLogger(name), {})

    def process(
        self,
        msg: Any,
        kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in _LOGGING_KWARGS}
        if fields:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "extra_fields": fields}
        return msg, kwargs

    warn = logging.LoggerAdapter.warning


def get_logger(name: str) -> StructuredLogger:
    """Structured logger for ``name`` (typically ``__name__``)."""
    return StructuredLogger(name)


def configure_logging(
    level: Union[int, str] = logging.INFO,
    stream: Any = None
) -> logging.Handler:
    """
    Attach the JSON handler to the ``laneful`` logger.

    Calling it again replaces the previously installed handler, so
    repeated configuration never duplicates output.

    Args:
        level: Minimum logging level, as a number or a level name.
        stream: Output stream, defaults to stdout.

    Returns:
        The installed handler.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for existing in [h for h in root.handlers if getattr(h, "_laneful_handler", False)]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(LanefulFormatter())
    handler._laneful_handler = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False
    return handler


def generate_request_id() -> str:
    return uuid4().hex


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a correlation id to the current context, generating one if needed."""
    request_id = request_id or generate_request_id()
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    return request_id_var.get()


def log_execution_time(logger: Optional[LoggerLike] = None) -> Callable[[F], F]:
    """
    Decorator reporting call duration at debug level.

    Args:
        logger: Logger to use; defaults to the decorated function's module logger.
    """
    def decorator(func: F) -> F:
        log = logger or get_logger(func.__module__)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            outcome: dict[str, Any] = {"status": "success"}
            try:
                return func(*args, **kwargs)
            except Exception as e:
                outcome = {"status": "error", "error": str(e)}
                raise
            finally:
                log.debug(
                    f"{func.__name__} finished",
                    function=func.__name__,
                    duration_seconds=round(time.perf_counter() - started, 6),
                    **outcome
                )

        return wrapper  # type: ignore[return-value]

    return decorator
