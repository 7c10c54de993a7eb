"""
Webhook Handler
===============

Signature verification and typed dispatch of inbound webhook payloads.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import inspect
import json
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from laneful.config import LanefulSettings, get_settings
from laneful.exceptions import WebhookBatchError, WebhookPayloadError
from laneful.logging_config import StructuredLogger, get_logger
from laneful.webhooks.events import AnyWebhookEvent, WebhookEventType, event_type_key, parse_event

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]
H = TypeVar("H", bound=EventHandler)

Payload = Union[str, bytes, bytearray, Mapping[str, Any], list]


class WebhookHandler:
    """
    Verifies and dispatches Laneful webhook notifications.

    Each instance owns its own handler registry, so several handlers
    with different secrets can live in one process.

    Example:
        >>> handler = WebhookHandler("webhook-secret")
        >>> @handler.on(WebhookEventType.DELIVERY)
        ... def on_delivery(event):
        ...     print(event.message_id, event.email)
        >>> if handler.verify_signature(raw_body, signature_header):
        ...     handler.process_sync(raw_body)
    """

    SIGNATURE_PREFIX = "sha256="

    def __init__(
        self,
        webhook_secret: Optional[str] = None,
        logger: Optional[StructuredLogger] = None
    ) -> None:
        """
        Initialize webhook handler.

        Args:
            webhook_secret: Shared secret for signature verification.
                Without it every signature is accepted.
            logger: Optional logger; defaults to the module logger.
        """
        self._webhook_secret = webhook_secret or None
        self._handlers: dict[str, EventHandler] = {}
        self._logger = logger or get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: Optional[LanefulSettings] = None) -> WebhookHandler:
        """Create a handler using ``LANEFUL_WEBHOOK_SECRET``."""
        settings = settings or get_settings()
        return cls(webhook_secret=settings.webhook_secret)

    @property
    def has_secret(self) -> bool:
        return self._webhook_secret is not None

    # ========================================================================
    # Signature Verification
    # ========================================================================

    def compute_signature(self, payload: Union[str, bytes, bytearray]) -> str:
        """Hex HMAC-SHA256 of the raw payload under the configured secret."""
        if self._webhook_secret is None:
            raise ValueError("No webhook secret configured")
        return hmac.new(
            self._webhook_secret.encode("utf-8"),
            _to_bytes(payload),
            hashlib.sha256
        ).hexdigest()

    def verify_signature(
        self,
        payload: Union[str, bytes, bytearray],
        signature: Optional[str]
    ) -> bool:
        """
        Verify a webhook signature.

        Args:
            payload: The raw request body, exactly as received.
            signature: Signature header value, with or without ``sha256=``.

        Returns:
            True if the signature matches or no secret is configured.
        """
        if self._webhook_secret is None:
            return True
        if not signature:
            return False

        provided = signature.strip()
        if provided.startswith(self.SIGNATURE_PREFIX):
            provided = provided[len(self.SIGNATURE_PREFIX):]

        expected = self.compute_signature(payload)
        if len(provided) != len(expected):
            return False
        return hmac.compare_digest(provided.lower().encode("utf-8"), expected.encode("ascii"))

    # ========================================================================
    # Handler Registry
    # ========================================================================

    def register_handler(self, event_type: Union[WebhookEventType, str], handler: EventHandler) -> None:
        """
        Register the handler for an event kind, replacing any previous one.

        Args:
            event_type: Event kind, e.g. ``WebhookEventType.BOUNCE`` or ``"bounce"``.
            handler: Sync or async callable receiving the event.
        """
        key = event_type_key(event_type)
        if key in self._handlers:
            self._logger.debug("Replacing webhook handler", event_type=key)
        self._handlers[key] = handler

    def on(self, event_type: Union[WebhookEventType, str]) -> Callable[[H], H]:
        """Decorator form of ``register_handler``."""
        def decorator(handler: H) -> H:
            self.register_handler(event_type, handler)
            return handler
        return decorator

    def remove_handler(self, event_type: Union[WebhookEventType, str]) -> None:
        self._handlers.pop(event_type_key(event_type), None)

    def registered_event_types(self) -> list[str]:
        return list(self._handlers)

    # ========================================================================
    # Parsing and Dispatch
    # ========================================================================

    def parse(self, payload: Payload) -> Union[AnyWebhookEvent, list[AnyWebhookEvent]]:
        """
        Parse a payload into one event, or a list for batch payloads.

        Raises:
            WebhookPayloadError: On malformed JSON or an invalid event.
        """
        data = _decode(payload)
        if isinstance(data, list):
            return [parse_event(item) for item in data]
        return parse_event(data)

    async def process(self, payload: Payload) -> None:
        """
        Parse a payload and invoke the registered handlers.

        A batch payload dispatches every element independently. Once all
        of them have finished, failures are raised together as a
        ``WebhookBatchError``.

        Raises:
            WebhookPayloadError: Single payload that cannot be parsed.
            WebhookBatchError: One or more batch elements failed.
        """
        data = _decode(payload)
        if isinstance(data, list):
            await self._process_batch(data)
        else:
            await self._process_single(data)

    def process_sync(self, payload: Payload) -> None:
        """Run ``process`` to completion from synchronous code."""
        asyncio.run(self.process(payload))

    async def handle_event(self, event_type: Union[WebhookEventType, str], event: Any) -> None:
        """Invoke the handler registered for ``event_type`` with an already built event."""
        await self._invoke(event_type_key(event_type), event)

    async def _process_batch(self, items: list[Any]) -> None:
        results = await asyncio.gather(
            *(self._process_single(item) for item in items),
            return_exceptions=True
        )

        errors: list[tuple[int, BaseException]] = []
        for index, result in enumerate(results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                errors.append((index, result))

        self._logger.debug(
            "Webhook batch processed",
            total=len(items),
            failed=len(errors)
        )
        if errors:
            self._logger.warning(
                "Webhook batch had failures",
                total=len(items),
                failed_indexes=[index for index, _ in errors]
            )
            raise WebhookBatchError(errors, total=len(items))

    async def _process_single(self, data: Any) -> None:
        event = parse_event(data)
        await self._invoke(event.event_type, event)

    async def _invoke(self, key: str, event: Any) -> None:
        handler = self._handlers.get(key)
        if handler is None:
            self._logger.debug("No handler registered for webhook event", event_type=key)
            return

        result = handler(event)
        if inspect.isawaitable(result):
            await result


def _to_bytes(payload: Union[str, bytes, bytearray]) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)


def _decode(payload: Payload) -> Any:
    """Turn a raw or pre-decoded payload into JSON data."""
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise WebhookPayloadError(f"Invalid JSON payload: {e}", cause=e) from e
    elif isinstance(payload, (Mapping, list)):
        data = payload
    else:
        raise WebhookPayloadError(
            f"Unsupported webhook payload type: {type(payload).__name__}"
        )

    if not isinstance(data, (Mapping, list)):
        raise WebhookPayloadError(
            f"Invalid JSON payload: expected an object or an array, got {type(data).__name__}"
        )
    return data
