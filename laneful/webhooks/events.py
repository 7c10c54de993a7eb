"""
Webhook Events
==============

Typed records for inbound webhook notifications.

Every payload carries an ``event`` field naming its kind. The kinds form
a closed set, each with the shared base fields plus a few kind-specific
ones; ``WebhookEvent`` is the union discriminated on ``event``.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from laneful.exceptions import WebhookPayloadError

EVENT_FIELD = "event"


class WebhookEventType(str, Enum):
    """Webhook event kinds."""
    DELIVERY = "delivery"
    OPEN = "open"
    CLICK = "click"
    BOUNCE = "bounce"
    DROP = "drop"
    SPAM_COMPLAINT = "spam_complaint"
    UNSUBSCRIBE = "unsubscribe"


class WebhookEventBase(BaseModel):
    """Fields shared by every event kind."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True
    )

    email: str = ""
    lane_id: str = ""
    message_id: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    tag: str = ""
    timestamp: int = 0

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        """Explicit nulls fall back to the field default."""
        if isinstance(data, Mapping):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @property
    def event_type(self) -> str:
        return getattr(self, EVENT_FIELD)


class DeliveryEvent(WebhookEventBase):
    event: Literal["delivery"] = "delivery"


class OpenEvent(WebhookEventBase):
    event: Literal["open"] = "open"
    referer: str = ""
    client_name: str = ""
    client_os: str = ""
    client_ip: str = ""
    client_device: str = ""


class ClickEvent(WebhookEventBase):
    event: Literal["click"] = "click"
    url: str = ""
    referer: str = ""
    client_name: str = ""
    client_os: str = ""
    client_ip: str = ""
    client_device: str = ""


class BounceEvent(WebhookEventBase):
    event: Literal["bounce"] = "bounce"
    code: str = ""
    extended_code: str = ""
    text: str = ""
    is_hard: bool = False
    deliverability_issue: str = ""


class DropEvent(WebhookEventBase):
    event: Literal["drop"] = "drop"
    reason: str = ""


class SpamComplaintEvent(WebhookEventBase):
    event: Literal["spam_complaint"] = "spam_complaint"
    feedback_type_id: str = ""
    feedback_type_text: str = ""
    received_unix_timestamp: int = 0


class UnsubscribeEvent(WebhookEventBase):
    event: Literal["unsubscribe"] = "unsubscribe"
    unsubscribe_group_id: int = 0


class GenericWebhookEvent(WebhookEventBase):
    """
    An event whose kind is outside the known set.

    Keys beyond the shared base fields are kept in ``data`` so handlers
    registered for new kinds still see the full payload.
    """

    event: str
    data: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def collect_unknown_fields(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        known = set(WebhookEventBase.model_fields) | {EVENT_FIELD, "data"}
        collected = {key: value for key, value in data.items() if key in known}
        extra = {key: value for key, value in data.items() if key not in known}
        if extra:
            nested = data.get("data") or {}
            if not isinstance(nested, Mapping):
                raise ValueError(f"Field 'data' must be an object, got {type(nested).__name__}")
            collected["data"] = {**nested, **extra}
        return collected


WebhookEvent = Annotated[
    Union[
        DeliveryEvent,
        OpenEvent,
        ClickEvent,
        BounceEvent,
        DropEvent,
        SpamComplaintEvent,
        UnsubscribeEvent,
    ],
    Field(discriminator=EVENT_FIELD),
]

AnyWebhookEvent = Union[WebhookEvent, GenericWebhookEvent]

_event_adapter: TypeAdapter[Any] = TypeAdapter(WebhookEvent)

KNOWN_EVENT_TYPES = frozenset(kind.value for kind in WebhookEventType)


def event_type_key(event_type: Union[WebhookEventType, str]) -> str:
    """Registry key for an event kind."""
    if isinstance(event_type, WebhookEventType):
        return event_type.value
    return str(event_type)


def parse_event(data: Any) -> AnyWebhookEvent:
    """
    Build the typed event for one decoded payload object.

    Raises:
        WebhookPayloadError: If the object is not a mapping, has no
            ``event`` field, or carries badly typed values.
    """
    if not isinstance(data, Mapping):
        raise WebhookPayloadError(
            f"Webhook event must be a JSON object, got {type(data).__name__}"
        )

    kind = data.get(EVENT_FIELD)
    if not kind:
        raise WebhookPayloadError(
            f"Webhook payload missing required field: {EVENT_FIELD}",
            field=EVENT_FIELD
        )
    if not isinstance(kind, str):
        raise WebhookPayloadError(
            f"Webhook field '{EVENT_FIELD}' must be a string",
            field=EVENT_FIELD
        )

    try:
        if kind in KNOWN_EVENT_TYPES:
            return _event_adapter.validate_python(dict(data))
        return GenericWebhookEvent.model_validate(dict(data))
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != kind)
        raise WebhookPayloadError(
            f"Invalid '{kind}' event: {location + ': ' if location else ''}{first.get('msg', e)}",
            field=location or None,
            cause=e
        ) from e
