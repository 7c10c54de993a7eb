"""Webhooks package."""

from laneful.webhooks.events import (
    AnyWebhookEvent,
    BounceEvent,
    ClickEvent,
    DeliveryEvent,
    DropEvent,
    GenericWebhookEvent,
    OpenEvent,
    SpamComplaintEvent,
    UnsubscribeEvent,
    WebhookEvent,
    WebhookEventType,
    parse_event,
)
from laneful.webhooks.handler import WebhookHandler

__all__ = [
    "AnyWebhookEvent",
    "BounceEvent",
    "ClickEvent",
    "DeliveryEvent",
    "DropEvent",
    "GenericWebhookEvent",
    "OpenEvent",
    "SpamComplaintEvent",
    "UnsubscribeEvent",
    "WebhookEvent",
    "WebhookEventType",
    "WebhookHandler",
    "parse_event",
]
