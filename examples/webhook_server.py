"""
Receive Laneful webhooks with the bundled Flask application.

Set LANEFUL_WEBHOOK_SECRET to enforce signatures, then point the Laneful
webhook configuration at http://<host>:3000/webhooks/laneful.
"""

from __future__ import annotations

from laneful import (
    BounceEvent,
    ClickEvent,
    DeliveryEvent,
    DropEvent,
    OpenEvent,
    SpamComplaintEvent,
    UnsubscribeEvent,
    WebhookEventType,
    WebhookHandler,
    configure_logging,
    get_logger,
)
from laneful.app import create_app

logger = get_logger("examples.webhook_server")

handler = WebhookHandler.from_settings()


@handler.on(WebhookEventType.DELIVERY)
def on_delivery(event: DeliveryEvent) -> None:
    logger.info("Email delivered", message_id=event.message_id, email=event.email)


@handler.on(WebhookEventType.OPEN)
def on_open(event: OpenEvent) -> None:
    logger.info("Email opened", email=event.email, client=event.client_name, device=event.client_device)


@handler.on(WebhookEventType.CLICK)
def on_click(event: ClickEvent) -> None:
    logger.info("Link clicked", email=event.email, url=event.url)


@handler.on(WebhookEventType.BOUNCE)
async def on_bounce(event: BounceEvent) -> None:
    # Hard bounces should be suppressed from future sends
    logger.warning(
        "Email bounced",
        email=event.email,
        hard=event.is_hard,
        code=event.code,
        text=event.text
    )


@handler.on(WebhookEventType.DROP)
def on_drop(event: DropEvent) -> None:
    logger.warning("Email dropped", email=event.email, reason=event.reason)


@handler.on(WebhookEventType.SPAM_COMPLAINT)
def on_spam_complaint(event: SpamComplaintEvent) -> None:
    logger.warning("Spam complaint", email=event.email, feedback=event.feedback_type_text)


@handler.on(WebhookEventType.UNSUBSCRIBE)
def on_unsubscribe(event: UnsubscribeEvent) -> None:
    logger.info("Unsubscribed", email=event.email, group=event.unsubscribe_group_id)


if __name__ == "__main__":
    configure_logging("INFO")
    create_app(handler).run(host="0.0.0.0", port=3000)
