"""
Send a single email, a template email and a scheduled email.

Reads LANEFUL_BASE_URL and LANEFUL_AUTH_TOKEN from the environment.
"""

from __future__ import annotations

import time

from laneful import (
    Address,
    Attachment,
    Email,
    LanefulClient,
    LanefulError,
    TrackingSettings,
    configure_logging,
    get_logger,
)

logger = get_logger("examples.basic_email")


def main() -> None:
    configure_logging("INFO")

    with LanefulClient.from_settings() as client:
        welcome = Email(
            sender=Address(email="sender@yourdomain.com", name="Your Name"),
            to=[Address(email="user@example.com", name="User Name")],
            subject="Welcome aboard",
            text_content="Thanks for signing up.",
            html_content="<h1>Welcome</h1><p>Thanks for signing up.</p>",
            tag="welcome",
            tracking=TrackingSettings(clicks=False),
        )

        template = Email(
            sender=Address(email="sender@yourdomain.com"),
            to=[Address(email="user@example.com")],
            subject="Your order has shipped",
            template_id="order-shipped",
            template_data={"order_id": "A-1042", "carrier": "UPS"},
            webhook_data={"order_id": "A-1042"},
        )

        scheduled = Email(
            sender=Address(email="sender@yourdomain.com"),
            to=[Address(email="user@example.com")],
            subject="Reminder",
            text_content="Your trial ends tomorrow.",
            send_time=int(time.time()) + 3600,
        )

        for email in (welcome, template, scheduled):
            try:
                result = client.send_email(email)
            except LanefulError as e:
                logger.error("Send rejected", error=str(e))
                continue
            logger.info(
                "Email processed",
                subject=email.subject,
                status=result.status.value,
                error=result.error
            )


def attachment_example(client: LanefulClient, report_path: str) -> None:
    """Send a file attachment next to an inline logo."""
    email = Email(
        sender=Address(email="reports@yourdomain.com"),
        to=[Address(email="team@example.com")],
        subject="Monthly report",
        html_content='<p>Report attached.</p><img src="cid:logo">',
        attachments=[
            Attachment.from_file(report_path),
            Attachment(content_type="image/png", inline_id="logo", content="iVBORw0KGgo="),
        ],
    )
    result = client.send_email(email)
    logger.info("Report sent", status=result.status.value)


if __name__ == "__main__":
    main()
