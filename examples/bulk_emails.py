"""
Send a personalized batch with retries and a client-side rate limit.

Invalid entries come back as ``validation_failed`` while the rest of the
batch is still sent.
"""

from __future__ import annotations

from laneful import (
    LanefulClient,
    LanefulRateLimitError,
    RateLimitPolicy,
    RetryPolicy,
    SendStatus,
    configure_logging,
    get_logger,
)

logger = get_logger("examples.bulk_emails")

SUBSCRIBERS = [
    {"email": "alice@example.com", "name": "Alice Johnson"},
    {"email": "bob@example.com", "name": "Bob Smith"},
    {"email": "not-an-address", "name": "Broken Entry"},
    {"email": "carol@example.com", "name": "Carol Davis"},
]


def build_batch() -> list[dict]:
    return [
        {
            "from": {"email": "newsletter@yourcompany.com", "name": "Your Company"},
            "to": [subscriber],
            "subject": f"Weekly update for {subscriber['name']}",
            "html_content": f"<h1>Hello {subscriber['name']}!</h1>",
            "text_content": f"Hello {subscriber['name']}!",
            "tag": "newsletter",
        }
        for subscriber in SUBSCRIBERS
    ]


def main() -> None:
    configure_logging("INFO")

    client = LanefulClient.from_settings(
        retry=RetryPolicy(max_retries=3, base_delay=1.0, max_delay=5.0),
        rate_limit=RateLimitPolicy(max_requests=50, window=60.0),
    )
    with client:
        try:
            results = client.send_emails(build_batch())
        except LanefulRateLimitError as e:
            logger.warning("Rate limited", retry_after=e.retry_after)
            return

    for result in results:
        if result.status == SendStatus.VALIDATION_FAILED:
            logger.warning(
                "Skipped invalid email",
                recipient=SUBSCRIBERS[result.index]["email"],
                error=result.error
            )
        elif not result.success:
            logger.error("Batch rejected", index=result.index, error=result.error)

    accepted = sum(1 for result in results if result.success)
    logger.info("Newsletter sent", accepted=accepted, total=len(results))


if __name__ == "__main__":
    main()
