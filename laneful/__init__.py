"""
Laneful Python Client
=====================

Client library for the Laneful transactional email API.

Architecture:
    - config: Client configuration with Pydantic Settings
    - models: Outbound email models with Pydantic validation
    - services/: Dispatch layer (HTTP client, rate limiting, retries)
    - webhooks/: Webhook signature verification and event dispatch
    - exceptions: Custom exception hierarchy
    - logging_config: Structured JSON logging
    - app: Optional Flask webhook receiver
"""

from laneful.config import LanefulSettings, RateLimitPolicy, RetryPolicy, get_settings
from laneful.exceptions import (
    ErrorCode,
    LanefulAPIError,
    LanefulAuthError,
    LanefulError,
    LanefulRateLimitError,
    LanefulValidationError,
    WebhookBatchError,
    WebhookError,
    WebhookPayloadError,
)
from laneful.logging_config import configure_logging, get_logger
from laneful.models import (
    Address,
    Attachment,
    Email,
    EmailResponse,
    SendStatus,
    TrackingSettings,
    validate_email,
)
from laneful.services import LanefulClient
from laneful.webhooks import (
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
    WebhookHandler,
)

__version__ = "1.0.0"

__all__ = [
    "Address",
    "Attachment",
    "BounceEvent",
    "ClickEvent",
    "DeliveryEvent",
    "DropEvent",
    "Email",
    "EmailResponse",
    "ErrorCode",
    "GenericWebhookEvent",
    "LanefulAPIError",
    "LanefulAuthError",
    "LanefulClient",
    "LanefulError",
    "LanefulRateLimitError",
    "LanefulSettings",
    "LanefulValidationError",
    "OpenEvent",
    "RateLimitPolicy",
    "RetryPolicy",
    "SendStatus",
    "SpamComplaintEvent",
    "TrackingSettings",
    "UnsubscribeEvent",
    "WebhookBatchError",
    "WebhookError",
    "WebhookEvent",
    "WebhookEventType",
    "WebhookHandler",
    "WebhookPayloadError",
    "configure_logging",
    "get_logger",
    "get_settings",
    "validate_email",
]
