"""
Data Models
===========

Pydantic models for outbound email requests and send results.

The models enforce the wire invariants at construction time and know
how to render themselves in the API's request format.
"""

from __future__ import annotations

import base64
import mimetypes
import re
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from laneful.exceptions import LanefulValidationError

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

MAX_EMAIL_LENGTH = 254
MAX_LOCAL_PART_LENGTH = 64
MAX_DOMAIN_LENGTH = 253


class SendStatus(str, Enum):
    """Outcome of one email in a send call."""
    ACCEPTED = "accepted"
    FAILED = "failed"
    VALIDATION_FAILED = "validation_failed"


# ============================================================================
# Request Models
# ============================================================================

class BaseRequestModel(BaseModel):
    """Base model for all outbound request parts."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="forbid"
    )


def check_email_address(value: str) -> str:
    """
    Validate a bare email address.

    Raises:
        ValueError: If the address is malformed or exceeds RFC 5321 limits.
    """
    if not value or not isinstance(value, str):
        raise ValueError("Address must have a valid email string")
    if not EMAIL_PATTERN.match(value):
        raise ValueError(f"Invalid email format: {value}")
    if len(value) > MAX_EMAIL_LENGTH:
        raise ValueError(f"Email address too long (max {MAX_EMAIL_LENGTH} characters)")

    parts = value.split("@")
    if len(parts) != 2:
        raise ValueError("Invalid email format: missing @ symbol")

    local_part, domain = parts
    if len(local_part) > MAX_LOCAL_PART_LENGTH:
        raise ValueError(f"Email local part too long (max {MAX_LOCAL_PART_LENGTH} characters)")
    if len(domain) > MAX_DOMAIN_LENGTH:
        raise ValueError(f"Email domain too long (max {MAX_DOMAIN_LENGTH} characters)")
    return value


class Address(BaseRequestModel):
    """Email address with optional display name."""

    email: str = Field(
        ...,
        description="Email address"
    )
    name: Optional[str] = Field(
        default=None,
        description="Display name"
    )

    @model_validator(mode="before")
    @classmethod
    def from_plain_string(cls, data: Any) -> Any:
        """Accept ``"user@example.com"`` as shorthand."""
        if isinstance(data, str):
            return {"email": data}
        return data

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return check_email_address(v)

    def to_api_format(self) -> dict[str, Any]:
        result: dict[str, Any] = {"email": self.email}
        if self.name:
            result["name"] = self.name
        return result


class Attachment(BaseRequestModel):
    """Email attachment, either a regular file or an inline part."""

    content_type: str = Field(
        ...,
        min_length=1,
        description="MIME content type"
    )
    file_name: Optional[str] = Field(
        default=None,
        description="File name shown to the recipient"
    )
    content: Optional[str] = Field(
        default=None,
        description="Base64 encoded content"
    )
    inline_id: Optional[str] = Field(
        default=None,
        description="Content ID for embedding in HTML"
    )

    @model_validator(mode="after")
    def require_name_or_inline_id(self) -> "Attachment":
        if not self.file_name and not self.inline_id:
            raise ValueError("Either file_name or inline_id is required for attachments")
        return self

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        content_type: Optional[str] = None,
        inline_id: Optional[str] = None
    ) -> Attachment:
        """
        Build an attachment from a file on disk.

        Args:
            path: File to read.
            content_type: MIME type. Guessed from the file name when omitted.
            inline_id: Optional content ID for inline images.

        Returns:
            Attachment with base64 encoded content.
        """
        file_path = Path(path)
        if content_type is None:
            guessed, _ = mimetypes.guess_type(file_path.name)
            content_type = guessed or "application/octet-stream"
        return cls(
            content_type=content_type,
            file_name=file_path.name,
            content=base64.b64encode(file_path.read_bytes()).decode("ascii"),
            inline_id=inline_id
        )

    def to_api_format(self) -> dict[str, Any]:
        result: dict[str, Any] = {"content_type": self.content_type}
        if self.file_name:
            result["file_name"] = self.file_name
        if self.content:
            result["content"] = self.content
        if self.inline_id:
            result["inline_id"] = self.inline_id
        return result


class TrackingSettings(BaseRequestModel):
    """Open, click and unsubscribe tracking for one email."""

    opens: bool = True
    clicks: bool = True
    unsubscribes: bool = True
    unsubscribe_group_id: Optional[int] = None

    def to_api_format(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "opens": self.opens,
            "clicks": self.clicks,
            "unsubscribes": self.unsubscribes,
        }
        if self.unsubscribe_group_id is not None:
            result["unsubscribe_group_id"] = self.unsubscribe_group_id
        return result


class Email(BaseRequestModel):
    """
    One outbound email.

    The sender is exposed as ``sender`` and accepted under the wire
    name ``from`` as well.

    Example:
        >>> email = Email(
        ...     sender=Address(email="sender@example.com", name="Sender"),
        ...     to=[Address(email="user@example.com")],
        ...     subject="Hello",
        ...     text_content="Hi there",
        ... )
    """

    sender: Address = Field(
        ...,
        alias="from",
        description="Sender address"
    )
    subject: str = Field(
        ...,
        min_length=1,
        max_length=998,  # RFC 5322 limit
        description="Email subject line"
    )
    to: list[Address] = Field(default_factory=list)
    cc: list[Address] = Field(default_factory=list)
    bcc: list[Address] = Field(default_factory=list)
    text_content: Optional[str] = None
    html_content: Optional[str] = None
    template_id: Optional[str] = None
    template_data: dict[str, Any] = Field(default_factory=dict)
    attachments: list[Attachment] = Field(default_factory=list)
    headers: dict[str, str] = Field(default_factory=dict)
    reply_to: Optional[Address] = None
    send_time: int = Field(
        default=0,
        ge=0,
        description="Unix timestamp to send at, 0 for immediate delivery"
    )
    webhook_data: dict[str, str] = Field(default_factory=dict)
    tag: str = ""
    tracking: Optional[TrackingSettings] = None

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def validate_recipients(cls, v: Any, info: ValidationInfo) -> Any:
        """Validate each address, reporting its list and position."""
        if v is None:
            return []
        if not isinstance(v, (list, tuple)):
            return v
        validated = []
        for index, item in enumerate(v):
            try:
                validated.append(item if isinstance(item, Address) else Address.model_validate(item))
            except ValidationError as e:
                raise ValueError(
                    f"Invalid '{info.field_name}' address at index {index}: {_first_error(e)}"
                ) from None
        return validated

    @field_validator("attachments", mode="before")
    @classmethod
    def validate_attachments(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, (list, tuple)):
            return v
        validated = []
        for index, item in enumerate(v):
            try:
                validated.append(
                    item if isinstance(item, Attachment) else Attachment.model_validate(item)
                )
            except ValidationError as e:
                raise ValueError(f"Invalid attachment at index {index}: {_first_error(e)}") from None
        return validated

    @model_validator(mode="after")
    def check_content_and_recipients(self) -> "Email":
        if not self.text_content and not self.html_content and not self.template_id:
            raise ValueError("Email must have either text_content, html_content, or template_id")
        if not (self.to or self.cc or self.bcc):
            raise ValueError("Email must have at least one recipient (to, cc, or bcc)")
        return self

    def to_api_format(self) -> dict[str, Any]:
        """Render the email in the API's request format."""
        result: dict[str, Any] = {
            "from": self.sender.to_api_format(),
            "subject": self.subject,
            "to": [address.to_api_format() for address in self.to],
            "cc": [address.to_api_format() for address in self.cc],
            "bcc": [address.to_api_format() for address in self.bcc],
            "text_content": self.text_content or "",
            "html_content": self.html_content or "",
            "template_id": self.template_id or "",
            "template_data": dict(self.template_data),
            "attachments": [attachment.to_api_format() for attachment in self.attachments],
            "headers": dict(self.headers),
            "send_time": self.send_time,
            "webhook_data": dict(self.webhook_data),
            "tag": self.tag,
        }
        if self.reply_to is not None:
            result["reply_to"] = self.reply_to.to_api_format()
        if self.tracking is not None:
            result["tracking"] = self.tracking.to_api_format()
        return result


def _first_error(error: ValidationError) -> str:
    """Human readable summary of the first pydantic error."""
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    message = first.get("msg", "")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if location and first.get("type") != "value_error":
        return f"{location}: {message}"
    return message


def validate_email(item: Union[Email, Mapping[str, Any]]) -> Email:
    """
    Validate one email for sending.

    Accepts an ``Email`` or a plain mapping (wire keys or field names).

    Returns:
        The validated Email.

    Raises:
        LanefulValidationError: If the email is not sendable.
    """
    if isinstance(item, Email):
        data: Any = item.model_dump(by_alias=True, exclude_unset=True)
    elif isinstance(item, Mapping):
        data = dict(item)
    else:
        raise LanefulValidationError(
            f"Email must be an Email or a mapping, got {type(item).__name__}"
        )

    try:
        return Email.model_validate(data)
    except ValidationError as e:
        raise LanefulValidationError(_first_error(e), cause=e) from e


# ============================================================================
# Response Models
# ============================================================================

class EmailResponse(BaseModel):
    """Result for one email of a send call."""

    model_config = ConfigDict(frozen=True)

    status: SendStatus
    index: int = Field(
        ...,
        ge=0,
        description="Position of the email in the submitted batch"
    )
    error: Optional[str] = None
    success: bool

    @classmethod
    def accepted(cls, index: int) -> EmailResponse:
        return cls(status=SendStatus.ACCEPTED, index=index, error=None, success=True)

    @classmethod
    def failed(cls, index: int, error: str) -> EmailResponse:
        return cls(status=SendStatus.FAILED, index=index, error=error, success=False)

    @classmethod
    def validation_failed(cls, index: int, error: str) -> EmailResponse:
        return cls(status=SendStatus.VALIDATION_FAILED, index=index, error=error, success=False)
