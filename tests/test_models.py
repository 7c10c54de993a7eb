"""
Tests for Models
================

Unit tests for Pydantic models and validation.
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from laneful.exceptions import ErrorCode, LanefulValidationError
from laneful.models import (
    Address,
    Attachment,
    Email,
    EmailResponse,
    SendStatus,
    TrackingSettings,
    check_email_address,
    validate_email,
)


class TestAddress:
    """Tests for Address model."""

    def test_valid_address(self) -> None:
        """Test valid address creation."""
        address = Address(email="user@example.com", name="User")
        assert address.email == "user@example.com"
        assert address.name == "User"

    def test_plain_string_shorthand(self) -> None:
        """Test that a bare string becomes an address."""
        address = Address.model_validate("user@example.com")
        assert address.email == "user@example.com"
        assert address.name is None

    @pytest.mark.parametrize("value", [
        "not-an-email",
        "missing@",
        "@example.com",
        "two@@example.com",
        "user@-example.com",
    ])
    def test_invalid_format_fails(self, value: str) -> None:
        """Test that malformed addresses fail validation."""
        with pytest.raises(ValidationError):
            Address(email=value)

    def test_empty_email_fails(self) -> None:
        """Test that an empty address fails."""
        with pytest.raises(ValidationError) as exc_info:
            Address(email="")

        assert "valid email string" in str(exc_info.value)

    def test_local_part_too_long(self) -> None:
        """Test the 64 character local part limit."""
        with pytest.raises(ValueError) as exc_info:
            check_email_address("a" * 65 + "@example.com")

        assert "local part too long" in str(exc_info.value)

    def test_address_too_long(self) -> None:
        """Test the 254 character address limit."""
        domain = ".".join(["a" * 60] * 5) + ".com"
        with pytest.raises(ValueError) as exc_info:
            check_email_address(f"user@{domain}")

        assert "too long" in str(exc_info.value)

    def test_api_format_omits_missing_name(self) -> None:
        """Test wire format without a display name."""
        assert Address(email="user@example.com").to_api_format() == {"email": "user@example.com"}

    def test_is_immutable(self) -> None:
        """Test that addresses are frozen."""
        address = Address(email="user@example.com")
        with pytest.raises(ValidationError):
            address.email = "other@example.com"  # type: ignore[misc]


class TestAttachment:
    """Tests for Attachment model."""

    def test_regular_attachment(self) -> None:
        """Test attachment with a file name."""
        attachment = Attachment(
            content_type="application/pdf",
            file_name="report.pdf",
            content="JVBERi0="
        )
        assert attachment.to_api_format() == {
            "content_type": "application/pdf",
            "file_name": "report.pdf",
            "content": "JVBERi0=",
        }

    def test_inline_attachment(self) -> None:
        """Test attachment identified only by inline id."""
        attachment = Attachment(content_type="image/png", inline_id="logo")
        assert attachment.to_api_format() == {"content_type": "image/png", "inline_id": "logo"}

    def test_missing_name_and_inline_id_fails(self) -> None:
        """Test that an attachment needs a file name or an inline id."""
        with pytest.raises(ValidationError) as exc_info:
            Attachment(content_type="text/plain", content="aGk=")

        assert "Either file_name or inline_id is required" in str(exc_info.value)

    def test_empty_content_type_fails(self) -> None:
        """Test that content type is required."""
        with pytest.raises(ValidationError):
            Attachment(content_type="", file_name="a.txt")

    def test_from_file(self, tmp_path: Path) -> None:
        """Test building an attachment from disk."""
        path = tmp_path / "notes.txt"
        path.write_bytes(b"hello")

        attachment = Attachment.from_file(path)

        assert attachment.file_name == "notes.txt"
        assert attachment.content_type == "text/plain"
        assert base64.b64decode(attachment.content or "") == b"hello"

    def test_from_file_unknown_type(self, tmp_path: Path) -> None:
        """Test content type fallback for unknown extensions."""
        path = tmp_path / "blob.unknownext"
        path.write_bytes(b"\x00\x01")

        attachment = Attachment.from_file(path, inline_id="blob")

        assert attachment.content_type == "application/octet-stream"
        assert attachment.inline_id == "blob"


class TestTrackingSettings:
    """Tests for TrackingSettings model."""

    def test_defaults(self) -> None:
        """Test that all tracking is enabled by default."""
        assert TrackingSettings().to_api_format() == {
            "opens": True,
            "clicks": True,
            "unsubscribes": True,
        }

    def test_unsubscribe_group(self) -> None:
        """Test unsubscribe group in wire format."""
        tracking = TrackingSettings(clicks=False, unsubscribe_group_id=7)
        assert tracking.to_api_format()["unsubscribe_group_id"] == 7
        assert tracking.to_api_format()["clicks"] is False


class TestEmail:
    """Tests for Email model."""

    def test_valid_email(self, sample_email: dict[str, Any]) -> None:
        """Test creation from wire keys."""
        email = Email.model_validate(sample_email)
        assert email.sender.email == "sender@example.com"
        assert email.to[0].name == "User"
        assert email.subject == "Welcome"

    def test_field_name_for_sender(self) -> None:
        """Test that ``sender`` is accepted as well as ``from``."""
        email = Email(
            sender=Address(email="sender@example.com"),
            to=[Address(email="user@example.com")],
            subject="Hi",
            html_content="<p>Hi</p>"
        )
        assert email.sender.email == "sender@example.com"

    def test_template_is_enough_content(self, sample_email: dict[str, Any]) -> None:
        """Test that a template id satisfies the content rule."""
        del sample_email["text_content"]
        sample_email["template_id"] = "welcome-v2"
        sample_email["template_data"] = {"name": "User"}

        email = Email.model_validate(sample_email)

        assert email.template_id == "welcome-v2"

    def test_no_content_fails(self, invalid_email: dict[str, Any]) -> None:
        """Test that an email without content fails."""
        with pytest.raises(ValidationError) as exc_info:
            Email.model_validate(invalid_email)

        assert "text_content, html_content, or template_id" in str(exc_info.value)

    def test_no_recipient_fails(self, sample_email: dict[str, Any]) -> None:
        """Test that an email without recipients fails."""
        sample_email["to"] = []
        with pytest.raises(ValidationError) as exc_info:
            Email.model_validate(sample_email)

        assert "at least one recipient" in str(exc_info.value)

    def test_bcc_only_is_enough(self, sample_email: dict[str, Any]) -> None:
        """Test that any recipient list satisfies the recipient rule."""
        sample_email["to"] = []
        sample_email["bcc"] = [{"email": "hidden@example.com"}]

        email = Email.model_validate(sample_email)

        assert email.bcc[0].email == "hidden@example.com"

    def test_invalid_recipient_reports_position(self, sample_email: dict[str, Any]) -> None:
        """Test that recipient errors name the list and index."""
        sample_email["cc"] = [{"email": "ok@example.com"}, {"email": "broken"}]
        with pytest.raises(ValidationError) as exc_info:
            Email.model_validate(sample_email)

        assert "Invalid 'cc' address at index 1" in str(exc_info.value)

    def test_invalid_attachment_reports_position(self, sample_email: dict[str, Any]) -> None:
        """Test that attachment errors name the index."""
        sample_email["attachments"] = [{"content_type": "text/plain"}]
        with pytest.raises(ValidationError) as exc_info:
            Email.model_validate(sample_email)

        assert "Invalid attachment at index 0" in str(exc_info.value)

    def test_negative_send_time_fails(self, sample_email: dict[str, Any]) -> None:
        """Test that scheduled time cannot be negative."""
        sample_email["send_time"] = -1
        with pytest.raises(ValidationError):
            Email.model_validate(sample_email)

    def test_unknown_field_fails(self, sample_email: dict[str, Any]) -> None:
        """Test that unknown keys are rejected."""
        sample_email["priority"] = "high"
        with pytest.raises(ValidationError):
            Email.model_validate(sample_email)

    def test_api_format(self, sample_email: dict[str, Any]) -> None:
        """Test wire serialization."""
        sample_email["reply_to"] = {"email": "reply@example.com"}
        sample_email["tracking"] = {"opens": False}
        sample_email["tag"] = "welcome"

        data = Email.model_validate(sample_email).to_api_format()

        assert data["from"] == {"email": "sender@example.com", "name": "Sender"}
        assert data["to"] == [{"email": "user@example.com", "name": "User"}]
        assert data["cc"] == []
        assert data["text_content"] == "Hello there"
        assert data["html_content"] == ""
        assert data["send_time"] == 0
        assert data["tag"] == "welcome"
        assert data["reply_to"] == {"email": "reply@example.com"}
        assert data["tracking"]["opens"] is False

    def test_api_format_validates_again(self, sample_email: dict[str, Any]) -> None:
        """Test that the wire format of a valid email is itself valid."""
        sample_email["attachments"] = [{"content_type": "image/png", "inline_id": "logo"}]
        sample_email["headers"] = {"X-Campaign": "spring"}
        email = Email.model_validate(sample_email)

        again = Email.model_validate(email.to_api_format())

        assert again.to_api_format() == email.to_api_format()


class TestValidateEmail:
    """Tests for validate_email."""

    def test_accepts_model(self, sample_email: dict[str, Any]) -> None:
        """Test that a model passes through."""
        email = Email.model_validate(sample_email)
        assert validate_email(email) == email

    def test_accepts_mapping(self, sample_email: dict[str, Any]) -> None:
        """Test that a mapping is validated into a model."""
        assert isinstance(validate_email(sample_email), Email)

    def test_invalid_mapping_raises(self, invalid_email: dict[str, Any]) -> None:
        """Test that failures become LanefulValidationError."""
        with pytest.raises(LanefulValidationError) as exc_info:
            validate_email(invalid_email)

        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR
        assert exc_info.value.message == (
            "Email must have either text_content, html_content, or template_id"
        )

    def test_rejects_other_types(self) -> None:
        """Test that non-mapping input is rejected."""
        with pytest.raises(LanefulValidationError):
            validate_email("user@example.com")  # type: ignore[arg-type]


class TestEmailResponse:
    """Tests for EmailResponse model."""

    def test_accepted(self) -> None:
        """Test accepted result."""
        response = EmailResponse.accepted(2)
        assert response.status == SendStatus.ACCEPTED
        assert response.success is True
        assert response.error is None
        assert response.index == 2

    def test_failed(self) -> None:
        """Test failed result."""
        response = EmailResponse.failed(0, "Boom")
        assert response.status == SendStatus.FAILED
        assert response.success is False
        assert response.error == "Boom"

    def test_validation_failed(self) -> None:
        """Test validation failure result."""
        response = EmailResponse.validation_failed(1, "Bad")
        assert response.status == SendStatus.VALIDATION_FAILED
        assert response.status == "validation_failed"
        assert response.success is False

    def test_negative_index_fails(self) -> None:
        """Test that indexes cannot be negative."""
        with pytest.raises(ValidationError):
            EmailResponse.accepted(-1)
