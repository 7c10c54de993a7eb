"""Tests for the exception hierarchy."""

from __future__ import annotations

from laneful.exceptions import (
    ErrorCode,
    ErrorContext,
    LanefulAPIError,
    LanefulAuthError,
    LanefulError,
    LanefulRateLimitError,
    LanefulValidationError,
    WebhookBatchError,
    WebhookError,
    WebhookPayloadError,
)


class TestLanefulError:
    """Tests for the base exception."""

    def test_defaults(self) -> None:
        """Test default code and empty context."""
        error = LanefulError("Something broke")
        assert error.code == ErrorCode.CLIENT_ERROR
        assert str(error) == "[ERR_1000] Something broke"
        assert error.to_dict() == {"error": True, "code": "ERR_1000", "message": "Something broke"}

    def test_context_and_cause(self) -> None:
        """Test string form with operation and cause."""
        cause = OSError("socket closed")
        error = LanefulError(
            "Request timed out",
            code=ErrorCode.TIMEOUT,
            context=ErrorContext(operation="make_request", additional_info={"attempts": 4}),
            cause=cause
        )

        assert str(error) == (
            "[ERR_1003] Request timed out (operation: make_request) Caused by: socket closed"
        )
        assert error.to_dict()["context"] == {"operation": "make_request", "attempts": 4}


class TestSubclasses:
    """Tests for the specific error kinds."""

    def test_api_error(self) -> None:
        """Test status code tracking."""
        error = LanefulAPIError("Bad sender", status_code=400, response_data={"error": "Bad sender"})
        assert error.code == ErrorCode.API_ERROR
        assert error.status_code == 400
        assert error.context.additional_info["status_code"] == 400
        assert error.response_data == {"error": "Bad sender"}

    def test_auth_error(self) -> None:
        """Test auth error defaults."""
        error = LanefulAuthError()
        assert error.code == ErrorCode.AUTH_ERROR
        assert error.message == "Authentication failed"
        assert isinstance(error, LanefulError)

    def test_validation_error(self) -> None:
        """Test field tracking."""
        error = LanefulValidationError("Email list cannot be empty", field="emails")
        assert error.field == "emails"
        assert error.code == ErrorCode.VALIDATION_ERROR
        assert error.context.additional_info == {"field": "emails"}

    def test_rate_limit_error_rounds_up(self) -> None:
        """Test the retry hint in the message."""
        error = LanefulRateLimitError(retry_after=0.2)
        assert error.message == "Rate limit exceeded. Try again in 1 seconds."
        assert error.retry_after == 0.2

    def test_webhook_errors(self) -> None:
        """Test webhook error codes."""
        assert WebhookError("x").code == ErrorCode.WEBHOOK_ERROR
        payload_error = WebhookPayloadError("Invalid JSON payload", field="body")
        assert payload_error.code == ErrorCode.WEBHOOK_INVALID_PAYLOAD
        assert isinstance(payload_error, WebhookError)

    def test_batch_error_summary(self) -> None:
        """Test the aggregated message."""
        error = WebhookBatchError(
            [(0, ValueError("bad value")), (2, WebhookPayloadError("missing event"))],
            total=3
        )

        assert error.code == ErrorCode.WEBHOOK_BATCH_FAILED
        assert error.message == (
            "2 of 3 webhook events failed: [0] ValueError: bad value, [2] missing event"
        )
        assert error.to_dict()["context"]["failed"] == 2
