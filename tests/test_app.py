"""
Tests for Webhook Receiver
==========================

Tests for the Flask application wiring webhooks to HTTP.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any
from unittest.mock import MagicMock

import pytest
from flask import Flask
from flask.testing import FlaskClient

from laneful.app import create_app
from laneful.logging_config import get_request_id
from laneful.webhooks import WebhookHandler

SECRET = "whsec_app"


def signed_headers(body: bytes, secret: str = SECRET) -> dict[str, str]:
    signature = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return {"X-Webhook-Signature": f"sha256={signature}", "Content-Type": "application/json"}


@pytest.fixture
def webhook_handler() -> WebhookHandler:
    """Handler with a secret."""
    return WebhookHandler(SECRET)


@pytest.fixture
def app(webhook_handler: WebhookHandler) -> Flask:
    """Application under test."""
    application = create_app(webhook_handler)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def http(app: Flask) -> FlaskClient:
    """Flask test client."""
    return app.test_client()


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, http: FlaskClient) -> None:
        """Test health check response."""
        response = http.get("/health")

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "healthy"
        assert data["service"] == "laneful-webhooks"
        assert "version" in data


class TestReceiveWebhook:
    """Tests for the webhook endpoint."""

    def test_signed_delivery(self, http: FlaskClient, webhook_handler: WebhookHandler) -> None:
        """Test that a correctly signed payload is dispatched."""
        callback = MagicMock()
        webhook_handler.register_handler("delivery", callback)
        body = json.dumps({"event": "delivery", "email": "user@example.com"}).encode()

        response = http.post("/webhooks/laneful", data=body, headers=signed_headers(body))

        assert response.status_code == 200
        assert response.get_json() == {"success": True}
        assert callback.call_args.args[0].email == "user@example.com"

    def test_missing_signature(self, http: FlaskClient, webhook_handler: WebhookHandler) -> None:
        """Test that unsigned requests are rejected when a secret is set."""
        callback = MagicMock()
        webhook_handler.register_handler("delivery", callback)

        response = http.post("/webhooks/laneful", data=b'{"event": "delivery"}')

        assert response.status_code == 400
        assert response.get_json()["code"] == "MISSING_SIGNATURE"
        callback.assert_not_called()

    def test_invalid_signature(self, http: FlaskClient, webhook_handler: WebhookHandler) -> None:
        """Test that a wrong signature is rejected."""
        callback = MagicMock()
        webhook_handler.register_handler("delivery", callback)
        body = b'{"event": "delivery"}'

        response = http.post(
            "/webhooks/laneful",
            data=body,
            headers=signed_headers(body, secret="wrong")
        )

        assert response.status_code == 401
        assert response.get_json()["code"] == "INVALID_SIGNATURE"
        callback.assert_not_called()

    def test_no_secret_configured(self) -> None:
        """Test that signatures are optional without a secret."""
        handler = WebhookHandler()
        callback = MagicMock()
        handler.register_handler("open", callback)
        http = create_app(handler).test_client()

        response = http.post("/webhooks/laneful", data=b'{"event": "open"}')

        assert response.status_code == 200
        callback.assert_called_once()

    def test_invalid_payload(self, http: FlaskClient) -> None:
        """Test that unparseable payloads get a 400."""
        body = b"{not json"

        response = http.post("/webhooks/laneful", data=body, headers=signed_headers(body))

        assert response.status_code == 400
        data = response.get_json()
        assert data["error"] is True
        assert data["code"] == "ERR_3001"

    def test_batch_failure(self, http: FlaskClient, webhook_handler: WebhookHandler) -> None:
        """Test that failed batch elements produce a 500 listing them."""
        webhook_handler.register_handler("bounce", MagicMock(side_effect=RuntimeError("db down")))
        webhook_handler.register_handler("delivery", MagicMock())
        body = json.dumps([{"event": "delivery"}, {"event": "bounce"}]).encode()

        response = http.post("/webhooks/laneful", data=body, headers=signed_headers(body))

        assert response.status_code == 500
        data = response.get_json()
        assert data["code"] == "ERR_3002"
        assert data["failed_indexes"] == [1]

    def test_request_id_header(self, http: FlaskClient, webhook_handler: WebhookHandler) -> None:
        """Test that the caller's request id is visible to handlers."""
        seen: list[str] = []
        webhook_handler.register_handler("drop", lambda event: seen.append(get_request_id()))
        body = b'{"event": "drop"}'
        headers: dict[str, Any] = {**signed_headers(body), "X-Request-ID": "req-123"}

        response = http.post("/webhooks/laneful", data=body, headers=headers)

        assert seen == ["req-123"]
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self, http: FlaskClient) -> None:
        """Test that a request id is generated when none is sent."""
        response = http.get("/health")

        assert response.headers["X-Request-ID"]

    def test_custom_path_and_header(self, webhook_handler: WebhookHandler) -> None:
        """Test a custom route and signature header."""
        http = create_app(
            webhook_handler,
            path="/hooks/mail",
            signature_header="X-Laneful-Signature"
        ).test_client()
        body = b'{"event": "click"}'
        signature = signed_headers(body)["X-Webhook-Signature"]

        response = http.post("/hooks/mail", data=body, headers={"X-Laneful-Signature": signature})

        assert response.status_code == 200

    def test_wrong_method(self, http: FlaskClient) -> None:
        """Test that GET is not allowed on the webhook route."""
        response = http.get("/webhooks/laneful")

        assert response.status_code == 405
        assert response.get_json()["code"] == "METHOD_NOT_ALLOWED"

    def test_unknown_route(self, http: FlaskClient) -> None:
        """Test not found handling."""
        response = http.get("/nope")

        assert response.status_code == 404

    def test_handler_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the secret comes from settings when no handler is given."""
        monkeypatch.setenv("LANEFUL_WEBHOOK_SECRET", SECRET)
        http = create_app().test_client()

        response = http.post("/webhooks/laneful", data=b'{"event": "open"}')

        assert response.status_code == 400
