"""
Flask Webhook Receiver
======================

Flask application that exposes a ``WebhookHandler`` over HTTP with
signature checks, JSON error bodies, and request-scoped logging.

Example:
    >>> handler = WebhookHandler.from_settings()
    >>> @handler.on(WebhookEventType.BOUNCE)
    ... def on_bounce(event):
    ...     suppress(event.email, hard=event.is_hard)
    >>> app = create_app(handler)
    >>> app.run(port=8080)
"""

from __future__ import annotations

import os
import time
from typing import Optional

from flask import Flask, Response, g, jsonify, request
from werkzeug.exceptions import HTTPException

from laneful.config import get_settings
from laneful.exceptions import LanefulError, WebhookBatchError, WebhookPayloadError
from laneful.logging_config import configure_logging, get_logger, set_request_id
from laneful.webhooks import WebhookHandler

logger = get_logger(__name__)

DEFAULT_WEBHOOK_PATH = "/webhooks/laneful"
DEFAULT_SIGNATURE_HEADER = "X-Webhook-Signature"
REQUEST_ID_HEADER = "X-Request-ID"


def create_app(
    handler: Optional[WebhookHandler] = None,
    path: str = DEFAULT_WEBHOOK_PATH,
    signature_header: str = DEFAULT_SIGNATURE_HEADER
) -> Flask:
    """
    Build the webhook receiver.

    Args:
        handler: Handler with registered callbacks. Built from settings when omitted.
        path: URL path receiving webhook POSTs.
        signature_header: Request header carrying the signature.

    Returns:
        Configured Flask application.
    """
    webhook_handler = handler or WebhookHandler.from_settings()

    app = Flask(__name__)
    app.config["JSON_SORT_KEYS"] = False
    app.extensions["laneful_webhook_handler"] = webhook_handler

    register_error_handlers(app)
    register_middleware(app)
    register_routes(app, webhook_handler, path, signature_header)

    logger.info(
        "Webhook receiver ready",
        path=path,
        signature_required=webhook_handler.has_secret
    )
    return app


def _error_body(code: str, message: str, status: int) -> tuple[Response, int]:
    return jsonify({"error": True, "code": code, "message": message}), status


def register_error_handlers(app: Flask) -> None:
    """Map client errors and HTTP errors to JSON bodies."""

    @app.errorhandler(WebhookPayloadError)
    def on_payload_error(error: WebhookPayloadError) -> tuple[Response, int]:
        logger.warning("Rejected webhook payload", error=error.message)
        return jsonify(error.to_dict()), 400

    @app.errorhandler(WebhookBatchError)
    def on_batch_error(error: WebhookBatchError) -> tuple[Response, int]:
        failed_indexes = [index for index, _ in error.errors]
        logger.error("Webhook batch partially failed", failed_indexes=failed_indexes, total=error.total)
        return jsonify({**error.to_dict(), "failed_indexes": failed_indexes}), 500

    @app.errorhandler(LanefulError)
    def on_laneful_error(error: LanefulError) -> tuple[Response, int]:
        logger.error("Webhook processing failed", error=error.message, error_code=error.code.value)
        return jsonify(error.to_dict()), 500

    @app.errorhandler(HTTPException)
    def on_http_error(error: HTTPException) -> tuple[Response, int]:
        code = (error.name or "HTTP error").upper().replace(" ", "_")
        return _error_body(code, error.description or "", error.code or 500)


def register_middleware(app: Flask) -> None:
    """Correlation ids and timing for every request."""

    @app.before_request
    def bind_request_id() -> None:
        g.request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        g.started = time.perf_counter()

    @app.after_request
    def log_request(response: Response) -> Response:
        response.headers[REQUEST_ID_HEADER] = g.get("request_id", "")
        logger.debug(
            "Request handled",
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - g.get("started", time.perf_counter())) * 1000, 2)
        )
        return response


def register_routes(
    app: Flask,
    handler: WebhookHandler,
    path: str,
    signature_header: str
) -> None:
    """Health check and the webhook endpoint."""

    @app.get("/health")
    def health() -> tuple[Response, int]:
        from laneful import __version__

        return jsonify({
            "status": "healthy",
            "service": "laneful-webhooks",
            "version": __version__,
        }), 200

    @app.post(path)
    def receive_webhook() -> tuple[Response, int]:
        """
        Verify and dispatch one webhook delivery.

        The signature covers the raw body, so it is checked before any
        JSON decoding.
        """
        raw_body = request.get_data(cache=True)
        signature = request.headers.get(signature_header)

        if handler.has_secret and not signature:
            logger.warning("Webhook without signature", header=signature_header)
            return _error_body("MISSING_SIGNATURE", f"Missing {signature_header} header", 400)

        if not handler.verify_signature(raw_body, signature):
            logger.warning("Webhook signature mismatch")
            return _error_body("INVALID_SIGNATURE", "Invalid signature", 401)

        handler.process_sync(raw_body)

        logger.info("Webhook processed", size=len(raw_body))
        return jsonify({"success": True}), 200


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    port = int(os.environ.get("PORT", "8080"))

    logger.info("Starting webhook receiver", port=port)
    create_app().run(host="0.0.0.0", port=port)
