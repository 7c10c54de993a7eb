"""
Laneful Client
==============

HTTP client for the Laneful email API: validation, rate limiting,
retries with exponential backoff, and per-email result reconciliation.
"""

from __future__ import annotations

import json
import logging
import math
import random
import time
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Optional, Union

import requests

from laneful.config import DEFAULT_USER_AGENT, LanefulSettings, RateLimitPolicy, RetryPolicy, get_settings
from laneful.exceptions import (
    ErrorCode,
    ErrorContext,
    LanefulAPIError,
    LanefulAuthError,
    LanefulError,
    LanefulValidationError,
)
from laneful.logging_config import (
    LoggerLike,
    StructuredLogger,
    generate_request_id,
    get_logger,
    log_execution_time,
    request_id_var,
)
from laneful.models import Email, EmailResponse, validate_email
from laneful.services.rate_limit import RateLimiter

logger = get_logger(__name__)

EmailInput = Union[Email, Mapping[str, Any]]

AUTH_FAILED_MESSAGE = "Authentication failed: invalid authentication token"


class LanefulClient:
    """
    Client for sending emails through the Laneful API.

    All emails of one ``send_emails`` call travel in a single request.
    The API reports acceptance for the batch as a whole, so every valid
    email of a call shares the same outcome.

    Example:
        >>> client = LanefulClient("https://custom-endpoint.send.laneful.net", "token")
        >>> result = client.send_email(Email(
        ...     sender=Address(email="sender@example.com"),
        ...     to=[Address(email="user@example.com")],
        ...     subject="Hello",
        ...     text_content="Hi there",
        ... ))
        >>> result.success
        True
    """

    API_PREFIX = "/v1"
    SEND_ENDPOINT = "/email/send"

    def __init__(
        self,
        base_url: str,
        auth_token: str,
        *,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        logger: Union[LoggerLike, logging.Logger, logging.LoggerAdapter, None] = None,
        retry: Optional[RetryPolicy] = None,
        rate_limit: Optional[RateLimitPolicy] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Base URL of the Laneful endpoint.
            auth_token: Bearer token.
            timeout: Per-attempt request timeout, in seconds.
            verify_ssl: Verify TLS certificates.
            user_agent: User-Agent header value.
            logger: Structured logger, stdlib logger or adapter; defaults to the module logger.
            retry: Backoff policy; defaults to ``RetryPolicy()``.
            rate_limit: Optional fixed-window limit on send calls.
            session: Optional ``requests.Session``; the client closes only sessions it created.
            sleep: Called with the backoff delay in seconds.
            clock: Monotonic time source for the rate limiter.

        Raises:
            LanefulValidationError: If base_url or auth_token is empty.
        """
        if not base_url or not isinstance(base_url, str):
            raise LanefulValidationError("Base URL must be a non-empty string", field="base_url")
        if not auth_token or not isinstance(auth_token, str):
            raise LanefulValidationError("Auth token must be a non-empty string", field="auth_token")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._logger = _resolve_logger(logger)
        self._retry = retry or RetryPolicy()
        self._rate_limiter = RateLimiter(rate_limit, clock=clock) if rate_limit else None
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._sleep = sleep
        self._headers = {
            "Authorization": f"Bearer {auth_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent,
        }

        self._logger.debug(
            "Laneful client initialized",
            base_url=self._base_url,
            retry=self._retry.model_dump(),
            rate_limit=rate_limit.model_dump() if rate_limit else None
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[LanefulSettings] = None,
        **kwargs: Any
    ) -> LanefulClient:
        """
        Create a client from ``LanefulSettings`` (environment / ``.env``).

        Keyword arguments override the corresponding settings.
        """
        settings = settings or get_settings()
        options: dict[str, Any] = {
            "timeout": settings.timeout,
            "verify_ssl": settings.verify_ssl,
            "user_agent": settings.user_agent,
            "retry": settings.retry,
            "rate_limit": settings.rate_limit,
        }
        options.update(kwargs)
        return cls(settings.base_url, settings.auth_token, **options)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry

    @property
    def rate_limiter(self) -> Optional[RateLimiter]:
        return self._rate_limiter

    # ========================================================================
    # Sending
    # ========================================================================

    def send_email(self, email: EmailInput) -> EmailResponse:
        """
        Send a single email.

        Returns:
            The EmailResponse for the email.

        Raises:
            LanefulValidationError: If the email is invalid.
            LanefulRateLimitError: If the rate limit is exhausted.
        """
        return self.send_emails([email])[0]

    @log_execution_time(logger)
    def send_emails(self, emails: Sequence[EmailInput]) -> list[EmailResponse]:
        """
        Send a batch of emails in one request.

        Invalid emails are reported as ``validation_failed`` while the
        valid ones are sent. Transport and API failures do not raise;
        they mark every sent email ``failed`` with the error message.

        Args:
            emails: Email models or mappings in wire/field format.

        Returns:
            One EmailResponse per input, in input order.

        Raises:
            LanefulValidationError: If the list is empty or no email is valid.
            LanefulRateLimitError: If the rate limit is exhausted.
        """
        if isinstance(emails, (Email, Mapping, str, bytes)):
            raise LanefulValidationError("Emails must be passed as a list", field="emails")
        if not emails:
            raise LanefulValidationError("Email list cannot be empty", field="emails")

        token = None
        if not request_id_var.get():
            token = request_id_var.set(generate_request_id())
        try:
            return self._send_batch(list(emails))
        finally:
            if token is not None:
                request_id_var.reset(token)

    def _send_batch(self, emails: list[EmailInput]) -> list[EmailResponse]:
        valid: list[tuple[int, dict[str, Any]]] = []
        invalid: list[tuple[int, str]] = []

        for index, item in enumerate(emails):
            try:
                email = validate_email(item)
            except LanefulValidationError as e:
                invalid.append((index, e.message))
                continue
            valid.append((index, email.to_api_format()))

        self._logger.debug(
            "Email validation completed",
            total_emails=len(emails),
            valid_emails=len(valid),
            validation_errors=len(invalid)
        )

        if not valid:
            summary = ", ".join(f"[{index}] {error}" for index, error in invalid)
            raise LanefulValidationError(f"All emails failed validation: {summary}")

        if self._rate_limiter is not None:
            self._rate_limiter.acquire()

        indexes = [index for index, _ in valid]
        try:
            response_data = self._make_request(
                "POST",
                self.SEND_ENDPOINT,
                {"emails": [data for _, data in valid]}
            )
        except LanefulError as e:
            self._logger.error(
                "Email send request failed",
                error=e.message,
                error_code=e.code.value,
                email_count=len(valid)
            )
            responses = [EmailResponse.failed(index, e.message) for index in indexes]
        else:
            responses = self._process_emails_response(response_data, indexes)

        responses.extend(EmailResponse.validation_failed(index, error) for index, error in invalid)
        responses.sort(key=lambda response: response.index)

        successful = sum(1 for response in responses if response.success)
        self._logger.info(
            "Bulk email send completed",
            total_emails=len(responses),
            successful=successful,
            failed=len(responses) - successful
        )
        return responses

    def _process_emails_response(
        self,
        response_data: dict[str, Any],
        indexes: list[int]
    ) -> list[EmailResponse]:
        """Expand the batch-level API answer into one result per sent email."""
        if response_data.get("status") == "accepted":
            responses = [EmailResponse.accepted(index) for index in indexes]
        else:
            error = str(response_data.get("error") or "Unknown error")
            responses = [EmailResponse.failed(index, error) for index in indexes]

        self._logger.debug(
            "Processed bulk email responses",
            valid_email_count=len(indexes),
            response_status=response_data.get("status")
        )
        return responses

    # ========================================================================
    # HTTP
    # ========================================================================

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Backoff delay in seconds before the retry following ``attempt``."""
        policy = self._retry
        delay = min(policy.base_delay * policy.backoff_multiplier ** attempt, policy.max_delay)
        jitter = delay * policy.jitter * random.random()
        return math.floor((delay + jitter) * 1000) / 1000

    @staticmethod
    def _is_retryable_status(status_code: int) -> bool:
        if status_code == 429:
            return True
        return status_code >= 500 and status_code != 501

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Perform one logical request with retries.

        Returns:
            The parsed body of a successful response.

        Raises:
            LanefulAuthError: On 401.
            LanefulAPIError: On any other error status once retries are spent.
            LanefulError: On transport failures once retries are spent.
        """
        url = f"{self._base_url}{self.API_PREFIX}{endpoint}"
        max_attempts = self._retry.max_attempts
        last_error: Optional[requests.RequestException] = None
        last_response: Optional[requests.Response] = None
        attempt = 0

        for attempt in range(max_attempts):
            last_error = None
            last_response = None
            self._logger.debug(
                "Making request",
                method=method,
                endpoint=endpoint,
                attempt=attempt + 1,
                max_attempts=max_attempts
            )

            try:
                response = self._session.request(
                    method,
                    url,
                    json=data,
                    headers=self._headers,
                    timeout=self._timeout,
                    verify=self._verify_ssl
                )
            except requests.RequestException as e:
                last_error = e
                retryable = isinstance(e, (requests.Timeout, requests.ConnectionError))
                self._logger.warn(
                    "Request failed",
                    method=method,
                    endpoint=endpoint,
                    attempt=attempt + 1,
                    error=str(e)
                )
            else:
                self._logger.debug(
                    "Request completed",
                    method=method,
                    endpoint=endpoint,
                    status=response.status_code,
                    attempt=attempt + 1
                )
                if not self._is_retryable_status(response.status_code):
                    return process_response(response.status_code, response.text)
                last_response = response
                retryable = True
                self._logger.warn(
                    "Request failed",
                    method=method,
                    endpoint=endpoint,
                    attempt=attempt + 1,
                    status=response.status_code
                )

            if not retryable or attempt == max_attempts - 1:
                break

            delay = self._calculate_retry_delay(attempt)
            self._logger.debug(
                "Retrying after delay",
                method=method,
                endpoint=endpoint,
                delay_seconds=delay,
                next_attempt=attempt + 2
            )
            self._sleep(delay)

        if last_response is not None:
            return process_response(last_response.status_code, last_response.text)

        context = ErrorContext(
            operation="make_request",
            additional_info={"endpoint": endpoint, "attempts": attempt + 1}
        )
        if isinstance(last_error, requests.Timeout):
            raise LanefulError(
                "Request timed out",
                code=ErrorCode.TIMEOUT,
                context=context,
                cause=last_error
            )
        if isinstance(last_error, requests.ConnectionError):
            raise LanefulError(
                "Failed to connect to Laneful API",
                code=ErrorCode.CONNECTION_ERROR,
                context=context,
                cause=last_error
            )
        raise LanefulError(
            f"Request failed after {attempt + 1} attempts: {last_error}",
            context=context,
            cause=last_error
        )

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def close(self) -> None:
        """Close the HTTP session if the client created it."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> LanefulClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LanefulClient(base_url='{self._base_url}')"


def parse_response_body(body: Any) -> dict[str, Any]:
    """Normalize a response body into a dictionary."""
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            parsed = json.loads(body)
        except ValueError:
            return {"message": body}
        return parsed if isinstance(parsed, dict) else {"data": parsed}
    if isinstance(body, Mapping):
        return dict(body)
    return {"data": body}


def process_response(status_code: int, body: Any) -> dict[str, Any]:
    """
    Classify an HTTP response.

    Args:
        status_code: HTTP status.
        body: Raw text, bytes, or already decoded body.

    Returns:
        The parsed body for statuses below 400.

    Raises:
        LanefulAuthError: On 401.
        LanefulAPIError: On any other status of 400 or above.
    """
    if status_code == 401:
        raise LanefulAuthError(AUTH_FAILED_MESSAGE)

    response_data = parse_response_body(body)
    if status_code >= 400:
        message = response_data.get("error") or response_data.get("message") or f"HTTP {status_code}"
        raise LanefulAPIError(
            str(message),
            status_code=status_code,
            response_data=response_data
        )
    return response_data


def _resolve_logger(candidate: Union[LoggerLike, logging.Logger, logging.LoggerAdapter, None]) -> LoggerLike:
    if candidate is None:
        return logger
    if isinstance(candidate, StructuredLogger):
        return candidate
    if isinstance(candidate, (logging.Logger, logging.LoggerAdapter)):
        return StructuredLogger(candidate.name)
    return candidate
