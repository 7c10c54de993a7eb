"""Test fixtures and configuration."""

from __future__ import annotations

import json
from typing import Any, Generator, Optional
from unittest.mock import MagicMock

import pytest
import requests

from laneful.config import RetryPolicy, get_settings
from laneful.logging_config import request_id_var
from laneful.services.client import LanefulClient

BASE_URL = "https://custom-endpoint.send.laneful.net"
AUTH_TOKEN = "test-token"


def make_response(status_code: int = 200, body: Optional[Any] = None) -> MagicMock:
    """Build a fake ``requests.Response``."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    if body is None:
        body = {"status": "accepted"}
    response.text = body if isinstance(body, str) else json.dumps(body)
    return response


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Settings are cached per process; tests patch the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_request_id() -> Generator[None, None, None]:
    """Keep correlation ids from leaking between tests."""
    token = request_id_var.set("")
    yield
    request_id_var.reset(token)


@pytest.fixture
def sample_email() -> dict[str, Any]:
    """Valid email in wire format."""
    return {
        "from": {"email": "sender@example.com", "name": "Sender"},
        "to": [{"email": "user@example.com", "name": "User"}],
        "subject": "Welcome",
        "text_content": "Hello there",
    }


@pytest.fixture
def invalid_email() -> dict[str, Any]:
    """Email without any content."""
    return {
        "from": {"email": "sender@example.com"},
        "to": [{"email": "user@example.com"}],
        "subject": "Empty",
    }


@pytest.fixture
def mock_session() -> MagicMock:
    """Mock HTTP session answering every request with ``accepted``."""
    session = MagicMock(spec=requests.Session)
    session.request.return_value = make_response(200, {"status": "accepted"})
    return session


@pytest.fixture
def sleep_calls() -> list[float]:
    """Delays recorded by the fake sleep."""
    return []


@pytest.fixture
def client(mock_session: MagicMock, sleep_calls: list[float]) -> LanefulClient:
    """Client on a mock session that never really sleeps."""
    return LanefulClient(
        BASE_URL,
        AUTH_TOKEN,
        retry=RetryPolicy(max_retries=3, base_delay=0.01, max_delay=0.05, jitter=0),
        session=mock_session,
        sleep=sleep_calls.append
    )
