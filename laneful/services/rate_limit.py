"""Fixed-window rate limiter for outbound send requests.

The limiter counts requests in the current window and refuses the
request that would exceed the configured maximum. It never waits or
queues: the caller gets a ``LanefulRateLimitError`` carrying the time
left until the window resets.

Windows are fixed rather than sliding, so a burst straddling a window
boundary can briefly see up to twice the limit.

Example:
    Guarding a request::

        limiter = RateLimiter(RateLimitPolicy(max_requests=10, window=1.0))
        limiter.acquire()  # raises LanefulRateLimitError when exhausted
        send_request()
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from laneful.config import RateLimitPolicy
from laneful.exceptions import ErrorContext, LanefulRateLimitError


class RateLimiter:
    """Per-client fixed-window request counter.

    The counter and window start are guarded by a lock so that one
    client shared between threads still admits at most
    ``max_requests`` per window.

    Attributes:
        policy: The window length and request allowance.
    """

    def __init__(
        self,
        policy: RateLimitPolicy,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        """Initialize the limiter.

        Args:
            policy: Window length and request allowance.
            clock: Monotonic time source in seconds.
        """
        self.policy = policy
        self._clock = clock
        self._lock = threading.Lock()
        self._count = 0
        self._window_start = clock()

    @property
    def count(self) -> int:
        """Requests admitted in the current window."""
        return self._count

    def acquire(self) -> None:
        """Admit one request or raise.

        Raises:
            LanefulRateLimitError: If the current window is exhausted.
        """
        with self._lock:
            now = self._clock()
            elapsed = now - self._window_start
            if elapsed >= self.policy.window:
                self._window_start = now
                self._count = 0
                elapsed = 0.0

            if self._count >= self.policy.max_requests:
                raise LanefulRateLimitError(
                    retry_after=self.policy.window - elapsed,
                    context=ErrorContext(
                        operation="rate_limit",
                        additional_info={"max_requests": self.policy.max_requests}
                    )
                )

            self._count += 1

    def reset(self) -> None:
        """Start a fresh window."""
        with self._lock:
            self._count = 0
            self._window_start = self._clock()
