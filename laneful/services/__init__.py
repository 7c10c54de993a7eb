"""Services package."""

from laneful.services.client import LanefulClient, process_response
from laneful.services.rate_limit import RateLimiter

__all__ = [
    "LanefulClient",
    "RateLimiter",
    "process_response",
]
