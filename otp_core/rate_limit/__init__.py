"""
Rate Limiting
=============
Per-phone minute/hour/day send limits for OTP issuance.
"""

from .models import (
    RateLimitCounter,
    RateLimitInfo,
    RateLimitWindow,
    WINDOWS,
)
from .windowed import WindowedRateLimiter

__all__ = [
    # Models
    "RateLimitCounter",
    "RateLimitInfo",
    "RateLimitWindow",
    "WINDOWS",
    # Limiters
    "WindowedRateLimiter",
]
