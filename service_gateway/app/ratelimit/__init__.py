"""
Rate limiting package for the Gateway.

Holds the fixed-window limiter that caps requests per client address.
"""

from .limiter import FixedWindowRateLimiter, RateLimitDecision

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitDecision",
]
