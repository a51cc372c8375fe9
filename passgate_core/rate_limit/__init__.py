"""
Rate Limiting Module
====================
Sliding window limiters (in-memory and Redis) and the issuance/verification
policies built on them.
"""

from .models import RateLimitInfo
from .base import RateLimiter
from .in_memory import InMemoryRateLimiter
from .redis_limiter import RedisRateLimiter, SLIDING_WINDOW_SCRIPT
from .policies import IssuanceRateLimiter, VerificationRateLimiter

__all__ = [
    # Models
    "RateLimitInfo",
    # Limiters
    "RateLimiter",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    # Policies
    "IssuanceRateLimiter",
    "VerificationRateLimiter",
    # Scripts
    "SLIDING_WINDOW_SCRIPT",
]
