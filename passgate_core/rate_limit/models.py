"""
Rate Limit Models
=================
Decision returned for every counted event.
"""

import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RateLimitInfo:
    """Outcome of one limiter check, with the quota left in the window."""
    allowed: bool
    remaining: int
    limit: int
    reset_at: int  # Unix timestamp at which the oldest counted event leaves the window
    retry_after: Optional[int] = None

    @classmethod
    def granted(cls, limit: int, count: int, oldest: float, window_seconds: int) -> "RateLimitInfo":
        """``count`` includes the event just recorded."""
        return cls(
            allowed=True,
            remaining=max(0, limit - count),
            limit=limit,
            reset_at=int(oldest + window_seconds),
        )

    @classmethod
    def denied(cls, limit: int, oldest: float, window_seconds: int, now: float) -> "RateLimitInfo":
        reset_at = oldest + window_seconds
        return cls(
            allowed=False,
            remaining=0,
            limit=limit,
            reset_at=int(reset_at),
            retry_after=max(1, math.ceil(reset_at - now)),
        )
