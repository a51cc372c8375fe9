"""
Channel Models
==============
Delivery channels a verification code can travel through.
"""

from enum import Enum


class Channel(str, Enum):
    """Verification code delivery channels."""
    SMS = "sms"
    CALL = "call"
    PUSH = "push"
