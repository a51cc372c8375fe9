"""
Channel Adapters
================
Delivery gateways for verification codes: SMS, voice call and push.
"""

from .models import Channel
from .base import BaseChannelAdapter
from .eskiz import EskizSMSAdapter
from .ivr import IVRCallAdapter
from .fcm import FCMPushAdapter, DeviceTokenResolver
from .static import StaticChannelAdapter
from .registry import ChannelRegistry

__all__ = [
    "Channel",
    "BaseChannelAdapter",
    "EskizSMSAdapter",
    "IVRCallAdapter",
    "FCMPushAdapter",
    "DeviceTokenResolver",
    "StaticChannelAdapter",
    "ChannelRegistry",
]
