"""
FCM Push Adapter
================
Push delivery through Firebase Cloud Messaging to the target's latest device.
"""

from typing import Optional, Protocol

import httpx
import structlog

from ..config import FCMConfig
from ..exceptions import DeliveryError
from .base import BaseChannelAdapter
from .models import Channel

logger = structlog.get_logger(__name__)


class DeviceTokenResolver(Protocol):
    """Looks up the most recently registered push token for a phone number."""

    async def resolve(self, target: str) -> Optional[str]:
        ...


class FCMPushAdapter(BaseChannelAdapter):
    """Push notification adapter using the FCM HTTP endpoint."""

    name = "fcm"
    channel = Channel.PUSH

    def __init__(
        self,
        config: FCMConfig,
        resolver: DeviceTokenResolver,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(config.message_template, config.timeout, client)
        self.config = config
        self.resolver = resolver

    async def send(self, target: str, message: str) -> bool:
        if not self.config.server_key:
            logger.warning("FCM server key is not configured")
            return False

        device_token = await self.resolver.resolve(target)
        if not device_token:
            raise DeliveryError("User device token not registered", channel=self.channel.value)

        payload = {
            "to": device_token,
            "notification": {
                "title": self.config.title,
                "body": message,
                "sound": "default",
            },
            "data": {"type": "otp"},
            "priority": "high",
        }

        try:
            response = await self.client.post(
                self.config.url,
                json=payload,
                headers={"Authorization": f"key={self.config.server_key}"},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("FCM push failed", error=str(e))
            raise DeliveryError("Push gateway request failed", channel=self.channel.value) from e

        success = (data.get("success") or 0) > 0
        if not success:
            logger.warning("FCM response indicates failure", failure=data.get("failure"))
        return success
