"""
IVR Call Adapter
================
Voice delivery: the gateway places an outbound call and reads the code aloud.
"""

from typing import Optional

import httpx
import structlog

from ..config import IVRConfig
from ..exceptions import DeliveryError
from .base import BaseChannelAdapter
from .models import Channel

logger = structlog.get_logger(__name__)


class IVRCallAdapter(BaseChannelAdapter):
    """Outbound call adapter for a bearer-authenticated IVR gateway."""

    name = "ivr"
    channel = Channel.CALL

    def __init__(self, config: IVRConfig, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config.message_template, config.timeout, client)
        self.config = config

    def compose(self, code: str) -> str:
        # "1 2 3 4" so text-to-speech reads digits, not a number
        return self.message_template.format(code=" ".join(code))

    async def send(self, target: str, message: str) -> bool:
        if not (self.config.api_url and self.config.api_key):
            raise DeliveryError("IVR service not configured", channel=self.channel.value)

        try:
            response = await self.client.post(
                f"{self.config.api_url.rstrip('/')}/call/outbound",
                json={"phone": target, "message": message, "retries": self.config.retries},
                headers={"Authorization": f"Bearer {self.config.api_key}"},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("IVR call failed", error=str(e))
            raise DeliveryError("Failed to initiate call", channel=self.channel.value) from e

        if data.get("status") != "success":
            logger.warning("IVR gateway refused call", status=data.get("status"))
            return False
        return True
