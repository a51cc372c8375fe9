"""
Channel Adapter Base
====================
Abstract base class for verification code delivery gateways.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
import structlog

from .models import Channel

logger = structlog.get_logger(__name__)


class BaseChannelAdapter(ABC):
    """
    Sends a composed message to a target through one gateway.

    ``send`` returns False when the gateway answers but refuses the message,
    and raises DeliveryError when the gateway cannot be reached.
    """

    name: str = "base"
    channel: Channel = Channel.SMS

    def __init__(
        self,
        message_template: str = "{code}",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            message_template: Template with a ``{code}`` placeholder
            timeout: HTTP timeout in seconds
            client: Pre-built HTTP client (tests inject a MockTransport here)
        """
        self.message_template = message_template
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def initialize(self) -> None:
        """Create the HTTP client eagerly."""
        _ = self.client
        logger.info("Channel adapter initialized", adapter=self.name)

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        logger.info("Channel adapter closed", adapter=self.name)

    def compose(self, code: str) -> str:
        """Render the message carrying ``code``."""
        return self.message_template.format(code=code)

    @abstractmethod
    async def send(self, target: str, message: str) -> bool:
        """
        Deliver ``message`` to ``target``.

        Args:
            target: Normalized E.164 phone number
            message: Rendered message body

        Returns:
            True if the gateway accepted the message
        """

    async def health_check(self) -> bool:
        """True once initialized and until closed."""
        return self._client is not None and not self._client.is_closed
