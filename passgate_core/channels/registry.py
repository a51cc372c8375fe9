"""
Channel Registry
================
Maps delivery channels to their adapters.
"""

from typing import Dict, Iterable, List, Union

import structlog

from ..exceptions import DeliveryError
from .base import BaseChannelAdapter
from .models import Channel

logger = structlog.get_logger(__name__)


class ChannelRegistry:
    """One adapter per channel."""

    def __init__(self, adapters: Iterable[BaseChannelAdapter] = ()):
        self._adapters: Dict[Channel, BaseChannelAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: BaseChannelAdapter) -> None:
        """Register (or replace) the adapter for its channel."""
        self._adapters[adapter.channel] = adapter
        logger.info("Channel adapter registered", channel=adapter.channel.value, adapter=adapter.name)

    def get(self, channel: Union[Channel, str]) -> BaseChannelAdapter:
        """Get the adapter for ``channel``."""
        channel = Channel(channel)
        adapter = self._adapters.get(channel)
        if adapter is None:
            raise DeliveryError(f"No adapter configured for channel {channel.value}", channel=channel.value)
        return adapter

    def channels(self) -> List[Channel]:
        return list(self._adapters)

    async def initialize_all(self) -> None:
        for adapter in self._adapters.values():
            await adapter.initialize()

    async def close_all(self) -> None:
        """Close all registered adapters."""
        for adapter in self._adapters.values():
            await adapter.close()

    async def health_check_all(self) -> Dict[str, bool]:
        """Health of every adapter, keyed by channel name."""
        return {channel.value: await adapter.health_check() for channel, adapter in self._adapters.items()}
