"""
Static Channel Adapter
======================
Keeps messages in memory instead of calling a gateway. For development and tests.
"""

from typing import List, Tuple

from .base import BaseChannelAdapter
from .models import Channel


class StaticChannelAdapter(BaseChannelAdapter):
    """Records every message; ``accept`` controls the reported outcome."""

    name = "static"

    def __init__(self, channel: Channel = Channel.SMS, accept: bool = True, message_template: str = "{code}"):
        super().__init__(message_template=message_template)
        self.channel = channel
        self.accept = accept
        self.outbox: List[Tuple[str, str]] = []

    async def send(self, target: str, message: str) -> bool:
        self.outbox.append((target, message))
        return self.accept

    async def initialize(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def health_check(self) -> bool:
        return True
