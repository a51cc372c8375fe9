"""
Eskiz SMS Adapter
=================
SMS delivery through the Eskiz gateway (notify.eskiz.uz).
"""

import time
from typing import Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import EskizConfig
from ..exceptions import DeliveryError
from .base import BaseChannelAdapter
from .models import Channel

logger = structlog.get_logger(__name__)

# Eskiz tokens live 30 days; refresh a day early
TOKEN_LIFETIME_SECONDS = 29 * 24 * 60 * 60
ACCEPTED_STATUSES = frozenset({"success", "waiting"})


class EskizSMSAdapter(BaseChannelAdapter):
    """
    Eskiz SMS adapter.

    Authenticates with email/password (token cached for 29 days) or a
    pre-issued static token, then posts to ``/message/sms/send``.
    """

    name = "eskiz"
    channel = Channel.SMS

    def __init__(
        self,
        config: EskizConfig,
        client: Optional[httpx.AsyncClient] = None,
        clock=time.monotonic,
    ):
        super().__init__(config.message_template, config.timeout, client)
        self.config = config
        self._clock = clock
        self._token: Optional[str] = config.token or None
        self._token_expiry = float("inf") if config.token else 0.0

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.config.api_url, timeout=self.timeout)

    def _url(self, path: str) -> str:
        return f"{self.config.api_url.rstrip('/')}{path}"

    async def _login(self) -> str:
        if not (self.config.email and self.config.password):
            raise DeliveryError("No Eskiz token or credentials available", channel=self.channel.value)

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=0.5, max=4),
            reraise=True,
        ):
            with attempt:
                response = await self.client.post(
                    self._url("/auth/login"),
                    data={"email": self.config.email, "password": self.config.password},
                )
        response.raise_for_status()
        return response.json()["data"]["token"]

    async def authenticate(self, force: bool = False) -> str:
        """Return a valid bearer token, logging in when the cached one is stale."""
        if not force and self._token and self._clock() < self._token_expiry:
            return self._token

        try:
            token = await self._login()
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Eskiz authentication failed", error=str(e))
            raise DeliveryError("Failed to authenticate with SMS provider", channel=self.channel.value) from e

        self._token = token
        self._token_expiry = self._clock() + TOKEN_LIFETIME_SECONDS
        logger.info("Eskiz authentication successful")
        return token

    async def _post_sms(self, token: str, target: str, message: str) -> httpx.Response:
        return await self.client.post(
            self._url("/message/sms/send"),
            data={
                "mobile_phone": target.lstrip("+"),
                "message": message,
                "from": self.config.sender,
            },
            headers={"Authorization": f"Bearer {token}"},
        )

    async def send(self, target: str, message: str) -> bool:
        token = await self.authenticate()
        try:
            response = await self._post_sms(token, target, message)
            if response.status_code == 401 and (self.config.email and self.config.password):
                logger.info("Eskiz token rejected, re-authenticating")
                token = await self.authenticate(force=True)
                response = await self._post_sms(token, target, message)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Eskiz SMS send failed", error=str(e))
            raise DeliveryError("SMS gateway request failed", channel=self.channel.value) from e

        status = str(data.get("status", "")).lower()
        if status not in ACCEPTED_STATUSES:
            logger.warning("Eskiz refused SMS", status=status, message=data.get("message"))
            return False
        return True
