"""
Passgate Configuration
======================
Explicit configuration objects passed to the engines at construction time.

Only ``Settings.from_env`` touches the process environment; the engines
themselves never read ambient state.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .exceptions import ConfigurationError

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> int:
    """
    Parse a duration such as ``"15m"`` or ``"7d"`` into seconds.

    A bare number is taken as seconds.
    """
    match = _DURATION_RE.match(value or "")
    if not match:
        raise ConfigurationError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit]


@dataclass
class OTPConfig:
    """Configuration for verification code issuance."""
    code_length: int = 4
    expiry_minutes: int = 5
    max_attempts: int = 5
    delivery_timeout_seconds: float = 10.0

    def __post_init__(self):
        if not 4 <= self.code_length <= 10:
            raise ConfigurationError("code_length must be between 4 and 10")
        if self.expiry_minutes <= 0:
            raise ConfigurationError("expiry_minutes must be positive")
        if self.max_attempts <= 0:
            raise ConfigurationError("max_attempts must be positive")

    @property
    def expiry_seconds(self) -> int:
        return self.expiry_minutes * 60


@dataclass
class RateLimitConfig:
    """Issuance and verification throttling windows."""
    issue_cooldown_seconds: int = 60
    issue_cooldown_max: int = 1
    issue_hourly_max: int = 20
    issue_ip_hourly_max: int = 50
    verify_window_seconds: int = 300
    verify_max: int = 10
    verify_fail_closed: bool = True


@dataclass
class TokenConfig:
    """Signing secrets and lifetimes for access/refresh tokens."""
    access_secret: str = ""
    refresh_secret: str = ""
    access_ttl_seconds: int = 15 * 60
    refresh_ttl_seconds: int = 7 * 86400
    algorithm: str = "HS256"
    issuer: Optional[str] = None
    leeway_seconds: int = 0


@dataclass
class EskizConfig:
    """Eskiz SMS gateway credentials."""
    api_url: str = "https://notify.eskiz.uz/api"
    email: str = ""
    password: str = ""
    token: str = ""
    sender: str = "4546"
    message_template: str = "Verification code: {code}"
    timeout: float = 10.0


@dataclass
class IVRConfig:
    """Voice call (IVR) gateway credentials."""
    api_url: str = ""
    api_key: str = ""
    message_template: str = "Your verification code is: {code}. Once again: {code}"
    retries: int = 2
    timeout: float = 10.0


@dataclass
class FCMConfig:
    """Firebase Cloud Messaging settings for push delivery."""
    server_key: str = ""
    url: str = "https://fcm.googleapis.com/fcm/send"
    title: str = "Verification code"
    message_template: str = "Enter this code in the app: {code}"
    timeout: float = 10.0


@dataclass
class Settings:
    """Top-level configuration bundle."""
    service_name: str = "passgate"
    otp: OTPConfig = field(default_factory=OTPConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    tokens: TokenConfig = field(default_factory=TokenConfig)
    eskiz: EskizConfig = field(default_factory=EskizConfig)
    ivr: IVRConfig = field(default_factory=IVRConfig)
    fcm: FCMConfig = field(default_factory=FCMConfig)
    redis_url: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            Populated Settings
        """
        env = os.environ if environ is None else environ

        otp = OTPConfig(
            code_length=int(env.get("OTP_CODE_LENGTH", "4")),
            expiry_minutes=int(env.get("OTP_EXPIRY_MINUTES", "5")),
            max_attempts=int(env.get("OTP_MAX_ATTEMPTS", "5")),
            delivery_timeout_seconds=float(env.get("OTP_DELIVERY_TIMEOUT", "10")),
        )
        rate_limit = RateLimitConfig(
            issue_hourly_max=int(env.get("OTP_HOURLY_MAX", "20")),
            verify_max=int(env.get("OTP_VERIFY_MAX", "10")),
        )
        tokens = TokenConfig(
            access_secret=env.get("JWT_SECRET", ""),
            refresh_secret=env.get("JWT_REFRESH_SECRET", ""),
            access_ttl_seconds=parse_duration(env.get("JWT_EXPIRES_IN", "15m")),
            refresh_ttl_seconds=parse_duration(env.get("JWT_REFRESH_EXPIRES_IN", "7d")),
            issuer=env.get("JWT_ISSUER") or None,
        )
        eskiz = EskizConfig(
            api_url=env.get("ESKIZ_API_URL", EskizConfig.api_url),
            email=env.get("ESKIZ_EMAIL", ""),
            password=env.get("ESKIZ_PASSWORD", ""),
            token=env.get("ESKIZ_TOKEN", ""),
            sender=env.get("ESKIZ_SENDER", EskizConfig.sender),
        )
        ivr = IVRConfig(
            api_url=env.get("IVR_API_URL", ""),
            api_key=env.get("IVR_API_KEY", ""),
        )
        fcm = FCMConfig(server_key=env.get("FCM_SERVER_KEY", ""))

        return cls(
            service_name=env.get("SERVICE_NAME", "passgate"),
            otp=otp,
            rate_limit=rate_limit,
            tokens=tokens,
            eskiz=eskiz,
            ivr=ivr,
            fcm=fcm,
            redis_url=env.get("REDIS_URL") or None,
            log_level=env.get("LOG_LEVEL", "INFO"),
        )
