"""
Passgate Core
=============
Verification code (OTP) and access/refresh token engine.
"""

__version__ = "0.1.0"

# Configuration
from passgate_core.config import (
    Settings,
    OTPConfig,
    RateLimitConfig,
    TokenConfig,
    EskizConfig,
    IVRConfig,
    FCMConfig,
    parse_duration,
)

# Errors
from passgate_core.exceptions import (
    PassgateError,
    ConfigurationError,
    ValidationError,
    RateLimitedError,
    RateLimiterUnavailable,
    DeliveryError,
    TokenError,
    ExpiredError,
    InvalidError,
    RevokedError,
    RevocationUnavailable,
)

# Logging
from passgate_core.log import setup_logging

# Storage
from passgate_core.database import Base, Database

# Audit
from passgate_core.audit import AuditAction, AuditEvent, AuditLogger, AuditSink, NullAuditSink

# Channels
from passgate_core.channels import (
    Channel,
    BaseChannelAdapter,
    ChannelRegistry,
    EskizSMSAdapter,
    IVRCallAdapter,
    FCMPushAdapter,
    StaticChannelAdapter,
)

# Rate Limiting
from passgate_core.rate_limit import (
    InMemoryRateLimiter,
    RedisRateLimiter,
    IssuanceRateLimiter,
    VerificationRateLimiter,
)

# Verification codes
from passgate_core.verification import (
    VerificationCode,
    IssueResult,
    VerificationCodeService,
    InMemoryVerificationCodeStore,
    SQLVerificationCodeStore,
)

# Tokens
from passgate_core.tokens import (
    TokenIdentity,
    TokenPair,
    TokenService,
    InMemoryRevocationRegistry,
    RedisRevocationRegistry,
)

# Facade
from passgate_core.engine import AuthCore, build_auth_core, build_channels

__all__ = [
    "__version__",
    # Configuration
    "Settings",
    "OTPConfig",
    "RateLimitConfig",
    "TokenConfig",
    "EskizConfig",
    "IVRConfig",
    "FCMConfig",
    "parse_duration",
    # Errors
    "PassgateError",
    "ConfigurationError",
    "ValidationError",
    "RateLimitedError",
    "RateLimiterUnavailable",
    "DeliveryError",
    "TokenError",
    "ExpiredError",
    "InvalidError",
    "RevokedError",
    "RevocationUnavailable",
    # Logging
    "setup_logging",
    # Audit
    "AuditAction",
    "AuditEvent",
    "AuditLogger",
    "AuditSink",
    "NullAuditSink",
    # Channels
    "Channel",
    "BaseChannelAdapter",
    "ChannelRegistry",
    "EskizSMSAdapter",
    "IVRCallAdapter",
    "FCMPushAdapter",
    "StaticChannelAdapter",
    # Rate Limiting
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "IssuanceRateLimiter",
    "VerificationRateLimiter",
    # Verification codes
    "VerificationCode",
    "IssueResult",
    "VerificationCodeService",
    "InMemoryVerificationCodeStore",
    "SQLVerificationCodeStore",
    "Database",
    "Base",
    # Tokens
    "TokenIdentity",
    "TokenPair",
    "TokenService",
    "InMemoryRevocationRegistry",
    "RedisRevocationRegistry",
    # Facade
    "AuthCore",
    "build_auth_core",
    "build_channels",
]
