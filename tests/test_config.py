"""
Tests for configuration, target normalization and logging setup.
"""

import pytest

from passgate_core.config import OTPConfig, Settings, parse_duration
from passgate_core.exceptions import ConfigurationError, ValidationError


class TestParseDuration:
    """Tests for duration strings."""

    def test_units(self):
        assert parse_duration("15m") == 900
        assert parse_duration("7d") == 604800
        assert parse_duration("2h") == 7200
        assert parse_duration("30s") == 30

    def test_bare_number_is_seconds(self):
        assert parse_duration("45") == 45

    @pytest.mark.parametrize("value", ["", "abc", "15x", "-5m"])
    def test_invalid(self, value):
        with pytest.raises(ConfigurationError):
            parse_duration(value)


class TestOTPConfig:
    """Tests for OTP settings validation."""

    def test_defaults(self):
        config = OTPConfig()

        assert config.code_length == 4
        assert config.expiry_minutes == 5
        assert config.max_attempts == 5
        assert config.expiry_seconds == 300

    def test_rejects_short_codes(self):
        with pytest.raises(ConfigurationError):
            OTPConfig(code_length=3)

    def test_rejects_non_positive_attempts(self):
        with pytest.raises(ConfigurationError):
            OTPConfig(max_attempts=0)


class TestSettingsFromEnv:
    """Tests for environment loading."""

    def test_reads_values(self):
        settings = Settings.from_env({
            "SERVICE_NAME": "auth-api",
            "OTP_CODE_LENGTH": "6",
            "OTP_EXPIRY_MINUTES": "3",
            "JWT_SECRET": "a" * 32,
            "JWT_REFRESH_SECRET": "b" * 32,
            "JWT_EXPIRES_IN": "10m",
            "JWT_REFRESH_EXPIRES_IN": "30d",
            "ESKIZ_EMAIL": "ops@example.com",
            "REDIS_URL": "redis://localhost:6379/0",
        })

        assert settings.service_name == "auth-api"
        assert settings.otp.code_length == 6
        assert settings.otp.expiry_minutes == 3
        assert settings.tokens.access_ttl_seconds == 600
        assert settings.tokens.refresh_ttl_seconds == 30 * 86400
        assert settings.eskiz.email == "ops@example.com"
        assert settings.eskiz.sender == "4546"
        assert settings.redis_url == "redis://localhost:6379/0"

    def test_defaults_when_empty(self):
        settings = Settings.from_env({})

        assert settings.tokens.access_ttl_seconds == 15 * 60
        assert settings.tokens.refresh_ttl_seconds == 7 * 86400
        assert settings.redis_url is None
        assert settings.ivr.retries == 2


class TestPhone:
    """Tests for target normalization."""

    def test_normalize_strips_separators(self):
        from passgate_core.phone import normalize_target

        assert normalize_target("  +998 (90) 123-45.67 ") == "+998901234567"

    def test_require_phone(self):
        from passgate_core.phone import require_phone

        assert require_phone("+1 555 0001") == "+15550001"
        with pytest.raises(ValidationError):
            require_phone("998901234567")
        with pytest.raises(ValidationError):
            require_phone("+0123")

    def test_non_string_target(self):
        from passgate_core.phone import normalize_target

        with pytest.raises(ValidationError):
            normalize_target(None)

    def test_mask_phone(self):
        from passgate_core.phone import mask_phone

        masked = mask_phone("+998901234567")

        assert masked == "+998**...67"
        assert "1234" not in masked


class TestLogging:
    """Tests for structlog setup."""

    def test_setup_binds_service_name(self):
        import structlog
        from passgate_core.log import service_name_var, setup_logging

        try:
            setup_logging("auth-api", level="DEBUG", json_output=False)
            assert service_name_var.get() == "auth-api"
            structlog.get_logger("tests").info("Logging configured", component="tests")
        finally:
            structlog.reset_defaults()
