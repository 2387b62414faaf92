# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for application settings."""

import os
from unittest.mock import patch

import pytest
from pydantic import SecretStr, ValidationError

from floodaid.core.config.settings import (
    DEFAULT_JWT_SECRET,
    BootstrapAdminSettings,
    CORSSettings,
    DatabaseSettings,
    EmailSettings,
    JWTSettings,
    OTPSettings,
    RedisSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

PRODUCTION_SECRET = "production-secret-key-that-is-long-enough-1234"


class TestDatabaseSettings:
    """Tests for DatabaseSettings."""

    def test_url_property(self) -> None:
        """Test URL property builds the asyncpg connection string."""
        with patch.dict(os.environ, {}, clear=True):
            settings = DatabaseSettings(
                user="relief",
                password="pw",  # type: ignore[arg-type]
                host="db.example.com",
                port=5433,
                database="floodaid_test",
            )

        assert settings.url == "postgresql+asyncpg://relief:pw@db.example.com:5433/floodaid_test"

    def test_url_override(self) -> None:
        """Test that DATABASE_URL replaces the component URL."""
        with patch.dict(os.environ, {"DATABASE_URL": "sqlite+aiosqlite:///floodaid.db"}):
            settings = DatabaseSettings()

        assert settings.url == "sqlite+aiosqlite:///floodaid.db"


class TestRedisSettings:
    """Tests for RedisSettings."""

    def test_url_without_password(self) -> None:
        """Test URL when no password is configured."""
        assert RedisSettings(host="cache", port=6380, database=2).url == "redis://cache:6380/2"

    def test_url_with_password(self) -> None:
        """Test URL with a password."""
        settings = RedisSettings(password=SecretStr("s3cret"))

        assert settings.url == "redis://:s3cret@localhost:6379/0"


class TestJWTSettings:
    """Tests for JWTSettings."""

    def test_default_lifetimes(self) -> None:
        """Test 30 minute access and 7 day refresh defaults."""
        with patch.dict(os.environ, {}, clear=True):
            settings = JWTSettings()

        assert settings.access_token_expire_minutes == 30
        assert settings.refresh_token_expire_days == 7
        assert settings.algorithm == "HS256"
        assert settings.issuer == "FloodAid.Api"
        assert settings.audience == "FloodAid.Frontend"

    def test_lifetime_env_aliases(self) -> None:
        """Test that lifetimes load from their unprefixed variables."""
        env = {"ACCESS_TOKEN_EXPIRE_MINUTES": "15", "REFRESH_TOKEN_EXPIRE_DAYS": "3"}
        with patch.dict(os.environ, env):
            settings = JWTSettings()

        assert settings.access_token_expire_minutes == 15
        assert settings.refresh_token_expire_days == 3


class TestOTPSettings:
    """Tests for OTPSettings."""

    def test_defaults(self) -> None:
        """Test OTP and lockout defaults."""
        with patch.dict(os.environ, {}, clear=True):
            settings = OTPSettings()

        assert settings.length == 6
        assert settings.expire_minutes == 5
        assert settings.max_failed_attempts == 5
        assert settings.lockout_minutes == 15
        assert settings.master_code is None
        assert settings.allow_master_code is False

    def test_length_bounds(self) -> None:
        """Test that code length is validated."""
        with pytest.raises(ValidationError):
            OTPSettings(length=2)


class TestSmallSettings:
    """Tests for CORS, email and bootstrap settings helpers."""

    def test_origins_list(self) -> None:
        """Test that the origins string is split and trimmed."""
        settings = CORSSettings(origins="https://a.org, https://b.org,")

        assert settings.origins_list == ["https://a.org", "https://b.org"]

    def test_email_console_mode_without_host(self) -> None:
        """Test that email is unconfigured without an SMTP host."""
        assert EmailSettings(smtp_host=None).is_configured is False
        assert EmailSettings(smtp_host="smtp.example.org").is_configured is True

    def test_bootstrap_requires_all_fields(self) -> None:
        """Test that bootstrap admin settings need email, username and hash."""
        assert BootstrapAdminSettings(email="a@b.org", username="a").is_configured is False
        assert BootstrapAdminSettings(
            email="a@b.org", username="a", password_hash=SecretStr("$2b$12$x")
        ).is_configured is True


class TestSettings:
    """Tests for the aggregated Settings class."""

    def test_development_defaults(self) -> None:
        """Test that development allows the default secret."""
        settings = Settings(environment="development")

        assert settings.is_development is True
        assert settings.is_production is False

    def test_production_rejects_default_secret(self) -> None:
        """Test that production refuses the built-in JWT secret."""
        with pytest.raises(ValidationError, match="JWT secret key must be changed"):
            Settings(
                environment="production",
                jwt=JWTSettings(secret_key=SecretStr(DEFAULT_JWT_SECRET)),
            )

    def test_production_rejects_short_secret(self) -> None:
        """Test that production requires a 32 byte secret."""
        with pytest.raises(ValidationError, match="at least 32 bytes"):
            Settings(environment="production", jwt=JWTSettings(secret_key=SecretStr("short")))

    def test_production_rejects_master_code(self) -> None:
        """Test that the master OTP override cannot be configured in production."""
        with pytest.raises(ValidationError, match="Master OTP"):
            Settings(
                environment="production",
                jwt=JWTSettings(secret_key=SecretStr(PRODUCTION_SECRET)),
                otp=OTPSettings(master_code=SecretStr("000000")),
            )

    def test_production_accepts_secure_configuration(self) -> None:
        """Test that a secure production configuration loads."""
        settings = Settings(
            environment="production",
            jwt=JWTSettings(secret_key=SecretStr(PRODUCTION_SECRET)),
            otp=OTPSettings(master_code=None, allow_master_code=False),
        )

        assert settings.is_production is True


class TestGetSettings:
    """Tests for the cached settings accessor."""

    def test_get_settings_is_cached(self) -> None:
        """Test that get_settings returns the same instance until cleared."""
        clear_settings_cache()
        first = get_settings()

        assert get_settings() is first

        clear_settings_cache()
        assert get_settings() is not first
