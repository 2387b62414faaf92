# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for FloodAid.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Secrets (JWT key, SMTP password, bootstrap admin hash, master OTP) are only
ever read from the environment. Nothing credential-like is shipped in source.

Example:
    >>> from floodaid.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-this-in-production-floodaid-dev-key"
MIN_JWT_SECRET_BYTES = 32


class DatabaseSettings(BaseSettings):
    """Relational database configuration.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        url_override: Full async URL; takes precedence over the components.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Log every SQL statement.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "floodaid"
    password: SecretStr = SecretStr("floodaid_db_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "floodaid"
    url_override: str | None = Field(default=None, validation_alias="DATABASE_URL")
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class RedisSettings(BaseSettings):
    """Redis configuration for OTP challenges and login throttling.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Optional Redis password.
        database: Redis database number.
        key_prefix: Prefix applied to every key written by the service.
        max_connections: Maximum connection pool size.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr | None = None
    database: int = 0
    key_prefix: str = "floodaid:"
    max_connections: int = 50

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        if self.password is None:
            return f"redis://{self.host}:{self.port}/{self.database}"
        pwd = self.password.get_secret_value()
        return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Attributes:
        secret_key: HMAC secret for signing access tokens (>= 32 bytes).
        algorithm: JWT signing algorithm.
        issuer: Value of the iss claim.
        audience: Value of the aud claim.
        access_token_expire_minutes: Access token lifetime.
        refresh_token_expire_days: Refresh token lifetime.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    algorithm: Literal["HS256", "HS384", "HS512"] = "HS256"
    issuer: str = "FloodAid.Api"
    audience: str = "FloodAid.Frontend"
    access_token_expire_minutes: int = Field(
        default=30,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    refresh_token_expire_days: int = Field(
        default=7,
        validation_alias="REFRESH_TOKEN_EXPIRE_DAYS",
    )


class OTPSettings(BaseSettings):
    """One-time passcode and login throttling configuration.

    The master code is a flagged development override. It is honoured only
    when allow_master_code is true, and production refuses to start with
    either setting present.

    Attributes:
        length: Number of digits in a code.
        expire_minutes: Challenge lifetime.
        max_failed_attempts: Failures allowed before the identifier locks.
        lockout_minutes: Lock duration once the threshold is reached.
        master_code: Optional bypass code for non-production testing.
        allow_master_code: Explicit switch enabling the bypass code.
    """

    model_config = SettingsConfigDict(
        env_prefix="OTP_",
        extra="ignore",
    )

    length: int = Field(default=6, ge=4, le=10)
    expire_minutes: int = 5
    max_failed_attempts: int = 5
    lockout_minutes: int = 15
    master_code: SecretStr | None = None
    allow_master_code: bool = False


class InvitationSettings(BaseSettings):
    """Invitation configuration.

    Attributes:
        expire_days: Days an invitation stays acceptable.
        accept_url_base: Frontend page that receives ?token=...
    """

    model_config = SettingsConfigDict(
        env_prefix="INVITATION_",
        extra="ignore",
    )

    expire_days: int = 7
    accept_url_base: str = "http://localhost:5173/accept-invitation"


class PasswordResetSettings(BaseSettings):
    """Password reset configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PASSWORD_RESET_",
        extra="ignore",
    )

    expire_minutes: int = 60
    reset_url_base: str = "http://localhost:5173/reset-password"


class EmailSettings(BaseSettings):
    """Outgoing email configuration.

    When smtp_host is unset the email service runs in console mode and only
    logs what it would have sent.

    Attributes:
        smtp_host: SMTP server host.
        smtp_port: SMTP server port.
        smtp_user: SMTP login.
        smtp_password: SMTP password.
        use_tls: Use STARTTLS.
        from_address: Envelope and header sender.
        from_name: Display name for the sender.
        timeout: Send timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        extra="ignore",
    )

    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: SecretStr | None = None
    use_tls: bool = True
    from_address: str = "noreply@floodaid.org"
    from_name: str = "FloodAid"
    timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        """Check whether real SMTP delivery is configured."""
        return bool(self.smtp_host)


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    Attributes:
        enabled: Whether slowapi limits are enforced.
        requests_per_minute: Default limit per client.
        auth_requests_per_minute: Limit for credential and OTP endpoints.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        extra="ignore",
    )

    enabled: bool = True
    requests_per_minute: int = 60
    auth_requests_per_minute: int = 10


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class BootstrapAdminSettings(BaseSettings):
    """First super admin, created by the seed script when no admin exists.

    Only a bcrypt hash is accepted; the plaintext never reaches the process.

    Attributes:
        name: Display name.
        email: Login email.
        username: Login username.
        password_hash: bcrypt hash of the initial password.
    """

    model_config = SettingsConfigDict(
        env_prefix="BOOTSTRAP_ADMIN_",
        extra="ignore",
    )

    name: str = "System Administrator"
    email: str | None = None
    username: str | None = None
    password_hash: SecretStr | None = None

    @property
    def is_configured(self) -> bool:
        """Check whether all bootstrap credentials are present."""
        return bool(self.email and self.username and self.password_hash)


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        password_hash_rounds: bcrypt work factor.
        database: Database settings.
        redis: Redis settings.
        jwt: JWT authentication settings.
        otp: OTP and lockout settings.
        invitation: Invitation settings.
        password_reset: Password reset settings.
        email: Email delivery settings.
        rate_limit: Rate limiting settings.
        cors: CORS settings.
        bootstrap_admin: Initial super admin settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"
    password_hash_rounds: int = Field(default=11, ge=4, le=16)

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    otp: OTPSettings = Field(default_factory=OTPSettings)
    invitation: InvitationSettings = Field(default_factory=InvitationSettings)
    password_reset: PasswordResetSettings = Field(default_factory=PasswordResetSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    bootstrap_admin: BootstrapAdminSettings = Field(default_factory=BootstrapAdminSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            secret = self.jwt.secret_key.get_secret_value()
            if secret == DEFAULT_JWT_SECRET:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
            if len(secret.encode("utf-8")) < MIN_JWT_SECRET_BYTES:
                raise ValueError(
                    f"JWT secret key must be at least {MIN_JWT_SECRET_BYTES} bytes in production."
                )
            if self.otp.allow_master_code or self.otp.master_code is not None:
                raise ValueError(
                    "Master OTP override is not permitted in production. "
                    "Unset OTP_MASTER_CODE and OTP_ALLOW_MASTER_CODE."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
