# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for FloodAid.

Example:
    >>> from floodaid.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.jwt.issuer)
    'FloodAid.Api'
"""

from floodaid.core.config.settings import (
    BootstrapAdminSettings,
    CORSSettings,
    DatabaseSettings,
    EmailSettings,
    InvitationSettings,
    JWTSettings,
    OTPSettings,
    PasswordResetSettings,
    RateLimitSettings,
    RedisSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "RedisSettings",
    "JWTSettings",
    "OTPSettings",
    "InvitationSettings",
    "PasswordResetSettings",
    "EmailSettings",
    "RateLimitSettings",
    "CORSSettings",
    "BootstrapAdminSettings",
]
