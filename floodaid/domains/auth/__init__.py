# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain services.

- password: bcrypt hashing and password policy
- tokens: signed access tokens and opaque refresh token primitives
- refresh_tokens: persisted refresh token ledger with rotation
- otp: one-time passcodes for the second factor
- lockout: per-identifier login throttling
- service: the login, OTP, refresh, logout and password reset flows
"""

from floodaid.domains.auth.otp import OTPCheck, OTPEngine
from floodaid.domains.auth.password import PasswordHasher
from floodaid.domains.auth.refresh_tokens import RefreshTokenLedger
from floodaid.domains.auth.service import AuthService
from floodaid.domains.auth.tokens import AccessTokenClaims, TokenPair, TokenService

__all__ = [
    "PasswordHasher",
    "TokenService",
    "TokenPair",
    "AccessTokenClaims",
    "RefreshTokenLedger",
    "OTPEngine",
    "OTPCheck",
    "AuthService",
]
