# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin authentication flow.

Login is two-step. verify_credentials() checks the identifier and password
and issues an OTP; verify_otp() checks the code and starts a token family.
After that the client holds an access token and a refresh token, refreshes
by rotation and logs out by revoking the refresh token.

The only server-side state between the steps is the OTP challenge, which
expires with the code. Failures at either step never reveal which factor
was wrong, and both count towards the login throttle.

Example:
    >>> service = AuthService(db, redis, token_service, hasher, settings)
    >>> challenge = await service.verify_credentials("admin", "Secret-123")
    >>> result = await service.verify_otp(challenge.admin.email, "042917")
    >>> result.tokens.access_token
"""

import logging
import secrets
from datetime import timedelta
from typing import NamedTuple, NoReturn, assert_never

from sqlalchemy.ext.asyncio import AsyncSession

from floodaid.core.config.settings import Settings
from floodaid.domains.admins.service import AdminService
from floodaid.domains.auth.lockout import LoginThrottle
from floodaid.domains.auth.otp import OTPCheck, OTPEngine
from floodaid.domains.auth.password import PasswordHasher, password_policy_violations
from floodaid.domains.auth.refresh_tokens import RefreshTokenLedger
from floodaid.domains.auth.tokens import TokenNotFoundError, TokenPair, TokenService
from floodaid.infrastructure.cache.redis_client import RedisClient
from floodaid.infrastructure.database.models import AdminUser
from floodaid.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

RESET_KEY_PREFIX = "password-reset:"


class AuthError(Exception):
    """Base exception for authentication errors."""

    code = "AuthError"


class InvalidCredentialsError(AuthError):
    """Raised when the identifier or password is wrong, or the account is inactive."""

    code = "InvalidCredentials"


class InvalidOtpError(AuthError):
    """Raised when an OTP does not match a live challenge."""

    code = "InvalidOtp"


class OtpExpiredError(AuthError):
    """Raised when there is no live challenge; login must restart."""

    code = "OtpExpired"


class SessionExpiredError(AuthError):
    """Raised when a refresh token cannot be rotated."""

    code = "SessionExpired"


class AccountLockedError(AuthError):
    """Raised while an identifier is locked after repeated failures."""

    code = "AccountLocked"


class InvalidResetTokenError(AuthError):
    """Raised for unknown, used or expired password reset tokens."""

    code = "InvalidResetToken"


class PasswordPolicyError(AuthError):
    """Raised when a new password breaks the password policy."""

    code = "ValidationFailed"


class OtpChallenge(NamedTuple):
    """Result of a successful credential check."""

    admin: AdminUser
    code: str
    expires_in: int


class LoginResult(NamedTuple):
    """Result of a completed login or refresh."""

    admin: AdminUser
    tokens: TokenPair


class PasswordResetTicket(NamedTuple):
    """Reset token to deliver to an admin by email."""

    admin: AdminUser
    token: str


class AuthService:
    """Runs the login, OTP, refresh, logout and password reset flows.

    Args:
        db: Database session.
        redis: Redis client for challenges, throttling and reset tokens.
        token_service: Access token signing and refresh token primitives.
        password_hasher: bcrypt hasher.
        settings: Application settings.
        clock: Source of the current time.
    """

    def __init__(
        self,
        db: AsyncSession,
        redis: RedisClient,
        token_service: TokenService,
        password_hasher: PasswordHasher,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self._db = db
        self._redis = redis
        self._tokens = token_service
        self._hasher = password_hasher
        self._settings = settings
        self._admins = AdminService(db, clock)
        self._ledger = RefreshTokenLedger(db, token_service, clock)
        self._otp = OTPEngine(redis, settings.otp, clock)
        self._throttle = LoginThrottle(redis, settings.otp)

    async def verify_credentials(self, identifier: str, password: str) -> OtpChallenge:
        """Check identifier and password, then issue an OTP.

        Args:
            identifier: Email or username.
            password: Plain text password.

        Returns:
            OtpChallenge holding the code to deliver.

        Raises:
            AccountLockedError: If the identifier is locked.
            InvalidCredentialsError: For any other failure.
        """
        if await self._throttle.is_locked(identifier):
            raise AccountLockedError("Too many failed attempts. Try again later.")

        admin = await self._admins.get_by_identifier(identifier)
        if admin is None:
            self._hasher.verify_dummy(password)
            await self._fail_credentials(identifier)

        # Logins by username share the lock on the email.
        if await self._throttle.is_locked(admin.email):
            self._hasher.verify_dummy(password)
            raise AccountLockedError("Too many failed attempts. Try again later.")

        if not self._hasher.verify(password, admin.password_hash) or not admin.is_active:
            await self._fail_credentials(identifier)

        if self._hasher.needs_rehash(admin.password_hash):
            await self._admins.update_password(admin, self._hasher.hash(password))
            await self._db.commit()

        await self._throttle.reset(identifier)
        code = await self._otp.issue(admin.email)
        logger.info("OTP issued for admin %s", admin.id)
        return OtpChallenge(admin, code, int(self._otp.lifetime.total_seconds()))

    async def verify_otp(self, email: str, code: str) -> LoginResult:
        """Complete login with the emailed code.

        Args:
            email: Email the code was sent to.
            code: Code entered by the admin.

        Returns:
            LoginResult with a new token pair.

        Raises:
            AccountLockedError: If the email is locked.
            InvalidOtpError: If the code is wrong; retrying is allowed.
            OtpExpiredError: If the challenge expired, was used or never existed.
            InvalidCredentialsError: If the admin was deactivated meanwhile.
        """
        if await self._throttle.is_locked(email):
            raise AccountLockedError("Too many failed attempts. Try again later.")

        outcome = await self._otp.check(email, code)
        match outcome:
            case OTPCheck.VERIFIED:
                pass
            case OTPCheck.MISMATCH:
                await self._throttle.record_failure(email)
                raise InvalidOtpError("Invalid verification code")
            case OTPCheck.EXPIRED | OTPCheck.MISSING:
                raise OtpExpiredError("Verification code expired. Sign in again.")
            case _:
                assert_never(outcome)

        admin = await self._admins.get_by_email(email)
        if admin is None or not admin.is_active:
            raise InvalidCredentialsError("Invalid credentials")

        tokens = await self._ledger.issue(admin)
        await self._admins.record_login(admin)
        await self._db.commit()
        await self._throttle.reset(email)

        logger.info("Admin logged in: %s", admin.id)
        return LoginResult(admin, tokens)

    async def refresh(self, refresh_token: str) -> LoginResult:
        """Rotate a refresh token.

        Raises:
            SessionExpiredError: If the token cannot be rotated.
        """
        try:
            tokens, admin = await self._ledger.rotate(refresh_token)
        except TokenNotFoundError as e:
            # Persist any family revocation triggered by reuse detection.
            await self._db.commit()
            raise SessionExpiredError("Session expired. Sign in again.") from e

        await self._db.commit()
        logger.info("Tokens refreshed for admin: %s", admin.id)
        return LoginResult(admin, tokens)

    async def logout(self, refresh_token: str) -> None:
        """Revoke a refresh token. Unknown or already revoked tokens are ignored."""
        if await self._ledger.revoke(refresh_token):
            logger.info("Refresh token revoked on logout")
        await self._db.commit()

    async def request_password_reset(self, email: str) -> PasswordResetTicket | None:
        """Create a password reset token for an active admin.

        Returns None for unknown or inactive emails; callers must answer
        both cases identically.
        """
        admin = await self._admins.get_by_email(email)
        if admin is None or not admin.is_active:
            logger.info("Password reset requested for unknown or inactive email")
            return None

        token = secrets.token_urlsafe(32)
        ttl = timedelta(minutes=self._settings.password_reset.expire_minutes)
        await self._redis.set(
            self._reset_key(token),
            {"admin_id": admin.id},
            expire_seconds=int(ttl.total_seconds()),
        )
        logger.info("Password reset token issued for admin %s", admin.id)
        return PasswordResetTicket(admin, token)

    async def confirm_password_reset(self, token: str, new_password: str) -> AdminUser:
        """Set a new password with a reset token and end all sessions.

        Raises:
            PasswordPolicyError: If the new password is too weak.
            InvalidResetTokenError: If the token is unknown, used or expired.
        """
        problems = password_policy_violations(new_password, require_complexity=False)
        if problems:
            raise PasswordPolicyError("Password " + "; ".join(problems))

        key = self._reset_key(token)
        data = await self._redis.get(key)
        if not isinstance(data, dict) or not await self._redis.delete(key):
            raise InvalidResetTokenError("Reset link is invalid or has expired")

        admin = await self._db.get(AdminUser, data["admin_id"])
        if admin is None or not admin.is_active:
            raise InvalidResetTokenError("Reset link is invalid or has expired")

        await self._admins.update_password(admin, self._hasher.hash(new_password))
        revoked = await self._ledger.revoke_all(admin.id)
        await self._db.commit()
        await self._throttle.reset(admin.email)

        logger.info("Password reset for admin %s, %d sessions revoked", admin.id, revoked)
        return admin

    async def _fail_credentials(self, identifier: str) -> NoReturn:
        if await self._throttle.record_failure(identifier):
            raise AccountLockedError("Too many failed attempts. Try again later.")
        raise InvalidCredentialsError("Invalid credentials")

    def _reset_key(self, token: str) -> str:
        return f"{RESET_KEY_PREFIX}{self._tokens.hash_token(token)}"
