# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""One-time passcodes for the second login factor.

A challenge is stored in Redis under ``otp:<email>`` as JSON
``{id, code, issued_at, expires_at}``. Issuing again overwrites the key, so only
the most recent code is valid. A challenge is valid up to and including its
expires_at instant; the Redis TTL is a little longer than that and only
garbage-collects abandoned challenges.

A successful verification deletes the key only if it still holds the
challenge that was checked, keyed by its random id. When concurrent requests
verify the same code only one delete succeeds, and a challenge reissued
between the read and the delete survives.

The master code is a development override. It is accepted only when
OTPSettings.allow_master_code is true, only for an email with a live
challenge, and production configuration refuses to load with it set.
"""

import hmac
import logging
import secrets
from datetime import datetime, timedelta
from enum import Enum

from floodaid.core.config.settings import OTPSettings
from floodaid.infrastructure.cache.redis_client import RedisClient
from floodaid.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

OTP_KEY_PREFIX = "otp:"
# Keeps the key alive past expires_at so an expired code reports EXPIRED.
TTL_GRACE_SECONDS = 60


class OTPCheck(str, Enum):
    """Outcome of an OTP verification."""

    VERIFIED = "verified"
    MISMATCH = "mismatch"
    EXPIRED = "expired"
    MISSING = "missing"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class OTPEngine:
    """Generates, stores and verifies one-time passcodes.

    Args:
        redis: Redis client holding the challenges.
        settings: Code length, lifetime and master code configuration.
        clock: Source of the current time.
    """

    def __init__(self, redis: RedisClient, settings: OTPSettings, clock: Clock = utc_now) -> None:
        self._redis = redis
        self._settings = settings
        self._clock = clock

    @property
    def lifetime(self) -> timedelta:
        return timedelta(minutes=self._settings.expire_minutes)

    def generate_code(self) -> str:
        """Uniformly random numeric code; leading zeros are kept."""
        return f"{secrets.randbelow(10 ** self._settings.length):0{self._settings.length}d}"

    async def issue(self, email: str) -> str:
        """Create a challenge for an email, replacing any earlier one.

        Args:
            email: Address the code is bound to.

        Returns:
            The generated code, for delivery to the user.
        """
        code = self.generate_code()
        issued_at = self._clock()
        challenge = {
            "id": secrets.token_urlsafe(8),
            "code": code,
            "issued_at": issued_at.isoformat(),
            "expires_at": (issued_at + self.lifetime).isoformat(),
        }
        await self._redis.set(
            self._key(email),
            challenge,
            expire_seconds=int(self.lifetime.total_seconds()) + TTL_GRACE_SECONDS,
        )
        return code

    async def check(self, email: str, code: str) -> OTPCheck:
        """Verify a code and report why it failed.

        The detailed outcome is for the auth service to choose between
        InvalidOtp and OtpExpired; it never tells the caller which of the
        email or the code was wrong.

        Args:
            email: Address the code was sent to.
            code: Code entered by the user.

        Returns:
            VERIFIED if the challenge was valid and consumed by this call.
        """
        key = self._key(email)
        challenge = await self._redis.get(key)
        if not isinstance(challenge, dict):
            return OTPCheck.MISSING

        if self._clock() > datetime.fromisoformat(challenge["expires_at"]):
            await self._redis.delete_if_equal(key, challenge)
            return OTPCheck.EXPIRED

        if not self._matches(challenge["code"], code):
            return OTPCheck.MISMATCH

        if not await self._redis.delete_if_equal(key, challenge):
            # Consumed or replaced since the read.
            return OTPCheck.MISSING
        return OTPCheck.VERIFIED

    async def verify(self, email: str, code: str) -> bool:
        """True exactly once per issued challenge with the right code."""
        return await self.check(email, code) is OTPCheck.VERIFIED

    async def invalidate(self, email: str) -> None:
        await self._redis.delete(self._key(email))

    def _matches(self, expected: str, candidate: str) -> bool:
        candidate_bytes = (candidate or "").strip().encode("utf-8")
        if hmac.compare_digest(expected.encode("utf-8"), candidate_bytes):
            return True

        master = self._settings.master_code
        if self._settings.allow_master_code and master is not None:
            if hmac.compare_digest(master.get_secret_value().encode("utf-8"), candidate_bytes):
                logger.warning("Master OTP override used; disable OTP_ALLOW_MASTER_CODE outside testing")
                return True
        return False

    @staticmethod
    def _key(email: str) -> str:
        return f"{OTP_KEY_PREFIX}{normalize_email(email)}"
