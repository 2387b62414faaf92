# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-identifier login throttling.

Failed password and OTP attempts increment a counter in Redis keyed by the
normalized identifier. The counter exists whether or not the identifier
belongs to an account, so a lock reveals nothing about account existence.
Reaching the threshold locks the identifier for the lockout window.
"""

import logging

from floodaid.core.config.settings import OTPSettings
from floodaid.infrastructure.cache.redis_client import RedisClient

logger = logging.getLogger(__name__)

FAILURES_KEY_PREFIX = "login-failures:"
LOCK_KEY_PREFIX = "login-lock:"


class LoginThrottle:
    """Tracks failed attempts and locks identifiers.

    Args:
        redis: Redis client.
        settings: Threshold and lockout duration.
    """

    def __init__(self, redis: RedisClient, settings: OTPSettings) -> None:
        self._redis = redis
        self._max_failures = settings.max_failed_attempts
        self._lockout_seconds = settings.lockout_minutes * 60

    async def is_locked(self, identifier: str) -> bool:
        return await self._redis.exists(self._lock_key(identifier))

    async def record_failure(self, identifier: str) -> bool:
        """Count a failed attempt.

        Returns:
            True if this failure locked the identifier.
        """
        failures = await self._redis.increment(
            self._failures_key(identifier), window_seconds=self._lockout_seconds
        )
        if failures < self._max_failures:
            return False

        await self._redis.set(self._lock_key(identifier), "1", expire_seconds=self._lockout_seconds)
        await self._redis.delete(self._failures_key(identifier))
        logger.warning("Login locked for %d minutes after %d failures", self._lockout_seconds // 60, failures)
        return True

    async def reset(self, identifier: str) -> None:
        await self._redis.delete(self._failures_key(identifier))
        await self._redis.delete(self._lock_key(identifier))

    @staticmethod
    def _normalize(identifier: str) -> str:
        return identifier.strip().lower()

    def _failures_key(self, identifier: str) -> str:
        return f"{FAILURES_KEY_PREFIX}{self._normalize(identifier)}"

    def _lock_key(self, identifier: str) -> str:
        return f"{LOCK_KEY_PREFIX}{self._normalize(identifier)}"
