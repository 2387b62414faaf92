# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for per-identifier login throttling."""

import pytest

from floodaid.core.config.settings import OTPSettings
from floodaid.domains.auth.lockout import LoginThrottle
from floodaid.infrastructure.cache.redis_client import RedisClient


@pytest.fixture
def throttle(redis_client: RedisClient) -> LoginThrottle:
    """Create a throttle with 5 attempts and a 15 minute lock."""
    return LoginThrottle(redis_client, OTPSettings())


class TestLoginThrottle:
    """Tests for LoginThrottle."""

    @pytest.mark.asyncio
    async def test_fifth_failure_locks(self, throttle: LoginThrottle) -> None:
        """Test that the identifier locks on reaching the threshold."""
        results = [await throttle.record_failure("root") for _ in range(5)]

        assert results == [False, False, False, False, True]
        assert await throttle.is_locked("root") is True

    @pytest.mark.asyncio
    async def test_identifier_is_normalized(self, throttle: LoginThrottle) -> None:
        """Test that case and whitespace variants share one counter."""
        for variant in ("Root", "root", " ROOT ", "rOOt", "root "):
            await throttle.record_failure(variant)

        assert await throttle.is_locked("root") is True

    @pytest.mark.asyncio
    async def test_lock_expires(self, throttle: LoginThrottle, clock) -> None:
        """Test that the lock lifts after the lockout window."""
        for _ in range(5):
            await throttle.record_failure("root")

        clock.advance(minutes=14, seconds=59)
        assert await throttle.is_locked("root") is True
        clock.advance(seconds=1)
        assert await throttle.is_locked("root") is False

    @pytest.mark.asyncio
    async def test_failure_window_expires(self, throttle: LoginThrottle, clock) -> None:
        """Test that old failures stop counting after the window."""
        for _ in range(4):
            await throttle.record_failure("root")
        clock.advance(minutes=16)

        assert await throttle.record_failure("root") is False
        assert await throttle.is_locked("root") is False

    @pytest.mark.asyncio
    async def test_reset_clears_counter_and_lock(self, throttle: LoginThrottle) -> None:
        """Test that reset unlocks and restarts counting."""
        for _ in range(5):
            await throttle.record_failure("root")
        await throttle.reset("root")

        assert await throttle.is_locked("root") is False
        assert await throttle.record_failure("root") is False

    @pytest.mark.asyncio
    async def test_identifiers_are_independent(self, throttle: LoginThrottle) -> None:
        """Test that failures for one identifier do not lock another."""
        for _ in range(5):
            await throttle.record_failure("root")

        assert await throttle.is_locked("sindh") is False
