# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the one-time passcode engine."""

import asyncio
import json
from unittest.mock import patch

import pytest
from pydantic import SecretStr

from floodaid.core.config.settings import OTPSettings
from floodaid.domains.auth.otp import TTL_GRACE_SECONDS, OTPCheck, OTPEngine
from floodaid.infrastructure.cache.redis_client import RedisClient

EMAIL = "admin@floodaid.org"


@pytest.fixture
def engine(redis_client: RedisClient, clock) -> OTPEngine:
    """Create an OTP engine with default settings."""
    return OTPEngine(redis_client, OTPSettings(), clock)


def _other_code(code: str) -> str:
    return f"{(int(code) + 1) % 10 ** len(code):0{len(code)}d}"


class TestGenerateCode:
    """Tests for code generation."""

    def test_codes_have_configured_length(self, redis_client: RedisClient, clock) -> None:
        """Test that codes are zero-padded digit strings of the configured length."""
        engine = OTPEngine(redis_client, OTPSettings(length=8), clock)

        for _ in range(200):
            code = engine.generate_code()
            assert len(code) == 8
            assert code.isdigit()

    def test_codes_vary(self, engine: OTPEngine) -> None:
        """Test that generated codes are not constant."""
        assert len({engine.generate_code() for _ in range(50)}) > 1


class TestIssue:
    """Tests for OTPEngine.issue."""

    @pytest.mark.asyncio
    async def test_issue_stores_challenge(self, engine: OTPEngine, fake_redis, settings) -> None:
        """Test that the challenge JSON and TTL are written under the email key."""
        code = await engine.issue(EMAIL)

        key = f"{settings.redis.key_prefix}otp:{EMAIL}"
        stored = json.loads(await fake_redis.get(key))
        assert stored["code"] == code
        assert set(stored) == {"id", "code", "issued_at", "expires_at"}
        assert await fake_redis.ttl(key) == 5 * 60 + TTL_GRACE_SECONDS

    @pytest.mark.asyncio
    async def test_email_is_normalized(self, engine: OTPEngine) -> None:
        """Test that the challenge is found regardless of email case and spaces."""
        code = await engine.issue("  Admin@FloodAid.org ")

        assert await engine.verify(EMAIL, code) is True

    @pytest.mark.asyncio
    async def test_reissue_replaces_previous_code(self, engine: OTPEngine) -> None:
        """Test that only the most recent code is valid."""
        first = await engine.issue(EMAIL)
        second = await engine.issue(EMAIL)
        if first == second:
            pytest.skip("random codes collided")

        assert await engine.check(EMAIL, first) is OTPCheck.MISMATCH
        assert await engine.check(EMAIL, second) is OTPCheck.VERIFIED


class TestCheck:
    """Tests for OTPEngine.check and verify."""

    @pytest.mark.asyncio
    async def test_correct_code_verifies_once(self, engine: OTPEngine) -> None:
        """Test that a code is consumed by its first successful use."""
        code = await engine.issue(EMAIL)

        assert await engine.check(EMAIL, code) is OTPCheck.VERIFIED
        assert await engine.check(EMAIL, code) is OTPCheck.MISSING

    @pytest.mark.asyncio
    async def test_wrong_code_keeps_challenge(self, engine: OTPEngine) -> None:
        """Test that a mismatch leaves the challenge usable."""
        code = await engine.issue(EMAIL)

        assert await engine.check(EMAIL, _other_code(code)) is OTPCheck.MISMATCH
        assert await engine.check(EMAIL, code) is OTPCheck.VERIFIED

    @pytest.mark.asyncio
    async def test_code_is_trimmed(self, engine: OTPEngine) -> None:
        """Test that surrounding whitespace in the entered code is ignored."""
        code = await engine.issue(EMAIL)

        assert await engine.verify(EMAIL, f" {code}\n") is True

    @pytest.mark.asyncio
    async def test_unknown_email_is_missing(self, engine: OTPEngine) -> None:
        """Test that checking without a challenge reports MISSING."""
        assert await engine.check("nobody@floodaid.org", "123456") is OTPCheck.MISSING

    @pytest.mark.asyncio
    async def test_valid_at_exact_expiry(self, engine: OTPEngine, clock) -> None:
        """Test that the challenge is still valid at its expires_at instant."""
        code = await engine.issue(EMAIL)
        clock.advance(minutes=5)

        assert await engine.check(EMAIL, code) is OTPCheck.VERIFIED

    @pytest.mark.asyncio
    async def test_expired_after_lifetime(self, engine: OTPEngine, clock) -> None:
        """Test that the challenge expires and is removed after its lifetime."""
        code = await engine.issue(EMAIL)
        clock.advance(minutes=5, seconds=1)

        assert await engine.check(EMAIL, code) is OTPCheck.EXPIRED
        assert await engine.check(EMAIL, code) is OTPCheck.MISSING

    @pytest.mark.asyncio
    async def test_concurrent_verification_succeeds_once(self, engine: OTPEngine) -> None:
        """Test that two concurrent checks of the same code yield one success."""
        code = await engine.issue(EMAIL)

        results = await asyncio.gather(engine.check(EMAIL, code), engine.check(EMAIL, code))

        assert results.count(OTPCheck.VERIFIED) == 1

    @pytest.mark.asyncio
    async def test_reissue_between_read_and_consume_survives(
        self, engine: OTPEngine, redis_client: RedisClient
    ) -> None:
        """Test that a check never consumes a challenge issued after it read the key."""
        old_code = await engine.issue(EMAIL)
        read = redis_client.get
        new_codes = []

        async def read_then_reissue(key: str):
            value = await read(key)
            new_codes.append(await engine.issue(EMAIL))
            return value

        with patch.object(redis_client, "get", side_effect=read_then_reissue):
            assert await engine.check(EMAIL, old_code) is OTPCheck.MISSING

        assert await engine.check(EMAIL, new_codes[0]) is OTPCheck.VERIFIED

    @pytest.mark.asyncio
    async def test_invalidate_removes_challenge(self, engine: OTPEngine) -> None:
        """Test that invalidate discards the live challenge."""
        code = await engine.issue(EMAIL)
        await engine.invalidate(EMAIL)

        assert await engine.check(EMAIL, code) is OTPCheck.MISSING


class TestMasterCode:
    """Tests for the development master code."""

    @pytest.mark.asyncio
    async def test_master_code_ignored_unless_allowed(self, redis_client: RedisClient, clock) -> None:
        """Test that a configured master code does nothing without the flag."""
        engine = OTPEngine(redis_client, OTPSettings(master_code=SecretStr("999999")), clock)
        code = await engine.issue(EMAIL)
        if code == "999999":
            pytest.skip("random code equals master code")

        assert await engine.check(EMAIL, "999999") is OTPCheck.MISMATCH

    @pytest.mark.asyncio
    async def test_master_code_accepted_when_allowed(self, redis_client: RedisClient, clock) -> None:
        """Test that the flagged master code verifies a live challenge."""
        engine = OTPEngine(
            redis_client,
            OTPSettings(master_code=SecretStr("999999"), allow_master_code=True),
            clock,
        )
        await engine.issue(EMAIL)

        assert await engine.check(EMAIL, "999999") is OTPCheck.VERIFIED

    @pytest.mark.asyncio
    async def test_master_code_needs_live_challenge(self, redis_client: RedisClient, clock) -> None:
        """Test that the master code cannot log in without a challenge."""
        engine = OTPEngine(
            redis_client,
            OTPSettings(master_code=SecretStr("999999"), allow_master_code=True),
            clock,
        )

        assert await engine.check(EMAIL, "999999") is OTPCheck.MISSING
