# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for password hashing and the password policy."""

import pytest

from floodaid.domains.auth.password import (
    MAX_PASSWORD_BYTES,
    PasswordHasher,
    password_policy_violations,
)


@pytest.fixture
def hasher() -> PasswordHasher:
    """Create a hasher with the minimum work factor."""
    return PasswordHasher(rounds=4)


class TestPasswordHasher:
    """Tests for PasswordHasher class."""

    def test_hash_password_returns_bcrypt_hash(self, hasher: PasswordHasher) -> None:
        """Test that hashing returns a bcrypt hash string."""
        hashed = hasher.hash("Relief-2025")

        assert hashed.startswith("$2b$04$")
        assert len(hashed) == 60

    def test_hash_produces_different_hashes_for_same_password(self, hasher: PasswordHasher) -> None:
        """Test that hashing the same password twice uses different salts."""
        assert hasher.hash("Relief-2025") != hasher.hash("Relief-2025")

    def test_verify_correct_password(self, hasher: PasswordHasher) -> None:
        """Test that verification succeeds with the correct password."""
        hashed = hasher.hash("Relief-2025")

        assert hasher.verify("Relief-2025", hashed) is True

    def test_verify_incorrect_password(self, hasher: PasswordHasher) -> None:
        """Test that verification fails with a wrong password."""
        hashed = hasher.hash("Relief-2025")

        assert hasher.verify("relief-2025", hashed) is False

    def test_verify_empty_inputs_return_false(self, hasher: PasswordHasher) -> None:
        """Test that empty password or hash never verifies."""
        hashed = hasher.hash("Relief-2025")

        assert hasher.verify("", hashed) is False
        assert hasher.verify("Relief-2025", "") is False

    def test_verify_invalid_hash_returns_false(self, hasher: PasswordHasher) -> None:
        """Test that a malformed stored hash fails closed."""
        assert hasher.verify("Relief-2025", "not-a-bcrypt-hash") is False

    def test_hash_rejects_empty_password(self, hasher: PasswordHasher) -> None:
        """Test that an empty password cannot be hashed."""
        with pytest.raises(ValueError):
            hasher.hash("")

    def test_hash_rejects_overlong_password(self, hasher: PasswordHasher) -> None:
        """Test that passwords beyond the bcrypt input limit are rejected."""
        with pytest.raises(ValueError):
            hasher.hash("a" * (MAX_PASSWORD_BYTES + 1))

    def test_verify_dummy_is_always_false(self, hasher: PasswordHasher) -> None:
        """Test that the timing decoy never authenticates."""
        assert hasher.verify_dummy("floodaid-dummy") is False
        assert hasher.verify_dummy("anything") is False

    def test_needs_rehash_detects_work_factor_change(self, hasher: PasswordHasher) -> None:
        """Test that hashes from another work factor are flagged."""
        stronger = PasswordHasher(rounds=5)

        assert hasher.needs_rehash(hasher.hash("Relief-2025")) is False
        assert hasher.needs_rehash(stronger.hash("Relief-2025")) is True
        assert hasher.needs_rehash("garbage") is True


class TestPasswordPolicy:
    """Tests for password_policy_violations."""

    def test_strong_password_passes(self) -> None:
        """Test that a password meeting every rule has no violations."""
        assert password_policy_violations("Relief-2025") == []

    def test_short_password_fails(self) -> None:
        """Test that the minimum length is enforced."""
        problems = password_policy_violations("Ab-1", require_complexity=False)

        assert problems == ["must be at least 8 characters"]

    def test_complexity_rules(self) -> None:
        """Test that each missing character class is reported."""
        problems = password_policy_violations("alllowercase")

        assert "must contain an uppercase letter" in problems
        assert "must contain a digit" in problems
        assert "must contain a special character" in problems
        assert "must contain a lowercase letter" not in problems

    def test_complexity_can_be_disabled(self) -> None:
        """Test that length-only checking accepts simple passwords."""
        assert password_policy_violations("alllowercase", require_complexity=False) == []
