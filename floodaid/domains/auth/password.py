# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Password hashing and password policy.

Hashing uses bcrypt with a configurable work factor (11 by default).
verify_dummy() burns the same time as a real verification so that a
login for an unknown identifier is not measurably faster than a login
with a wrong password.

Example:
    >>> hasher = PasswordHasher(rounds=11)
    >>> hashed = hasher.hash("Correct-Horse-1")
    >>> hasher.verify("Correct-Horse-1", hashed)
    True
"""

import logging
import string

import bcrypt

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
# bcrypt ignores (newer releases reject) input beyond 72 bytes.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Secure password hashing using bcrypt.

    Attributes:
        _rounds: Number of bcrypt rounds for hashing.
    """

    def __init__(self, rounds: int = 11) -> None:
        self._rounds = rounds
        self._dummy_hash: bytes | None = None

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password to hash.

        Returns:
            Bcrypt hash string with salt embedded.

        Raises:
            ValueError: If password is empty or longer than 72 bytes.
        """
        if not password:
            raise ValueError("Password cannot be empty")
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")

        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(encoded, salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash in constant time.

        Returns:
            True if password matches the hash, False otherwise.
        """
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError as e:
            logger.warning("Password verification failed: %s", str(e))
            return False

    def verify_dummy(self, password: str) -> bool:
        """Run a verification against a throwaway hash. Always False."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"floodaid-dummy", bcrypt.gensalt(rounds=self._rounds))
        try:
            bcrypt.checkpw(password.encode("utf-8")[:MAX_PASSWORD_BYTES], self._dummy_hash)
        except ValueError:
            pass
        return False

    def needs_rehash(self, password_hash: str) -> bool:
        """Check whether a hash was made with a different work factor.

        Bcrypt hashes look like ``$2b$11$<salt+digest>``; the second field is
        the cost.
        """
        parts = password_hash.split("$")
        if len(parts) < 4 or not parts[2].isdigit():
            return True
        return int(parts[2]) != self._rounds


def password_policy_violations(password: str, require_complexity: bool = True) -> list[str]:
    """List the policy rules a candidate password breaks.

    Args:
        password: Candidate password.
        require_complexity: Also require upper, lower, digit and special
            characters (used for invitation sign-up).

    Returns:
        Human-readable violations; empty when the password is acceptable.
    """
    problems: list[str] = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        problems.append(f"must be at most {MAX_PASSWORD_BYTES} bytes")
    if not require_complexity:
        return problems

    if not any(c.isupper() for c in password):
        problems.append("must contain an uppercase letter")
    if not any(c.islower() for c in password):
        problems.append("must contain a lowercase letter")
    if not any(c.isdigit() for c in password):
        problems.append("must contain a digit")
    if not any(c in string.punctuation or c.isspace() for c in password):
        problems.append("must contain a special character")
    return problems
