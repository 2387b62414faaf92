# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Server-side ledger of refresh tokens.

Each login starts a token family. Every refresh marks the presented token
as used and stores its successor in the same family with generation + 1.
Presenting a token that was already used means a copy of it leaked, so the
whole family is revoked and the legitimate holder has to sign in again.

Rotation claims the old row with a single conditional UPDATE. Two
concurrent rotations of the same token therefore serialize on that row:
exactly one sees rowcount == 1, the other fails with TokenNotFoundError.

The ledger flushes but never commits; the calling service owns the
transaction.
"""

import logging
from datetime import timedelta
from uuid import uuid4

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from floodaid.domains.auth.tokens import TokenNotFoundError, TokenPair, TokenService
from floodaid.infrastructure.database.models import AdminUser, RefreshToken
from floodaid.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


class RefreshTokenLedger:
    """Issues, rotates and revokes refresh tokens.

    Args:
        db: Database session.
        token_service: Token primitives (signing, random handles, hashing).
        clock: Source of the current time.
    """

    def __init__(self, db: AsyncSession, token_service: TokenService, clock: Clock = utc_now) -> None:
        self._db = db
        self._tokens = token_service
        self._clock = clock

    async def issue(self, admin: AdminUser) -> TokenPair:
        """Start a new token family for a freshly authenticated admin."""
        refresh_token = self._tokens.issue_refresh_token()
        await self._store(admin.id, refresh_token, family_id=str(uuid4()), generation=1)
        return self._pair(admin, refresh_token)

    async def rotate(self, refresh_token: str) -> tuple[TokenPair, AdminUser]:
        """Exchange a refresh token for a fresh access/refresh pair.

        Args:
            refresh_token: The opaque token presented by the client.

        Returns:
            The new token pair and the admin it belongs to.

        Raises:
            TokenNotFoundError: If the token is unknown, expired, revoked or
                already rotated, or its admin is gone or inactive.
        """
        now = self._clock()
        token_hash = self._tokens.hash_token(refresh_token)

        claim = (
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.used_at.is_(None),
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at >= now,
            )
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(claim)

        stored = await self._get_by_hash(token_hash)
        if result.rowcount != 1:
            if stored is not None and stored.used_at is not None:
                revoked = await self.revoke_family(stored.family_id)
                logger.warning(
                    "Refresh token reuse detected for admin %s, revoked %d tokens",
                    stored.admin_id,
                    revoked,
                )
            raise TokenNotFoundError("Refresh token is not valid")

        admin = await self._db.get(AdminUser, stored.admin_id)
        if admin is None or not admin.is_active:
            await self.revoke_family(stored.family_id)
            raise TokenNotFoundError("Refresh token owner is not active")

        successor = self._tokens.issue_refresh_token()
        await self._store(
            admin.id,
            successor,
            family_id=stored.family_id,
            generation=stored.generation + 1,
        )
        return self._pair(admin, successor), admin

    async def revoke(self, refresh_token: str) -> bool:
        """Permanently disable a refresh token. Idempotent.

        Returns:
            True if this call revoked it, False if it was unknown or already
            revoked.
        """
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == self._tokens.hash_token(refresh_token),
                RefreshToken.revoked_at.is_(None),
            )
            .values(revoked_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        return result.rowcount > 0

    async def revoke_family(self, family_id: str) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.family_id == family_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        return result.rowcount

    async def revoke_all(self, admin_id: int) -> int:
        """Revoke every live refresh token of an admin."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.admin_id == admin_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        return result.rowcount

    async def purge(self, retention: timedelta) -> int:
        """Delete rows that stopped being usable more than ``retention`` ago."""
        cutoff = self._clock() - retention
        stmt = delete(RefreshToken).where(
            or_(
                RefreshToken.expires_at < cutoff,
                RefreshToken.revoked_at < cutoff,
                RefreshToken.used_at < cutoff,
            )
        )
        result = await self._db.execute(stmt)
        return result.rowcount

    async def _get_by_hash(self, token_hash: str) -> RefreshToken | None:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def _store(self, admin_id: int, refresh_token: str, family_id: str, generation: int) -> None:
        now = self._clock()
        self._db.add(
            RefreshToken(
                token_hash=self._tokens.hash_token(refresh_token),
                admin_id=admin_id,
                family_id=family_id,
                generation=generation,
                issued_at=now,
                expires_at=now + self._tokens.refresh_token_lifetime,
            )
        )
        await self._db.flush()

    def _pair(self, admin: AdminUser, refresh_token: str) -> TokenPair:
        return TokenPair(
            access_token=self._tokens.issue_access_token(admin),
            refresh_token=refresh_token,
            expires_in=int(self._tokens.access_token_lifetime.total_seconds()),
            refresh_expires_in=int(self._tokens.refresh_token_lifetime.total_seconds()),
        )
