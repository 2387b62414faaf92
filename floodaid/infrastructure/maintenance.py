# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Periodic housekeeping.

Deletes refresh tokens that have been unusable for longer than the
retention window and marks pending invitations past expiry as EXPIRED.
Neither step is required for correctness: expired rows are already
rejected when used. The sweep keeps tables small and invitation lists
accurate.

Usage:
    python -m floodaid.infrastructure.maintenance
"""

import asyncio
import logging
from datetime import timedelta
from typing import NamedTuple

from sqlalchemy.ext.asyncio import AsyncSession

from floodaid.core.config.settings import Settings
from floodaid.domains.auth.password import PasswordHasher
from floodaid.domains.auth.refresh_tokens import RefreshTokenLedger
from floodaid.domains.auth.tokens import TokenService
from floodaid.domains.invitations.service import InvitationManager
from floodaid.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_RETENTION = timedelta(days=30)


class SweepResult(NamedTuple):
    refresh_tokens_purged: int
    invitations_expired: int


async def run_sweep(
    session: AsyncSession,
    settings: Settings,
    retention: timedelta = DEFAULT_TOKEN_RETENTION,
    clock: Clock = utc_now,
) -> SweepResult:
    """Run one housekeeping pass and commit.

    Args:
        session: Database session.
        settings: Application settings.
        retention: How long unusable refresh tokens are kept.
        clock: Source of the current time.
    """
    ledger = RefreshTokenLedger(session, TokenService(settings.jwt, clock), clock)
    invitations = InvitationManager(
        session, PasswordHasher(settings.password_hash_rounds), settings.invitation, clock
    )

    purged = await ledger.purge(retention)
    expired = await invitations.expire_stale()
    await session.commit()

    logger.info("Maintenance sweep: %d refresh tokens purged, %d invitations expired", purged, expired)
    return SweepResult(purged, expired)


if __name__ == "__main__":
    from floodaid.core.config import get_settings
    from floodaid.infrastructure.database.connection import (
        close_database,
        get_session,
        init_database,
    )
    from floodaid.utils.logging import setup_logging

    async def main() -> None:
        settings = get_settings()
        setup_logging(settings)
        await init_database(settings)
        try:
            async with get_session() as session:
                await run_sweep(session, settings)
        finally:
            await close_database()

    asyncio.run(main())
