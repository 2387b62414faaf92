# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Donation persistence and review workflow."""

import logging
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from floodaid.core.enums import DonationStatus, DonationType
from floodaid.domains.donations.lifecycle import (
    TRANSITIONS,
    DonationAction,
    DonationNotFoundError,
    DonationRequest,
    DonationResult,
    InvalidTransitionError,
    build_donation,
)
from floodaid.infrastructure.database.models import Donation
from floodaid.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


class DonationPage(NamedTuple):
    items: list[Donation]
    total: int
    page: int
    page_size: int


class DonationStatistics(NamedTuple):
    """Aggregate view for the admin dashboard."""

    total: int
    by_type: dict[str, int]
    by_status: dict[str, int]
    total_cash_amount: Decimal


class DonationService:
    """Creates donations and applies review transitions.

    Args:
        db: Database session.
        clock: Source of the current time.
    """

    def __init__(self, db: AsyncSession, clock: Clock = utc_now) -> None:
        self._db = db
        self._clock = clock

    async def create(self, request: DonationRequest) -> DonationResult:
        """Validate and store a donation.

        Returns:
            The DonationResult from build_donation(); the donation is
            persisted only when it is valid.
        """
        result = build_donation(request)
        if result.donation is None:
            return result

        self._db.add(result.donation)
        await self._db.commit()
        logger.info(
            "Donation %s received (%s)",
            result.donation.receipt_id,
            result.donation.donation_type.value,
        )
        return result

    async def get(self, receipt_id: str) -> Donation:
        """Get a donation by receipt id.

        Raises:
            DonationNotFoundError: If no donation has this receipt id.
        """
        stmt = (
            select(Donation)
            .where(Donation.receipt_id == receipt_id)
            .execution_options(populate_existing=True)
        )
        donation = (await self._db.execute(stmt)).scalar_one_or_none()
        if donation is None:
            raise DonationNotFoundError(f"Donation {receipt_id} not found")
        return donation

    async def list(
        self,
        status: DonationStatus | None = None,
        donation_type: DonationType | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> DonationPage:
        """List donations, newest first."""
        stmt = select(Donation)
        if status is not None:
            stmt = stmt.where(Donation.status == status)
        if donation_type is not None:
            stmt = stmt.where(Donation.donation_type == donation_type)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Donation.created_at.desc(), Donation.id.desc())
        stmt = stmt.limit(page_size).offset((page - 1) * page_size)
        result = await self._db.execute(stmt)
        return DonationPage(list(result.scalars().all()), total, page, page_size)

    async def statistics(self) -> DonationStatistics:
        by_type: dict[str, int] = {t.value: 0 for t in DonationType}
        by_status: dict[str, int] = {s.value: 0 for s in DonationStatus}

        stmt = select(Donation.donation_type, Donation.status, func.count()).group_by(
            Donation.donation_type, Donation.status
        )
        for donation_type, status, count in (await self._db.execute(stmt)).all():
            by_type[DonationType(donation_type).value] += count
            by_status[DonationStatus(status).value] += count

        amount_stmt = select(func.coalesce(func.sum(Donation.amount), 0)).where(
            Donation.donation_type == DonationType.CASH,
            Donation.status != DonationStatus.REJECTED,
        )
        total_amount = (await self._db.execute(amount_stmt)).scalar() or 0

        return DonationStatistics(
            total=sum(by_status.values()),
            by_type=by_type,
            by_status=by_status,
            total_cash_amount=Decimal(str(total_amount)).quantize(Decimal("0.01")),
        )

    async def approve(self, receipt_id: str) -> Donation:
        return await self._apply(receipt_id, DonationAction.APPROVE)

    async def reject(self, receipt_id: str) -> Donation:
        return await self._apply(receipt_id, DonationAction.REJECT)

    async def distribute(self, receipt_id: str) -> Donation:
        return await self._apply(receipt_id, DonationAction.DISTRIBUTE)

    async def _apply(self, receipt_id: str, action: DonationAction) -> Donation:
        """Persist a transition guarded on the expected source status.

        Raises:
            DonationNotFoundError: If the receipt id is unknown.
            InvalidTransitionError: If the donation is not in the source status,
                including when a concurrent request moved it first.
        """
        donation = await self.get(receipt_id)
        source, target = TRANSITIONS[action]
        current = donation.status
        if current != source:
            raise InvalidTransitionError(
                f"Cannot {action.value} a donation that is {current.value}"
            )

        stmt = (
            update(Donation)
            .where(Donation.id == donation.id, Donation.status == source)
            .values(status=target, updated_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        if (await self._db.execute(stmt)).rowcount != 1:
            await self._db.rollback()
            raise InvalidTransitionError(f"Cannot {action.value} a donation that is no longer {source.value}")

        await self._db.commit()
        await self._db.refresh(donation)
        logger.info("Donation %s %s -> %s", receipt_id, source.value, target.value)
        return donation
