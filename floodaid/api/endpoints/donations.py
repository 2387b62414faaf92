# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Donation endpoints.

Anyone may submit a donation. Admins list, inspect and move donations
through review: approve, reject, distribute.
"""

import logging
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import Field

from floodaid.api.dependencies import AdminAccess, get_donation_service, get_email_service
from floodaid.api.errors import error_detail, http_error
from floodaid.api.schemas import CamelModel
from floodaid.core.enums import DonationStatus, DonationType
from floodaid.domains.donations.lifecycle import DonationError, DonationRequest
from floodaid.domains.donations.service import DonationService
from floodaid.infrastructure.database.models import Donation
from floodaid.infrastructure.notifications.email import EmailService

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateDonationRequest(CamelModel):
    """Type-discriminated donation payload.

    ``donationType`` selects which of the remaining fields apply: cash
    donations use ``amount``; supply donations use ``quantity``,
    ``itemName`` and ``itemCondition``.
    """

    donation_type: str = Field(..., description="Cash or OtherSupplies")
    email: str
    donor_account_number: str | None = None
    donor_name: str | None = None
    contact: str | None = None
    # Loosely typed so a malformed value reaches validation and gets a 400.
    amount: Decimal | float | str | None = None
    is_recurring: bool = False
    quantity: int | float | str | None = None
    item_name: str | None = None
    item_condition: str | None = None
    description: str | None = None


class DonationResponse(CamelModel):
    receipt_id: str
    donation_type: DonationType
    status: DonationStatus
    donor_name: str
    email: str
    contact: str | None = None
    donor_account_number: str
    amount: Decimal
    is_recurring: bool
    quantity: int | None = None
    item_name: str | None = None
    item_condition: str | None = None
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class DonationListResponse(CamelModel):
    items: list[DonationResponse]
    total: int
    page: int
    page_size: int


class DonationStatisticsResponse(CamelModel):
    total: int
    by_type: dict[str, int]
    by_status: dict[str, int]
    total_cash_amount: Decimal


def _to_response(donation: Donation) -> DonationResponse:
    return DonationResponse.model_validate(donation)


@router.post(
    "",
    response_model=DonationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a donation",
)
async def create_donation(
    data: CreateDonationRequest,
    background_tasks: BackgroundTasks,
    service: DonationService = Depends(get_donation_service),
    email_service: EmailService = Depends(get_email_service),
) -> DonationResponse:
    result = await service.create(DonationRequest(**data.model_dump()))
    if result.error is not None:
        detail = error_detail(result.error.kind.value, result.error.message)
        if result.error.field:
            detail["field"] = result.error.field
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    donation = result.donation
    background_tasks.add_task(
        email_service.send_confirmation,
        donation.email,
        donation.donor_name,
        donation.amount,
        donation.donation_type.value,
        donation.receipt_id,
    )
    return _to_response(donation)


@router.get("", response_model=DonationListResponse, summary="List donations")
async def list_donations(
    user: AdminAccess,
    status_filter: DonationStatus | None = Query(None, alias="status"),
    donation_type: DonationType | None = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    service: DonationService = Depends(get_donation_service),
) -> DonationListResponse:
    result = await service.list(status_filter, donation_type, page, page_size)
    return DonationListResponse(
        items=[_to_response(d) for d in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@router.get(
    "/statistics",
    response_model=DonationStatisticsResponse,
    summary="Donation counts and cash total",
)
async def donation_statistics(
    user: AdminAccess,
    service: DonationService = Depends(get_donation_service),
) -> DonationStatisticsResponse:
    stats = await service.statistics()
    return DonationStatisticsResponse(**stats._asdict())


@router.get("/{receipt_id}", response_model=DonationResponse, summary="Get a donation")
async def get_donation(
    receipt_id: str,
    user: AdminAccess,
    service: DonationService = Depends(get_donation_service),
) -> DonationResponse:
    try:
        return _to_response(await service.get(receipt_id))
    except DonationError as e:
        raise http_error(e) from e


@router.post("/{receipt_id}/approve", response_model=DonationResponse, summary="Approve a pending donation")
async def approve_donation(
    receipt_id: str,
    user: AdminAccess,
    service: DonationService = Depends(get_donation_service),
) -> DonationResponse:
    try:
        donation = await service.approve(receipt_id)
    except DonationError as e:
        raise http_error(e) from e
    logger.info("Donation %s approved by admin %s", receipt_id, user.id)
    return _to_response(donation)


@router.post("/{receipt_id}/reject", response_model=DonationResponse, summary="Reject a pending donation")
async def reject_donation(
    receipt_id: str,
    user: AdminAccess,
    service: DonationService = Depends(get_donation_service),
) -> DonationResponse:
    try:
        donation = await service.reject(receipt_id)
    except DonationError as e:
        raise http_error(e) from e
    logger.info("Donation %s rejected by admin %s", receipt_id, user.id)
    return _to_response(donation)


@router.post(
    "/{receipt_id}/distribute",
    response_model=DonationResponse,
    summary="Mark an approved donation as distributed",
)
async def distribute_donation(
    receipt_id: str,
    user: AdminAccess,
    service: DonationService = Depends(get_donation_service),
) -> DonationResponse:
    try:
        donation = await service.distribute(receipt_id)
    except DonationError as e:
        raise http_error(e) from e
    logger.info("Donation %s distributed by admin %s", receipt_id, user.id)
    return _to_response(donation)
