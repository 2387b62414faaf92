# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin management endpoints (super admin only).

Admins are never hard-deleted. DELETE deactivates the account and ends
all of its sessions.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from floodaid.api.dependencies import SuperAdminAccess, get_admin_service, get_db, get_token_service
from floodaid.api.errors import http_error
from floodaid.api.schemas import AdminResponse, CamelModel
from floodaid.core.enums import UserRole
from floodaid.domains.admins.service import AdminError, AdminService
from floodaid.domains.auth.refresh_tokens import RefreshTokenLedger
from floodaid.domains.auth.tokens import TokenService
from floodaid.infrastructure.database.models import AdminUser

logger = logging.getLogger(__name__)

router = APIRouter()


class AdminListResponse(CamelModel):
    items: list[AdminResponse]
    total: int
    page: int
    page_size: int


class UpdateAdminRequest(CamelModel):
    is_active: bool


async def _set_active(
    admin_id: int,
    is_active: bool,
    admins: AdminService,
    db: AsyncSession,
    token_service: TokenService,
) -> AdminUser:
    try:
        admin = await admins.set_active(admin_id, is_active)
    except AdminError as e:
        raise http_error(e) from e

    if not is_active:
        revoked = await RefreshTokenLedger(db, token_service).revoke_all(admin.id)
        logger.info("Admin %s deactivated, %d sessions revoked", admin.id, revoked)
    await db.commit()
    return admin


@router.get("", response_model=AdminListResponse, summary="List admins")
async def list_admins(
    user: SuperAdminAccess,
    role: UserRole | None = None,
    search: str | None = None,
    page: int = Query(1),
    page_size: int = Query(20, alias="pageSize"),
    admins: AdminService = Depends(get_admin_service),
) -> AdminListResponse:
    try:
        result = await admins.list(role=role, search=search, page=page, page_size=page_size)
    except AdminError as e:
        raise http_error(e) from e
    return AdminListResponse(
        items=[AdminResponse.model_validate(a) for a in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@router.get("/{admin_id}", response_model=AdminResponse, summary="Get an admin")
async def get_admin(
    admin_id: int,
    user: SuperAdminAccess,
    admins: AdminService = Depends(get_admin_service),
) -> AdminResponse:
    try:
        return AdminResponse.model_validate(await admins.get(admin_id))
    except AdminError as e:
        raise http_error(e) from e


@router.patch("/{admin_id}", response_model=AdminResponse, summary="Activate or deactivate an admin")
async def update_admin(
    admin_id: int,
    data: UpdateAdminRequest,
    user: SuperAdminAccess,
    admins: AdminService = Depends(get_admin_service),
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> AdminResponse:
    admin = await _set_active(admin_id, data.is_active, admins, db, token_service)
    return AdminResponse.model_validate(admin)


@router.delete("/{admin_id}", response_model=AdminResponse, summary="Deactivate an admin")
async def deactivate_admin(
    admin_id: int,
    user: SuperAdminAccess,
    admins: AdminService = Depends(get_admin_service),
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> AdminResponse:
    admin = await _set_active(admin_id, False, admins, db, token_service)
    return AdminResponse.model_validate(admin)
