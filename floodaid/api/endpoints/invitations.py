# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Invitation endpoints.

Admins invite people by email; the invitee opens the link, previews the
invitation by token and accepts it with their registration details.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import EmailStr, Field

from floodaid.api.dependencies import ActingAdmin, get_app_settings, get_email_service, get_invitation_manager
from floodaid.api.errors import http_error
from floodaid.api.schemas import CamelModel, MessageResponse
from floodaid.core.config import Settings
from floodaid.core.enums import InvitationStatus, UserRole
from floodaid.domains.invitations.service import (
    InvitationError,
    InvitationManager,
    InvitationScope,
    IssuedInvitation,
    RegistrationDetails,
)
from floodaid.infrastructure.notifications.email import EmailService

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateInvitationRequest(CamelModel):
    email: EmailStr
    role: UserRole
    province_id: int | None = None
    city_id: int | None = None


class InvitationResponse(CamelModel):
    id: int
    email: str
    role: UserRole
    province_id: int | None = None
    city_id: int | None = None
    status: InvitationStatus
    created_at: datetime
    expires_at: datetime
    accepted_at: datetime | None = None
    revoked_at: datetime | None = None


class IssuedInvitationResponse(CamelModel):
    message: str
    invitation: InvitationResponse
    accept_url: str | None = Field(None, description="Only returned outside production")


class AcceptInvitationRequest(CamelModel):
    token: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    phone_number: str | None = Field(None, max_length=32)


class AcceptInvitationResponse(CamelModel):
    message: str
    email: str
    role: UserRole
    province_id: int | None = None
    city_id: int | None = None
    redirect_to: str


def _accept_url(settings: Settings, token: str) -> str:
    return f"{settings.invitation.accept_url_base}?token={token}"


def _issued_response(
    issued: IssuedInvitation,
    message: str,
    settings: Settings,
    background_tasks: BackgroundTasks,
    email_service: EmailService,
) -> IssuedInvitationResponse:
    accept_url = _accept_url(settings, issued.token)
    background_tasks.add_task(
        email_service.send_invitation,
        issued.invitation.email,
        issued.invitation.role.value,
        accept_url,
        settings.invitation.expire_days,
    )
    return IssuedInvitationResponse(
        message=message,
        invitation=InvitationResponse.model_validate(issued.invitation),
        accept_url=None if settings.is_production else accept_url,
    )


@router.post(
    "",
    response_model=IssuedInvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a province admin, volunteer or donor",
)
async def create_invitation(
    data: CreateInvitationRequest,
    admin: ActingAdmin,
    background_tasks: BackgroundTasks,
    manager: InvitationManager = Depends(get_invitation_manager),
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_app_settings),
) -> IssuedInvitationResponse:
    try:
        issued = await manager.create(
            data.email,
            data.role,
            InvitationScope(province_id=data.province_id, city_id=data.city_id),
            created_by=admin,
        )
    except InvitationError as e:
        raise http_error(e) from e
    return _issued_response(issued, "Invitation sent successfully", settings, background_tasks, email_service)


@router.get("", response_model=list[InvitationResponse], summary="List invitations")
async def list_invitations(
    admin: ActingAdmin,
    status_filter: InvitationStatus | None = Query(None, alias="status"),
    manager: InvitationManager = Depends(get_invitation_manager),
) -> list[InvitationResponse]:
    invitations = await manager.list(admin, status_filter)
    return [InvitationResponse.model_validate(i) for i in invitations]


@router.post(
    "/accept",
    response_model=AcceptInvitationResponse,
    summary="Accept an invitation and create the account",
)
async def accept_invitation(
    data: AcceptInvitationRequest,
    manager: InvitationManager = Depends(get_invitation_manager),
) -> AcceptInvitationResponse:
    details = RegistrationDetails(name=data.name, password=data.password, phone=data.phone_number)
    try:
        accepted = await manager.accept(data.token, details)
    except InvitationError as e:
        raise http_error(e) from e

    invitation = accepted.invitation
    is_admin = invitation.role.is_admin
    return AcceptInvitationResponse(
        message="Admin account created successfully" if is_admin else "Account created successfully",
        email=invitation.email,
        role=invitation.role,
        province_id=invitation.province_id,
        city_id=invitation.city_id,
        redirect_to="/admin/login" if is_admin else "/home",
    )


@router.get(
    "/token/{token}",
    response_model=InvitationResponse,
    summary="Preview a pending invitation",
)
async def get_invitation_by_token(
    token: str,
    manager: InvitationManager = Depends(get_invitation_manager),
) -> InvitationResponse:
    try:
        invitation = await manager.get_by_token(token)
    except InvitationError as e:
        raise http_error(e) from e
    return InvitationResponse.model_validate(invitation)


@router.post(
    "/{invitation_id}/resend",
    response_model=IssuedInvitationResponse,
    summary="Resend a pending invitation with a new link",
)
async def resend_invitation(
    invitation_id: int,
    admin: ActingAdmin,
    background_tasks: BackgroundTasks,
    manager: InvitationManager = Depends(get_invitation_manager),
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_app_settings),
) -> IssuedInvitationResponse:
    try:
        issued = await manager.resend(invitation_id, actor=admin)
    except InvitationError as e:
        raise http_error(e) from e
    return _issued_response(issued, "Invitation resent successfully", settings, background_tasks, email_service)


@router.delete(
    "/{invitation_id}",
    response_model=MessageResponse,
    summary="Revoke a pending invitation",
)
async def revoke_invitation(
    invitation_id: int,
    admin: ActingAdmin,
    manager: InvitationManager = Depends(get_invitation_manager),
) -> MessageResponse:
    try:
        await manager.revoke(invitation_id, actor=admin)
    except InvitationError as e:
        raise http_error(e) from e
    return MessageResponse(message="Invitation revoked successfully")
