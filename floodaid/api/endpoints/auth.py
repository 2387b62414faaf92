# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin authentication endpoints.

- POST /login - Check credentials and email an OTP
- POST /verify-otp - Exchange the OTP for an access/refresh token pair
- POST /refresh - Rotate the refresh token
- POST /logout - Revoke the refresh token
- POST /password-reset/request - Email a password reset link
- POST /password-reset/confirm - Set a new password with the link token
- GET /me - Get the current admin profile
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from pydantic import EmailStr, Field

from floodaid.api.dependencies import (
    AuthenticatedUser,
    get_admin_service,
    get_app_settings,
    get_auth_service,
    get_email_service,
)
from floodaid.api.errors import http_error
from floodaid.api.middleware.rate_limit import auth_limit, get_ip_only, limiter
from floodaid.api.schemas import AdminResponse, CamelModel, MessageResponse
from floodaid.core.config import Settings
from floodaid.domains.admins.service import AdminNotFoundError, AdminService
from floodaid.domains.auth.service import AuthError, AuthService
from floodaid.infrastructure.notifications.email import EmailService

logger = logging.getLogger(__name__)

router = APIRouter()

OTP_SENT_MESSAGE = "A verification code has been sent to your email."
RESET_REQUESTED_MESSAGE = "If the email belongs to an active account, a reset link has been sent."


class LoginRequest(CamelModel):
    identifier: str = Field(..., min_length=1, description="Email or username")
    password: str = Field(..., min_length=1, description="Password")


class LoginResponse(CamelModel):
    success: bool = True
    next_step: str = "otp"
    message: str = OTP_SENT_MESSAGE
    email: str = Field(..., description="Address the code was sent to")
    expires_in: int = Field(..., description="Seconds until the code expires")


class VerifyOtpRequest(CamelModel):
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=16)


class TokenResponse(CamelModel):
    token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="Opaque refresh token")
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class VerifyOtpResponse(TokenResponse):
    success: bool = True
    user: AdminResponse


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class PasswordResetRequest(CamelModel):
    email: EmailStr


class PasswordResetConfirm(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Admin login, step one",
    description="Check identifier and password, then email a one-time code.",
)
@limiter.limit(auth_limit, key_func=get_ip_only)
async def login(
    request: Request,
    data: LoginRequest,
    background_tasks: BackgroundTasks,
    auth_service: AuthService = Depends(get_auth_service),
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_app_settings),
) -> LoginResponse:
    try:
        challenge = await auth_service.verify_credentials(data.identifier, data.password)
    except AuthError as e:
        raise http_error(e) from e

    background_tasks.add_task(
        email_service.send_otp,
        challenge.admin.email,
        challenge.admin.name,
        challenge.code,
        settings.otp.expire_minutes,
    )
    return LoginResponse(email=challenge.admin.email, expires_in=challenge.expires_in)


@router.post(
    "/verify-otp",
    response_model=VerifyOtpResponse,
    summary="Admin login, step two",
    description="Verify the emailed code and issue tokens.",
)
@limiter.limit(auth_limit, key_func=get_ip_only)
async def verify_otp(
    request: Request,
    data: VerifyOtpRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> VerifyOtpResponse:
    try:
        result = await auth_service.verify_otp(data.email, data.otp)
    except AuthError as e:
        raise http_error(e) from e

    return VerifyOtpResponse(
        token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        expires_in=result.tokens.expires_in,
        user=AdminResponse.model_validate(result.admin),
    )


@router.post("/refresh", response_model=TokenResponse, summary="Rotate refresh token")
async def refresh(
    data: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    try:
        result = await auth_service.refresh(data.refresh_token)
    except AuthError as e:
        raise http_error(e) from e

    return TokenResponse(
        token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        expires_in=result.tokens.expires_in,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, summary="Logout")
async def logout(
    data: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    await auth_service.logout(data.refresh_token)


@router.post(
    "/password-reset/request",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Request a password reset link",
)
@limiter.limit(auth_limit, key_func=get_ip_only)
async def request_password_reset(
    request: Request,
    data: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    auth_service: AuthService = Depends(get_auth_service),
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_app_settings),
) -> MessageResponse:
    ticket = await auth_service.request_password_reset(data.email)
    if ticket is not None:
        reset_url = f"{settings.password_reset.reset_url_base}?token={ticket.token}"
        background_tasks.add_task(
            email_service.send_password_reset,
            ticket.admin.email,
            ticket.admin.name,
            reset_url,
            settings.password_reset.expire_minutes,
        )
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post(
    "/password-reset/confirm",
    response_model=MessageResponse,
    summary="Set a new password",
)
@limiter.limit(auth_limit, key_func=get_ip_only)
async def confirm_password_reset(
    request: Request,
    data: PasswordResetConfirm,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    try:
        await auth_service.confirm_password_reset(data.token, data.new_password)
    except AuthError as e:
        raise http_error(e) from e
    return MessageResponse(message="Password updated. Sign in with your new password.")


@router.get("/me", response_model=AdminResponse, summary="Get current admin")
async def get_me(
    user: AuthenticatedUser,
    admins: AdminService = Depends(get_admin_service),
) -> AdminResponse:
    try:
        admin = await admins.get(user.id)
    except AdminNotFoundError as e:
        raise http_error(e) from e
    return AdminResponse.model_validate(admin)
