# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

Dependencies are used to:
- Get database sessions and the Redis client
- Get the authenticated admin
- Get service instances

Example:
    @router.get("/donations")
    async def list_donations(
        service: DonationService = Depends(get_donation_service),
        current_user: CurrentUser = Depends(require_admin),
    ):
        ...
"""

import logging
from functools import lru_cache
from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from floodaid.api.middleware.auth import CurrentUser, get_current_user
from floodaid.core.config import Settings, get_settings
from floodaid.core.enums import UserRole
from floodaid.domains.admins.service import AdminNotFoundError, AdminService
from floodaid.domains.auth.password import PasswordHasher
from floodaid.domains.auth.service import AuthService
from floodaid.domains.auth.tokens import TokenService
from floodaid.domains.donations.service import DonationService
from floodaid.domains.invitations.service import InvitationManager
from floodaid.domains.reference.service import ReferenceDataService
from floodaid.infrastructure.cache.redis_client import RedisClient, RedisError, get_redis
from floodaid.infrastructure.database.connection import get_session
from floodaid.infrastructure.database.models import AdminUser
from floodaid.infrastructure.notifications.email import EmailService

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the request."""
    async with get_session() as session:
        yield session


def get_redis_client() -> RedisClient:
    """Get the shared Redis client.

    Raises:
        HTTPException: 503 if Redis was not initialized.
    """
    try:
        return get_redis()
    except RedisError as e:
        logger.error("Redis unavailable: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "ServiceUnavailable", "message": "Service temporarily unavailable"},
        ) from e


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require an authenticated admin.

    Raises:
        HTTPException: 401 if no valid access token was presented.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "NotAuthenticated", "message": "Not authenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


class RequireRole:
    """Dependency for requiring specific roles.

    Example:
        @router.get("/admins")
        async def list_admins(
            user: CurrentUser = Depends(RequireRole(UserRole.SUPER_ADMIN)),
        ):
            ...
    """

    def __init__(self, *roles: UserRole) -> None:
        self.roles = roles

    def __call__(self, request: Request) -> CurrentUser:
        user = require_auth(request)

        if not user.has_any_role(*self.roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "Forbidden",
                    "message": f"Requires role: {', '.join(r.value for r in self.roles)}",
                },
            )

        return user


require_admin = RequireRole(UserRole.SUPER_ADMIN, UserRole.PROVINCE_ADMIN)
require_super_admin = RequireRole(UserRole.SUPER_ADMIN)


# =========================================================================
# Service Dependencies
# =========================================================================


@lru_cache
def get_token_service() -> TokenService:
    return TokenService(get_settings().jwt)


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=get_settings().password_hash_rounds)


@lru_cache
def get_email_service() -> EmailService:
    return EmailService(get_settings().email)


def get_app_settings() -> Settings:
    return get_settings()


async def get_admin_service(db: AsyncSession = Depends(get_db)) -> AdminService:
    return AdminService(db)


async def get_auth_service(
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis_client),
    token_service: TokenService = Depends(get_token_service),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_app_settings),
) -> AuthService:
    return AuthService(db, redis, token_service, password_hasher, settings)


async def get_invitation_manager(
    db: AsyncSession = Depends(get_db),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_app_settings),
) -> InvitationManager:
    return InvitationManager(db, password_hasher, settings.invitation)


async def get_donation_service(db: AsyncSession = Depends(get_db)) -> DonationService:
    return DonationService(db)


async def get_reference_service(db: AsyncSession = Depends(get_db)) -> ReferenceDataService:
    return ReferenceDataService(db)


async def get_current_admin(
    user: CurrentUser = Depends(require_admin),
    admins: AdminService = Depends(get_admin_service),
) -> AdminUser:
    """Load the acting admin's record.

    Access tokens outlive deactivation by up to their lifetime, so actions
    that depend on the admin's scope re-check the stored account.

    Raises:
        HTTPException: 401 if the account no longer exists or is inactive.
    """
    try:
        admin = await admins.get(user.id)
    except AdminNotFoundError:
        admin = None
    if admin is None or not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "SessionExpired", "message": "Session expired. Sign in again."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return admin


# Type aliases for cleaner endpoint signatures
DB = Annotated[AsyncSession, Depends(get_db)]
AuthenticatedUser = Annotated[CurrentUser, Depends(require_auth)]
AdminAccess = Annotated[CurrentUser, Depends(require_admin)]
SuperAdminAccess = Annotated[CurrentUser, Depends(require_super_admin)]
ActingAdmin = Annotated[AdminUser, Depends(get_current_admin)]
