# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Credential store for admin identities.

Admins are looked up by email (case-insensitive) or username for login and
managed by super admins. Admins are never deleted; deactivation is a soft
flag, and the last active super admin cannot be deactivated.
"""

import logging
from typing import NamedTuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from floodaid.core.enums import UserRole
from floodaid.infrastructure.database.models import AdminUser
from floodaid.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class AdminError(Exception):
    """Base exception for admin management errors."""

    code = "AdminError"


class AdminNotFoundError(AdminError):
    """Raised when an admin does not exist."""

    code = "AdminNotFound"


class AdminValidationError(AdminError):
    """Raised for invalid list or update parameters."""

    code = "ValidationFailed"


class LastSuperAdminError(AdminError):
    """Raised when an operation would leave no active super admin."""

    code = "LastSuperAdmin"


class AdminPage(NamedTuple):
    """A page of admins."""

    items: list[AdminUser]
    total: int
    page: int
    page_size: int


class AdminService:
    """Reads and updates admin identities.

    Args:
        db: Database session.
        clock: Source of the current time.
    """

    def __init__(self, db: AsyncSession, clock: Clock = utc_now) -> None:
        self._db = db
        self._clock = clock

    async def get_by_identifier(self, identifier: str) -> AdminUser | None:
        """Find an admin by email (any case) or exact username."""
        identifier = identifier.strip()
        if not identifier:
            return None
        stmt = select(AdminUser).where(
            or_(
                func.lower(AdminUser.email) == identifier.lower(),
                AdminUser.username == identifier,
            )
        )
        result = await self._db.execute(stmt)
        return result.scalars().first()

    async def get_by_email(self, email: str) -> AdminUser | None:
        stmt = select(AdminUser).where(func.lower(AdminUser.email) == email.strip().lower())
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, admin_id: int) -> AdminUser:
        """Get an admin by id.

        Raises:
            AdminNotFoundError: If no admin has this id.
        """
        admin = await self._db.get(AdminUser, admin_id)
        if admin is None:
            raise AdminNotFoundError(f"Admin {admin_id} not found")
        return admin

    async def list(
        self,
        role: UserRole | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> AdminPage:
        """List admins with optional filtering.

        Args:
            role: Only admins with this role.
            search: Substring of name, email or username.
            page: 1-based page number.
            page_size: Results per page, 1 to 100.

        Returns:
            AdminPage ordered by name.

        Raises:
            AdminValidationError: If paging parameters are out of range.
        """
        if page < 1:
            raise AdminValidationError("page must be >= 1")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise AdminValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

        stmt = select(AdminUser)
        if role is not None:
            stmt = stmt.where(AdminUser.role == role)
        if search:
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(AdminUser.name).like(pattern),
                    func.lower(AdminUser.email).like(pattern),
                    func.lower(AdminUser.username).like(pattern),
                )
            )

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(AdminUser.name.asc(), AdminUser.id.asc())
        stmt = stmt.limit(page_size).offset((page - 1) * page_size)
        result = await self._db.execute(stmt)
        return AdminPage(list(result.scalars().all()), total, page, page_size)

    async def set_active(self, admin_id: int, is_active: bool) -> AdminUser:
        """Activate or deactivate an admin.

        Raises:
            AdminNotFoundError: If no admin has this id.
            LastSuperAdminError: If deactivating the only active super admin.
        """
        admin = await self.get(admin_id)
        if admin.is_active == is_active:
            return admin

        if not is_active and admin.role == UserRole.SUPER_ADMIN:
            if await self._count_active_super_admins() <= 1:
                raise LastSuperAdminError("Cannot deactivate the last active super admin")

        admin.is_active = is_active
        await self._db.flush()
        logger.info("Admin %s active=%s", admin.id, is_active)
        return admin

    async def deactivate(self, admin_id: int) -> AdminUser:
        """Soft-delete an admin."""
        return await self.set_active(admin_id, False)

    async def record_login(self, admin: AdminUser) -> None:
        admin.last_login_at = self._clock()
        await self._db.flush()

    async def update_password(self, admin: AdminUser, password_hash: str) -> None:
        admin.password_hash = password_hash
        await self._db.flush()

    async def _count_active_super_admins(self) -> int:
        stmt = select(func.count()).where(
            AdminUser.role == UserRole.SUPER_ADMIN,
            AdminUser.is_active.is_(True),
        )
        return (await self._db.execute(stmt)).scalar() or 0
