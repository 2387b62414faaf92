# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API routes package.

Each module provides a FastAPI router for one domain.

Modules:
    auth: Admin login with OTP, token refresh, logout and password reset.
    invitations: Invitation creation, preview, acceptance and revocation.
    donations: Donation intake and review.
    admins: Admin account management.
    provinces: Province and city reference data.
"""

from fastapi import APIRouter

from floodaid.api.endpoints import admins, auth, donations, invitations, provinces

router = APIRouter(prefix="/api")

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(invitations.router, prefix="/invitations", tags=["Invitations"])
router.include_router(donations.router, prefix="/donations", tags=["Donations"])
router.include_router(admins.router, prefix="/admins", tags=["Admins"])
router.include_router(provinces.router, prefix="/provinces", tags=["Reference Data"])

__all__ = ["router"]
