# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin identity management."""

from floodaid.domains.admins.service import (
    AdminError,
    AdminNotFoundError,
    AdminPage,
    AdminService,
    AdminValidationError,
    LastSuperAdminError,
)

__all__ = [
    "AdminService",
    "AdminPage",
    "AdminError",
    "AdminNotFoundError",
    "AdminValidationError",
    "LastSuperAdminError",
]
