# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for FloodAid.

Importing this package registers every table on Base.metadata.
"""

from floodaid.infrastructure.database.models.admin import AdminUser
from floodaid.infrastructure.database.models.auth import RefreshToken
from floodaid.infrastructure.database.models.base import Base, TimestampMixin, UTCDateTime
from floodaid.infrastructure.database.models.donation import Donation
from floodaid.infrastructure.database.models.geography import City, Province
from floodaid.infrastructure.database.models.invitation import Invitation
from floodaid.infrastructure.database.models.member import Member

__all__ = [
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    "AdminUser",
    "Member",
    "RefreshToken",
    "Invitation",
    "Donation",
    "Province",
    "City",
]
