# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Closed enumerations shared by the persistence and domain layers.

Roles and statuses are string enums so they serialize to stable JSON
values and are stored as their value in the database.
"""

from enum import Enum


class UserRole(str, Enum):
    """Every role an account can hold."""

    VOLUNTEER = "volunteer"
    DONOR = "donor"
    BOTH = "both"
    PROVINCE_ADMIN = "province_admin"
    SUPER_ADMIN = "super_admin"

    @property
    def is_admin(self) -> bool:
        """Roles that authenticate through the admin login flow."""
        return self in (UserRole.PROVINCE_ADMIN, UserRole.SUPER_ADMIN)


class InvitationStatus(str, Enum):
    """Invitation status. PENDING is the only non-terminal state."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"

    @property
    def is_terminal(self) -> bool:
        return self is not InvitationStatus.PENDING


class MemberStatus(str, Enum):
    """Review status of a volunteer or donor account."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DonationType(str, Enum):
    """Kinds of donation accepted at intake."""

    CASH = "cash"
    OTHER_SUPPLIES = "other_supplies"


class DonationStatus(str, Enum):
    """Donation status. REJECTED and DISTRIBUTED are terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DISTRIBUTED = "distributed"

    @property
    def is_terminal(self) -> bool:
        return self in (DonationStatus.REJECTED, DonationStatus.DISTRIBUTED)
