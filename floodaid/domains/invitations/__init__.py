# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Invitation-based onboarding of volunteers, donors and province admins."""

from floodaid.domains.invitations.service import (
    AcceptedInvitation,
    AccountExistsError,
    DuplicateInvitationError,
    InvalidScopeError,
    InvalidTransitionError,
    InvitationAlreadyUsedError,
    InvitationError,
    InvitationExpiredError,
    InvitationForbiddenError,
    InvitationManager,
    InvitationNotFoundError,
    InvitationScope,
    IssuedInvitation,
    RegistrationDetails,
    RegistrationValidationError,
    ScopeLevel,
    invitable_roles,
    required_scope,
)

__all__ = [
    "InvitationManager",
    "InvitationScope",
    "RegistrationDetails",
    "IssuedInvitation",
    "AcceptedInvitation",
    "ScopeLevel",
    "required_scope",
    "invitable_roles",
    "InvitationError",
    "InvalidScopeError",
    "InvitationForbiddenError",
    "DuplicateInvitationError",
    "AccountExistsError",
    "InvitationNotFoundError",
    "InvitationExpiredError",
    "InvitationAlreadyUsedError",
    "InvalidTransitionError",
    "RegistrationValidationError",
]
