# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Donation intake and review lifecycle."""

from floodaid.domains.donations.lifecycle import (
    DonationAction,
    DonationError,
    DonationErrorKind,
    DonationFailure,
    DonationNotFoundError,
    DonationRequest,
    DonationResult,
    InvalidTransitionError,
    approve,
    build_donation,
    distribute,
    reject,
    transition,
)
from floodaid.domains.donations.service import DonationPage, DonationService, DonationStatistics

__all__ = [
    "DonationService",
    "DonationPage",
    "DonationStatistics",
    "DonationRequest",
    "DonationResult",
    "DonationFailure",
    "DonationErrorKind",
    "DonationAction",
    "build_donation",
    "transition",
    "approve",
    "reject",
    "distribute",
    "DonationError",
    "DonationNotFoundError",
    "InvalidTransitionError",
]
