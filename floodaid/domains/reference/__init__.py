# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Province and city reference data."""

from floodaid.domains.reference.service import ProvinceNotFoundError, ReferenceDataService

__all__ = ["ReferenceDataService", "ProvinceNotFoundError"]
