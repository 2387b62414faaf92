# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Operational routes outside the /api prefix."""

from floodaid.api.routes import health

__all__ = ["health"]
