# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for FloodAid.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from floodaid.utils.datetime import Clock, ensure_utc, utc_now
from floodaid.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Datetime
    "Clock",
    "utc_now",
    "ensure_utc",
]
