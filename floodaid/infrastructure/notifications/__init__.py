# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Outgoing notifications."""

from floodaid.infrastructure.notifications.email import EmailService

__all__ = ["EmailService"]
