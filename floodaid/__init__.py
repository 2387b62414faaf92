"""FloodAid Backend.

Disaster-relief coordination API: admin authentication with OTP second
factor, invitation-based onboarding of volunteers and province admins,
and donation intake with a reviewed lifecycle.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
