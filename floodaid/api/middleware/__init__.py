# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

- AuthMiddleware: decodes bearer access tokens into request.state.user.
- limiter: slowapi rate limiter shared by the endpoints.
"""

from floodaid.api.middleware.auth import AuthMiddleware, CurrentUser, get_current_user
from floodaid.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler

__all__ = [
    "AuthMiddleware",
    "CurrentUser",
    "get_current_user",
    "limiter",
    "rate_limit_exceeded_handler",
]
