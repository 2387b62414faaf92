# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rate limiting using slowapi.

Limits are counted per client: the admin id when authenticated, otherwise
the remote address. Counters live in Redis so that all API replicas share
them; when Redis is unreachable slowapi falls back to in-memory counters.

Example:
    # Limit login attempts
    @limiter.limit(auth_limit, key_func=get_ip_only)
    async def login(request: Request, ...):
        ...
"""

import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from floodaid.core.config import get_settings

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """Admin id if authenticated, otherwise the client IP."""
    user = getattr(request.state, "user", None)
    if user:
        return f"admin:{user.id}"
    return f"ip:{get_remote_address(request)}"


def get_ip_only(request: Request) -> str:
    """Client IP address only.

    Used for login endpoints where the admin is not yet authenticated.
    """
    return get_remote_address(request)


settings = get_settings()
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.rate_limit.requests_per_minute}/minute"],
    storage_uri=settings.redis.url,
    in_memory_fallback_enabled=True,
    enabled=settings.rate_limit.enabled,
)


def auth_limit() -> str:
    """Limit for credential, OTP and password reset endpoints."""
    return f"{get_settings().rate_limit.auth_requests_per_minute}/minute"


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Return 429 with a Retry-After header."""
    logger.warning(
        "Rate limit exceeded: %s for %s",
        exc.detail,
        get_client_identifier(request),
    )
    return JSONResponse(
        status_code=429,
        content={"detail": {"code": "RateLimited", "message": "Too many requests. Please try again later."}},
        headers={"Retry-After": "60"},
    )
