# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoint."""

import logging
import time
from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from floodaid import __version__
from floodaid.core.config import get_settings
from floodaid.infrastructure.cache.redis_client import RedisError, get_redis
from floodaid.infrastructure.database.connection import check_database_connection
from floodaid.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    components: dict[str, ComponentHealth] = Field(default_factory=dict)


async def check_database() -> ComponentHealth:
    start = time.time()
    healthy = await check_database_connection()
    latency = (time.time() - start) * 1000
    if not healthy:
        logger.error("Database health check failed")
        return ComponentHealth(status="unhealthy")
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


async def check_redis() -> ComponentHealth:
    start = time.time()
    try:
        healthy = await get_redis().ping()
    except RedisError:
        healthy = False
    latency = (time.time() - start) * 1000
    if not healthy:
        logger.error("Redis health check failed")
        return ComponentHealth(status="unhealthy")
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report API status with database and Redis reachability."""
    settings = get_settings()
    components = {
        "database": await check_database(),
        "redis": await check_redis(),
    }
    overall = "healthy" if all(c.status == "healthy" for c in components.values()) else "degraded"

    return HealthResponse(
        status=overall,
        timestamp=utc_now(),
        version=__version__,
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
        components=components,
    )
