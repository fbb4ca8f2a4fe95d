# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src.core.config import get_settings
from src.infrastructure.database.connection import check_database_connection

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class HealthResponse(BaseModel):
    """Liveness response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


async def check_database() -> ComponentHealth:
    """Check PostgreSQL database connection."""
    start = time.time()
    if not await check_database_connection():
        return ComponentHealth(status="unhealthy", message="Database unreachable")
    latency = (time.time() - start) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


async def check_redis() -> ComponentHealth:
    """Check Redis connection."""
    try:
        import redis.asyncio as aioredis

        start = time.time()
        client = aioredis.Redis.from_url(get_settings().redis.url)
        await client.ping()
        await client.aclose()

        latency = (time.time() - start) * 1000
        return ComponentHealth(status="healthy", latency_ms=round(latency, 2))
    except Exception as e:
        logger.error("Redis health check failed: %s", e)
        return ComponentHealth(status="unhealthy", message=str(e))


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe. Does not touch any dependency."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    Returns:
        ReadinessResponse with individual check results.
    """
    checks: dict[str, Any] = {}
    all_ready = True

    db_health = await check_database()
    checks["database"] = {"status": db_health.status, "latency_ms": db_health.latency_ms}
    if db_health.status != "healthy":
        all_ready = False

    redis_health = await check_redis()
    checks["redis"] = {"status": redis_health.status, "latency_ms": redis_health.latency_ms}
    if redis_health.status != "healthy":
        all_ready = False

    return ReadinessResponse(ready=all_ready, checks=checks)
