"""Health check endpoint and Prometheus metrics."""

import secrets
import time
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text

from src.provisioner.core.config import get_settings
from src.provisioner.core.db import get_session
from src.provisioner.temporal.client import get_temporal_client

_health_cache: dict[str, Any] | None = None
_health_cache_time: float = 0
HEALTH_CACHE_TTL = 10  # seconds


def reset_health_cache() -> None:
    """Reset health cache (for testing)."""
    global _health_cache, _health_cache_time
    _health_cache = None
    _health_cache_time = 0


# Settings every provisioning or teardown run needs; checked at first use otherwise
CONTROL_PLANE_SETTINGS = (
    "route53_hosted_zone_id",
    "ingress_lb_dns",
    "app_image",
    "tenant_db_host",
    "tenant_db_admin_password",
)


def missing_control_plane_settings() -> list[str]:
    settings = get_settings()
    return [
        name.upper() for name in CONTROL_PLANE_SETTINGS if getattr(settings, name) in (None, "")
    ]


async def check_health() -> dict[str, Any]:
    """Probe the record store, Temporal and control-plane configuration.

    The record store being down makes the service unhealthy. Temporal being
    down, or control-plane settings missing, only degrades it: reads still
    work but new runs cannot start or would fail at their first step.
    """
    health_status: dict[str, Any] = {
        "status": "healthy",
        "database": "unknown",
        "temporal": "unknown",
        "configuration": "unknown",
        "cached": False,
        "timestamp": time.time(),
    }

    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        health_status["database"] = "healthy"
    except Exception as e:
        health_status["database"] = f"unhealthy: {e!s}"
        health_status["status"] = "unhealthy"

    try:
        await get_temporal_client()
        health_status["temporal"] = "healthy"
    except Exception as e:
        health_status["temporal"] = f"unhealthy: {e!s}"
        if health_status["status"] == "healthy":
            health_status["status"] = "degraded"

    missing = missing_control_plane_settings()
    if missing:
        health_status["configuration"] = f"missing: {', '.join(missing)}"
        if health_status["status"] == "healthy":
            health_status["status"] = "degraded"
    else:
        health_status["configuration"] = "complete"

    return health_status


def setup_health_endpoint(app: FastAPI) -> None:
    """Configure the health check endpoint."""

    @app.get("/health")
    async def health() -> JSONResponse:
        """Health check with dependency validation and caching."""
        global _health_cache, _health_cache_time

        now = time.time()
        if _health_cache and (now - _health_cache_time) < HEALTH_CACHE_TTL:
            cached_response = _health_cache.copy()
            cached_response["cached"] = True
            cached_response["cache_age_seconds"] = round(now - _health_cache_time, 1)
            status_code = 200 if cached_response["status"] == "healthy" else 503
            return JSONResponse(content=cached_response, status_code=status_code)

        health_status = await check_health()
        _health_cache = health_status
        _health_cache_time = now

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)


def setup_metrics(app: FastAPI) -> None:
    """Configure Prometheus metrics with optional API key protection."""
    settings = get_settings()
    instrumentator = Instrumentator().instrument(app)

    if settings.metrics_api_key:
        api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

        async def verify_metrics_key(
            api_key: str | None = Depends(api_key_header),
        ) -> None:
            if (
                api_key is None
                or settings.metrics_api_key is None
                or not secrets.compare_digest(api_key, settings.metrics_api_key)
            ):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Invalid or missing metrics API key",
                )

        instrumentator.expose(app, endpoint="/metrics", dependencies=[Depends(verify_metrics_key)])
    else:
        instrumentator.expose(app, endpoint="/metrics")
