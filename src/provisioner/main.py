import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware, correlation_id
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import RequestResponseEndpoint

from src.provisioner.api.v1.router import api_router
from src.provisioner.core.config import get_settings
from src.provisioner.core.db import dispose_engine, get_session
from src.provisioner.core.exceptions import setup_exception_handlers
from src.provisioner.core.health import setup_health_endpoint, setup_metrics
from src.provisioner.core.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from src.provisioner.repositories import TenantRepository, WorkflowExecutionRepository
from src.provisioner.services import ReconciliationService
from src.provisioner.temporal.client import close_temporal_client

logger = get_logger(__name__)

UNLOGGED_PATHS = ("/health", "/metrics")


async def reconcile_on_startup() -> None:
    """Settle workflow runs abandoned while the service was down.

    Failures are logged and startup continues; the admin endpoint can rerun it.
    """
    try:
        async with get_session() as session:
            service = ReconciliationService(
                TenantRepository(session), WorkflowExecutionRepository(session), session
            )
            await service.reconcile()
    except Exception:
        logger.exception("Startup reconciliation failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    await reconcile_on_startup()

    yield

    logger.info("Closing connections...")
    await close_temporal_client()
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "tenants", "description": "Tenant provisioning and teardown"},
    {"name": "admin", "description": "Operator endpoints"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Tenant provisioning orchestrator: DNS, ingress, TLS and database per tenant",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
    )

    setup_exception_handlers(app)

    # Correlation ID first (outermost middleware)
    app.add_middleware(CorrelationIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    @app.middleware("http")
    async def logging_context_middleware(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Bind request_id to log context and log the request outcome."""
        clear_request_context()
        bind_request_context(correlation_id.get())
        started = time.perf_counter()
        try:
            response = await call_next(request)
            if request.url.path not in UNLOGGED_PATHS:
                logger.info(
                    "Request handled",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 1),
                )
            return response
        finally:
            clear_request_context()

    app.include_router(api_router)

    setup_metrics(app)
    setup_health_endpoint(app)

    return app


app = create_app()
