"""Domain errors and exception handlers with request_id in responses."""

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.provisioner.core.logging import get_logger

logger = get_logger(__name__)


class ProvisionerError(Exception):
    """Base class for errors raised by the provisioning domain."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


class InvalidSubdomainError(ProvisionerError, ValueError):
    """Subdomain is not a valid DNS label or derives an invalid database name."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class DuplicateTenantError(ProvisionerError):
    """A non-deleted tenant already owns the subdomain."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, subdomain: str):
        super().__init__(f"Tenant with subdomain '{subdomain}' already exists")
        self.subdomain = subdomain


class TenantNotFoundError(ProvisionerError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, tenant_id: object):
        super().__init__(f"Tenant {tenant_id} not found")
        self.tenant_id = tenant_id


class InvalidStatusTransitionError(ProvisionerError):
    """Requested status change is not an edge of the lifecycle graph."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot transition tenant from '{current}' to '{target}'")
        self.current = current
        self.target = target


class StatusConflictError(ProvisionerError):
    """Compare-and-swap lost: the record is no longer in the expected status."""

    status_code = status.HTTP_409_CONFLICT


class ConfigurationError(ProvisionerError):
    """Required configuration is missing."""


class PollTimeoutError(ProvisionerError):
    """A bounded wait elapsed before its condition became true."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT


class JobFailedError(ProvisionerError):
    """A one-shot cluster job reported failure."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, job_name: str):
        super().__init__(f"Job {job_name} failed")
        self.job_name = job_name


class TenantTeardownError(ProvisionerError):
    """Teardown failed part way; the tenant is left in DELETING."""

    status_code = status.HTTP_502_BAD_GATEWAY


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(ProvisionerError)
    async def provisioner_exception_handler(
        request: Request, exc: ProvisionerError
    ) -> JSONResponse:
        request_id = correlation_id.get()
        if exc.status_code >= 500:
            logger.error(
                "Provisioning error",
                error=str(exc),
                error_type=type(exc).__name__,
                request_id=request_id,
                path=request.url.path,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": str(exc),
                "request_id": request_id,
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
