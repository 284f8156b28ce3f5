"""Database engine management."""

import ssl
from typing import Any

from sqlalchemy import URL, Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from src.provisioner.core.config import Settings, get_settings

_engine: AsyncEngine | None = None
_sync_engine: Engine | None = None


def _get_connect_args() -> dict[str, Any]:
    """Get asyncpg connection arguments including SSL configuration."""
    settings = get_settings()
    connect_args: dict[str, Any] = {}

    ssl_mode = settings.database_ssl_mode
    if ssl_mode != "disable":
        ssl_context = ssl.create_default_context()
        if ssl_mode in ("prefer", "require"):
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        elif ssl_mode in ("verify-ca", "verify-full"):
            ssl_context.check_hostname = ssl_mode == "verify-full"
            ssl_context.verify_mode = ssl.CERT_REQUIRED
        connect_args["ssl"] = ssl_context

    return connect_args


def get_engine() -> AsyncEngine:
    """Get or create the database engine singleton."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            connect_args=_get_connect_args(),
        )
    return _engine


async def dispose_engine() -> None:
    """Dispose the database engine. Call during shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def get_sync_engine() -> Engine:
    """Get or create synchronous database engine singleton.

    Used by Temporal activities which run in thread pools and need sync DB access.
    Converts asyncpg URL to psycopg2 (sync driver).
    """
    global _sync_engine
    if _sync_engine is None:
        settings = get_settings()
        sync_url = settings.database_url.replace("+asyncpg", "")
        connect_args: dict[str, Any] = {}
        if sync_url.startswith("postgresql"):
            connect_args["sslmode"] = settings.database_ssl_mode
        _sync_engine = create_engine(
            sync_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
    return _sync_engine


def dispose_sync_engine() -> None:
    """Dispose of the sync engine. Call on Temporal worker shutdown."""
    global _sync_engine
    if _sync_engine is not None:
        _sync_engine.dispose()
        _sync_engine = None


def create_admin_engine(settings: Settings) -> Engine:
    """Engine for administrative statements on the shared tenant database cluster.

    AUTOCOMMIT because DROP DATABASE cannot run inside a transaction block;
    no pool because drops are rare and must not pin connections.

    Raises:
        ConfigurationError: If the cluster host or admin password is unset.
    """
    url = URL.create(
        "postgresql+psycopg2",
        username=settings.tenant_db_admin_user,
        password=settings.require("tenant_db_admin_password"),
        host=settings.require("tenant_db_host"),
        port=settings.tenant_db_port,
        database=settings.tenant_db_admin_database,
    )
    return create_engine(
        url,
        isolation_level="AUTOCOMMIT",
        poolclass=NullPool,
        connect_args={"sslmode": settings.database_ssl_mode},
    )
