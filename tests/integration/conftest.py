"""Integration test fixtures for the PostgreSQL record store.

These fixtures require a PostgreSQL database at DATABASE_URL. Tables are
emptied after every test; point DATABASE_URL at a dedicated test database.
"""

import asyncio
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from src.provisioner.core import db
from src.provisioner.core.config import get_settings
from src.provisioner.core.db import run_migrations_sync


@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Create test database engine and ensure migrations are applied."""
    await db.dispose_engine()

    settings = get_settings()
    test_engine = create_async_engine(settings.database_url, poolclass=NullPool)

    await asyncio.to_thread(run_migrations_sync)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.execute(text("TRUNCATE workflow_executions, tenants"))
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Async session on the test database.

    Like the application's sessions, nothing is committed implicitly.
    """
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session
