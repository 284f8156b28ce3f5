"""Database utilities - engine, session, migrations."""

from src.provisioner.core.db.engine import (
    create_admin_engine,
    dispose_engine,
    dispose_sync_engine,
    get_engine,
    get_sync_engine,
)
from src.provisioner.core.db.migrations import run_migrations_sync
from src.provisioner.core.db.session import get_session

__all__ = [
    # Engine (async)
    "dispose_engine",
    "get_engine",
    # Engine (sync - for Temporal activities)
    "dispose_sync_engine",
    "get_sync_engine",
    # Engine (tenant database cluster admin)
    "create_admin_engine",
    # Session
    "get_session",
    # Migrations
    "run_migrations_sync",
]
