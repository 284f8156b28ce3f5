"""Reusable migration runner for both production and tests."""

from alembic.config import Config

from alembic import command


def run_migrations_sync(config_path: str = "alembic.ini") -> None:
    """Upgrade the record store schema to the latest Alembic revision."""
    alembic_cfg = Config(config_path)
    command.upgrade(alembic_cfg, "head")
