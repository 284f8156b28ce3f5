"""Tests for the tenant database admin client."""

from unittest.mock import MagicMock

import pytest

from src.provisioner.clients.database import DatabaseAdminClient
from src.provisioner.core.exceptions import ConfigurationError

pytestmark = pytest.mark.unit


@pytest.fixture
def conn() -> MagicMock:
    return MagicMock()


@pytest.fixture
def admin(conn: MagicMock) -> DatabaseAdminClient:
    engine = MagicMock()
    engine.connect.return_value.__enter__.return_value = conn
    return DatabaseAdminClient(engine)


def _statements(conn: MagicMock) -> list[str]:
    return [str(c.args[0]) for c in conn.execute.call_args_list]


def test_drop_existing_database(admin, conn):
    conn.execute.return_value.scalar.side_effect = [True, '"alice.example.com"']

    assert admin.drop_database("alice.example.com") is True

    statements = _statements(conn)
    assert "pg_terminate_backend" in statements[1]
    assert statements[-1] == 'DROP DATABASE IF EXISTS "alice.example.com"'


def test_drop_missing_database_is_noop(admin, conn):
    conn.execute.return_value.scalar.return_value = False

    assert admin.drop_database("alice.example.com") is False
    assert not any("DROP DATABASE" in s for s in _statements(conn))


def test_drop_errors_propagate(admin, conn):
    conn.execute.side_effect = RuntimeError("connection refused")

    with pytest.raises(RuntimeError, match="connection refused"):
        admin.drop_database("alice.example.com")


def test_from_settings_builds_autocommit_engine(settings):
    client = DatabaseAdminClient.from_settings(settings)
    try:
        url = client.engine.url
        assert url.drivername == "postgresql+psycopg2"
        assert url.host == "db.internal"
        assert url.database == "postgres"
    finally:
        client.dispose()


def test_from_settings_requires_cluster_host(settings):
    settings.tenant_db_host = None

    with pytest.raises(ConfigurationError, match="TENANT_DB_HOST"):
        DatabaseAdminClient.from_settings(settings)
