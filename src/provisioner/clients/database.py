"""Administrative connection to the shared tenant database cluster."""

from sqlalchemy import Engine, text

from src.provisioner.core.config import Settings, get_settings
from src.provisioner.core.db import create_admin_engine
from src.provisioner.core.logging import get_logger

logger = get_logger(__name__)


class DatabaseAdminClient:
    """Drop tenant databases over an AUTOCOMMIT admin connection."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "DatabaseAdminClient":
        """Build a client from configuration.

        Raises:
            ConfigurationError: If the database host or admin password is unset.
        """
        return cls(create_admin_engine(settings or get_settings()))

    def drop_database(self, database_name: str) -> bool:
        """Drop a tenant database if it exists.

        Open sessions on the database are terminated first, otherwise the
        drop fails while the application pod is still connected.

        Returns:
            True if the database existed and was dropped, False if it was already gone.
        """
        with self.engine.connect() as conn:
            existed = conn.execute(
                text("SELECT EXISTS(SELECT 1 FROM pg_database WHERE datname = :name)"),
                {"name": database_name},
            ).scalar()
            if not existed:
                logger.info("Database already absent", database=database_name)
                return False

            conn.execute(
                text(
                    "SELECT pg_terminate_backend(pid) FROM pg_stat_activity "
                    "WHERE datname = :name AND pid <> pg_backend_pid()"
                ),
                {"name": database_name},
            )
            quoted = conn.execute(
                text("SELECT quote_ident(:name)"), {"name": database_name}
            ).scalar()
            conn.execute(text(f"DROP DATABASE IF EXISTS {quoted}"))

        logger.info("Database dropped", database=database_name)
        return True

    def dispose(self) -> None:
        self.engine.dispose()
