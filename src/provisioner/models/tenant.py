"""Tenant model - one isolated customer environment."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index, Text, text
from sqlmodel import Field, SQLModel

from src.provisioner.core.exceptions import InvalidStatusTransitionError
from src.provisioner.core.validators import (
    MAX_IDENTIFIER_LENGTH,
    build_database_name,
    build_tenant_url,
    validate_subdomain,
)
from src.provisioner.models.base import utc_now
from src.provisioner.models.enums import TenantStatus

_LIVE_ROWS = text("status <> 'deleted'")


class Tenant(SQLModel, table=True):
    """Tenant record - single source of truth for workflow position."""

    __tablename__ = "tenants"
    __table_args__ = (
        # Subdomains and database names are reusable once a tenant is DELETED
        Index(
            "uq_tenants_subdomain_live",
            "subdomain",
            unique=True,
            postgresql_where=_LIVE_ROWS,
            sqlite_where=_LIVE_ROWS,
        ),
        Index(
            "uq_tenants_database_name_live",
            "database_name",
            unique=True,
            postgresql_where=_LIVE_ROWS,
            sqlite_where=_LIVE_ROWS,
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    subdomain: str = Field(max_length=MAX_IDENTIFIER_LENGTH, index=True)
    domain: str = Field(max_length=253)
    database_name: str = Field(max_length=MAX_IDENTIFIER_LENGTH)
    url: str = Field(max_length=300)
    status: str = Field(default=TenantStatus.REQUESTED.value, max_length=20, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    activated_at: datetime | None = Field(default=None)
    error_message: str | None = Field(default=None, sa_type=Text)

    @classmethod
    def for_subdomain(cls, subdomain: str, domain: str) -> "Tenant":
        """Build a new REQUESTED tenant with derived database name and URL.

        The derived values are stored once here and never recomputed.
        """
        validate_subdomain(subdomain)
        return cls(
            subdomain=subdomain,
            domain=domain,
            database_name=build_database_name(subdomain, domain),
            url=build_tenant_url(subdomain, domain),
            status=TenantStatus.REQUESTED.value,
        )

    @property
    def status_enum(self) -> TenantStatus:
        """Get status as TenantStatus enum."""
        return TenantStatus(self.status)

    @property
    def hostname(self) -> str:
        return f"{self.subdomain}.{self.domain}"

    def apply_status(self, status: TenantStatus, error_message: str | None = None) -> None:
        """Move the tenant to ``status``.

        Refreshes ``updated_at``, stamps ``activated_at`` the first time the
        tenant becomes ACTIVE, and replaces ``error_message`` (cleared when
        None is passed).

        Raises:
            InvalidStatusTransitionError: If the lifecycle forbids the change.
        """
        current = self.status_enum
        if not current.can_transition_to(status):
            raise InvalidStatusTransitionError(current.value, status.value)

        now = utc_now()
        self.status = status.value
        self.updated_at = now
        self.error_message = error_message
        if status is TenantStatus.ACTIVE and self.activated_at is None:
            self.activated_at = now
