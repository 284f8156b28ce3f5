"""Shared enums for models."""

from enum import Enum


class TenantStatus(str, Enum):
    """Tenant lifecycle status.

    Creation advances REQUESTED -> DNS_CREATING -> K8S_CREATING -> CERT_PENDING
    -> DB_INITIALIZING -> ACTIVE. Any in-progress creation state may fall to
    FAILED. ACTIVE and FAILED tenants are torn down through DELETING to DELETED.
    """

    REQUESTED = "requested"
    DNS_CREATING = "dns_creating"
    K8S_CREATING = "k8s_creating"
    CERT_PENDING = "cert_pending"
    DB_INITIALIZING = "db_initializing"
    ACTIVE = "active"
    FAILED = "failed"
    DELETING = "deleting"
    DELETED = "deleted"

    @property
    def is_provisioning(self) -> bool:
        """True while a creation workflow owns the record."""
        return self in PROVISIONING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self is TenantStatus.DELETED

    def can_transition_to(self, target: "TenantStatus") -> bool:
        """Check whether ``target`` is a legal next status.

        Rewriting the current status is always allowed so that retried
        status updates are idempotent.
        """
        return target is self or target in _TRANSITIONS[self]


PROVISIONING_STATUSES: frozenset[TenantStatus] = frozenset(
    {
        TenantStatus.REQUESTED,
        TenantStatus.DNS_CREATING,
        TenantStatus.K8S_CREATING,
        TenantStatus.CERT_PENDING,
        TenantStatus.DB_INITIALIZING,
    }
)

DELETABLE_STATUSES: frozenset[TenantStatus] = frozenset(
    {TenantStatus.ACTIVE, TenantStatus.FAILED, TenantStatus.DELETING}
)

_TRANSITIONS: dict[TenantStatus, frozenset[TenantStatus]] = {
    TenantStatus.REQUESTED: frozenset({TenantStatus.DNS_CREATING, TenantStatus.FAILED}),
    TenantStatus.DNS_CREATING: frozenset({TenantStatus.K8S_CREATING, TenantStatus.FAILED}),
    TenantStatus.K8S_CREATING: frozenset({TenantStatus.CERT_PENDING, TenantStatus.FAILED}),
    TenantStatus.CERT_PENDING: frozenset({TenantStatus.DB_INITIALIZING, TenantStatus.FAILED}),
    TenantStatus.DB_INITIALIZING: frozenset({TenantStatus.ACTIVE, TenantStatus.FAILED}),
    TenantStatus.ACTIVE: frozenset({TenantStatus.DELETING}),
    # FAILED -> REQUESTED is an operator-triggered re-provision
    TenantStatus.FAILED: frozenset({TenantStatus.DELETING, TenantStatus.REQUESTED}),
    TenantStatus.DELETING: frozenset({TenantStatus.DELETED}),
    TenantStatus.DELETED: frozenset(),
}


class WorkflowExecutionStatus(str, Enum):
    """Status of a recorded workflow run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"
