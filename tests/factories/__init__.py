"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import TenantFactory, WorkflowExecutionFactory
"""

from tests.factories.base import BaseFactory, generate_uuid, utc_now
from tests.factories.tenant import TEST_DOMAIN, TenantFactory, WorkflowExecutionFactory

__all__ = [
    # Base
    "BaseFactory",
    "generate_uuid",
    "utc_now",
    # Tenant
    "TEST_DOMAIN",
    "TenantFactory",
    "WorkflowExecutionFactory",
]
