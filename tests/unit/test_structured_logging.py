"""Tests for structured logging context."""

from uuid import uuid4

import pytest
import structlog
from structlog.testing import CapturingLogger

from src.provisioner.core.logging import (
    bind_request_context,
    bind_tenant_context,
    clear_request_context,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def capturing_logger():
    """Route structlog output into a CapturingLogger for the test."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


def test_bind_request_context(capturing_logger):
    bind_request_context("test-request-123")
    structlog.get_logger().info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["request_id"] == "test-request-123"


def test_bind_request_context_with_none(capturing_logger):
    bind_request_context(None)
    structlog.get_logger().info("test message")

    assert "request_id" not in capturing_logger.calls[0].kwargs


def test_bind_tenant_context(capturing_logger):
    tenant_id = uuid4()

    bind_request_context("req-1")
    bind_tenant_context(tenant_id, "alice")
    structlog.get_logger().info("Tenant requested")

    kwargs = capturing_logger.calls[0].kwargs
    assert kwargs["request_id"] == "req-1"
    assert kwargs["tenant_id"] == str(tenant_id)
    assert kwargs["subdomain"] == "alice"


def test_bind_tenant_context_without_subdomain(capturing_logger):
    bind_tenant_context("550e8400-e29b-41d4-a716-446655440000")
    structlog.get_logger().info("test message")

    kwargs = capturing_logger.calls[0].kwargs
    assert kwargs["tenant_id"] == "550e8400-e29b-41d4-a716-446655440000"
    assert "subdomain" not in kwargs


def test_clear_request_context(capturing_logger):
    bind_request_context("req-1")
    bind_tenant_context(uuid4(), "alice")
    clear_request_context()
    structlog.get_logger().info("after clear")

    kwargs = capturing_logger.calls[0].kwargs
    assert "request_id" not in kwargs
    assert "tenant_id" not in kwargs
