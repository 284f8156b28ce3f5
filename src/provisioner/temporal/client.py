"""Temporal Client - For starting workflows from API."""

from temporalio.client import Client

from src.provisioner.core.config import get_settings

_client: Client | None = None


async def get_temporal_client() -> Client:
    """Get or create Temporal client."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = await Client.connect(
            settings.temporal_host,
            namespace=settings.temporal_namespace,
        )
    return _client


def reset_temporal_client() -> None:
    """Forget the cached client (tests run each case on a fresh event loop)."""
    global _client
    _client = None


async def close_temporal_client() -> None:
    """Close the Temporal client. Call during shutdown."""
    # temporalio clients hold no closable transport; dropping the reference is enough
    reset_temporal_client()
