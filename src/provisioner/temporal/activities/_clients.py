"""Shared control-plane clients for activities (one per worker process)."""

from src.provisioner.clients import ClusterClient, DatabaseAdminClient, DnsRegistrarClient

_dns_client: DnsRegistrarClient | None = None
_cluster_client: ClusterClient | None = None
_database_client: DatabaseAdminClient | None = None


def get_dns_client() -> DnsRegistrarClient:
    """Get or create the Route 53 client (singleton)."""
    global _dns_client
    if _dns_client is None:
        _dns_client = DnsRegistrarClient.from_settings()
    return _dns_client


def get_cluster_client() -> ClusterClient:
    """Get or create the Kubernetes client (singleton)."""
    global _cluster_client
    if _cluster_client is None:
        _cluster_client = ClusterClient.from_settings()
    return _cluster_client


def get_database_client() -> DatabaseAdminClient:
    """Get or create the tenant database admin client (singleton)."""
    global _database_client
    if _database_client is None:
        _database_client = DatabaseAdminClient.from_settings()
    return _database_client


def dispose_clients() -> None:
    """Drop cached clients (call on worker shutdown)."""
    global _dns_client, _cluster_client, _database_client
    if _database_client is not None:
        _database_client.dispose()
    _dns_client = None
    _cluster_client = None
    _database_client = None
