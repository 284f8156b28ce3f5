"""Control-plane clients: DNS registrar, Kubernetes cluster, tenant database admin."""

from src.provisioner.clients.cluster import ClusterClient, JobOwner
from src.provisioner.clients.database import DatabaseAdminClient
from src.provisioner.clients.dns import DnsRegistrarClient

__all__ = ["ClusterClient", "DatabaseAdminClient", "DnsRegistrarClient", "JobOwner"]
