"""Kubernetes client for tenant ingress, certificates and one-shot jobs."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from src.provisioner.core.config import Settings, get_settings
from src.provisioner.core.exceptions import JobFailedError
from src.provisioner.core.logging import get_logger
from src.provisioner.core.polling import poll_until

logger = get_logger(__name__)

CERT_MANAGER_GROUP = "cert-manager.io"
CERT_MANAGER_VERSION = "v1"
CERTIFICATE_PLURAL = "certificates"
MANAGED_BY = "tenant-provisioner"
TENANT_ID_LABEL = "provisioner/tenant-id"
RUN_ID_LABEL = "provisioner/run-id"

# Runs inside the application image; parameters arrive via the environment
BASE_URL_SCRIPT = """
import os
import psycopg2

conn = psycopg2.connect(
    host=os.environ["DB_HOST"],
    port=int(os.environ["DB_PORT"]),
    user=os.environ["DB_USER"],
    password=os.environ["PASSWORD"],
    dbname=os.environ["TENANT_DB"],
)
params = (("web.base.url", os.environ["TENANT_URL"]), ("web.base.url.freeze", "True"))
with conn, conn.cursor() as cur:
    for key, value in params:
        cur.execute("UPDATE ir_config_parameter SET value = %s WHERE key = %s", (value, key))
        if cur.rowcount == 0:
            cur.execute(
                "INSERT INTO ir_config_parameter (key, value) VALUES (%s, %s)", (key, value)
            )
conn.close()
"""


def load_cluster_config(in_cluster: bool | None = None) -> None:
    """Load Kubernetes credentials.

    Args:
        in_cluster: True for the pod service account, False for kubeconfig,
            None to try the service account and fall back to kubeconfig.
    """
    if in_cluster is True:
        config.load_incluster_config()
    elif in_cluster is False:
        config.load_kube_config()
    else:
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config()


@dataclass(frozen=True)
class JobOwner:
    """The tenant and workflow run a job is submitted for.

    Job names are fixed per subdomain, so a name alone does not say whether
    an existing job was submitted by this run or left behind by an earlier
    run or an earlier tenant with the same subdomain.
    """

    tenant_id: str
    run_id: str

    def labels(self) -> dict[str, str]:
        return {TENANT_ID_LABEL: self.tenant_id, RUN_ID_LABEL: self.run_id}

    def owns(self, labels: dict[str, str] | None) -> bool:
        labels = labels or {}
        return (
            labels.get(TENANT_ID_LABEL) == self.tenant_id
            and labels.get(RUN_ID_LABEL) == self.run_id
        )


class ClusterClient:
    """Create and remove per-tenant cluster resources.

    Creates treat HTTP 409 as success and deletes treat HTTP 404 as success,
    so every operation is safe to retry. Kubernetes API calls are blocking
    and run in a worker thread.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        networking: Any,
        custom_objects: Any,
        batch: Any,
        core: Any,
    ):
        self.settings = settings
        self.namespace = settings.kubernetes_namespace
        self.prefix = settings.resource_prefix
        self.networking = networking
        self.custom_objects = custom_objects
        self.batch = batch
        self.core = core

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ClusterClient":
        settings = settings or get_settings()
        load_cluster_config(settings.kubernetes_in_cluster)
        return cls(
            settings,
            networking=client.NetworkingV1Api(),
            custom_objects=client.CustomObjectsApi(),
            batch=client.BatchV1Api(),
            core=client.CoreV1Api(),
        )

    # Resource names

    def ingress_name(self, subdomain: str) -> str:
        return f"{self.prefix}-tenant-{subdomain}"

    def certificate_name(self, subdomain: str) -> str:
        return f"{self.prefix}-cert-{subdomain}"

    def tls_secret_name(self, subdomain: str) -> str:
        return f"{self.prefix}-tls-{subdomain}"

    def database_init_job_name(self, subdomain: str) -> str:
        return f"{self.prefix}-init-db-{subdomain}"

    def base_url_job_name(self, subdomain: str) -> str:
        return f"{self.prefix}-set-baseurl-{subdomain}"

    def filestore_cleanup_job_name(self, subdomain: str) -> str:
        return f"cleanup-filestore-{subdomain}"

    def _labels(self, subdomain: str) -> dict[str, str]:
        return {
            "app.kubernetes.io/managed-by": MANAGED_BY,
            "provisioner/tenant": subdomain,
        }

    # Manifests

    def ingress_manifest(self, subdomain: str, domain: str) -> dict[str, Any]:
        host = f"{subdomain}.{domain}"
        return {
            "apiVersion": "networking.k8s.io/v1",
            "kind": "Ingress",
            "metadata": {
                "name": self.ingress_name(subdomain),
                "namespace": self.namespace,
                "labels": self._labels(subdomain),
                "annotations": {
                    "cert-manager.io/cluster-issuer": self.settings.cert_issuer,
                },
            },
            "spec": {
                "ingressClassName": self.settings.ingress_class,
                "tls": [{"hosts": [host], "secretName": self.tls_secret_name(subdomain)}],
                "rules": [
                    {
                        "host": host,
                        "http": {
                            "paths": [
                                {
                                    "path": "/",
                                    "pathType": "Prefix",
                                    "backend": {
                                        "service": {
                                            "name": self.settings.app_service_name,
                                            "port": {"number": self.settings.app_service_port},
                                        }
                                    },
                                }
                            ]
                        },
                    }
                ],
            },
        }

    def certificate_manifest(self, subdomain: str, domain: str) -> dict[str, Any]:
        return {
            "apiVersion": f"{CERT_MANAGER_GROUP}/{CERT_MANAGER_VERSION}",
            "kind": "Certificate",
            "metadata": {
                "name": self.certificate_name(subdomain),
                "namespace": self.namespace,
                "labels": self._labels(subdomain),
            },
            "spec": {
                "secretName": self.tls_secret_name(subdomain),
                "issuerRef": {"name": self.settings.cert_issuer, "kind": "ClusterIssuer"},
                "dnsNames": [f"{subdomain}.{domain}"],
            },
        }

    def job_manifest(
        self,
        name: str,
        subdomain: str,
        owner: JobOwner,
        container: dict[str, Any],
        volumes: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Wrap a container in a run-once batch Job (no restarts, no retries)."""
        pod_spec: dict[str, Any] = {"restartPolicy": "Never", "containers": [container]}
        if volumes:
            pod_spec["volumes"] = volumes
        labels = {**self._labels(subdomain), **owner.labels()}
        return {
            "apiVersion": "batch/v1",
            "kind": "Job",
            "metadata": {
                "name": name,
                "namespace": self.namespace,
                "labels": labels,
            },
            "spec": {
                "backoffLimit": 0,
                "ttlSecondsAfterFinished": self.settings.job_ttl_seconds_after_finished,
                "template": {
                    "metadata": {"labels": labels},
                    "spec": pod_spec,
                },
            },
        }

    def _db_password_env(self) -> dict[str, Any]:
        return {
            "name": "PASSWORD",
            "valueFrom": {
                "secretKeyRef": {
                    "name": self.settings.db_password_secret_name,
                    "key": self.settings.db_password_secret_key,
                }
            },
        }

    def database_init_job(
        self, subdomain: str, database_name: str, owner: JobOwner
    ) -> dict[str, Any]:
        """Job that creates the tenant database and installs the base module."""
        settings = self.settings
        container = {
            "name": "init-db",
            "image": settings.require("app_image"),
            "command": ["odoo"],
            "args": [
                "-d",
                database_name,
                "-i",
                "base",
                "--stop-after-init",
                "--without-demo=all",
                f"--db_host={settings.require('tenant_db_host')}",
                f"--db_port={settings.tenant_db_port}",
                f"--db_user={settings.tenant_db_admin_user}",
                "--db_password=$(PASSWORD)",
            ],
            "env": [self._db_password_env()],
        }
        return self.job_manifest(
            self.database_init_job_name(subdomain), subdomain, owner, container
        )

    def base_url_job(
        self, subdomain: str, database_name: str, url: str, owner: JobOwner
    ) -> dict[str, Any]:
        """Job that pins the application's public base URL to the tenant URL."""
        settings = self.settings
        container = {
            "name": "set-baseurl",
            "image": settings.require("app_image"),
            "command": ["python3", "-c", BASE_URL_SCRIPT],
            "env": [
                {"name": "TENANT_DB", "value": database_name},
                {"name": "TENANT_URL", "value": url},
                {"name": "DB_HOST", "value": settings.require("tenant_db_host")},
                {"name": "DB_PORT", "value": str(settings.tenant_db_port)},
                {"name": "DB_USER", "value": settings.tenant_db_admin_user},
                self._db_password_env(),
            ],
        }
        return self.job_manifest(self.base_url_job_name(subdomain), subdomain, owner, container)

    def filestore_cleanup_job(
        self, subdomain: str, database_name: str, owner: JobOwner
    ) -> dict[str, Any]:
        """Job that removes the tenant's filestore directory from the shared volume."""
        settings = self.settings
        container = {
            "name": "cleanup",
            "image": settings.cleanup_image,
            "command": ["sh", "-c", 'rm -rf "$FILESTORE_DIR"'],
            "env": [
                {
                    "name": "FILESTORE_DIR",
                    "value": f"{settings.filestore_path}/filestore/{database_name}",
                }
            ],
            "volumeMounts": [{"name": "app-data", "mountPath": settings.filestore_path}],
        }
        volumes = [
            {"name": "app-data", "persistentVolumeClaim": {"claimName": settings.filestore_pvc}}
        ]
        return self.job_manifest(
            self.filestore_cleanup_job_name(subdomain), subdomain, owner, container, volumes
        )

    # Idempotent create/delete

    async def _create(
        self, kind: str, name: str, fn: Callable[..., Any], /, **kwargs: Any
    ) -> bool:
        try:
            await asyncio.to_thread(fn, **kwargs)
        except ApiException as e:
            if e.status == 409:
                logger.info(f"{kind} already exists", name=name, namespace=self.namespace)
                return False
            raise
        logger.info(f"{kind} created", name=name, namespace=self.namespace)
        return True

    async def _delete(
        self, kind: str, name: str, fn: Callable[..., Any], /, **kwargs: Any
    ) -> bool:
        try:
            await asyncio.to_thread(fn, **kwargs)
        except ApiException as e:
            if e.status == 404:
                logger.info(f"{kind} already absent", name=name, namespace=self.namespace)
                return False
            raise
        logger.info(f"{kind} deleted", name=name, namespace=self.namespace)
        return True

    async def create_ingress(self, subdomain: str, domain: str) -> bool:
        return await self._create(
            "Ingress",
            self.ingress_name(subdomain),
            self.networking.create_namespaced_ingress,
            namespace=self.namespace,
            body=self.ingress_manifest(subdomain, domain),
        )

    async def delete_ingress(self, subdomain: str) -> bool:
        name = self.ingress_name(subdomain)
        return await self._delete(
            "Ingress",
            name,
            self.networking.delete_namespaced_ingress,
            name=name,
            namespace=self.namespace,
        )

    async def create_certificate(self, subdomain: str, domain: str) -> bool:
        return await self._create(
            "Certificate",
            self.certificate_name(subdomain),
            self.custom_objects.create_namespaced_custom_object,
            group=CERT_MANAGER_GROUP,
            version=CERT_MANAGER_VERSION,
            namespace=self.namespace,
            plural=CERTIFICATE_PLURAL,
            body=self.certificate_manifest(subdomain, domain),
        )

    async def delete_certificate(self, subdomain: str) -> bool:
        name = self.certificate_name(subdomain)
        return await self._delete(
            "Certificate",
            name,
            self.custom_objects.delete_namespaced_custom_object,
            group=CERT_MANAGER_GROUP,
            version=CERT_MANAGER_VERSION,
            namespace=self.namespace,
            plural=CERTIFICATE_PLURAL,
            name=name,
        )

    # Waits

    async def tls_secret_exists(self, subdomain: str) -> bool:
        try:
            await asyncio.to_thread(
                self.core.read_namespaced_secret,
                name=self.tls_secret_name(subdomain),
                namespace=self.namespace,
            )
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        return True

    async def wait_for_certificate(
        self,
        subdomain: str,
        *,
        timeout: float,
        interval: float | None = None,
        on_poll: Callable[[int], None] | None = None,
    ) -> None:
        """Wait until the certificate's TLS secret exists.

        Raises:
            PollTimeoutError: If the secret does not appear within ``timeout`` seconds.
        """
        secret = self.tls_secret_name(subdomain)
        logger.info("Waiting for TLS secret", secret=secret, timeout=timeout)
        await poll_until(
            lambda: self.tls_secret_exists(subdomain),
            interval=interval or self.settings.certificate_poll_interval_seconds,
            timeout=timeout,
            description=f"TLS secret {secret}",
            on_attempt=on_poll,
        )
        logger.info("TLS secret ready", secret=secret)

    async def _job_succeeded(self, name: str) -> bool:
        job = await asyncio.to_thread(
            self.batch.read_namespaced_job_status, name=name, namespace=self.namespace
        )
        status = job.status
        if status is not None and status.succeeded:
            return True
        if status is not None and status.failed:
            raise JobFailedError(name)
        return False

    async def wait_for_job(
        self,
        name: str,
        *,
        timeout: float,
        on_poll: Callable[[int], None] | None = None,
    ) -> None:
        """Wait for a job to succeed.

        Raises:
            JobFailedError: If the job reports a failed pod.
            PollTimeoutError: If the job has not finished within ``timeout`` seconds.
        """
        await poll_until(
            lambda: self._job_succeeded(name),
            interval=self.settings.job_poll_interval_seconds,
            timeout=timeout,
            description=f"job {name}",
            on_attempt=on_poll,
        )
        logger.info("Job succeeded", name=name)

    async def _read_job_labels(self, name: str) -> dict[str, str] | None:
        """Labels of an existing job, or None if it is gone."""
        try:
            job = await asyncio.to_thread(
                self.batch.read_namespaced_job, name=name, namespace=self.namespace
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise
        return job.metadata.labels or {}

    async def _job_absent(self, name: str) -> bool:
        return await self._read_job_labels(name) is None

    async def _remove_job(
        self,
        name: str,
        *,
        timeout: float,
        on_poll: Callable[[int], None] | None = None,
    ) -> None:
        """Delete a job with its pods and wait until the name is free again."""
        await self._delete(
            "Job",
            name,
            self.batch.delete_namespaced_job,
            name=name,
            namespace=self.namespace,
            propagation_policy="Background",
        )
        await poll_until(
            lambda: self._job_absent(name),
            interval=self.settings.job_poll_interval_seconds,
            timeout=timeout,
            description=f"removal of job {name}",
            on_attempt=on_poll,
        )

    async def run_job(
        self,
        manifest: dict[str, Any],
        owner: JobOwner,
        *,
        timeout: float,
        on_poll: Callable[[int], None] | None = None,
    ) -> bool:
        """Submit a job and wait for it to complete.

        A job with the same name that this run already submitted is waited
        on, not resubmitted. One left by another run or another tenant is
        deleted and the job is submitted again, whatever its outcome was.

        Returns:
            True if this call submitted the job, False if it was already running
            for this run.
        """
        name = manifest["metadata"]["name"]
        created = await self._create(
            "Job",
            name,
            self.batch.create_namespaced_job,
            namespace=self.namespace,
            body=manifest,
        )
        if not created:
            labels = await self._read_job_labels(name)
            if not owner.owns(labels):
                logger.info("Replacing job left by another run", name=name, labels=labels)
                await self._remove_job(name, timeout=timeout, on_poll=on_poll)
                await asyncio.to_thread(
                    self.batch.create_namespaced_job, namespace=self.namespace, body=manifest
                )
                logger.info("Job created", name=name, namespace=self.namespace)
                created = True
        await self.wait_for_job(name, timeout=timeout, on_poll=on_poll)
        return created

    async def run_database_init_job(
        self,
        subdomain: str,
        database_name: str,
        owner: JobOwner,
        *,
        timeout: float,
        on_poll: Callable[[int], None] | None = None,
    ) -> bool:
        return await self.run_job(
            self.database_init_job(subdomain, database_name, owner),
            owner,
            timeout=timeout,
            on_poll=on_poll,
        )

    async def run_base_url_job(
        self,
        subdomain: str,
        database_name: str,
        url: str,
        owner: JobOwner,
        *,
        timeout: float,
        on_poll: Callable[[int], None] | None = None,
    ) -> bool:
        return await self.run_job(
            self.base_url_job(subdomain, database_name, url, owner),
            owner,
            timeout=timeout,
            on_poll=on_poll,
        )

    async def cleanup_filestore(
        self,
        subdomain: str,
        database_name: str,
        owner: JobOwner,
        *,
        timeout: float,
        on_poll: Callable[[int], None] | None = None,
    ) -> bool:
        return await self.run_job(
            self.filestore_cleanup_job(subdomain, database_name, owner),
            owner,
            timeout=timeout,
            on_poll=on_poll,
        )
