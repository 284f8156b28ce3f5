from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.provisioner.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Tenant Provisioner"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True

    # Record store
    database_url: str
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full

    # Temporal
    temporal_host: str = "localhost:7233"
    temporal_namespace: str = "default"
    temporal_queue_prefix: str = "provisioner"
    temporal_queue_shards: int = 1

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Metrics
    metrics_api_key: str | None = None  # If set, /metrics requires this key

    # Tenancy
    base_domain: str = "42khartoum.com"
    resource_prefix: str = "odoo"

    # Route 53
    aws_region: str | None = None
    route53_hosted_zone_id: str | None = None
    ingress_lb_dns: str | None = None  # CNAME target for every tenant hostname
    dns_record_ttl: int = 300
    dns_propagation_poll_interval_seconds: float = 10
    dns_propagation_max_attempts: int = 30

    # Kubernetes
    kubernetes_namespace: str = "default"
    kubernetes_in_cluster: bool | None = None  # None: try in-cluster, then kubeconfig
    app_image: str | None = None
    app_service_name: str = "odoo"
    app_service_port: int = 8069
    ingress_class: str = "nginx"
    cert_issuer: str = "letsencrypt-prod"
    filestore_pvc: str = "odoo-data"
    filestore_path: str = "/var/lib/odoo"
    cleanup_image: str = "busybox"
    db_password_secret_name: str = "postgres-secret"
    db_password_secret_key: str = "password"
    job_poll_interval_seconds: float = 5
    job_ttl_seconds_after_finished: int = 300

    # Tenant database cluster
    tenant_db_host: str | None = None
    tenant_db_port: int = 5432
    tenant_db_admin_user: str = "odoo"
    tenant_db_admin_password: str | None = None
    tenant_db_admin_database: str = "postgres"

    # Workflow bounds
    certificate_timeout_seconds: int = 300
    certificate_poll_interval_seconds: float = 5
    database_init_timeout_seconds: int = 600
    base_url_timeout_seconds: int = 300
    filestore_cleanup_timeout_seconds: int = 60
    workflow_stale_after_seconds: int = 900
    teardown_isolate_database_errors: bool = True

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Validate CORS origins - reject wildcards when credentials are used."""
        for origin in v:
            if origin == "*":
                raise ValueError(
                    "CORS wildcard '*' is not allowed when allow_credentials=True. "
                    "Specify explicit origins instead."
                )
        return v

    @field_validator("base_domain")
    @classmethod
    def validate_base_domain(cls, v: str) -> str:
        """Normalize the base domain (lowercase, no trailing dot)."""
        v = v.strip().lower().rstrip(".")
        if not v or "." not in v:
            raise ValueError(f"BASE_DOMAIN must be a fully qualified domain, got '{v}'")
        return v

    @field_validator("temporal_queue_shards")
    @classmethod
    def validate_queue_shards(cls, v: int) -> int:
        if v < 1:
            raise ValueError("TEMPORAL_QUEUE_SHARDS must be at least 1")
        return v

    def require(self, name: str) -> Any:
        """Return a setting that must be configured before first use.

        Raises:
            ConfigurationError: If the setting is unset or empty.
        """
        value = getattr(self, name)
        if value is None or value == "":
            raise ConfigurationError(f"{name.upper()} is not configured")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
