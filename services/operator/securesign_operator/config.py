"""Configuration management for Securesign Operator."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service Settings
    service_name: str = "securesign-operator"
    version: str = "0.1.0"
    log_level: str = "INFO"

    # Kubernetes Settings
    kubeconfig_path: Optional[str] = Field(
        default=None,
        description="Path to kubeconfig file, in-cluster config when unset",
    )
    kube_context: Optional[str] = None
    watch_namespace: Optional[str] = Field(
        default=None,
        description="Namespace to watch, every namespace when unset",
    )
    enabled_kinds: list[str] = Field(default_factory=lambda: ["Rekor", "Fulcio", "CTlog", "Securesign"])
    ingress_domain: Optional[str] = Field(
        default=None,
        description="Domain of generated Ingress hosts, externalAccess.host is required when unset",
    )

    # Reconciliation Settings
    workers: int = 4
    reconcile_timeout_seconds: float = 60.0
    requeue_base_delay_seconds: float = 0.5
    requeue_max_delay_seconds: float = 300.0
    wait_for_server_requeue_seconds: float = 5.0
    watch_timeout_seconds: Optional[int] = Field(
        default=300,
        description="Server-side timeout of each watch stream, bounding shutdown latency",
    )

    # Dependency Resolution Settings
    resolver_attempts: int = 4
    resolver_base_delay_seconds: float = 1.0
    resolver_timeout_seconds: float = 5.0

    # Workload Images
    rekor_server_image: str = "registry.redhat.io/rhtas/rekor-server-rhel9:1.3"
    createtree_image: str = "registry.redhat.io/rhtas/createtree-rhel9:1.3"
    fulcio_server_image: str = "registry.redhat.io/rhtas/fulcio-rhel9:1.3"
    ctlog_server_image: str = "registry.redhat.io/rhtas/certificate-transparency-rhel9:1.3"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
