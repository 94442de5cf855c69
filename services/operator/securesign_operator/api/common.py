"""Types shared by every kind."""

from typing import Optional

from securesign_engine import CamelModel

GROUP = "rhtas.redhat.com"
VERSION = "v1alpha1"


class LocalObjectReference(CamelModel):
    """Reference to an object in the same namespace."""

    name: str


class SecretKeySelector(CamelModel):
    """A key within a secret in the same namespace."""

    name: str
    key: str

    def __str__(self) -> str:
        return f"{self.name}/{self.key}"


class ExternalAccess(CamelModel):
    """
    Exposure of the component outside the cluster through an Ingress.

    ``host`` defaults to a name derived from the service, namespace and the
    operator's ingress domain.
    """

    enabled: bool = False
    host: Optional[str] = None


class MonitoringConfig(CamelModel):
    """Whether a Prometheus ServiceMonitor scrapes the component."""

    enabled: bool = False
