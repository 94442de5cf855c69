"""Single entry point to every resource manager the operator uses."""

from typing import Optional

from .cluster import ClusterConnection
from .custom_objects import CustomObjectManager
from .deployments import DeploymentManager
from .events import EventRecorder
from .jobs import JobManager
from .resources import (
    ConfigMapManager,
    IngressManager,
    PersistentVolumeClaimManager,
    RoleBindingManager,
    RoleManager,
    ServiceAccountManager,
    ServiceManager,
)
from .secrets import SecretManager


class ClusterAccessor:
    """
    Bundles the per-kind managers of one cluster connection.

    Reconciliation actions receive this object as their client.
    """

    def __init__(self, cluster: ClusterConnection, recorder: Optional[EventRecorder] = None):
        """
        Initialize cluster accessor.

        Args:
            cluster: Cluster connection
            recorder: Event recorder, created on the connection when omitted
        """
        self.cluster = cluster
        self.deployments = DeploymentManager(cluster)
        self.jobs = JobManager(cluster)
        self.secrets = SecretManager(cluster)
        self.config_maps = ConfigMapManager(cluster)
        self.services = ServiceManager(cluster)
        self.pvcs = PersistentVolumeClaimManager(cluster)
        self.ingresses = IngressManager(cluster)
        self.service_accounts = ServiceAccountManager(cluster)
        self.roles = RoleManager(cluster)
        self.role_bindings = RoleBindingManager(cluster)
        self.recorder = recorder or EventRecorder(cluster)
        self._custom: dict[str, CustomObjectManager] = {}

    def register_kind(self, group: str, version: str, plural: str, kind: str) -> CustomObjectManager:
        """
        Register a custom resource kind.

        Returns:
            The manager for the kind
        """
        manager = CustomObjectManager(self.cluster, group, version, plural, kind)
        self._custom[kind] = manager
        return manager

    def custom(self, kind: str) -> CustomObjectManager:
        """
        Get the manager of a registered custom resource kind.

        Raises:
            KeyError: If the kind was not registered
        """
        return self._custom[kind]

    def close(self) -> None:
        """Flush pending events and close the connection."""
        self.recorder.close()
        self.cluster.close()
