"""Generic namespaced resource operations."""

from typing import Any, Optional

from kubernetes.client import V1ConfigMap, V1ObjectMeta
from kubernetes.client.exceptions import ApiException
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from .cluster import ClusterConnection
from .errors import NotFoundError, classify, is_transient
from .meta import label_selector

# Reads are retried in-process on transient failures. Writes are never
# replayed: a stale write has to be rebuilt from a fresh read.
read_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception(is_transient),
    reraise=True,
)


class NamespacedResourceManager:
    """
    Get/list/create/replace/patch/delete for one namespaced kind.

    Subclasses name the kind and the generated client methods to use,
    e.g. ``apps_v1.read_namespaced_deployment``.
    """

    kind: str = ""
    api_name: str = "core_v1"
    method_suffix: str = ""

    def __init__(self, cluster: ClusterConnection):
        """
        Initialize resource manager.

        Args:
            cluster: Cluster connection
        """
        self.cluster = cluster
        self.api = getattr(cluster, self.api_name)

    def _call(self, verb: str, *args: Any, **kwargs: Any) -> Any:
        method = getattr(self.api, f"{verb}_namespaced_{self.method_suffix}")
        try:
            return method(*args, **kwargs)
        except ApiException as e:
            raise classify(e) from e

    @read_retry
    def get(self, name: str, namespace: str) -> Optional[Any]:
        """
        Get an object.

        Args:
            name: Object name
            namespace: Kubernetes namespace

        Returns:
            The object or None if not found
        """
        try:
            return self._call("read", name, namespace)
        except NotFoundError:
            return None

    @read_retry
    def list(
        self, namespace: str, labels: Optional[dict[str, Optional[str]]] = None
    ) -> list[Any]:
        """
        List objects.

        Args:
            namespace: Kubernetes namespace
            labels: Label selector dict; a None value matches label existence

        Returns:
            List of objects
        """
        result = self._call(
            "list",
            namespace=namespace,
            label_selector=label_selector(labels),
        )
        return result.items

    def create(self, body: Any) -> Any:
        """
        Create an object.

        Raises:
            ConflictError: If the object already exists
        """
        return self._call("create", namespace=body.metadata.namespace, body=body)

    def replace(self, body: Any) -> Any:
        """
        Replace an object.

        The body carries the resourceVersion it was read at, so a write based
        on a stale read is rejected by the API server.

        Raises:
            ConflictError: If the object changed since it was read
            NotFoundError: If the object no longer exists
        """
        return self._call(
            "replace",
            name=body.metadata.name,
            namespace=body.metadata.namespace,
            body=body,
        )

    def patch(self, name: str, namespace: str, body: Any) -> Any:
        """Apply a strategic merge patch."""
        return self._call("patch", name=name, namespace=namespace, body=body)

    def delete(self, name: str, namespace: str) -> bool:
        """
        Delete an object.

        Returns:
            True if deleted, False if not found
        """
        try:
            self._call("delete", name, namespace)
            return True
        except NotFoundError:
            return False


class ConfigMapManager(NamespacedResourceManager):
    """Manages ConfigMap operations."""

    kind = "ConfigMap"
    method_suffix = "config_map"

    @staticmethod
    def build_immutable(
        generate_name: str,
        namespace: str,
        data: dict[str, str],
        labels: dict[str, str],
    ) -> V1ConfigMap:
        """Build an immutable ConfigMap with a server-generated name."""
        return V1ConfigMap(
            api_version="v1",
            kind="ConfigMap",
            metadata=V1ObjectMeta(
                generate_name=generate_name,
                namespace=namespace,
                labels=labels,
            ),
            data=data,
            immutable=True,
        )


class ServiceManager(NamespacedResourceManager):
    """Manages Service operations."""

    kind = "Service"
    method_suffix = "service"


class PersistentVolumeClaimManager(NamespacedResourceManager):
    """Manages PersistentVolumeClaim operations."""

    kind = "PersistentVolumeClaim"
    method_suffix = "persistent_volume_claim"


class ServiceAccountManager(NamespacedResourceManager):
    """Manages ServiceAccount operations."""

    kind = "ServiceAccount"
    method_suffix = "service_account"


class RoleManager(NamespacedResourceManager):
    """Manages RBAC Role operations."""

    kind = "Role"
    api_name = "rbac_v1"
    method_suffix = "role"


class RoleBindingManager(NamespacedResourceManager):
    """Manages RBAC RoleBinding operations."""

    kind = "RoleBinding"
    api_name = "rbac_v1"
    method_suffix = "role_binding"


class IngressManager(NamespacedResourceManager):
    """Manages Ingress operations."""

    kind = "Ingress"
    api_name = "networking_v1"
    method_suffix = "ingress"
