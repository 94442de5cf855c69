"""Custom resource operations."""

from typing import Any, Optional

from kubernetes.client.exceptions import ApiException

from .cluster import ClusterConnection
from .errors import NotFoundError, classify
from .meta import label_selector
from .resources import read_retry


class CustomObjectManager:
    """Manages one namespaced custom resource kind, including its status subresource."""

    def __init__(
        self,
        cluster: ClusterConnection,
        group: str,
        version: str,
        plural: str,
        kind: str,
    ):
        """
        Initialize custom object manager.

        Args:
            cluster: Cluster connection
            group: API group (e.g. "rhtas.redhat.com")
            version: API version (e.g. "v1alpha1")
            plural: Resource plural (e.g. "rekors")
            kind: Resource kind (e.g. "Rekor")
        """
        self.cluster = cluster
        self.api = cluster.custom_objects
        self.group = group
        self.version = version
        self.plural = plural
        self.kind = kind

    @property
    def api_version(self) -> str:
        """Group/version string used in object bodies."""
        return f"{self.group}/{self.version}"

    def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        try:
            return getattr(self.api, method)(self.group, self.version, *args, **kwargs)
        except ApiException as e:
            raise classify(e) from e

    @read_retry
    def get(self, name: str, namespace: str) -> Optional[dict[str, Any]]:
        """
        Get a custom object.

        Returns:
            Object body or None if not found
        """
        try:
            return self._call("get_namespaced_custom_object", namespace, self.plural, name)
        except NotFoundError:
            return None

    @read_retry
    def list(
        self,
        namespace: Optional[str] = None,
        labels: Optional[dict[str, Optional[str]]] = None,
    ) -> list[dict[str, Any]]:
        """
        List custom objects in one namespace or across the cluster.

        Args:
            namespace: Kubernetes namespace, None for every namespace
            labels: Label selector dict

        Returns:
            List of object bodies
        """
        selector = label_selector(labels)
        if namespace is None:
            result = self._call("list_cluster_custom_object", self.plural, label_selector=selector)
        else:
            result = self._call(
                "list_namespaced_custom_object", namespace, self.plural, label_selector=selector
            )
        return result.get("items", [])

    def create(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create a custom object."""
        body.setdefault("apiVersion", self.api_version)
        body.setdefault("kind", self.kind)
        return self._call(
            "create_namespaced_custom_object",
            body["metadata"]["namespace"],
            self.plural,
            body,
        )

    def replace(self, body: dict[str, Any]) -> dict[str, Any]:
        """
        Replace the spec and metadata of a custom object.

        Raises:
            ConflictError: If the object changed since it was read
        """
        metadata = body["metadata"]
        return self._call(
            "replace_namespaced_custom_object",
            metadata["namespace"],
            self.plural,
            metadata["name"],
            body,
        )

    def replace_status(self, body: dict[str, Any]) -> dict[str, Any]:
        """
        Write the status subresource.

        Raises:
            ConflictError: If the object changed since it was read
        """
        metadata = body["metadata"]
        return self._call(
            "replace_namespaced_custom_object_status",
            metadata["namespace"],
            self.plural,
            metadata["name"],
            body,
        )

    def delete(self, name: str, namespace: str) -> bool:
        """
        Delete a custom object.

        Returns:
            True if deleted, False if not found
        """
        try:
            self._call("delete_namespaced_custom_object", namespace, self.plural, name)
            return True
        except NotFoundError:
            return False
