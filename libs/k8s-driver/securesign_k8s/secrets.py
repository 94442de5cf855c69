"""Kubernetes Secret operations."""

import base64
import logging
from typing import Optional

from kubernetes.client import V1ObjectMeta, V1Secret

from .errors import NotFoundError
from .resources import NamespacedResourceManager, read_retry

logger = logging.getLogger(__name__)


class SecretManager(NamespacedResourceManager):
    """
    Manages Kubernetes Secret operations.

    Secrets the operator discovers (rather than creates) are located by a
    label predicate on every call instead of by a remembered name, so a lost
    reference heals itself on the next lookup.
    """

    kind = "Secret"
    method_suffix = "secret"

    @read_retry
    def find_by_label(self, namespace: str, label: str) -> Optional[V1Secret]:
        """
        Find the first secret carrying ``label``.

        Args:
            namespace: Kubernetes namespace
            label: Label key that must exist on the secret

        Returns:
            The matching secret or None
        """
        result = self._call("list", namespace=namespace, label_selector=label)
        items = sorted(
            result.items,
            key=lambda s: (str(s.metadata.creation_timestamp or ""), s.metadata.name),
        )
        if len(items) > 1:
            logger.warning(
                f"{len(items)} secrets in {namespace} carry label {label}, using {items[0].metadata.name}"
            )
        return items[0] if items else None

    def get_data(self, namespace: str, name: str, key: str) -> bytes:
        """
        Read one decoded value from a secret.

        Args:
            namespace: Kubernetes namespace
            name: Secret name
            key: Key within the secret data

        Returns:
            Decoded bytes

        Raises:
            NotFoundError: If the secret or key does not exist
        """
        secret = self.get(name, namespace)
        if secret is None:
            raise NotFoundError(f"secret {namespace}/{name} not found", 404)
        data = secret.data or {}
        if key not in data:
            raise NotFoundError(f"key {key} not found in secret {namespace}/{name}", 404)
        return base64.b64decode(data[key])

    def has_key(self, namespace: str, name: str, key: str) -> bool:
        """Whether the secret exists and holds ``key``."""
        secret = self.get(name, namespace)
        return secret is not None and key in (secret.data or {})

    @staticmethod
    def build_immutable(
        generate_name: str,
        namespace: str,
        data: dict[str, bytes],
        labels: dict[str, str],
    ) -> V1Secret:
        """
        Build an immutable Secret with a server-generated name.

        Args:
            generate_name: Name prefix
            namespace: Kubernetes namespace
            data: Raw values, base64 encoded here
            labels: Secret labels

        Returns:
            V1Secret ready to be created
        """
        return V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=V1ObjectMeta(
                generate_name=generate_name,
                namespace=namespace,
                labels=labels,
            ),
            data={k: base64.b64encode(v).decode("ascii") for k, v in data.items()},
            type="Opaque",
            immutable=True,
        )
