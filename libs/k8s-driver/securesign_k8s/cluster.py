"""Kubernetes API connection of the operator."""

import logging
from pathlib import Path
from typing import Optional

from kubernetes import client, config
from kubernetes.client import (
    ApiClient,
    AppsV1Api,
    BatchV1Api,
    CoreV1Api,
    CustomObjectsApi,
    NetworkingV1Api,
    RbacAuthorizationV1Api,
)

from .models import ClusterConfig

logger = logging.getLogger(__name__)


class ClusterConnection:
    """
    API handles for the one cluster the operator runs against.

    Credentials come from the configured kubeconfig or, when none is set,
    from the service account of the operator pod.
    """

    def __init__(self, cluster_config: ClusterConfig):
        """
        Initialize cluster connection.

        Args:
            cluster_config: Cluster configuration

        Raises:
            ValueError: If no usable credentials are found
        """
        self.config = cluster_config
        self._api_client: Optional[ApiClient] = self._load()
        self.core_v1 = CoreV1Api(self._api_client)
        self.apps_v1 = AppsV1Api(self._api_client)
        self.batch_v1 = BatchV1Api(self._api_client)
        self.networking_v1 = NetworkingV1Api(self._api_client)
        self.rbac_v1 = RbacAuthorizationV1Api(self._api_client)
        self.custom_objects = CustomObjectsApi(self._api_client)

    def _load(self) -> ApiClient:
        try:
            if self.config.kubeconfig_path:
                path = Path(self.config.kubeconfig_path).expanduser()
                config.load_kube_config(config_file=str(path), context=self.config.context)
                logger.info(f"Using kubeconfig {path} (context {self.config.context or 'current'})")
            else:
                config.load_incluster_config()
                logger.info("Using in-cluster service account")
        except Exception as e:
            raise ValueError(f"Failed to initialize cluster connection: {e}") from e
        return ApiClient()

    @property
    def api_client(self) -> ApiClient:
        if self._api_client is None:
            raise RuntimeError("Cluster connection closed")
        return self._api_client

    def server_version(self) -> str:
        """
        Version of the API server, e.g. ``v1.29.2``.

        Raises:
            ApiException: If the server cannot be reached
        """
        return client.VersionApi(self.api_client).get_code().git_version

    def close(self) -> None:
        if self._api_client is not None:
            self._api_client.close()
            self._api_client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
