"""Kubernetes Deployment operations."""

from typing import Any, Optional

from kubernetes.client import V1Container, V1Deployment, V1DeploymentSpec, V1LabelSelector
from kubernetes.client import V1ObjectMeta, V1PodSpec, V1PodTemplateSpec

from .resources import NamespacedResourceManager


class DeploymentManager(NamespacedResourceManager):
    """Manages Kubernetes Deployment operations."""

    kind = "Deployment"
    api_name = "apps_v1"
    method_suffix = "deployment"

    @staticmethod
    def build(
        name: str,
        namespace: str,
        labels: dict[str, str],
        containers: list[V1Container],
        volumes: Optional[list[Any]] = None,
        service_account: Optional[str] = None,
        template_annotations: Optional[dict[str, str]] = None,
        replicas: int = 1,
    ) -> V1Deployment:
        """
        Build a single-template Deployment.

        Args:
            name: Deployment name
            namespace: Kubernetes namespace
            labels: Labels for the Deployment, its selector and pod template
            containers: Pod containers
            volumes: Pod volumes
            service_account: Service account the pods run as
            template_annotations: Pod template annotations
            replicas: Desired replica count

        Returns:
            V1Deployment ready to be created
        """
        return V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=V1ObjectMeta(
                name=name,
                namespace=namespace,
                labels=dict(labels),
            ),
            spec=V1DeploymentSpec(
                replicas=replicas,
                selector=V1LabelSelector(match_labels=dict(labels)),
                template=V1PodTemplateSpec(
                    metadata=V1ObjectMeta(
                        labels=dict(labels),
                        annotations=template_annotations or None,
                    ),
                    spec=V1PodSpec(
                        service_account_name=service_account,
                        containers=containers,
                        volumes=volumes or None,
                    ),
                ),
            ),
        )
