"""Kubernetes Job operations."""

from enum import Enum
from typing import Any

from kubernetes.client import V1Job, V1JobSpec, V1ObjectMeta
from kubernetes.client import V1PodSpec, V1PodTemplateSpec

from .errors import NotFoundError
from .resources import NamespacedResourceManager


class JobPhase(str, Enum):
    """Coarse job state."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobManager(NamespacedResourceManager):
    """Manages Kubernetes Job operations."""

    kind = "Job"
    api_name = "batch_v1"
    method_suffix = "job"

    @staticmethod
    def build(
        name: str,
        namespace: str,
        labels: dict[str, str],
        containers: list[Any],
        service_account: str | None = None,
        backoff_limit: int = 3,
    ) -> V1Job:
        """
        Build a run-to-completion Job.

        Args:
            name: Job name
            namespace: Kubernetes namespace
            labels: Labels for the Job and its pod template
            containers: Pod containers
            service_account: Service account the pod runs as
            backoff_limit: Pod retries before the Job is marked failed

        Returns:
            V1Job ready to be created
        """
        return V1Job(
            api_version="batch/v1",
            kind="Job",
            metadata=V1ObjectMeta(
                name=name,
                namespace=namespace,
                labels=dict(labels),
            ),
            spec=V1JobSpec(
                template=V1PodTemplateSpec(
                    metadata=V1ObjectMeta(labels=dict(labels)),
                    spec=V1PodSpec(
                        containers=containers,
                        restart_policy="OnFailure",
                        service_account_name=service_account,
                    ),
                ),
                backoff_limit=backoff_limit,
            ),
        )

    def delete(self, name: str, namespace: str) -> bool:
        """Delete a job together with its pods."""
        try:
            self._call("delete", name, namespace, propagation_policy="Background")
            return True
        except NotFoundError:
            return False

    @staticmethod
    def phase(job: V1Job) -> JobPhase:
        """
        Determine the coarse state of a job.

        Args:
            job: Job as read from the cluster

        Returns:
            JobPhase
        """
        status = job.status
        if status is None:
            return JobPhase.PENDING
        for condition in status.conditions or []:
            if condition.status != "True":
                continue
            if condition.type == "Complete":
                return JobPhase.COMPLETED
            if condition.type == "Failed":
                return JobPhase.FAILED
        if status.succeeded:
            return JobPhase.COMPLETED
        if status.active:
            return JobPhase.RUNNING
        return JobPhase.PENDING
