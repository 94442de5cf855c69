"""Trillian tree resolution shared by the log components."""

from datetime import timedelta
from typing import Any

from kubernetes.client import V1Container, V1EnvVar, V1EnvVarSource, V1ObjectFieldSelector
from securesign_engine import BaseAction, Context, ReconcileError, Result
from securesign_k8s import EventType, JobManager, JobPhase, labels_for, set_controller_reference

from .constants import CREATETREE_JOB_FORMAT, TREE_CONFIGMAP_FORMAT, TREE_ID_KEY


def trillian_address(instance: Any) -> str:
    return instance.spec.trillian_address or f"trillian-logserver.{instance.namespace}.svc"


class ResolveTreeAction(BaseAction):
    """
    Resolves the Trillian tree a log is stored in.

    An explicit ``spec.treeID`` wins. Otherwise a one-shot Job creates the
    tree and writes its id into a ConfigMap, which is read back here once
    the Job completed. A failed Job is deleted so that the next attempt,
    after the failure backoff, starts a fresh one.
    """

    name = "resolve tree"
    component: str = ""

    def __init__(self, image: str, requeue_after: float = 5.0):
        super().__init__()
        self.image = image
        self.requeue_after = timedelta(seconds=requeue_after)

    def job_name(self, instance: Any) -> str:
        return CREATETREE_JOB_FORMAT.format(self.component, instance.name)

    def config_map_name(self, instance: Any) -> str:
        return TREE_CONFIGMAP_FORMAT.format(self.component, instance.name)

    def can_handle(self, ctx: Context, instance: Any) -> bool:
        if instance.status.tree_id is None:
            return True
        return instance.spec.tree_id is not None and instance.spec.tree_id != instance.status.tree_id

    def handle(self, ctx: Context, instance: Any) -> Result:
        if instance.spec.tree_id is not None:
            instance.status.tree_id = instance.spec.tree_id
            return self.status_update()

        config_map = self.client.config_maps.get(self.config_map_name(instance), instance.namespace)
        if config_map is not None and (config_map.data or {}).get(TREE_ID_KEY):
            instance.status.tree_id = int(config_map.data[TREE_ID_KEY])
            self.record_event(instance, "TreeResolved", f"Trillian tree created: {instance.status.tree_id}")
            return self.status_update()

        job_name = self.job_name(instance)
        job = self.client.jobs.get(job_name, instance.namespace)
        if job is None:
            self.client.jobs.create(self._build_job(instance, job_name))
            self.record_event(instance, "TreeJobCreated", f"Job created: {job_name}")
            return self.requeue(self.requeue_after)

        if JobManager.phase(job) == JobPhase.FAILED:
            # Usually Trillian was not serving yet.
            self.client.jobs.delete(job_name, instance.namespace)
            self.record_event(
                instance, "TreeJobFailed", f"Job {job_name} failed and was deleted", EventType.WARNING
            )
            return self.failed(ReconcileError(f"job {job_name} failed to create a Trillian tree"))
        return self.requeue(self.requeue_after)

    def _build_job(self, instance: Any, job_name: str):
        labels = labels_for(f"{self.component}-createtree", job_name, instance.name)
        container = V1Container(
            name="createtree",
            image=self.image,
            args=[
                f"--admin_server={trillian_address(instance)}:{instance.spec.trillian_port}",
                f"--display_name={self.component}-tree",
                f"--configmap={self.config_map_name(instance)}",
                "--namespace=$(NAMESPACE)",
            ],
            env=[
                V1EnvVar(
                    name="NAMESPACE",
                    value_from=V1EnvVarSource(
                        field_ref=V1ObjectFieldSelector(field_path="metadata.namespace")
                    ),
                )
            ],
        )
        job = JobManager.build(job_name, instance.namespace, labels, [container])
        set_controller_reference(instance.owner_body(), job.metadata)
        return job
