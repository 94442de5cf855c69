"""Actions shared by every component pipeline."""

from abc import abstractmethod
from datetime import timedelta
from typing import Any, Optional, Sequence

from kubernetes.client import V1Deployment, V1ObjectMeta, V1Service, V1ServicePort, V1ServiceSpec
from securesign_engine import (
    BaseAction,
    ConditionStatus,
    Context,
    DriftDetector,
    PrerequisiteMissingError,
    Reason,
    Resource,
    Result,
)
from securesign_k8s import DeploymentHealthChecker, labels_for, set_controller_reference

from .constants import SERVER_CONDITION


def exposed(instance: Resource) -> bool:
    access = getattr(instance.spec, "external_access", None)
    return access is not None and access.enabled


class InitializeConditionsAction(BaseAction):
    """Marks every tracked condition Pending on a resource seen for the first time."""

    name = "pending"

    def __init__(self, tracked: Sequence[str]):
        super().__init__()
        self.tracked = tuple(tracked)

    def can_handle(self, ctx: Context, instance: Resource) -> bool:
        return any(instance.conditions.find(t) is None for t in self.tracked)

    def handle(self, ctx: Context, instance: Resource) -> Result:
        for condition_type in self.tracked:
            if instance.conditions.find(condition_type) is None:
                instance.conditions.set(
                    condition_type, ConditionStatus.FALSE, Reason.PENDING, "Waiting to be processed"
                )
        return self.status_update()


class DeploymentAction(BaseAction):
    """
    Creates the component Deployment and keeps its owned fields in sync.

    The desired Deployment is synthesized from the current resource on
    every call. When a prerequisite produced by an earlier action is
    missing the action is simply not applicable yet.
    """

    name = "deploy"
    component: str = ""
    deployment_name: str = ""
    condition: str = SERVER_CONDITION

    def __init__(self, image: str):
        super().__init__()
        self.image = image
        self.detector = DriftDetector()

    @abstractmethod
    def desired(self, instance: Any) -> V1Deployment:
        """
        Synthesize the Deployment for ``instance``.

        Raises:
            PrerequisiteMissingError: If a status reference it needs is unset
        """

    def labels(self, instance: Resource) -> dict[str, str]:
        return labels_for(self.component, self.deployment_name, instance.name)

    def _desired(self, instance: Resource) -> Optional[V1Deployment]:
        try:
            deployment = self.desired(instance)
        except PrerequisiteMissingError as e:
            self.logger.debug(f"Not deploying {instance.key} yet: {e}")
            return None
        set_controller_reference(instance.owner_body(), deployment.metadata)
        return deployment

    def can_handle(self, ctx: Context, instance: Resource) -> bool:
        desired = self._desired(instance)
        if desired is None:
            return False
        live = self.client.deployments.get(self.deployment_name, instance.namespace)
        return live is None or self.detector.has_drift(desired, live)

    def handle(self, ctx: Context, instance: Resource) -> Result:
        desired = self._desired(instance)
        if desired is None:
            return self.continue_()

        live = self.client.deployments.get(self.deployment_name, instance.namespace)
        if live is None:
            self.client.deployments.create(desired)
            self.record_event(instance, "DeploymentCreated", f"Deployment created: {self.deployment_name}")
            instance.conditions.set(
                self.condition, ConditionStatus.FALSE, Reason.CREATING, "Deployment created",
            )
            return self.status_update()

        drifts = self.detector.diff(desired, live)
        self.detector.apply(desired, live)
        ctx.check()
        self.client.deployments.replace(live)
        changed = ", ".join(str(d) for d in drifts)
        self.logger.info(f"Updated deployment {instance.namespace}/{self.deployment_name}: {changed}")
        self.record_event(
            instance, "DeploymentUpdated", f"Deployment {self.deployment_name} updated: {changed}"
        )
        instance.conditions.set(
            self.condition, ConditionStatus.FALSE, Reason.CREATING, "Deployment updated",
        )
        return self.status_update()


class ServiceAction(BaseAction):
    """
    Exposes the component Deployment and publishes its in-cluster URL.

    A component with external access enabled gets its URL from the Ingress
    instead.
    """

    name = "service"
    component: str = ""
    service_name: str = ""
    # (name, port, target port)
    ports: Sequence[tuple[str, int, int]] = ()

    def url(self, instance: Resource) -> str:
        return f"http://{self.service_name}.{instance.namespace}.svc"

    def build(self, instance: Resource) -> V1Service:
        labels = labels_for(self.component, self.service_name, instance.name)
        service = V1Service(
            api_version="v1",
            kind="Service",
            metadata=V1ObjectMeta(name=self.service_name, namespace=instance.namespace, labels=labels),
            spec=V1ServiceSpec(
                selector=labels,
                ports=[
                    V1ServicePort(name=name, port=port, target_port=target, protocol="TCP")
                    for name, port, target in self.ports
                ],
            ),
        )
        set_controller_reference(instance.owner_body(), service.metadata)
        return service

    def can_handle(self, ctx: Context, instance: Resource) -> bool:
        if not exposed(instance) and instance.status.url != self.url(instance):
            return True
        return self.client.services.get(self.service_name, instance.namespace) is None

    def handle(self, ctx: Context, instance: Resource) -> Result:
        if self.client.services.get(self.service_name, instance.namespace) is None:
            self.client.services.create(self.build(instance))
            self.record_event(instance, "ServiceCreated", f"Service created: {self.service_name}")
        if not exposed(instance):
            instance.status.url = self.url(instance)
        return self.status_update()


class WaitForServerAction(BaseAction):
    """Flips the server condition to True once the Deployment rolled out."""

    name = "wait for server"
    deployment_name: str = ""
    condition: str = SERVER_CONDITION

    def __init__(self, requeue_after: float = 5.0):
        super().__init__()
        self.requeue_after = timedelta(seconds=requeue_after)
        self.health = DeploymentHealthChecker()

    def can_handle(self, ctx: Context, instance: Resource) -> bool:
        if instance.conditions.is_true(self.condition):
            return False
        return self.client.deployments.get(self.deployment_name, instance.namespace) is not None

    def handle(self, ctx: Context, instance: Resource) -> Result:
        deployment = self.client.deployments.get(self.deployment_name, instance.namespace)
        check = self.health.check(deployment)
        if not check.available:
            self.logger.debug(f"{self.deployment_name} not available yet: {check.message}")
            instance.conditions.set(
                self.condition, ConditionStatus.FALSE, Reason.CREATING, check.message or "Waiting for deployment",
            )
            return self.requeue(self.requeue_after)

        instance.conditions.set(self.condition, ConditionStatus.TRUE, Reason.READY, "Server is running")
        return self.status_update()
