"""Actions owning the component resources of a Securesign."""

from typing import Any, Optional

from securesign_engine import (
    READY,
    BaseAction,
    ConditionStatus,
    Context,
    Reason,
    Resource,
    Result,
    derivative_equal,
)
from securesign_engine.drift import to_dict
from securesign_k8s import controller_reference, labels_for_component

from ..api import CTlog, Fulcio, Rekor, Securesign
from .constants import CTLOG_CONDITION, FULCIO_CONDITION, REKOR_CONDITION


class EnsureComponentAction(BaseAction):
    """
    Creates the component resource owned by a Securesign and keeps its spec
    in line with the matching section of the Securesign spec.

    The comparison is derivative: fields the section sets must match, while
    fields it leaves out keep whatever the component resource holds. Removing
    a field from the Securesign spec therefore does not remove it from the
    component; edit or recreate the component resource to drop it.
    """

    kind: type[Resource] = Resource
    spec_field: str = ""
    condition: str = ""

    def desired_spec(self, instance: Securesign) -> dict[str, Any]:
        section = getattr(instance.spec, self.spec_field)
        return section.model_dump(by_alias=True, exclude_none=True, mode="json")

    def _live(self, instance: Securesign) -> Optional[dict[str, Any]]:
        return self.client.custom(self.kind.kind_name).get(instance.name, instance.namespace)

    def can_handle(self, ctx: Context, instance: Securesign) -> bool:
        live = self._live(instance)
        return live is None or not derivative_equal(self.desired_spec(instance), live.get("spec") or {})

    def handle(self, ctx: Context, instance: Securesign) -> Result:
        kind = self.kind.kind_name
        manager = self.client.custom(kind)
        live = self._live(instance)
        if live is None:
            body = {
                "apiVersion": manager.api_version,
                "kind": kind,
                "metadata": {
                    "name": instance.name,
                    "namespace": instance.namespace,
                    "labels": labels_for_component(self.spec_field, instance.name),
                    "ownerReferences": [to_dict(controller_reference(instance.owner_body()))],
                },
                "spec": self.desired_spec(instance),
            }
            manager.create(body)
            self.record_event(instance, f"{kind}Created", f"{kind} created: {instance.name}")
            instance.conditions.set(self.condition, ConditionStatus.FALSE, Reason.CREATING, f"{kind} created")
            return self.status_update()

        live["spec"] = self.desired_spec(instance)
        manager.replace(live)
        self.record_event(instance, f"{kind}Updated", f"{kind} updated: {instance.name}")
        instance.conditions.set(self.condition, ConditionStatus.FALSE, Reason.CREATING, f"{kind} updated")
        return self.status_update()


class EnsureRekorAction(EnsureComponentAction):
    name = "ensure rekor"
    kind = Rekor
    spec_field = "rekor"
    condition = REKOR_CONDITION


class EnsureFulcioAction(EnsureComponentAction):
    name = "ensure fulcio"
    kind = Fulcio
    spec_field = "fulcio"
    condition = FULCIO_CONDITION


class EnsureCTlogAction(EnsureComponentAction):
    name = "ensure ctlog"
    kind = CTlog
    spec_field = "ctlog"
    condition = CTLOG_CONDITION


class MirrorComponentAction(BaseAction):
    """Copies the Ready state and URL of a component resource into the Securesign status."""

    kind: type[Resource] = Resource
    status_field: str = ""
    condition: str = ""

    def _component(self, instance: Securesign) -> Optional[Resource]:
        body = self.client.custom(self.kind.kind_name).get(instance.name, instance.namespace)
        return self.kind.from_body(body) if body is not None else None

    @staticmethod
    def _observed(component: Resource) -> tuple[ConditionStatus, str, str]:
        ready = component.conditions.find(READY)
        if ready is None:
            return ConditionStatus.FALSE, Reason.PENDING.value, "Waiting for component status"
        return ready.status, ready.reason, ready.message

    def can_handle(self, ctx: Context, instance: Securesign) -> bool:
        component = self._component(instance)
        if component is None:
            return False
        status, reason, message = self._observed(component)
        current = instance.conditions.find(self.condition)
        if current is None or (current.status, current.reason, current.message) != (status, reason, message):
            return True
        return getattr(instance.status, self.status_field).url != component.status.url

    def handle(self, ctx: Context, instance: Securesign) -> Result:
        component = self._component(instance)
        if component is None:
            return self.continue_()
        status, reason, message = self._observed(component)
        instance.conditions.set(self.condition, status, reason, message)
        getattr(instance.status, self.status_field).url = component.status.url
        return self.status_update()


class MirrorRekorAction(MirrorComponentAction):
    name = "mirror rekor"
    kind = Rekor
    status_field = "rekor_status"
    condition = REKOR_CONDITION


class MirrorFulcioAction(MirrorComponentAction):
    name = "mirror fulcio"
    kind = Fulcio
    status_field = "fulcio_status"
    condition = FULCIO_CONDITION


class MirrorCTlogAction(MirrorComponentAction):
    name = "mirror ctlog"
    kind = CTlog
    status_field = "ctlog_status"
    condition = CTLOG_CONDITION
