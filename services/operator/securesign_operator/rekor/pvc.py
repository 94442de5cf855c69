"""Attestation storage claim."""

from kubernetes.client import (
    V1ObjectMeta,
    V1PersistentVolumeClaim,
    V1PersistentVolumeClaimSpec,
    V1VolumeResourceRequirements,
)
from securesign_engine import BaseAction, Context, Result
from securesign_k8s import labels_for, set_controller_reference

from ..api import Rekor
from .constants import COMPONENT, PVC_FORMAT, SERVER_DEPLOYMENT


class PvcAction(BaseAction):
    """Uses the claim named in the spec or creates one for the server."""

    name = "pvc"

    def can_handle(self, ctx: Context, instance: Rekor) -> bool:
        if instance.status.pvc_name is None:
            return True
        return instance.spec.pvc.name is not None and instance.spec.pvc.name != instance.status.pvc_name

    def handle(self, ctx: Context, instance: Rekor) -> Result:
        if instance.spec.pvc.name:
            instance.status.pvc_name = instance.spec.pvc.name
            return self.status_update()

        name = PVC_FORMAT.format(instance.name)
        if self.client.pvcs.get(name, instance.namespace) is None:
            self.client.pvcs.create(self._build(instance, name))
            self.record_event(instance, "PersistentVolumeCreated", f"New PersistentVolume created: {name}")
        instance.status.pvc_name = name
        return self.status_update()

    def _build(self, instance: Rekor, name: str) -> V1PersistentVolumeClaim:
        pvc = instance.spec.pvc
        claim = V1PersistentVolumeClaim(
            api_version="v1",
            kind="PersistentVolumeClaim",
            metadata=V1ObjectMeta(
                name=name,
                namespace=instance.namespace,
                labels=labels_for(COMPONENT, SERVER_DEPLOYMENT, instance.name),
            ),
            spec=V1PersistentVolumeClaimSpec(
                access_modes=["ReadWriteOnce"],
                storage_class_name=pvc.storage_class,
                resources=V1VolumeResourceRequirements(requests={"storage": pvc.size}),
            ),
        )
        # A retained claim outlives the Rekor resource.
        if not pvc.retain:
            set_controller_reference(instance.owner_body(), claim.metadata)
        return claim
