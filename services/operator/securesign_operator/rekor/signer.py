"""Signer key resolution."""

from securesign_engine import BaseAction, ConditionStatus, Context, Reason, Result
from securesign_k8s import SecretManager, labels_for, set_controller_reference

from ..api import Rekor, RekorSigner, SecretKeySelector
from ..common.constants import SERVER_CONDITION
from ..common.keys import generate_signer_key
from .constants import (
    COMPONENT,
    PUBLIC_KEY_CONDITION,
    REKOR_PUB_LABEL,
    SERVER_DEPLOYMENT,
    SIGNER_CONDITION,
    SIGNER_SECRET_FORMAT,
)


class GenerateSignerAction(BaseAction):
    """
    Resolves the key Rekor signs its log with.

    The effective signer is mirrored into the status so a later change of
    the spec reference is detected against what is actually deployed.
    """

    name = "generate signer"

    def can_handle(self, ctx: Context, instance: Rekor) -> bool:
        if not instance.conditions.is_true(SIGNER_CONDITION):
            return True
        spec, status = instance.spec.signer, instance.status.signer
        if spec.kms != status.kms:
            return True
        if spec.key_ref is None:
            return spec.uses_secret and status.key_ref is None
        return spec.key_ref != status.key_ref or spec.password_ref != status.password_ref

    def handle(self, ctx: Context, instance: Rekor) -> Result:
        spec = instance.spec.signer
        if not spec.uses_secret:
            instance.status.signer = RekorSigner(kms=spec.kms)
            message = f"Using KMS signer {spec.kms}"
        elif spec.key_ref is not None:
            instance.status.signer = spec.model_copy(deep=True)
            message = f"Using signer key {spec.key_ref}"
        else:
            secret = self._create_key_secret(instance)
            instance.status.signer = RekorSigner(
                kms=spec.kms,
                key_ref=SecretKeySelector(name=secret.metadata.name, key="private"),
            )
            message = f"Signer key generated: {secret.metadata.name}"
            self.record_event(instance, "SignerKeyCreated", message)

        instance.conditions.set(SIGNER_CONDITION, ConditionStatus.TRUE, Reason.READY, message)
        # A new signer invalidates the running server and the public key it published.
        instance.conditions.set(SERVER_CONDITION, ConditionStatus.FALSE, Reason.PENDING, "Signer changed")
        instance.conditions.set(
            PUBLIC_KEY_CONDITION, ConditionStatus.FALSE, Reason.PENDING, "Signer changed"
        )
        instance.status.public_key_ref = None
        return self.status_update()

    def _create_key_secret(self, instance: Rekor):
        private, public = generate_signer_key()
        labels = labels_for(COMPONENT, SERVER_DEPLOYMENT, instance.name)
        labels[REKOR_PUB_LABEL] = "public"
        secret = SecretManager.build_immutable(
            SIGNER_SECRET_FORMAT.format(instance.name),
            instance.namespace,
            {"private": private, "public": public},
            labels,
        )
        set_controller_reference(instance.owner_body(), secret.metadata)
        return self.client.secrets.create(secret)
