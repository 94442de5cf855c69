"""Public key resolution from the running Rekor server."""

from typing import Optional

from securesign_engine import BaseAction, ConditionStatus, Context, DependencyResolver, Reason, Result
from securesign_k8s import SecretManager, labels_for, set_controller_reference

from ..api import Rekor, SecretKeySelector
from ..common.constants import SERVER_CONDITION
from .constants import (
    COMPONENT,
    PUBLIC_KEY_CONDITION,
    PUBLIC_KEY_PATH,
    PUBLIC_SECRET_FORMAT,
    REKOR_PUB_LABEL,
    SERVER_DEPLOYMENT,
)


class ResolvePubKeyAction(BaseAction):
    """
    Publishes the public key of the running log in an immutable secret.

    The key is only known once the server answers, so it is fetched through
    the dependency resolver. A previously discovered secret holding a
    different key is deleted and replaced, never edited in place.
    """

    name = "resolve public key"

    def __init__(self, resolver: Optional[DependencyResolver] = None):
        super().__init__()
        self.resolver = resolver or DependencyResolver()

    def can_handle(self, ctx: Context, instance: Rekor) -> bool:
        if not instance.conditions.is_true(SERVER_CONDITION):
            return False
        ref = instance.status.public_key_ref
        if ref is None:
            return True
        return not self.client.secrets.has_key(instance.namespace, ref.name, ref.key)

    def handle(self, ctx: Context, instance: Rekor) -> Result:
        discovered = self.client.secrets.find_by_label(instance.namespace, REKOR_PUB_LABEL)
        selector = None
        if discovered is not None:
            key = (discovered.metadata.labels or {}).get(REKOR_PUB_LABEL)
            if key:
                selector = SecretKeySelector(name=discovered.metadata.name, key=key)

        # The public half generated next to the private key needs no lookup.
        key_ref = instance.status.signer.key_ref
        if selector is not None and key_ref is not None and selector.name == key_ref.name:
            return self._resolved(instance, selector)

        url = f"http://{SERVER_DEPLOYMENT}.{instance.namespace}.svc{PUBLIC_KEY_PATH}"
        public_key = self.resolver.fetch(ctx, url)

        if selector is not None:
            current = self.client.secrets.get_data(instance.namespace, selector.name, selector.key)
            if current == public_key:
                return self._resolved(instance, selector)
            self.client.secrets.delete(selector.name, instance.namespace)
            self.record_event(
                instance, "PublicKeySecretDeleted", f"Secret with public key deleted: {selector.name}"
            )

        labels = labels_for(COMPONENT, SERVER_DEPLOYMENT, instance.name)
        labels[REKOR_PUB_LABEL] = "public"
        secret = SecretManager.build_immutable(
            PUBLIC_SECRET_FORMAT.format(instance.name),
            instance.namespace,
            {"public": public_key},
            labels,
        )
        set_controller_reference(instance.owner_body(), secret.metadata)
        created = self.client.secrets.create(secret)
        self.record_event(
            instance, "PublicKeySecretCreated", f"New Rekor public key created: {created.metadata.name}"
        )
        return self._resolved(instance, SecretKeySelector(name=created.metadata.name, key="public"))

    def _resolved(self, instance: Rekor, selector: SecretKeySelector) -> Result:
        instance.status.public_key_ref = selector
        instance.conditions.set(
            PUBLIC_KEY_CONDITION, ConditionStatus.TRUE, Reason.READY, f"Public key stored in {selector.name}"
        )
        return self.status_update()
