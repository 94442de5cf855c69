"""Fulcio root certificates the log accepts chains to."""

from datetime import timedelta

from securesign_engine import BaseAction, ConditionStatus, Context, Reason, Result

from ..api import CTlog, SecretKeySelector
from ..common.constants import FULCIO_CA_LABEL, SERVER_CONDITION
from ..common.keys import first_missing
from .constants import CERT_CONDITION


class HandleFulcioRootAction(BaseAction):
    """
    Resolves the root certificates submitted chains must end in.

    Roots listed in the spec are used once every referenced secret exists.
    Otherwise every secret labelled as a Fulcio CA certificate in the
    namespace is trusted, so a regenerated Fulcio CA is picked up as well.
    """

    name = "handle fulcio root"

    def __init__(self, requeue_after: float = 5.0):
        super().__init__()
        self.requeue_after = timedelta(seconds=requeue_after)

    def roots(self, instance: CTlog) -> list[SecretKeySelector]:
        if instance.spec.root_certificates:
            return list(instance.spec.root_certificates)
        labelled = self.client.secrets.list(instance.namespace, {FULCIO_CA_LABEL: None})
        return [
            SecretKeySelector(name=secret.metadata.name, key=secret.metadata.labels[FULCIO_CA_LABEL])
            for secret in sorted(labelled, key=lambda s: s.metadata.name)
        ]

    def can_handle(self, ctx: Context, instance: CTlog) -> bool:
        if not instance.conditions.is_true(CERT_CONDITION):
            return True
        return self.roots(instance) != instance.status.root_certificates

    def handle(self, ctx: Context, instance: CTlog) -> Result:
        roots = self.roots(instance)
        if not roots:
            instance.conditions.set(
                CERT_CONDITION, ConditionStatus.FALSE, Reason.PENDING, "Waiting for a Fulcio CA certificate"
            )
            return self.requeue(self.requeue_after)

        missing = first_missing(self.client.secrets, instance.namespace, roots)
        if missing is not None:
            instance.conditions.set(
                CERT_CONDITION, ConditionStatus.FALSE, Reason.PENDING, f"Waiting for secret {missing}"
            )
            return self.requeue(self.requeue_after)

        instance.status.root_certificates = roots
        message = f"Trusting {', '.join(str(root) for root in roots)}"
        self.record_event(instance, "RootCertificatesUpdated", message)
        instance.conditions.set(CERT_CONDITION, ConditionStatus.TRUE, Reason.READY, message)
        instance.conditions.set(
            SERVER_CONDITION, ConditionStatus.FALSE, Reason.PENDING, "Root certificates changed"
        )
        return self.status_update()
