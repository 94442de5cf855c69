"""Signing key of the log."""

from datetime import timedelta

from cryptography.hazmat.primitives import serialization
from securesign_engine import (
    BaseAction,
    ConditionStatus,
    Context,
    InvalidConfigurationError,
    Reason,
    Result,
)
from securesign_k8s import SecretManager, labels_for, set_controller_reference

from ..api import CTlog, SecretKeySelector
from ..common.constants import SERVER_CONDITION
from ..common.keys import first_missing, generate_signer_key, public_key_pem
from .constants import (
    COMPONENT,
    KEYS_CONDITION,
    KEYS_SECRET_FORMAT,
    PRIVATE_KEY,
    PUBLIC_KEY,
    SERVER_DEPLOYMENT,
)

REF_FIELDS = ("private_key_ref", "private_key_password_ref", "public_key_ref")


class HandleKeysAction(BaseAction):
    """
    Resolves the key the log signs its tree heads with.

    A key given in the spec is used once its secrets exist, and a missing
    public key is derived from it. Otherwise an ECDSA P-256 key is generated
    into an immutable secret.
    """

    name = "handle keys"

    def __init__(self, requeue_after: float = 5.0):
        super().__init__()
        self.requeue_after = timedelta(seconds=requeue_after)

    @staticmethod
    def _generated(instance: CTlog) -> bool:
        ref = instance.status.private_key_ref
        return ref is not None and ref.name.startswith(KEYS_SECRET_FORMAT.format(instance.name))

    def can_handle(self, ctx: Context, instance: CTlog) -> bool:
        if not instance.conditions.is_true(KEYS_CONDITION):
            return True
        spec, status = instance.spec, instance.status
        if spec.private_key_ref is None:
            return not self._generated(instance)
        if spec.public_key_ref is not None and spec.public_key_ref != status.public_key_ref:
            return True
        return (spec.private_key_ref, spec.private_key_password_ref) != (
            status.private_key_ref,
            status.private_key_password_ref,
        )

    def handle(self, ctx: Context, instance: CTlog) -> Result:
        spec, status = instance.spec, instance.status
        if spec.private_key_ref is None:
            private, public = generate_signer_key()
            secret = self._create_secret(instance, {PRIVATE_KEY: private, PUBLIC_KEY: public})
            status.private_key_ref = SecretKeySelector(name=secret.metadata.name, key=PRIVATE_KEY)
            status.private_key_password_ref = None
            status.public_key_ref = SecretKeySelector(name=secret.metadata.name, key=PUBLIC_KEY)
            message = f"Signer key generated: {secret.metadata.name}"
            self.record_event(instance, "CTlogKeysCreated", message)
        else:
            refs = [getattr(spec, field) for field in REF_FIELDS]
            missing = first_missing(self.client.secrets, instance.namespace, refs)
            if missing is not None:
                instance.conditions.set(
                    KEYS_CONDITION, ConditionStatus.FALSE, Reason.PENDING, f"Waiting for secret {missing}"
                )
                return self.requeue(self.requeue_after)
            try:
                key = self._load(instance)
            except (TypeError, ValueError) as e:
                error = InvalidConfigurationError(f"cannot load private key {spec.private_key_ref}: {e}")
                instance.conditions.set(KEYS_CONDITION, ConditionStatus.FALSE, Reason.FAILURE, str(error))
                return self.failed(error)

            public_ref = spec.public_key_ref
            if public_ref is None:
                secret = self._create_secret(instance, {PUBLIC_KEY: public_key_pem(key)})
                public_ref = SecretKeySelector(name=secret.metadata.name, key=PUBLIC_KEY)
            status.private_key_ref = spec.private_key_ref
            status.private_key_password_ref = spec.private_key_password_ref
            status.public_key_ref = public_ref
            message = f"Using signer key {spec.private_key_ref}"

        instance.conditions.set(KEYS_CONDITION, ConditionStatus.TRUE, Reason.READY, message)
        instance.conditions.set(SERVER_CONDITION, ConditionStatus.FALSE, Reason.PENDING, "Keys changed")
        return self.status_update()

    def _load(self, instance: CTlog):
        spec = instance.spec
        secrets = self.client.secrets
        private = secrets.get_data(instance.namespace, spec.private_key_ref.name, spec.private_key_ref.key)
        password = None
        if spec.private_key_password_ref is not None:
            ref = spec.private_key_password_ref
            password = secrets.get_data(instance.namespace, ref.name, ref.key)
        return serialization.load_pem_private_key(private, password=password)

    def _create_secret(self, instance: CTlog, data: dict[str, bytes]):
        secret = SecretManager.build_immutable(
            KEYS_SECRET_FORMAT.format(instance.name),
            instance.namespace,
            data,
            labels_for(COMPONENT, SERVER_DEPLOYMENT, instance.name),
        )
        set_controller_reference(instance.owner_body(), secret.metadata)
        return self.client.secrets.create(secret)
