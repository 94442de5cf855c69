"""CA certificate resolution."""

import secrets
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from securesign_engine import (
    BaseAction,
    ConditionStatus,
    Context,
    InvalidConfigurationError,
    Reason,
    Result,
)
from securesign_k8s import SecretManager, labels_for, set_controller_reference

from ..api import Fulcio, FulcioCert, SecretKeySelector
from ..common.constants import FULCIO_CA_LABEL, SERVER_CONDITION
from ..common.keys import first_missing, public_key_pem
from .constants import CERT_CONDITION, CERT_SECRET_FORMAT, COMPONENT, SERVER_DEPLOYMENT

CA_VALIDITY = timedelta(days=3650)
REF_FIELDS = ("private_key_ref", "private_key_password_ref", "ca_ref")
SUBJECT_FIELDS = ("organization_name", "organization_email", "common_name")


def build_ca_certificate(key: ec.EllipticCurvePrivateKey, cert: FulcioCert) -> bytes:
    """
    Self-sign a CA certificate for ``key``.

    Args:
        key: CA private key
        cert: Subject configuration

    Returns:
        PEM encoded certificate
    """
    attributes = []
    if cert.common_name:
        attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, cert.common_name))
    if cert.organization_name:
        attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, cert.organization_name))
    if cert.organization_email:
        attributes.append(x509.NameAttribute(NameOID.EMAIL_ADDRESS, cert.organization_email))
    subject = x509.Name(attributes)
    now = datetime.now(timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + CA_VALIDITY)
        .add_extension(x509.BasicConstraints(ca=True, path_length=1), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=False,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .sign(key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM)


class HandleCertAction(BaseAction):
    """
    Resolves the CA Fulcio issues certificates from.

    A CA and key given in the spec are used as is once every referenced
    secret exists. Otherwise a self-signed CA is generated; its private key
    is encrypted with the referenced password or with a random one.
    """

    name = "handle certificate"

    def __init__(self, requeue_after: float = 5.0):
        super().__init__()
        self.requeue_after = timedelta(seconds=requeue_after)

    def can_handle(self, ctx: Context, instance: Fulcio) -> bool:
        status = instance.status.certificate
        if status is None or not instance.conditions.is_true(CERT_CONDITION):
            return True
        spec = instance.spec.certificate
        for field in REF_FIELDS:
            wanted = getattr(spec, field)
            if wanted is not None and wanted != getattr(status, field):
                return True
        if spec.ca_ref is None:
            return any(getattr(spec, f) != getattr(status, f) for f in SUBJECT_FIELDS)
        return False

    def handle(self, ctx: Context, instance: Fulcio) -> Result:
        spec = instance.spec.certificate
        if spec.ca_ref is not None and spec.private_key_ref is None:
            error = InvalidConfigurationError("certificate.caRef requires certificate.privateKeyRef")
            instance.conditions.set(CERT_CONDITION, ConditionStatus.FALSE, Reason.FAILURE, str(error))
            return self.failed(error)

        refs = [getattr(spec, field) for field in REF_FIELDS]
        missing = first_missing(self.client.secrets, instance.namespace, refs)
        if missing is not None:
            instance.conditions.set(
                CERT_CONDITION, ConditionStatus.FALSE, Reason.PENDING, f"Waiting for secret {missing}"
            )
            return self.requeue(self.requeue_after)

        if spec.user_provided:
            instance.status.certificate = spec.model_copy(deep=True)
            message = f"Using CA certificate {spec.ca_ref}"
        else:
            instance.status.certificate = self._generate(instance, spec)
            message = f"CA certificate generated: {instance.status.certificate.ca_ref.name}"
            self.record_event(instance, "FulcioCertUpdated", message)

        instance.conditions.set(CERT_CONDITION, ConditionStatus.TRUE, Reason.READY, message)
        instance.conditions.set(SERVER_CONDITION, ConditionStatus.FALSE, Reason.PENDING, "Certificate changed")
        return self.status_update()

    def _read(self, instance: Fulcio, ref: SecretKeySelector) -> bytes:
        return self.client.secrets.get_data(instance.namespace, ref.name, ref.key)

    def _generate(self, instance: Fulcio, spec: FulcioCert) -> FulcioCert:
        data: dict[str, bytes] = {}
        password_ref = spec.private_key_password_ref
        if spec.private_key_ref is not None:
            password = self._read(instance, password_ref) if password_ref is not None else None
            key = serialization.load_pem_private_key(self._read(instance, spec.private_key_ref), password=password)
        else:
            if password_ref is not None:
                password = self._read(instance, password_ref)
            else:
                password = secrets.token_urlsafe(24).encode()
                data["password"] = password
            key = ec.generate_private_key(ec.SECP256R1())
            data["private"] = key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.BestAvailableEncryption(password),
            )
        data["public"] = public_key_pem(key)
        data["cert"] = build_ca_certificate(key, spec)

        labels = labels_for(COMPONENT, SERVER_DEPLOYMENT, instance.name)
        labels[FULCIO_CA_LABEL] = "cert"
        secret = SecretManager.build_immutable(
            CERT_SECRET_FORMAT.format(instance.name), instance.namespace, data, labels
        )
        set_controller_reference(instance.owner_body(), secret.metadata)
        name = self.client.secrets.create(secret).metadata.name

        effective = spec.model_copy(deep=True)
        effective.ca_ref = SecretKeySelector(name=name, key="cert")
        if spec.private_key_ref is None:
            effective.private_key_ref = SecretKeySelector(name=name, key="private")
        if "password" in data:
            effective.private_key_password_ref = SecretKeySelector(name=name, key="password")
        return effective
