"""Key material shared by the components that sign."""

from typing import Iterable, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..api import SecretKeySelector


def generate_signer_key() -> tuple[bytes, bytes]:
    """
    Generate an ECDSA P-256 signer key.

    Returns:
        (private key PEM, public key PEM)
    """
    key = ec.generate_private_key(ec.SECP256R1())
    private = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return private, public_key_pem(key)


def public_key_pem(key) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def first_missing(
    secrets, namespace: str, refs: Iterable[Optional[SecretKeySelector]]
) -> Optional[SecretKeySelector]:
    """
    First reference whose secret or key does not exist yet.

    Args:
        secrets: Secret manager
        namespace: Namespace of the referencing resource
        refs: References, unset ones are skipped

    Returns:
        The missing reference or None
    """
    for ref in refs:
        if ref is not None and not secrets.has_key(namespace, ref.name, ref.key):
            return ref
    return None
