"""Custom resource kinds managed by the operator."""

from .common import GROUP, VERSION, ExternalAccess, LocalObjectReference, MonitoringConfig, SecretKeySelector
from .ctlog import CTlog, CTlogSpec, CTlogStatus
from .fulcio import Fulcio, FulcioCert, FulcioConfig, FulcioSpec, FulcioStatus, OIDCIssuer
from .rekor import KMS_MEMORY, KMS_SECRET, Pvc, Rekor, RekorSigner, RekorSpec, RekorStatus
from .securesign import ComponentStatus, Securesign, SecuresignSpec, SecuresignStatus

KINDS = (Rekor, Fulcio, CTlog, Securesign)

__all__ = [
    "GROUP",
    "KMS_MEMORY",
    "KMS_SECRET",
    "VERSION",
    "KINDS",
    "LocalObjectReference",
    "SecretKeySelector",
    "ExternalAccess",
    "MonitoringConfig",
    "Rekor",
    "RekorSpec",
    "RekorStatus",
    "RekorSigner",
    "Pvc",
    "Fulcio",
    "FulcioSpec",
    "FulcioStatus",
    "FulcioCert",
    "FulcioConfig",
    "OIDCIssuer",
    "CTlog",
    "CTlogSpec",
    "CTlogStatus",
    "Securesign",
    "SecuresignSpec",
    "SecuresignStatus",
    "ComponentStatus",
]
