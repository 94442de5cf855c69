"""Rekor transparency log kind."""

from typing import ClassVar, Optional

from pydantic import Field
from securesign_engine import CamelModel, Resource, ResourceStatus

from .common import GROUP, VERSION, ExternalAccess, LocalObjectReference, MonitoringConfig, SecretKeySelector

KMS_SECRET = "secret"
KMS_MEMORY = "memory"


class RekorSigner(CamelModel):
    """
    Signer configuration.

    ``kms`` is ``secret`` (a private key held in a Secret), ``memory`` (an
    ephemeral in-process key) or a go-cloud style KMS URI.
    """

    kms: str = KMS_SECRET
    password_ref: Optional[SecretKeySelector] = None
    key_ref: Optional[SecretKeySelector] = None

    @property
    def uses_secret(self) -> bool:
        return self.kms in (KMS_SECRET, "")


class Pvc(CamelModel):
    """Attestation storage claim. ``name`` selects an existing claim."""

    name: Optional[str] = None
    size: str = "5Gi"
    retain: bool = True
    storage_class: Optional[str] = None


class RekorSpec(CamelModel):
    tree_id: Optional[int] = Field(default=None, alias="treeID")
    signer: RekorSigner = Field(default_factory=RekorSigner)
    pvc: Pvc = Field(default_factory=Pvc)
    trillian_address: Optional[str] = None
    trillian_port: int = 8091
    external_access: ExternalAccess = Field(default_factory=ExternalAccess)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)


class RekorStatus(ResourceStatus):
    server_config_ref: Optional[LocalObjectReference] = None
    signer: RekorSigner = Field(default_factory=RekorSigner)
    pvc_name: Optional[str] = None
    url: Optional[str] = None
    tree_id: Optional[int] = Field(default=None, alias="treeID")
    public_key_ref: Optional[SecretKeySelector] = None


class Rekor(Resource):
    """A Rekor transparency log server backed by a Trillian tree."""

    group: ClassVar[str] = GROUP
    version: ClassVar[str] = VERSION
    kind_name: ClassVar[str] = "Rekor"
    plural: ClassVar[str] = "rekors"

    spec: RekorSpec = Field(default_factory=RekorSpec)
    status: RekorStatus = Field(default_factory=RekorStatus)
