"""Certificate transparency log kind."""

from typing import ClassVar, Optional

from pydantic import Field
from securesign_engine import CamelModel, Resource, ResourceStatus

from .common import GROUP, VERSION, LocalObjectReference, MonitoringConfig, SecretKeySelector


class CTlogSpec(CamelModel):
    """
    CT log configuration.

    Without ``private_key_ref`` a signing key is generated. Without
    ``root_certificates`` the log trusts every Fulcio CA certificate found
    in the namespace.
    """

    tree_id: Optional[int] = Field(default=None, alias="treeID")
    private_key_ref: Optional[SecretKeySelector] = None
    private_key_password_ref: Optional[SecretKeySelector] = None
    public_key_ref: Optional[SecretKeySelector] = None
    root_certificates: list[SecretKeySelector] = Field(default_factory=list)
    trillian_address: Optional[str] = None
    trillian_port: int = 8091
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)


class CTlogStatus(ResourceStatus):
    server_config_ref: Optional[LocalObjectReference] = None
    private_key_ref: Optional[SecretKeySelector] = None
    private_key_password_ref: Optional[SecretKeySelector] = None
    public_key_ref: Optional[SecretKeySelector] = None
    root_certificates: list[SecretKeySelector] = Field(default_factory=list)
    tree_id: Optional[int] = Field(default=None, alias="treeID")
    url: Optional[str] = None


class CTlog(Resource):
    """A certificate transparency log Fulcio submits its certificates to."""

    group: ClassVar[str] = GROUP
    version: ClassVar[str] = VERSION
    kind_name: ClassVar[str] = "CTlog"
    plural: ClassVar[str] = "ctlogs"

    spec: CTlogSpec = Field(default_factory=CTlogSpec)
    status: CTlogStatus = Field(default_factory=CTlogStatus)
