"""Fulcio certificate authority kind."""

from typing import ClassVar, Optional

from pydantic import Field
from securesign_engine import CamelModel, Resource, ResourceStatus

from .common import GROUP, VERSION, ExternalAccess, LocalObjectReference, MonitoringConfig, SecretKeySelector


class OIDCIssuer(CamelModel):
    """An identity provider Fulcio accepts tokens from."""

    issuer: str = Field(alias="Issuer")
    issuer_url: str = Field(alias="IssuerURL")
    client_id: str = Field(alias="ClientID")
    type: str = Field(default="email", alias="Type")


class FulcioConfig(CamelModel):
    oidc_issuers: list[OIDCIssuer] = Field(default_factory=list, alias="OIDCIssuers")

    def server_config(self) -> dict:
        """Render the configuration file the server reads, keyed by issuer URL."""
        return {
            "OIDCIssuers": {
                issuer.issuer_url: {
                    "IssuerURL": issuer.issuer_url,
                    "ClientID": issuer.client_id,
                    "Type": issuer.type,
                }
                for issuer in self.oidc_issuers
            }
        }


class FulcioCert(CamelModel):
    """
    CA certificate configuration.

    When ``ca_ref`` and ``private_key_ref`` are given the referenced material
    is used as is; otherwise a self-signed CA is generated from the subject
    fields, encrypted with ``private_key_password_ref`` when set.
    """

    organization_name: Optional[str] = None
    organization_email: Optional[str] = None
    common_name: Optional[str] = None
    private_key_ref: Optional[SecretKeySelector] = None
    private_key_password_ref: Optional[SecretKeySelector] = None
    ca_ref: Optional[SecretKeySelector] = None

    @property
    def user_provided(self) -> bool:
        return self.ca_ref is not None and self.private_key_ref is not None


class FulcioSpec(CamelModel):
    config: FulcioConfig = Field(default_factory=FulcioConfig)
    certificate: FulcioCert = Field(default_factory=FulcioCert)
    external_access: ExternalAccess = Field(default_factory=ExternalAccess)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)


class FulcioStatus(ResourceStatus):
    certificate: Optional[FulcioCert] = None
    server_config_ref: Optional[LocalObjectReference] = None
    url: Optional[str] = None


class Fulcio(Resource):
    """A Fulcio code-signing certificate authority."""

    group: ClassVar[str] = GROUP
    version: ClassVar[str] = VERSION
    kind_name: ClassVar[str] = "Fulcio"
    plural: ClassVar[str] = "fulcios"

    spec: FulcioSpec = Field(default_factory=FulcioSpec)
    status: FulcioStatus = Field(default_factory=FulcioStatus)
