"""Securesign aggregate kind."""

from typing import ClassVar, Optional

from pydantic import Field
from securesign_engine import CamelModel, Resource, ResourceStatus

from .common import GROUP, VERSION
from .ctlog import CTlogSpec
from .fulcio import FulcioSpec
from .rekor import RekorSpec


class SecuresignSpec(CamelModel):
    rekor: RekorSpec = Field(default_factory=RekorSpec)
    fulcio: FulcioSpec = Field(default_factory=FulcioSpec)
    ctlog: CTlogSpec = Field(default_factory=CTlogSpec)


class ComponentStatus(CamelModel):
    url: Optional[str] = None


class SecuresignStatus(ResourceStatus):
    rekor_status: ComponentStatus = Field(default_factory=ComponentStatus)
    fulcio_status: ComponentStatus = Field(default_factory=ComponentStatus)
    ctlog_status: ComponentStatus = Field(default_factory=ComponentStatus)


class Securesign(Resource):
    """Deploys the whole signing stack by owning one resource per component."""

    group: ClassVar[str] = GROUP
    version: ClassVar[str] = VERSION
    kind_name: ClassVar[str] = "Securesign"
    plural: ClassVar[str] = "securesigns"

    spec: SecuresignSpec = Field(default_factory=SecuresignSpec)
    status: SecuresignStatus = Field(default_factory=SecuresignStatus)
