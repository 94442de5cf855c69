"""Base models for reconciled custom resources."""

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from securesign_k8s import ObjectKey, ObjectReference

from .conditions import ConditionLedger


class CamelModel(BaseModel):
    """Model serialized with camelCase keys, as the API server stores it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ObjectMeta(CamelModel):
    """The subset of object metadata the engine reads and round-trips."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str
    namespace: str = "default"
    uid: Optional[str] = None
    resource_version: Optional[str] = None
    generation: Optional[int] = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    owner_references: list[dict[str, Any]] = Field(default_factory=list)


class ResourceStatus(CamelModel):
    """Status block shared by every kind: the condition ledger."""

    conditions: ConditionLedger = Field(default_factory=ConditionLedger)


class Resource(CamelModel):
    """
    A declarative object under reconciliation.

    Subclasses declare ``spec`` and ``status`` fields and the API
    coordinates of the kind.
    """

    group: ClassVar[str] = ""
    version: ClassVar[str] = ""
    kind_name: ClassVar[str] = ""
    plural: ClassVar[str] = ""

    api_version: str = ""
    kind: str = ""
    metadata: ObjectMeta

    def model_post_init(self, __context: Any) -> None:
        if not self.api_version:
            self.api_version = f"{self.group}/{self.version}"
        if not self.kind:
            self.kind = self.kind_name

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.metadata.namespace, self.metadata.name)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def conditions(self) -> ConditionLedger:
        return self.status.conditions  # type: ignore[attr-defined]

    def object_reference(self) -> ObjectReference:
        """Reference used when recording events against this resource."""
        return ObjectReference(
            api_version=self.api_version,
            kind=self.kind,
            namespace=self.metadata.namespace,
            name=self.metadata.name,
            uid=self.metadata.uid,
            resource_version=self.metadata.resource_version,
        )

    def owner_body(self) -> dict[str, Any]:
        """Minimal body used to build controller references on children."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": {"name": self.metadata.name, "uid": self.metadata.uid or ""},
        }

    def to_body(self) -> dict[str, Any]:
        """Serialize for the API server."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    @classmethod
    def from_body(cls, body: dict[str, Any]):
        """Parse an API server body."""
        return cls.model_validate(body)

    def status_body(self) -> dict[str, Any]:
        return self.status.model_dump(by_alias=True, exclude_none=True, mode="json")  # type: ignore[attr-defined]
