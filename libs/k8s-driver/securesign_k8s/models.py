"""Kubernetes resource models for the securesign operator."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Kubernetes event type."""

    NORMAL = "Normal"
    WARNING = "Warning"


class ClusterConfig(BaseModel):
    """Cluster connection configuration."""

    kubeconfig_path: Optional[str] = None
    context: Optional[str] = None  # Specific context to use
    namespace: Optional[str] = None  # None watches all namespaces


@dataclass(frozen=True)
class ObjectKey:
    """Namespace-qualified name of an object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ObjectReference:
    """Reference used as the involved object of recorded events."""

    api_version: str
    kind: str
    namespace: str
    name: str
    uid: Optional[str] = None
    resource_version: Optional[str] = None


class WatchEvent(BaseModel):
    """Kubernetes watch event."""

    event_type: str  # ADDED, MODIFIED, DELETED, ERROR
    resource_type: str
    name: str
    namespace: str
    labels: dict[str, str] = Field(default_factory=dict)
    owner_references: list[dict[str, Any]] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
