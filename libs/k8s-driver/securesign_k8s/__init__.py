"""Securesign Kubernetes Driver - cluster accessor for the reconciliation engine."""

from .accessor import ClusterAccessor
from .cluster import ClusterConnection
from .custom_objects import CustomObjectManager
from .deployments import DeploymentManager
from .errors import ClusterError, ConflictError, NotFoundError, TransientError, classify
from .events import EventRecorder
from .health import DeploymentHealthChecker, HealthCheckResult, HealthStatus
from .jobs import JobManager, JobPhase
from .meta import (
    controller_reference,
    label_selector,
    labels_for,
    labels_for_component,
    set_controller_reference,
)
from .models import ClusterConfig, EventType, ObjectKey, ObjectReference, WatchEvent
from .resources import (
    ConfigMapManager,
    IngressManager,
    NamespacedResourceManager,
    PersistentVolumeClaimManager,
    RoleBindingManager,
    RoleManager,
    ServiceAccountManager,
    ServiceManager,
)
from .secrets import SecretManager
from .watch import ResourceWatcher, instance_label_keys, owner_keys

__version__ = "0.1.0"

__all__ = [
    # Connection
    "ClusterConnection",
    "ClusterAccessor",
    # Resource managers
    "NamespacedResourceManager",
    "DeploymentManager",
    "JobManager",
    "JobPhase",
    "SecretManager",
    "ConfigMapManager",
    "ServiceManager",
    "PersistentVolumeClaimManager",
    "IngressManager",
    "ServiceAccountManager",
    "RoleManager",
    "RoleBindingManager",
    "CustomObjectManager",
    # Events
    "EventRecorder",
    # Health checking
    "DeploymentHealthChecker",
    "HealthCheckResult",
    "HealthStatus",
    # Watch
    "ResourceWatcher",
    "owner_keys",
    "instance_label_keys",
    # Errors
    "ClusterError",
    "NotFoundError",
    "ConflictError",
    "TransientError",
    "classify",
    # Metadata helpers
    "labels_for",
    "labels_for_component",
    "label_selector",
    "controller_reference",
    "set_controller_reference",
    # Models
    "ClusterConfig",
    "EventType",
    "ObjectKey",
    "ObjectReference",
    "WatchEvent",
]
