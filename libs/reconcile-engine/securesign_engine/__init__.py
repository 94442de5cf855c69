"""
Securesign reconciliation engine.

Ordered action pipelines, status condition ledger, drift detection and
bounded-retry dependency resolution for declarative resources.
"""

__version__ = "0.1.0"

from .action import Action, BaseAction
from .conditions import READY, Condition, ConditionLedger, ConditionStatus, Reason
from .context import Context
from .drift import Drift, DriftDetector, content_hash, derivative_equal, owned_equal
from .errors import (
    DeadlineExceededError,
    DependencyUnavailableError,
    InvalidConfigurationError,
    PrerequisiteMissingError,
    ReconcileError,
)
from .pipeline import Pipeline, PipelineRun
from .resolver import DependencyResolver, UnexpectedResponseError
from .resource import CamelModel, ObjectMeta, Resource, ResourceStatus
from .results import Result, ResultKind

__all__ = [
    # Actions
    "Action",
    "BaseAction",
    "Pipeline",
    "PipelineRun",
    "Result",
    "ResultKind",
    "Context",
    # Conditions
    "READY",
    "Condition",
    "ConditionLedger",
    "ConditionStatus",
    "Reason",
    # Resources
    "CamelModel",
    "ObjectMeta",
    "Resource",
    "ResourceStatus",
    # Drift
    "Drift",
    "DriftDetector",
    "content_hash",
    "derivative_equal",
    "owned_equal",
    # Dependencies
    "DependencyResolver",
    "UnexpectedResponseError",
    # Errors
    "ReconcileError",
    "DependencyUnavailableError",
    "DeadlineExceededError",
    "InvalidConfigurationError",
    "PrerequisiteMissingError",
]
