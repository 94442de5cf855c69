"""Building blocks shared by the component pipelines."""

from .actions import DeploymentAction, InitializeConditionsAction, ServiceAction, WaitForServerAction
from .constants import CONFIG_HASH_ANNOTATION, METRICS_PORT, SERVER_CONDITION
from .ingress import IngressAction
from .monitoring import MonitorAction

__all__ = [
    "InitializeConditionsAction",
    "DeploymentAction",
    "ServiceAction",
    "IngressAction",
    "MonitorAction",
    "WaitForServerAction",
    "CONFIG_HASH_ANNOTATION",
    "METRICS_PORT",
    "SERVER_CONDITION",
]
