"""Fulcio certificate authority pipeline."""

from securesign_engine import Pipeline

from ..common import InitializeConditionsAction
from ..config import Settings
from .certificate import HandleCertAction
from .constants import TRACKED_CONDITIONS
from .server import (
    DeployServerAction,
    ServerIngressAction,
    ServerMonitorAction,
    ServerServiceAction,
    WaitForFulcioServerAction,
)
from .server_config import ServerConfigAction


def build_pipeline(settings: Settings) -> Pipeline:
    """Fulcio actions in bring-up order."""
    wait = settings.wait_for_server_requeue_seconds
    return Pipeline(
        "fulcio",
        [
            lambda: InitializeConditionsAction(TRACKED_CONDITIONS),
            lambda: HandleCertAction(wait),
            ServerConfigAction,
            lambda: DeployServerAction(settings.fulcio_server_image),
            ServerServiceAction,
            lambda: ServerIngressAction(settings.ingress_domain),
            ServerMonitorAction,
            lambda: WaitForFulcioServerAction(wait),
        ],
    )


__all__ = ["TRACKED_CONDITIONS", "build_pipeline"]
