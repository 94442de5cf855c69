"""Certificate transparency log pipeline."""

from securesign_engine import Pipeline

from ..common import InitializeConditionsAction
from ..config import Settings
from .certificate import HandleFulcioRootAction
from .constants import TRACKED_CONDITIONS
from .keys import HandleKeysAction
from .rbac import RBACAction
from .server import DeployServerAction, ServerMonitorAction, ServerServiceAction, WaitForCTlogServerAction
from .server_config import ServerConfigAction
from .tree import ResolveTreeAction


def build_pipeline(settings: Settings) -> Pipeline:
    """CTlog actions in bring-up order."""
    wait = settings.wait_for_server_requeue_seconds
    return Pipeline(
        "ctlog",
        [
            lambda: InitializeConditionsAction(TRACKED_CONDITIONS),
            lambda: HandleFulcioRootAction(wait),
            lambda: HandleKeysAction(wait),
            lambda: ResolveTreeAction(settings.createtree_image, wait),
            ServerConfigAction,
            RBACAction,
            lambda: DeployServerAction(settings.ctlog_server_image),
            ServerServiceAction,
            ServerMonitorAction,
            lambda: WaitForCTlogServerAction(wait),
        ],
    )


__all__ = ["TRACKED_CONDITIONS", "build_pipeline"]
