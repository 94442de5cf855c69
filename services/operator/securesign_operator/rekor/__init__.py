"""Rekor transparency log pipeline."""

from typing import Optional

from securesign_engine import DependencyResolver, Pipeline

from ..common import InitializeConditionsAction
from ..config import Settings
from .constants import TRACKED_CONDITIONS
from .public_key import ResolvePubKeyAction
from .pvc import PvcAction
from .server import (
    DeployServerAction,
    ServerIngressAction,
    ServerMonitorAction,
    ServerServiceAction,
    WaitForRekorServerAction,
)
from .server_config import ServerConfigAction
from .signer import GenerateSignerAction
from .tree import ResolveTreeAction


def build_pipeline(settings: Settings, resolver: Optional[DependencyResolver] = None) -> Pipeline:
    """
    Rekor actions in bring-up order.

    Args:
        settings: Application settings used for images, resolver retries and requeue delays
        resolver: Dependency resolver for the public key, built from settings when omitted

    Returns:
        Pipeline
    """
    wait = settings.wait_for_server_requeue_seconds
    if resolver is None:
        resolver = DependencyResolver(
            attempts=settings.resolver_attempts,
            base_delay=settings.resolver_base_delay_seconds,
            timeout=settings.resolver_timeout_seconds,
        )
    return Pipeline(
        "rekor",
        [
            lambda: InitializeConditionsAction(TRACKED_CONDITIONS),
            GenerateSignerAction,
            lambda: ResolveTreeAction(settings.createtree_image, wait),
            ServerConfigAction,
            PvcAction,
            lambda: DeployServerAction(settings.rekor_server_image),
            ServerServiceAction,
            lambda: ServerIngressAction(settings.ingress_domain),
            ServerMonitorAction,
            lambda: WaitForRekorServerAction(wait),
            lambda: ResolvePubKeyAction(resolver),
        ],
    )


__all__ = ["TRACKED_CONDITIONS", "build_pipeline"]
