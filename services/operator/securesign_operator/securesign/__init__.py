"""Securesign aggregate pipeline."""

from securesign_engine import Pipeline

from ..common import InitializeConditionsAction
from ..config import Settings
from .actions import (
    EnsureCTlogAction,
    EnsureFulcioAction,
    EnsureRekorAction,
    MirrorCTlogAction,
    MirrorFulcioAction,
    MirrorRekorAction,
)
from .constants import TRACKED_CONDITIONS


def build_pipeline(settings: Settings) -> Pipeline:
    """Securesign actions: own the components first, then mirror their state."""
    return Pipeline(
        "securesign",
        [
            lambda: InitializeConditionsAction(TRACKED_CONDITIONS),
            EnsureRekorAction,
            EnsureFulcioAction,
            EnsureCTlogAction,
            MirrorRekorAction,
            MirrorFulcioAction,
            MirrorCTlogAction,
        ],
    )


__all__ = ["TRACKED_CONDITIONS", "build_pipeline"]
