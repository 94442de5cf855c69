"""Trillian tree of the Rekor log."""

from ..common.tree import ResolveTreeAction as TreeAction
from .constants import COMPONENT


class ResolveTreeAction(TreeAction):
    component = COMPONENT
