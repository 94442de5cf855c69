"""Trillian tree of the CT log."""

from ..common.tree import ResolveTreeAction as TreeAction
from .constants import COMPONENT


class ResolveTreeAction(TreeAction):
    component = COMPONENT
