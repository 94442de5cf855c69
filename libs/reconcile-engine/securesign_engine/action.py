"""Reconciliation actions."""

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Generic, TypeVar

from securesign_k8s import EventType

from .context import Context
from .resource import Resource
from .results import Result

T = TypeVar("T", bound=Resource)


class Action(ABC, Generic[T]):
    """
    One ordered, idempotent step of a reconciliation pipeline.

    ``can_handle`` must be a pure predicate over the resource and the live
    cluster: it is evaluated on every invocation and may not write. An
    absent prerequisite means "not applicable yet", never an error.
    """

    name: str = ""

    def __init__(self) -> None:
        self.client: Any = None
        self.recorder: Any = None
        self.logger: logging.Logger = logging.getLogger(__name__)

    def inject(self, client: Any, recorder: Any, logger: logging.Logger) -> None:
        """
        Hand the collaborators of this invocation to the action.

        Args:
            client: Cluster accessor
            recorder: Event sink
            logger: Logger scoped to the action
        """
        self.client = client
        self.recorder = recorder
        self.logger = logger

    @abstractmethod
    def can_handle(self, ctx: Context, instance: T) -> bool:
        """Whether this action has work to do for ``instance``."""

    @abstractmethod
    def handle(self, ctx: Context, instance: T) -> Result:
        """Do the work, mutating ``instance.status`` and/or cluster objects."""


class BaseAction(Action[T]):
    """Action with the result and event helpers every concrete action uses."""

    def continue_(self) -> Result:
        return Result.continue_()

    def status_update(self) -> Result:
        return Result.status_changed()

    def requeue(self, after: timedelta | float) -> Result:
        return Result.requeue(after)

    def failed(self, error: BaseException) -> Result:
        self.logger.error(f"{self.name} failed: {error}")
        return Result.failed(error)

    def record_event(
        self,
        instance: T,
        reason: str,
        message: str,
        event_type: EventType = EventType.NORMAL,
    ) -> None:
        """Record an event against ``instance``. Never raises."""
        if self.recorder is None:
            return
        try:
            self.recorder.record(instance.object_reference(), event_type, reason, message)
        except Exception as e:
            self.logger.warning(f"Could not record event {reason}: {e}")
