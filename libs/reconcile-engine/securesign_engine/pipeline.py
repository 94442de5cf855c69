"""Ordered action pipeline."""

import dataclasses
import logging
from typing import Any, Callable, Generic, Sequence

from .action import Action, T
from .context import Context
from .errors import DeadlineExceededError
from .results import Result, ResultKind

logger = logging.getLogger(__name__)

ActionFactory = Callable[[], Action[T]]


@dataclasses.dataclass(frozen=True)
class PipelineRun:
    """Result of one pipeline run and the action that produced it."""

    result: Result
    action: str | None = None

    @property
    def converged(self) -> bool:
        return self.result.kind == ResultKind.CONVERGED


class Pipeline(Generic[T]):
    """
    Runs an ordered list of actions against one resource.

    At most one action executes ``handle`` per run: the first applicable
    action whose result is not ``CONTINUE`` ends the run. When no action
    applies the resource has converged. The order is fixed per kind and
    encodes the dependency order of the bring-up.
    """

    def __init__(self, name: str, factories: Sequence[ActionFactory]):
        """
        Initialize pipeline.

        Args:
            name: Pipeline name, used as the parent logger name of actions
            factories: Zero-argument callables building each action; a fresh
                action is built for every run so no state leaks between runs
        """
        self.name = name
        self.factories = list(factories)

    def actions(self) -> list[Action[T]]:
        return [factory() for factory in self.factories]

    def action_names(self) -> list[str]:
        return [action.name for action in self.actions()]

    def run(self, ctx: Context, instance: T, client: Any, recorder: Any) -> PipelineRun:
        """
        Run the pipeline once.

        Errors raised by an action are caught here and turned into a
        ``FAILED`` result; they never escape to the caller.

        Args:
            ctx: Invocation context
            instance: Resource to reconcile, mutated in place
            client: Cluster accessor injected into actions
            recorder: Event sink injected into actions

        Returns:
            PipelineRun
        """
        base_logger = logging.getLogger(f"{__name__}.{self.name}")
        for action in self.actions():
            if ctx.expired:
                return PipelineRun(
                    Result.failed(DeadlineExceededError(f"deadline exceeded before {action.name}")),
                    action.name,
                )

            action.inject(client, recorder, base_logger.getChild(action.name.replace(" ", "-")))
            base_logger.debug(f"Evaluating {action.name} for {instance.key}")

            try:
                applicable = action.can_handle(ctx, instance)
            except Exception as e:
                logger.error(f"{action.name}: can_handle raised for {instance.key}: {e}", exc_info=True)
                return PipelineRun(Result.failed(e), action.name)
            if not applicable:
                continue

            base_logger.info(f"Executing {action.name} for {instance.key}")
            try:
                result = action.handle(ctx, instance)
            except Exception as e:
                logger.error(f"{action.name}: handle raised for {instance.key}: {e}", exc_info=True)
                return PipelineRun(Result.failed(e), action.name)

            if result is None or result.is_continue:
                continue
            return PipelineRun(result, action.name)

        return PipelineRun(Result.converged())
