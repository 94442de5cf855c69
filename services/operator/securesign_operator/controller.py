"""Per-kind reconciliation entry point."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from securesign_engine import (
    READY,
    ConditionStatus,
    Context,
    Pipeline,
    PipelineRun,
    Reason,
    Resource,
    ResultKind,
)
from securesign_k8s import ConflictError, EventType, NotFoundError, ObjectKey

logger = logging.getLogger(__name__)


class DirectiveKind(str, Enum):
    """What the work queue does with a key after an invocation."""

    DONE = "done"
    REQUEUE = "requeue"
    ERROR = "error"


@dataclass(frozen=True)
class Directive:
    """Scheduling outcome of one reconciliation."""

    kind: DirectiveKind
    requeue_after: float = 0.0
    error: Optional[BaseException] = None

    @classmethod
    def done(cls) -> "Directive":
        return cls(DirectiveKind.DONE)

    @classmethod
    def requeue(cls, after: float = 0.0) -> "Directive":
        return cls(DirectiveKind.REQUEUE, requeue_after=after)

    @classmethod
    def failed(cls, error: BaseException) -> "Directive":
        return cls(DirectiveKind.ERROR, error=error)


class Controller:
    """
    Reconciles one resource kind.

    Each invocation loads the resource, runs its pipeline once, recomputes
    the aggregate ``Ready`` condition from the tracked conditions and
    persists the status when it changed. The controller holds no state of
    its own between invocations.
    """

    def __init__(
        self,
        kind: type[Resource],
        pipeline: Pipeline,
        tracked: Sequence[str],
        client: Any,
        timeout: Optional[float] = None,
    ):
        """
        Initialize controller.

        Args:
            kind: Resource model class
            pipeline: Ordered actions of the kind
            tracked: Condition types ``Ready`` is aggregated from
            client: Cluster accessor with the kind registered
            timeout: Per-invocation deadline in seconds
        """
        self.kind = kind
        self.pipeline = pipeline
        self.tracked = tuple(tracked)
        self.client = client
        self.timeout = timeout
        self.objects = client.custom(kind.kind_name)

    @property
    def name(self) -> str:
        return self.kind.kind_name

    def reconcile(self, key: ObjectKey) -> Directive:
        """
        Run one reconciliation of ``key``.

        Args:
            key: Namespace and name of the resource

        Returns:
            Directive for the work queue
        """
        body = self.objects.get(key.name, key.namespace)
        if body is None:
            logger.debug(f"{self.name} {key} no longer exists")
            return Directive.done()
        if body.get("metadata", {}).get("deletionTimestamp"):
            # Owned children are removed by the garbage collector.
            return Directive.done()

        instance = self.kind.from_body(body)
        loaded = instance.status_body()

        ctx = Context.with_timeout(self.timeout)
        run = self.pipeline.run(ctx, instance, self.client, self.client.recorder)
        self._update_ready(instance, run)

        if instance.status_body() != loaded:
            try:
                self.objects.replace_status(instance.to_body())
            except ConflictError:
                logger.info(f"{self.name} {key} changed during reconciliation, requeueing")
                return Directive.requeue()
            except NotFoundError:
                return Directive.done()

        directive = self._directive(run)
        logger.info(f"Reconciled {self.name} {key}: {run.action or 'no action'} -> {run.result}")
        return directive

    def _update_ready(self, instance: Resource, run: PipelineRun) -> None:
        ledger = instance.conditions
        ledger.update_ready(self.tracked, instance.metadata.generation)

        result = run.result
        if not result.is_failed or isinstance(result.error, ConflictError):
            return
        message = f"{run.action}: {result.error}"
        self._record_failure(instance, message)
        # Ready only reports a failure while a tracked condition is not True.
        if not ledger.is_true(READY):
            ledger.set(READY, ConditionStatus.FALSE, Reason.FAILURE, message, instance.metadata.generation)

    def _record_failure(self, instance: Resource, message: str) -> None:
        try:
            self.client.recorder.record(
                instance.object_reference(), EventType.WARNING, "ReconcileFailed", message
            )
        except Exception as e:
            logger.warning(f"Could not record failure of {instance.key}: {e}")

    @staticmethod
    def _directive(run: PipelineRun) -> Directive:
        result = run.result
        if result.kind == ResultKind.CONVERGED:
            return Directive.done()
        if result.kind == ResultKind.REQUEUE:
            return Directive.requeue(result.requeue_after.total_seconds())
        if result.kind == ResultKind.FAILED:
            if isinstance(result.error, ConflictError):
                return Directive.requeue()
            return Directive.failed(result.error)
        # Status changes are followed by the next step right away.
        return Directive.requeue()
