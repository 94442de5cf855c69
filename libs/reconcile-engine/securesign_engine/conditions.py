"""Status conditions and the ledger that holds them."""

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel
from pydantic.alias_generators import to_camel

READY = "Ready"


class ConditionStatus(str, Enum):
    """Tri-state condition status."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class Reason(str, Enum):
    """Fixed vocabulary of condition reasons."""

    PENDING = "Pending"
    CREATING = "Creating"
    INITIALIZE = "Initialize"
    READY = "Ready"
    FAILURE = "Failure"


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class Condition(BaseModel):
    """A named status entry. Unique by ``type`` within a ledger."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: str
    status: ConditionStatus = ConditionStatus.UNKNOWN
    reason: str = ""
    message: str = ""
    last_transition_time: datetime = Field(default_factory=_now)
    observed_generation: Optional[int] = None


class ConditionLedger(RootModel[list[Condition]]):
    """
    Ordered set of conditions keyed by type.

    ``set`` is an upsert that only moves ``last_transition_time`` when the
    status actually changes, so re-applying the same condition is a no-op
    and reconciliation stays idempotent.
    """

    root: list[Condition] = Field(default_factory=list)

    def __iter__(self) -> Iterator[Condition]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def find(self, condition_type: str) -> Optional[Condition]:
        """Return the condition of ``condition_type`` or None."""
        for condition in self.root:
            if condition.type == condition_type:
                return condition
        return None

    def set(
        self,
        condition_type: str,
        status: ConditionStatus,
        reason: str | Reason,
        message: str = "",
        observed_generation: Optional[int] = None,
    ) -> bool:
        """
        Upsert a condition.

        Args:
            condition_type: Condition type
            status: New status
            reason: Reason code
            message: Human readable message
            observed_generation: Generation of the spec the condition reflects

        Returns:
            True if anything changed
        """
        reason = reason.value if isinstance(reason, Reason) else reason
        existing = self.find(condition_type)
        if existing is None:
            self.root.append(
                Condition(
                    type=condition_type,
                    status=status,
                    reason=reason,
                    message=message,
                    observed_generation=observed_generation,
                )
            )
            return True

        changed = False
        if existing.status != status:
            existing.status = status
            existing.last_transition_time = _now()
            changed = True
        if existing.reason != reason:
            existing.reason = reason
            changed = True
        if existing.message != message:
            existing.message = message
            changed = True
        if observed_generation is not None and existing.observed_generation != observed_generation:
            existing.observed_generation = observed_generation
            changed = True
        return changed

    def remove(self, condition_type: str) -> bool:
        """Remove a condition. Returns True if it existed."""
        before = len(self.root)
        self.root = [c for c in self.root if c.type != condition_type]
        return len(self.root) != before

    def is_true(self, condition_type: str) -> bool:
        condition = self.find(condition_type)
        return condition is not None and condition.status == ConditionStatus.TRUE

    def is_false(self, condition_type: str) -> bool:
        condition = self.find(condition_type)
        return condition is not None and condition.status == ConditionStatus.FALSE

    def reason_of(self, condition_type: str) -> Optional[str]:
        condition = self.find(condition_type)
        return condition.reason if condition else None

    def aggregate(self, tracked: Iterable[str]) -> tuple[ConditionStatus, Reason, str]:
        """
        Derive the aggregate ``Ready`` state from the tracked conditions.

        Ready is True iff every tracked condition is True. Otherwise the
        reason is ``Failure`` if any tracked condition failed, ``Pending``
        if any is missing or pending, and ``Creating`` for everything else.

        Args:
            tracked: Condition types the pipeline of the resource kind defines

        Returns:
            (status, reason, message)
        """
        failed: list[str] = []
        pending: list[str] = []
        creating: list[str] = []
        for condition_type in tracked:
            condition = self.find(condition_type)
            if condition is None:
                pending.append(condition_type)
            elif condition.status == ConditionStatus.TRUE:
                continue
            elif condition.reason == Reason.FAILURE.value:
                failed.append(
                    f"{condition_type}: {condition.message}" if condition.message else condition_type
                )
            elif condition.reason in (Reason.PENDING.value, Reason.INITIALIZE.value, ""):
                pending.append(condition_type)
            else:
                creating.append(condition_type)

        if failed:
            return ConditionStatus.FALSE, Reason.FAILURE, "; ".join(failed)
        if pending:
            return ConditionStatus.FALSE, Reason.PENDING, f"Waiting for {', '.join(pending)}"
        if creating:
            return ConditionStatus.FALSE, Reason.CREATING, f"Creating {', '.join(creating)}"
        return ConditionStatus.TRUE, Reason.READY, "All components are ready"

    def update_ready(self, tracked: Iterable[str], observed_generation: Optional[int] = None) -> bool:
        """
        Recompute and store the aggregate ``Ready`` condition.

        Returns:
            True if the Ready condition changed
        """
        status, reason, message = self.aggregate(tracked)
        return self.set(READY, status, reason, message, observed_generation)
