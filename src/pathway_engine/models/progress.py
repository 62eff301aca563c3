"""Per-enrollment progress inputs: completion states, overrides, rollup entries.

None of these are owned by the engine. Callers build them from whatever
store they use and pass them in as read-only snapshots.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from pathway_engine.models.pathway import ActivityId, PathwayId


class CompletionStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class OverrideType(StrEnum):
    EXEMPT = "exempt"  # treated as completed
    MANUAL_UNLOCK = "manual_unlock"  # bypasses drip rules
    GRACE_UNLOCK = "grace_unlock"  # bypasses prerequisites


class ActivityCompletionState(BaseModel):
    """A participant's completion of one activity."""

    completion_status: CompletionStatus = CompletionStatus.NOT_STARTED
    completion_percent: float = Field(default=0.0, ge=0.0, le=100.0)
    completed_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.completion_status == CompletionStatus.COMPLETE


class ActivityStateRecord(ActivityCompletionState):
    """Completion state carrying its activity id, for list-shaped snapshots."""

    activity_id: ActivityId


class ActivityOverride(BaseModel):
    """Staff-applied exception for one enrollment and activity."""

    activity_id: ActivityId
    override_type: OverrideType
    reason: str | None = None
    created_at: datetime | None = None


class EnrollmentSnapshot(BaseModel):
    """Everything the engine needs to know about one participant's progress."""

    enrollment_id: int | str
    pathway_id: PathwayId
    states: list[ActivityStateRecord] = Field(default_factory=list)
    overrides: list[ActivityOverride] = Field(default_factory=list)

    def completion_states(self) -> dict[ActivityId, ActivityCompletionState]:
        """Return the ``{activity_id: state}`` mapping consumed by the engine.

        Later records for the same activity replace earlier ones.
        """
        return {
            record.activity_id: ActivityCompletionState(
                completion_status=record.completion_status,
                completion_percent=record.completion_percent,
                completed_at=record.completed_at,
            )
            for record in self.states
        }


class RollupEntry(BaseModel):
    """One weighted input to a rollup: an activity, or a lower-level rollup."""

    weight: float = Field(ge=0.0, allow_inf_nan=False)
    completion_percent: float = Field(ge=0.0, le=100.0)
    activity_id: ActivityId | None = None
