"""Computed outputs. Produced fresh on every call, never stored by the engine."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from pathway_engine.models.pathway import ActivityId, PrerequisiteType


class AvailabilityStatus(StrEnum):
    COMPLETED = "completed"
    AVAILABLE = "available"
    LOCKED = "locked"


class LockedReason(StrEnum):
    PREREQ = "prereq"
    DRIP = "drip"


class CycleCheckResult(BaseModel):
    """Outcome of validating a prerequisite edit.

    ``cycle`` lists the activities on the detected loop in traversal order,
    closing back to the repeated activity (``[A, B, C, A]``). Empty when valid.
    """

    valid: bool
    cycle: list[ActivityId] = Field(default_factory=list)

    @property
    def cycle_path(self) -> list[ActivityId]:
        return self.cycle


class PrerequisiteCheck(BaseModel):
    """Satisfaction of an activity's prerequisite groups.

    When unsatisfied, ``blockers`` are the incomplete items of the first
    failing group, and ``prereq_type`` / ``n_required`` describe that group.
    """

    satisfied: bool
    blockers: list[ActivityId] = Field(default_factory=list)
    prereq_type: PrerequisiteType | None = None
    n_required: int | None = None


class AvailabilityResult(BaseModel):
    status: AvailabilityStatus
    locked_reason: LockedReason | None = None
    blockers: list[ActivityId] = Field(default_factory=list)
    prereq_type: PrerequisiteType | None = None
    n_required: int | None = None
    next_available_at: datetime | None = None

    @property
    def is_unlocked(self) -> bool:
        return self.status != AvailabilityStatus.LOCKED


class CompletionRollup(BaseModel):
    """Weighted completion percentage at full float precision.

    Rounding for display is the caller's job.
    """

    percent: float
    contributing_count: int
    total_weight: float = 0.0
