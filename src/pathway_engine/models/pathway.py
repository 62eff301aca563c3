"""Pathway structure: activities, prerequisite groups, and drip rules.

An edge ``A -> B`` in the derived dependency graph means "B is a
prerequisite of A". Groups attached to the same activity are AND-ed;
each group is satisfied by its own rule:

    all_of   every item complete
    any_of   at least one item complete
    n_of_m   at least ``n_required`` items complete

Structural invariants (no self reference, ``n_required`` range, pathway
membership) are enforced by ``PathwayGraph``, not by these models.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

ActivityId = int | str
PathwayId = int | str

MAX_DELAY_DAYS = 36_500  # about a century


class PrerequisiteType(StrEnum):
    ALL_OF = "all_of"
    ANY_OF = "any_of"
    N_OF_M = "n_of_m"


class DripType(StrEnum):
    FIXED_DATE = "fixed_date"
    AFTER_COMPLETION_DELAY = "after_completion_delay"


class Activity(BaseModel):
    """One unit of work within a pathway. The engine only reads id and weight."""

    id: ActivityId
    pathway_id: PathwayId
    weight: float = Field(default=1.0, ge=0.0, allow_inf_nan=False)
    ordering_hint: int = 0  # display only
    title: str | None = None


class PrerequisiteItem(BaseModel):
    prerequisite_activity_id: ActivityId


class PrerequisiteGroup(BaseModel):
    """One AND-ed requirement block attached to a gated activity."""

    prereq_type: PrerequisiteType = PrerequisiteType.ALL_OF
    n_required: int | None = None
    items: list[PrerequisiteItem] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _coerce_bare_ids(cls, value: Any) -> Any:
        if not isinstance(value, list | tuple):
            return value
        return [
            item
            if isinstance(item, PrerequisiteItem | dict)
            else {"prerequisite_activity_id": item}
            for item in value
        ]

    def activity_ids(self) -> list[ActivityId]:
        return [item.prerequisite_activity_id for item in self.items]


class ActivityPrerequisites(BaseModel):
    """All prerequisite groups of one gated activity."""

    activity_id: ActivityId
    groups: list[PrerequisiteGroup]


class DripRule(BaseModel):
    """Time-based release rule for an activity.

    ``fixed_date`` releases at ``release_at``; ``after_completion_delay``
    releases ``delay_days`` after ``base_activity_id`` was completed.
    """

    activity_id: ActivityId
    drip_type: DripType
    release_at: datetime | None = None
    base_activity_id: ActivityId | None = None
    delay_days: int = Field(default=0, ge=0, le=MAX_DELAY_DAYS)


class PathwayDefinition(BaseModel):
    """Complete snapshot of one pathway as supplied by the host application."""

    pathway_id: PathwayId
    name: str | None = None
    activities: list[Activity]
    prerequisites: list[ActivityPrerequisites] = Field(default_factory=list)
    drip_rules: list[DripRule] = Field(default_factory=list)
