"""Pathway, progress, and result data models."""

from pathway_engine.models.pathway import (
    Activity,
    ActivityId,
    ActivityPrerequisites,
    DripRule,
    DripType,
    PathwayDefinition,
    PathwayId,
    PrerequisiteGroup,
    PrerequisiteItem,
    PrerequisiteType,
)
from pathway_engine.models.progress import (
    ActivityCompletionState,
    ActivityOverride,
    ActivityStateRecord,
    CompletionStatus,
    EnrollmentSnapshot,
    OverrideType,
    RollupEntry,
)
from pathway_engine.models.results import (
    AvailabilityResult,
    AvailabilityStatus,
    CompletionRollup,
    CycleCheckResult,
    LockedReason,
    PrerequisiteCheck,
)

__all__ = [
    "Activity",
    "ActivityCompletionState",
    "ActivityId",
    "ActivityOverride",
    "ActivityPrerequisites",
    "ActivityStateRecord",
    "AvailabilityResult",
    "AvailabilityStatus",
    "CompletionRollup",
    "CompletionStatus",
    "CycleCheckResult",
    "DripRule",
    "DripType",
    "EnrollmentSnapshot",
    "LockedReason",
    "OverrideType",
    "PathwayDefinition",
    "PathwayId",
    "PrerequisiteCheck",
    "PrerequisiteGroup",
    "PrerequisiteItem",
    "PrerequisiteType",
    "RollupEntry",
]
