"""Weighted completion rollups for pathways and cohorts.

The same formula applies at every level:

    percent = sum(weight * completion_percent) / sum(weight)

clamped to [0, 100]; a zero total weight yields 0.0. A cohort rollup
feeds each pathway rollup's ``percent`` back in as a completion percent,
so no level carries pathway-specific assumptions. Results keep full
float precision; rounding for display is the caller's job.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from pathway_engine.errors import UnknownActivity, ValidationError
from pathway_engine.graph.pathway import PathwayGraph
from pathway_engine.models.pathway import ActivityId
from pathway_engine.models.progress import ActivityCompletionState, RollupEntry
from pathway_engine.models.results import CompletionRollup
from pathway_engine.models.validation import coerce_model


def compute_rollup(entries: Iterable[RollupEntry | dict]) -> CompletionRollup:
    """Aggregate weighted completion percentages into one rollup."""
    total_weight = 0.0
    weighted_sum = 0.0
    contributing = 0

    for raw in entries:
        entry = coerce_model(RollupEntry, raw)
        total_weight += entry.weight
        weighted_sum += entry.weight * entry.completion_percent
        if entry.weight > 0:
            contributing += 1

    if total_weight == 0:
        return CompletionRollup(percent=0.0, contributing_count=0, total_weight=0.0)

    percent = _clamp(weighted_sum / total_weight)
    return CompletionRollup(
        percent=percent,
        contributing_count=contributing,
        total_weight=total_weight,
    )


def pathway_entries(
    graph: PathwayGraph,
    completion_states: Mapping[ActivityId, ActivityCompletionState],
) -> list[RollupEntry]:
    """One rollup entry per pathway activity; activities without a state count as 0%.

    Raises ``UnknownActivity`` if the snapshot mentions an activity outside
    the pathway, since that means the snapshot and graph are out of sync.
    """
    for activity_id in completion_states:
        if not graph.has_activity(activity_id):
            raise UnknownActivity(activity_id, pathway_id=graph.pathway_id)

    entries: list[RollupEntry] = []
    for activity in graph.activities():
        state = completion_states.get(activity.id)
        entries.append(
            RollupEntry(
                activity_id=activity.id,
                weight=activity.weight,
                completion_percent=state.completion_percent if state else 0.0,
            )
        )
    return entries


def compute_cohort_rollup(
    rollups: Sequence[CompletionRollup],
    weights: Sequence[float] | None = None,
) -> CompletionRollup:
    """Compose lower-level rollups, weighting each equally unless told otherwise."""
    if weights is None:
        weights = [1.0] * len(rollups)
    elif len(weights) != len(rollups):
        raise ValidationError(
            f"Got {len(weights)} weights for {len(rollups)} rollups",
        )

    return compute_rollup(
        {"weight": weight, "completion_percent": _clamp(rollup.percent)}
        for rollup, weight in zip(rollups, weights, strict=True)
    )


def _clamp(percent: float) -> float:
    return min(max(percent, 0.0), 100.0)
