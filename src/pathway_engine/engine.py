"""Engine facade: the single entry point for admin editors and reporting jobs.

Wires the graph model, cycle detector, satisfaction and availability rules,
and rollup calculator behind one API. Prerequisite edits follow a strict
validate-then-commit protocol:

    Proposed -> Validating -> Accepted (graph mutated)
                           -> Rejected (graph untouched, cycle reported)

Malformed input raises ``ValidationError`` before validation starts. The
engine never retries, never logs, and performs no I/O; callers serialize
concurrent edits to the same pathway.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, datetime

from pathway_engine.errors import UnknownPathway
from pathway_engine.graph.cycles import validate_prerequisite_edit
from pathway_engine.graph.pathway import PathwayGraph
from pathway_engine.models.pathway import (
    ActivityId,
    PathwayDefinition,
    PathwayId,
    PrerequisiteGroup,
)
from pathway_engine.models.progress import ActivityCompletionState, ActivityOverride, RollupEntry
from pathway_engine.models.results import (
    AvailabilityResult,
    CompletionRollup,
    CycleCheckResult,
    PrerequisiteCheck,
)
from pathway_engine.models.validation import coerce_model, coerce_states
from pathway_engine.rollup.compute import compute_cohort_rollup, compute_rollup, pathway_entries
from pathway_engine.rules.availability import compute_availability
from pathway_engine.rules.satisfaction import evaluate_groups

CompletionSnapshot = Mapping[ActivityId, ActivityCompletionState | dict]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class PrerequisiteEngine:
    """Holds one ``PathwayGraph`` snapshot per pathway and answers questions about it.

    The host may rebuild graphs on every request or keep the engine around;
    either way, the registered snapshot must reflect every accepted edit.
    """

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock
        self._pathways: dict[PathwayId, PathwayGraph] = {}

    # ------------------------------------------------------------------
    # Pathway snapshots
    # ------------------------------------------------------------------

    def register_pathway(self, pathway: PathwayGraph | PathwayDefinition | dict) -> PathwayGraph:
        """Register (or replace) the snapshot for a pathway."""
        if isinstance(pathway, PathwayGraph):
            graph = pathway
        else:
            graph = PathwayGraph.from_definition(pathway)
        self._pathways[graph.pathway_id] = graph
        return graph

    def get_pathway(self, pathway_id: PathwayId) -> PathwayGraph:
        try:
            return self._pathways[pathway_id]
        except KeyError:
            raise UnknownPathway(pathway_id) from None

    def forget_pathway(self, pathway_id: PathwayId) -> None:
        self._pathways.pop(pathway_id, None)

    # ------------------------------------------------------------------
    # Prerequisite edits
    # ------------------------------------------------------------------

    def validate_prerequisite_edit(
        self,
        pathway_id: PathwayId,
        activity_id: ActivityId,
        proposed_groups: Iterable[PrerequisiteGroup | dict],
    ) -> CycleCheckResult:
        """Dry run of ``propose_prerequisite_change``; never mutates the graph."""
        graph = self.get_pathway(pathway_id)
        groups = graph.normalize_groups(activity_id, proposed_groups)
        return validate_prerequisite_edit(graph, activity_id, _edge_ids(groups))

    def propose_prerequisite_change(
        self,
        pathway_id: PathwayId,
        activity_id: ActivityId,
        new_groups: Iterable[PrerequisiteGroup | dict],
    ) -> CycleCheckResult:
        """Replace ``activity_id``'s prerequisite groups if that keeps the graph acyclic.

        On rejection the graph is left exactly as it was and the result
        carries the offending cycle for the caller to display.
        """
        graph = self.get_pathway(pathway_id)
        groups = graph.normalize_groups(activity_id, new_groups)

        result = validate_prerequisite_edit(graph, activity_id, _edge_ids(groups))
        if result.valid:
            graph.replace_groups(activity_id, groups)
        return result

    # ------------------------------------------------------------------
    # Unlock state
    # ------------------------------------------------------------------

    def is_activity_unlocked(
        self,
        pathway_id: PathwayId,
        activity_id: ActivityId,
        completion_states: CompletionSnapshot,
    ) -> bool:
        return self.check_prerequisites(pathway_id, activity_id, completion_states).satisfied

    def check_prerequisites(
        self,
        pathway_id: PathwayId,
        activity_id: ActivityId,
        completion_states: CompletionSnapshot,
    ) -> PrerequisiteCheck:
        graph = self.get_pathway(pathway_id)
        return evaluate_groups(graph.get_groups(activity_id), coerce_states(completion_states))

    def compute_availability(
        self,
        pathway_id: PathwayId,
        activity_id: ActivityId,
        completion_states: CompletionSnapshot,
        overrides: Iterable[ActivityOverride | dict] = (),
        now: datetime | None = None,
    ) -> AvailabilityResult:
        graph = self.get_pathway(pathway_id)
        return compute_availability(
            graph,
            activity_id,
            coerce_states(completion_states),
            [coerce_model(ActivityOverride, o) for o in overrides],
            now=now or self._clock(),
        )

    def evaluate_pathway(
        self,
        pathway_id: PathwayId,
        completion_states: CompletionSnapshot,
        overrides: Iterable[ActivityOverride | dict] = (),
        now: datetime | None = None,
    ) -> dict[ActivityId, AvailabilityResult]:
        """Availability of every activity in the pathway, in pathway order."""
        graph = self.get_pathway(pathway_id)
        states = coerce_states(completion_states)
        checked_overrides = [coerce_model(ActivityOverride, o) for o in overrides]
        at = now or self._clock()
        return {
            activity_id: compute_availability(graph, activity_id, states, checked_overrides, now=at)
            for activity_id in graph.activity_ids()
        }

    # ------------------------------------------------------------------
    # Rollups
    # ------------------------------------------------------------------

    def compute_pathway_rollup(
        self,
        activities_with_state: Iterable[RollupEntry | dict],
    ) -> CompletionRollup:
        return compute_rollup(activities_with_state)

    def compute_enrollment_rollup(
        self,
        pathway_id: PathwayId,
        completion_states: CompletionSnapshot,
    ) -> CompletionRollup:
        """Rollup of one enrollment using the pathway's own activity weights."""
        graph = self.get_pathway(pathway_id)
        return compute_rollup(pathway_entries(graph, coerce_states(completion_states)))

    def compute_cohort_rollup(
        self,
        rollups: Sequence[CompletionRollup],
        weights: Sequence[float] | None = None,
    ) -> CompletionRollup:
        return compute_cohort_rollup(rollups, weights)


def _edge_ids(groups: Iterable[PrerequisiteGroup]) -> list[ActivityId]:
    return [prereq_id for group in groups for prereq_id in group.activity_ids()]
