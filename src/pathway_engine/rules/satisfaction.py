"""Prerequisite satisfaction: is an activity unlocked for a participant?

Only the binary ``complete`` status counts. A prerequisite at 99% does
not help satisfy a group, and a prerequisite with no state, or one that
no longer exists, is simply not done.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from pathway_engine.errors import ValidationError
from pathway_engine.graph.pathway import PathwayGraph
from pathway_engine.models.pathway import ActivityId, PrerequisiteGroup, PrerequisiteType
from pathway_engine.models.progress import ActivityCompletionState
from pathway_engine.models.results import PrerequisiteCheck

CompletionStates = Mapping[ActivityId, ActivityCompletionState]


def is_unlocked(
    graph: PathwayGraph,
    activity_id: ActivityId,
    completion_states: CompletionStates,
) -> bool:
    """True when every prerequisite group of ``activity_id`` is satisfied.

    Raises ``UnknownActivity`` if ``activity_id`` is not in the pathway.
    """
    return evaluate_groups(graph.get_groups(activity_id), completion_states).satisfied


def evaluate_groups(
    groups: Iterable[PrerequisiteGroup],
    completion_states: CompletionStates,
) -> PrerequisiteCheck:
    """AND the groups together, stopping at the first unsatisfied one."""
    for group in groups:
        if not group.items:
            continue
        if not group_satisfied(group, completion_states):
            return PrerequisiteCheck(
                satisfied=False,
                blockers=[i for i in group.activity_ids() if not _done(i, completion_states)],
                prereq_type=group.prereq_type,
                n_required=group.n_required,
            )
    return PrerequisiteCheck(satisfied=True)


def group_satisfied(group: PrerequisiteGroup, completion_states: CompletionStates) -> bool:
    prereq_ids = group.activity_ids()
    done_count = sum(1 for i in prereq_ids if _done(i, completion_states))

    if group.prereq_type == PrerequisiteType.ALL_OF:
        return done_count == len(prereq_ids)
    if group.prereq_type == PrerequisiteType.ANY_OF:
        return done_count >= 1
    if group.prereq_type == PrerequisiteType.N_OF_M:
        if group.n_required is None:
            raise ValidationError("n_of_m groups require n_required")
        return done_count >= group.n_required
    raise ValidationError(f"Unhandled prerequisite type: {group.prereq_type!r}")


def _done(activity_id: ActivityId, completion_states: CompletionStates) -> bool:
    state = completion_states.get(activity_id)
    return state is not None and state.is_complete
