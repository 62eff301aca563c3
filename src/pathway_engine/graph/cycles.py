"""Cycle detection over a pathway's prerequisite graph.

Edges point from a gated activity to its prerequisites. A proposed edit
replaces one activity's outgoing edges; because a new edge can close a
loop through unrelated, pre-existing edges, the traversal follows the
whole reachable graph, not just the edited activity's neighbours.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING

from pathway_engine.errors import ValidationError
from pathway_engine.models.pathway import ActivityId
from pathway_engine.models.results import CycleCheckResult

if TYPE_CHECKING:
    from pathway_engine.graph.pathway import PathwayGraph

_EXHAUSTED = object()


def validate_prerequisite_edit(
    graph: PathwayGraph,
    activity_id: ActivityId,
    proposed_ids: Iterable[ActivityId],
) -> CycleCheckResult:
    """Check whether giving ``activity_id`` the ``proposed_ids`` prerequisites
    would introduce a circular dependency.

    Never mutates ``graph``. Raises ``ValidationError`` for self references
    and for ids outside the pathway before any traversal runs.
    """
    graph.get_activity(activity_id)
    proposed = _dedupe(proposed_ids)

    for prereq_id in proposed:
        if prereq_id == activity_id:
            raise ValidationError(
                f"Activity {activity_id!r} cannot be its own prerequisite",
                activity_id=activity_id,
            )
        if not graph.has_activity(prereq_id):
            raise ValidationError(
                f"Prerequisite {prereq_id!r} is not part of pathway {graph.pathway_id!r}",
                activity_id=activity_id,
            )

    if not proposed:
        return CycleCheckResult(valid=True)

    adjacency = graph.adjacency()
    adjacency[activity_id] = proposed

    cycle = find_cycle(adjacency, start=activity_id)
    if cycle is None:
        return CycleCheckResult(valid=True)
    return CycleCheckResult(valid=False, cycle=cycle)


def find_cycle(
    adjacency: Mapping[ActivityId, Sequence[ActivityId]],
    start: ActivityId | None = None,
) -> list[ActivityId] | None:
    """Depth-first search for a directed cycle.

    Traverses from ``start`` only, or from every node when ``start`` is None.
    Returns the cycle in traversal order, closed with the repeated node
    (``[A, B, C, A]``), or None. Nodes missing from ``adjacency`` are leaves.
    """
    roots = list(adjacency) if start is None else [start]
    finished: set[ActivityId] = set()

    for root in roots:
        if root in finished:
            continue

        path: list[ActivityId] = [root]
        on_path: set[ActivityId] = {root}
        pending = [iter(adjacency.get(root, ()))]

        while pending:
            nxt = next(pending[-1], _EXHAUSTED)

            if nxt is _EXHAUSTED:
                node = path.pop()
                on_path.discard(node)
                finished.add(node)
                pending.pop()
                continue

            if nxt in on_path:
                return path[path.index(nxt) :] + [nxt]
            if nxt in finished:
                continue

            path.append(nxt)
            on_path.add(nxt)
            pending.append(iter(adjacency.get(nxt, ())))

    return None


def _dedupe(ids: Iterable[ActivityId]) -> list[ActivityId]:
    return list(dict.fromkeys(ids))
