"""Tests for prerequisite group satisfaction."""

import itertools

import pytest

from pathway_engine.errors import UnknownActivity, ValidationError
from pathway_engine.graph.pathway import PathwayGraph
from pathway_engine.models.pathway import Activity, PrerequisiteGroup, PrerequisiteType
from pathway_engine.models.progress import ActivityCompletionState, CompletionStatus
from pathway_engine.rules.satisfaction import evaluate_groups, group_satisfied, is_unlocked

COMPLETE = ActivityCompletionState(
    completion_status=CompletionStatus.COMPLETE, completion_percent=100
)
IN_PROGRESS = ActivityCompletionState(
    completion_status=CompletionStatus.IN_PROGRESS, completion_percent=99
)


def _graph(*ids: str) -> PathwayGraph:
    return PathwayGraph("p1", [Activity(id=a, pathway_id="p1") for a in ids])


def _group(prereq_type: PrerequisiteType, *ids: str, n: int | None = None) -> PrerequisiteGroup:
    return PrerequisiteGroup(prereq_type=prereq_type, n_required=n, items=list(ids))


def _states(*complete: str) -> dict[str, ActivityCompletionState]:
    return {activity_id: COMPLETE for activity_id in complete}


class TestGroupRules:
    @pytest.mark.parametrize("done", list(itertools.product([False, True], repeat=3)))
    def test_two_of_three_truth_table(self, done: tuple[bool, bool, bool]) -> None:
        group = _group(PrerequisiteType.N_OF_M, "x", "y", "z", n=2)
        states = _states(*(a for a, d in zip("xyz", done) if d))
        assert group_satisfied(group, states) == (sum(done) >= 2)

    def test_all_of(self) -> None:
        group = _group(PrerequisiteType.ALL_OF, "x", "y")
        assert not group_satisfied(group, _states("x"))
        assert group_satisfied(group, _states("x", "y"))

    def test_any_of(self) -> None:
        group = _group(PrerequisiteType.ANY_OF, "x", "y")
        assert not group_satisfied(group, {})
        assert group_satisfied(group, _states("y"))

    def test_partial_progress_does_not_count(self) -> None:
        group = _group(PrerequisiteType.ANY_OF, "x")
        assert not group_satisfied(group, {"x": IN_PROGRESS})

    def test_missing_prerequisite_state_is_not_done(self) -> None:
        # A deleted prerequisite has no state and so can never be complete.
        group = _group(PrerequisiteType.ALL_OF, "x", "gone")
        assert not group_satisfied(group, _states("x"))

    def test_n_of_m_without_n_required_raises(self) -> None:
        group = _group(PrerequisiteType.N_OF_M, "x")
        with pytest.raises(ValidationError, match="n_required"):
            group_satisfied(group, {})

    def test_unnormalized_group_through_evaluate_groups(self) -> None:
        group = _group(PrerequisiteType.N_OF_M, "x", "y")
        with pytest.raises(ValidationError, match="require n_required"):
            evaluate_groups([group], _states("x"))


class TestEvaluateGroups:
    def test_no_groups_is_satisfied(self) -> None:
        check = evaluate_groups([], {})
        assert check.satisfied
        assert check.blockers == []

    def test_groups_are_anded(self) -> None:
        groups = [
            _group(PrerequisiteType.ALL_OF, "x"),
            _group(PrerequisiteType.ANY_OF, "y", "z"),
        ]
        assert not evaluate_groups(groups, _states("x")).satisfied
        assert not evaluate_groups(groups, _states("z")).satisfied
        assert evaluate_groups(groups, _states("x", "z")).satisfied

    def test_blockers_come_from_first_failing_group(self) -> None:
        groups = [
            _group(PrerequisiteType.ALL_OF, "x"),
            _group(PrerequisiteType.N_OF_M, "y", "z", "w", n=2),
            _group(PrerequisiteType.ALL_OF, "v"),
        ]
        check = evaluate_groups(groups, _states("x", "z"))
        assert not check.satisfied
        assert check.blockers == ["y", "w"]
        assert check.prereq_type == PrerequisiteType.N_OF_M
        assert check.n_required == 2

    def test_empty_group_is_skipped(self) -> None:
        groups = [PrerequisiteGroup(), _group(PrerequisiteType.ALL_OF, "x")]
        assert evaluate_groups(groups, _states("x")).satisfied


class TestIsUnlocked:
    def test_activity_without_prerequisites(self) -> None:
        graph = _graph("a", "b")
        assert is_unlocked(graph, "a", {})

    def test_scenario_from_group_configuration(self) -> None:
        graph = _graph("a", "b", "c", "d")
        graph.replace_groups(
            "d",
            [
                _group(PrerequisiteType.ALL_OF, "a"),
                _group(PrerequisiteType.N_OF_M, "a", "b", "c", n=2),
            ],
        )
        assert not is_unlocked(graph, "d", _states("a"))
        assert is_unlocked(graph, "d", _states("a", "c"))
        assert not is_unlocked(graph, "d", _states("b", "c"))

    def test_unknown_activity_raises(self) -> None:
        graph = _graph("a")
        with pytest.raises(UnknownActivity):
            is_unlocked(graph, "missing", {})

    def test_states_are_not_modified(self) -> None:
        graph = _graph("a", "b")
        graph.replace_groups("b", [_group(PrerequisiteType.ALL_OF, "a")])
        states = {"a": IN_PROGRESS}
        is_unlocked(graph, "b", states)
        assert states == {"a": IN_PROGRESS}
