"""Tests for availability: overrides, prerequisite locks and drip release."""

from datetime import UTC, datetime, timedelta

from pathway_engine.graph.pathway import PathwayGraph
from pathway_engine.models.pathway import Activity, DripRule, DripType, PrerequisiteGroup
from pathway_engine.models.progress import (
    ActivityCompletionState,
    ActivityOverride,
    CompletionStatus,
    OverrideType,
)
from pathway_engine.models.results import AvailabilityStatus, LockedReason
from pathway_engine.rules.availability import compute_availability, drip_released, latest_override

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _complete(at: datetime | None = None) -> ActivityCompletionState:
    return ActivityCompletionState(
        completion_status=CompletionStatus.COMPLETE, completion_percent=100, completed_at=at
    )


def _graph() -> PathwayGraph:
    """``lab`` needs ``intro``; ``quiz`` has no prerequisites."""
    graph = PathwayGraph(7, [Activity(id=a, pathway_id=7) for a in ("intro", "lab", "quiz")])
    graph.replace_groups("lab", [PrerequisiteGroup(items=["intro"])])
    return graph


def _fixed(activity_id: str, release_at: datetime) -> DripRule:
    return DripRule(activity_id=activity_id, drip_type=DripType.FIXED_DATE, release_at=release_at)


def _delay(activity_id: str, base: str, days: int) -> DripRule:
    return DripRule(
        activity_id=activity_id,
        drip_type=DripType.AFTER_COMPLETION_DELAY,
        base_activity_id=base,
        delay_days=days,
    )


def _override(
    override_type: OverrideType, created_at: datetime | None = None, activity_id: str = "lab"
) -> ActivityOverride:
    return ActivityOverride(
        activity_id=activity_id, override_type=override_type, created_at=created_at
    )


class TestCompletionAndPrerequisites:
    def test_completed_activity(self) -> None:
        result = compute_availability(_graph(), "lab", {"lab": _complete()}, now=NOW)
        assert result.status == AvailabilityStatus.COMPLETED
        assert result.is_unlocked

    def test_locked_by_prerequisite(self) -> None:
        result = compute_availability(_graph(), "lab", {}, now=NOW)
        assert result.status == AvailabilityStatus.LOCKED
        assert result.locked_reason == LockedReason.PREREQ
        assert result.blockers == ["intro"]
        assert not result.is_unlocked

    def test_available_once_prerequisite_complete(self) -> None:
        result = compute_availability(_graph(), "lab", {"intro": _complete()}, now=NOW)
        assert result.status == AvailabilityStatus.AVAILABLE
        assert result.locked_reason is None


class TestOverrides:
    def test_exempt_counts_as_completed(self) -> None:
        result = compute_availability(
            _graph(), "lab", {}, [_override(OverrideType.EXEMPT)], now=NOW
        )
        assert result.status == AvailabilityStatus.COMPLETED

    def test_grace_unlock_bypasses_prerequisites(self) -> None:
        result = compute_availability(
            _graph(), "lab", {}, [_override(OverrideType.GRACE_UNLOCK)], now=NOW
        )
        assert result.status == AvailabilityStatus.AVAILABLE

    def test_grace_unlock_does_not_bypass_drip(self) -> None:
        graph = _graph()
        graph.set_drip_rules("lab", [_fixed("lab", NOW + timedelta(days=1))])
        result = compute_availability(
            graph, "lab", {}, [_override(OverrideType.GRACE_UNLOCK)], now=NOW
        )
        assert result.locked_reason == LockedReason.DRIP

    def test_manual_unlock_bypasses_drip_only(self) -> None:
        graph = _graph()
        graph.set_drip_rules("lab", [_fixed("lab", NOW + timedelta(days=1))])
        overrides = [_override(OverrideType.MANUAL_UNLOCK)]

        locked = compute_availability(graph, "lab", {}, overrides, now=NOW)
        assert locked.locked_reason == LockedReason.PREREQ

        unlocked = compute_availability(graph, "lab", {"intro": _complete()}, overrides, now=NOW)
        assert unlocked.status == AvailabilityStatus.AVAILABLE

    def test_override_for_other_activity_ignored(self) -> None:
        result = compute_availability(
            _graph(), "lab", {}, [_override(OverrideType.EXEMPT, activity_id="quiz")], now=NOW
        )
        assert result.locked_reason == LockedReason.PREREQ

    def test_latest_override_wins(self) -> None:
        overrides = [
            _override(OverrideType.GRACE_UNLOCK, NOW - timedelta(days=1)),
            _override(OverrideType.EXEMPT, NOW - timedelta(days=5)),
        ]
        assert latest_override("lab", overrides).override_type == OverrideType.GRACE_UNLOCK
        result = compute_availability(_graph(), "lab", {}, overrides, now=NOW)
        assert result.status == AvailabilityStatus.AVAILABLE

    def test_undated_override_ranks_oldest(self) -> None:
        overrides = [
            _override(OverrideType.EXEMPT, NOW - timedelta(days=3)),
            _override(OverrideType.GRACE_UNLOCK),
        ]
        assert latest_override("lab", overrides).override_type == OverrideType.EXEMPT

    def test_tie_goes_to_last_listed(self) -> None:
        overrides = [_override(OverrideType.EXEMPT), _override(OverrideType.MANUAL_UNLOCK)]
        assert latest_override("lab", overrides).override_type == OverrideType.MANUAL_UNLOCK

    def test_no_override(self) -> None:
        assert latest_override("lab", []) is None


class TestDripRules:
    def test_future_fixed_date_locks(self) -> None:
        graph = _graph()
        release = NOW + timedelta(days=2)
        graph.set_drip_rules("quiz", [_fixed("quiz", release)])
        result = compute_availability(graph, "quiz", {}, now=NOW)
        assert result.status == AvailabilityStatus.LOCKED
        assert result.locked_reason == LockedReason.DRIP
        assert result.next_available_at == release

    def test_past_fixed_date_releases(self) -> None:
        graph = _graph()
        graph.set_drip_rules("quiz", [_fixed("quiz", NOW - timedelta(minutes=1))])
        result = compute_availability(graph, "quiz", {}, now=NOW)
        assert result.status == AvailabilityStatus.AVAILABLE

    def test_prerequisite_lock_reported_before_drip(self) -> None:
        graph = _graph()
        graph.set_drip_rules("lab", [_fixed("lab", NOW + timedelta(days=2))])
        assert compute_availability(graph, "lab", {}, now=NOW).locked_reason == LockedReason.PREREQ

    def test_delay_waits_for_base_completion(self) -> None:
        graph = _graph()
        graph.set_drip_rules("quiz", [_delay("quiz", "intro", 3)])
        result = compute_availability(graph, "quiz", {}, now=NOW)
        assert result.locked_reason == LockedReason.DRIP
        assert result.next_available_at is None

    def test_delay_not_yet_elapsed(self) -> None:
        graph = _graph()
        graph.set_drip_rules("quiz", [_delay("quiz", "intro", 3)])
        completed = NOW - timedelta(days=1)
        result = compute_availability(graph, "quiz", {"intro": _complete(completed)}, now=NOW)
        assert result.locked_reason == LockedReason.DRIP
        assert result.next_available_at == completed + timedelta(days=3)

    def test_delay_elapsed(self) -> None:
        graph = _graph()
        graph.set_drip_rules("quiz", [_delay("quiz", "intro", 3)])
        states = {"intro": _complete(NOW - timedelta(days=4))}
        assert compute_availability(graph, "quiz", states, now=NOW).status == (
            AvailabilityStatus.AVAILABLE
        )

    def test_delay_past_datetime_max_stays_locked(self) -> None:
        graph = _graph()
        graph.set_drip_rules("quiz", [_delay("quiz", "intro", 36_500)])
        states = {"intro": _complete(datetime(9950, 1, 1, tzinfo=UTC))}
        result = compute_availability(graph, "quiz", states, now=NOW)
        assert result.status == AvailabilityStatus.LOCKED
        assert result.locked_reason == LockedReason.DRIP
        assert result.next_available_at is None

    def test_latest_pending_release_reported(self) -> None:
        rules = [
            _fixed("quiz", NOW + timedelta(days=1)),
            _fixed("quiz", NOW + timedelta(days=9)),
            _fixed("quiz", NOW - timedelta(days=9)),
        ]
        assert drip_released(rules, {}, now=NOW) == (False, NOW + timedelta(days=9))

    def test_naive_datetimes_are_utc(self) -> None:
        rules = [_fixed("quiz", datetime(2026, 3, 2))]
        released, next_available_at = drip_released(rules, {}, now=NOW)
        assert not released
        assert next_available_at == datetime(2026, 3, 2, tzinfo=UTC)

    def test_no_rules_released(self) -> None:
        assert drip_released([], {}, now=NOW) == (True, None)
