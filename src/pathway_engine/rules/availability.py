"""Activity availability: completion, staff overrides, prerequisites, drip release.

Evaluation order for one enrollment and activity:

1. Activity already complete -> completed.
2. Latest override: ``exempt`` -> completed; ``grace_unlock`` skips the
   prerequisite check; ``manual_unlock`` skips drip rules.
3. Unsatisfied prerequisites -> locked (prereq) with the blocking items.
4. Unreleased drip rules -> locked (drip) with the release time if known.
5. Otherwise available.

``now`` is always supplied by the caller.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from pathway_engine.errors import ValidationError
from pathway_engine.graph.pathway import PathwayGraph
from pathway_engine.models.pathway import ActivityId, DripRule, DripType
from pathway_engine.models.progress import ActivityOverride, OverrideType
from pathway_engine.models.results import AvailabilityResult, AvailabilityStatus, LockedReason
from pathway_engine.rules.satisfaction import CompletionStates, evaluate_groups


def compute_availability(
    graph: PathwayGraph,
    activity_id: ActivityId,
    completion_states: CompletionStates,
    overrides: Iterable[ActivityOverride] = (),
    *,
    now: datetime,
) -> AvailabilityResult:
    groups = graph.get_groups(activity_id)

    state = completion_states.get(activity_id)
    if state is not None and state.is_complete:
        return AvailabilityResult(status=AvailabilityStatus.COMPLETED)

    override = latest_override(activity_id, overrides)
    override_type = override.override_type if override else None
    if override_type == OverrideType.EXEMPT:
        return AvailabilityResult(status=AvailabilityStatus.COMPLETED)

    if override_type != OverrideType.GRACE_UNLOCK:
        check = evaluate_groups(groups, completion_states)
        if not check.satisfied:
            return AvailabilityResult(
                status=AvailabilityStatus.LOCKED,
                locked_reason=LockedReason.PREREQ,
                blockers=check.blockers,
                prereq_type=check.prereq_type,
                n_required=check.n_required,
            )

    if override_type != OverrideType.MANUAL_UNLOCK:
        released, next_available_at = drip_released(
            graph.get_drip_rules(activity_id), completion_states, now=now
        )
        if not released:
            return AvailabilityResult(
                status=AvailabilityStatus.LOCKED,
                locked_reason=LockedReason.DRIP,
                next_available_at=next_available_at,
            )

    return AvailabilityResult(status=AvailabilityStatus.AVAILABLE)


def latest_override(
    activity_id: ActivityId,
    overrides: Iterable[ActivityOverride],
) -> ActivityOverride | None:
    """Most recent override for the activity. Undated overrides rank oldest;
    ties go to the one listed last."""
    latest: ActivityOverride | None = None
    for override in overrides:
        if override.activity_id != activity_id:
            continue
        if latest is None or _override_key(override) >= _override_key(latest):
            latest = override
    return latest


def drip_released(
    rules: Iterable[DripRule],
    completion_states: CompletionStates,
    *,
    now: datetime,
) -> tuple[bool, datetime | None]:
    """Return ``(released, next_available_at)`` for an activity's drip rules.

    A delay rule whose base activity is not complete yet has no known
    release time, so ``next_available_at`` is None in that case. The same
    holds for a delay that runs past the largest representable datetime.
    """
    now = _as_utc(now)
    latest_release: datetime | None = None

    for rule in rules:
        if rule.drip_type == DripType.FIXED_DATE:
            release_at = _as_utc(rule.release_at) if rule.release_at else None
        elif rule.drip_type == DripType.AFTER_COMPLETION_DELAY:
            base = completion_states.get(rule.base_activity_id)
            if base is None or not base.is_complete or base.completed_at is None:
                return False, None
            try:
                release_at = _as_utc(base.completed_at) + timedelta(days=rule.delay_days)
            except OverflowError:
                # past datetime.max: never released
                return False, None
        else:
            raise ValidationError(f"Unhandled drip type: {rule.drip_type!r}")

        if release_at is not None and now < release_at:
            if latest_release is None or release_at > latest_release:
                latest_release = release_at

    if latest_release is not None:
        return False, latest_release
    return True, None


def _override_key(override: ActivityOverride) -> tuple[bool, datetime]:
    if override.created_at is None:
        return (False, datetime.min.replace(tzinfo=UTC))
    return (True, _as_utc(override.created_at))


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
