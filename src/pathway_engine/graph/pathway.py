"""In-memory graph model of one pathway's activities and prerequisites.

The graph performs structural validation only (self reference,
``n_required`` range, pathway membership). Acyclicity of edits is the
cycle detector's job; the engine facade runs it before calling
``replace_groups``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pathway_engine.errors import CyclicPathwayError, UnknownActivity, ValidationError
from pathway_engine.graph.cycles import find_cycle
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
from pathway_engine.models.validation import coerce_model


class PathwayGraph:
    """Activities of one pathway plus their prerequisite groups and drip rules."""

    def __init__(
        self,
        pathway_id: PathwayId,
        activities: Iterable[Activity | dict],
        name: str | None = None,
    ) -> None:
        self.pathway_id = pathway_id
        self.name = name
        self._activities: dict[ActivityId, Activity] = {}
        self._groups: dict[ActivityId, tuple[PrerequisiteGroup, ...]] = {}
        self._drip_rules: dict[ActivityId, tuple[DripRule, ...]] = {}

        for raw in activities:
            activity = coerce_model(Activity, raw)
            if activity.pathway_id != pathway_id:
                raise ValidationError(
                    f"Activity {activity.id!r} belongs to pathway {activity.pathway_id!r}, "
                    f"not {pathway_id!r}",
                    activity_id=activity.id,
                )
            if activity.id in self._activities:
                raise ValidationError(
                    f"Duplicate activity id {activity.id!r} in pathway {pathway_id!r}",
                    activity_id=activity.id,
                )
            self._activities[activity.id] = activity

    @classmethod
    def from_definition(cls, definition: PathwayDefinition | dict) -> PathwayGraph:
        """Build a graph from a host-supplied snapshot.

        Raises ``CyclicPathwayError`` if the stored prerequisites already
        contain a loop.
        """
        definition = coerce_model(PathwayDefinition, definition)
        graph = cls(definition.pathway_id, definition.activities, name=definition.name)

        seen: set[ActivityId] = set()
        for row in definition.prerequisites:
            if row.activity_id in seen:
                raise ValidationError(
                    f"Prerequisites for activity {row.activity_id!r} listed more than once",
                    activity_id=row.activity_id,
                )
            seen.add(row.activity_id)
            graph.replace_groups(row.activity_id, row.groups)

        rules_by_activity: dict[ActivityId, list[DripRule]] = {}
        for rule in definition.drip_rules:
            rules_by_activity.setdefault(rule.activity_id, []).append(rule)
        for activity_id, rules in rules_by_activity.items():
            graph.set_drip_rules(activity_id, rules)

        cycle = find_cycle(graph.adjacency())
        if cycle is not None:
            raise CyclicPathwayError(cycle, pathway_id=definition.pathway_id)
        return graph

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    def __contains__(self, activity_id: object) -> bool:
        return activity_id in self._activities

    def __len__(self) -> int:
        return len(self._activities)

    def has_activity(self, activity_id: ActivityId) -> bool:
        return activity_id in self._activities

    def get_activity(self, activity_id: ActivityId) -> Activity:
        try:
            return self._activities[activity_id]
        except KeyError:
            raise UnknownActivity(activity_id, pathway_id=self.pathway_id) from None

    def activities(self) -> list[Activity]:
        return list(self._activities.values())

    def activity_ids(self) -> list[ActivityId]:
        return list(self._activities)

    # ------------------------------------------------------------------
    # Prerequisites
    # ------------------------------------------------------------------

    def get_groups(self, activity_id: ActivityId) -> list[PrerequisiteGroup]:
        self.get_activity(activity_id)
        return list(self._groups.get(activity_id, ()))

    def get_prerequisite_activity_ids(self, activity_id: ActivityId) -> set[ActivityId]:
        """Every activity referenced by any group of ``activity_id``, regardless of type."""
        return {
            prereq_id
            for group in self.get_groups(activity_id)
            for prereq_id in group.activity_ids()
        }

    def adjacency(self) -> dict[ActivityId, list[ActivityId]]:
        """Edge lists ``activity -> prerequisites`` in stored order, for every activity."""
        return {
            activity_id: list(
                dict.fromkeys(
                    prereq_id
                    for group in self._groups.get(activity_id, ())
                    for prereq_id in group.activity_ids()
                )
            )
            for activity_id in self._activities
        }

    def normalize_groups(
        self,
        activity_id: ActivityId,
        groups: Iterable[PrerequisiteGroup | dict],
    ) -> list[PrerequisiteGroup]:
        """Validate proposed groups for ``activity_id`` without storing them.

        Empty groups are dropped and duplicate items inside a group are
        collapsed before ``n_required`` is range-checked.
        """
        self.get_activity(activity_id)
        normalized: list[PrerequisiteGroup] = []

        for raw in groups:
            group = coerce_model(PrerequisiteGroup, raw, activity_id=activity_id)
            prereq_ids = list(dict.fromkeys(group.activity_ids()))
            if not prereq_ids:
                continue

            for prereq_id in prereq_ids:
                if prereq_id == activity_id:
                    raise ValidationError(
                        f"Activity {activity_id!r} cannot be its own prerequisite",
                        activity_id=activity_id,
                    )
                if prereq_id not in self._activities:
                    raise ValidationError(
                        f"Prerequisite {prereq_id!r} is not part of pathway {self.pathway_id!r}",
                        activity_id=activity_id,
                    )

            _check_n_required(activity_id, group, len(prereq_ids))
            normalized.append(
                group.model_copy(
                    update={
                        "items": [PrerequisiteItem(prerequisite_activity_id=i) for i in prereq_ids]
                    }
                )
            )

        return normalized

    def replace_groups(
        self,
        activity_id: ActivityId,
        new_groups: Iterable[PrerequisiteGroup | dict],
    ) -> list[PrerequisiteGroup]:
        """Store ``new_groups`` as the complete prerequisite set of ``activity_id``.

        Only structural checks happen here; callers must have run cycle
        detection first.
        """
        normalized = self.normalize_groups(activity_id, new_groups)
        if normalized:
            self._groups[activity_id] = tuple(normalized)
        else:
            self._groups.pop(activity_id, None)
        return normalized

    # ------------------------------------------------------------------
    # Drip rules
    # ------------------------------------------------------------------

    def get_drip_rules(self, activity_id: ActivityId) -> list[DripRule]:
        self.get_activity(activity_id)
        return list(self._drip_rules.get(activity_id, ()))

    def set_drip_rules(self, activity_id: ActivityId, rules: Iterable[DripRule | dict]) -> None:
        self.get_activity(activity_id)
        checked: list[DripRule] = []

        for raw in rules:
            rule = coerce_model(DripRule, raw, activity_id=activity_id)
            if rule.activity_id != activity_id:
                raise ValidationError(
                    f"Drip rule for {rule.activity_id!r} attached to {activity_id!r}",
                    activity_id=activity_id,
                )
            if rule.drip_type == DripType.FIXED_DATE and rule.release_at is None:
                raise ValidationError(
                    "fixed_date drip rules require release_at", activity_id=activity_id
                )
            if rule.drip_type == DripType.AFTER_COMPLETION_DELAY:
                if rule.base_activity_id is None:
                    raise ValidationError(
                        "after_completion_delay drip rules require base_activity_id",
                        activity_id=activity_id,
                    )
                if rule.base_activity_id == activity_id:
                    raise ValidationError(
                        f"Activity {activity_id!r} cannot drip from its own completion",
                        activity_id=activity_id,
                    )
                if rule.base_activity_id not in self._activities:
                    raise ValidationError(
                        f"Drip base activity {rule.base_activity_id!r} is not part of "
                        f"pathway {self.pathway_id!r}",
                        activity_id=activity_id,
                    )
            checked.append(rule)

        if checked:
            self._drip_rules[activity_id] = tuple(checked)
        else:
            self._drip_rules.pop(activity_id, None)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_definition(self) -> PathwayDefinition:
        """Export the current state as a ``PathwayDefinition``, in activity order."""
        return PathwayDefinition(
            pathway_id=self.pathway_id,
            name=self.name,
            activities=self.activities(),
            prerequisites=[
                ActivityPrerequisites(activity_id=activity_id, groups=list(self._groups[activity_id]))
                for activity_id in self._activities
                if activity_id in self._groups
            ],
            drip_rules=[
                rule
                for activity_id in self._activities
                for rule in self._drip_rules.get(activity_id, ())
            ],
        )


def _check_n_required(activity_id: Any, group: PrerequisiteGroup, item_count: int) -> None:
    if group.prereq_type != PrerequisiteType.N_OF_M:
        if group.n_required is not None:
            raise ValidationError(
                f"n_required is only valid for n_of_m groups, not {group.prereq_type.value}",
                activity_id=activity_id,
            )
        return

    if group.n_required is None:
        raise ValidationError("n_of_m groups require n_required", activity_id=activity_id)
    if not 1 <= group.n_required <= item_count:
        raise ValidationError(
            f"n_required must be between 1 and {item_count}, got {group.n_required}",
            activity_id=activity_id,
        )
