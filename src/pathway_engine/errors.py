"""Error taxonomy for the prerequisite engine.

Cycle rejection is not an error: it is returned as a ``CycleCheckResult``
with ``valid=False``. Everything here is raised synchronously, before any
graph mutation.
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for all engine errors."""


class ValidationError(EngineError, ValueError):
    """Malformed input: self reference, bad ``n_required``, foreign activity, etc."""

    def __init__(self, message: str, *, activity_id: Any = None) -> None:
        super().__init__(message)
        self.activity_id = activity_id


class CyclicPathwayError(ValidationError):
    """A pathway snapshot handed to the engine already contains a cycle."""

    def __init__(self, cycle: list[Any], *, pathway_id: Any = None) -> None:
        path = " -> ".join(str(node) for node in cycle)
        super().__init__(f"Pathway {pathway_id} contains a circular dependency: {path}")
        self.cycle = cycle
        self.pathway_id = pathway_id


class UnknownActivity(EngineError, KeyError):
    """Lookup of an activity id that is not part of the pathway."""

    def __init__(self, activity_id: Any, *, pathway_id: Any = None) -> None:
        super().__init__(activity_id)
        self.activity_id = activity_id
        self.pathway_id = pathway_id

    def __str__(self) -> str:
        return f"Activity {self.activity_id!r} is not part of pathway {self.pathway_id!r}"


class UnknownPathway(EngineError, KeyError):
    """Lookup of a pathway that was never registered with the engine."""

    def __init__(self, pathway_id: Any) -> None:
        super().__init__(pathway_id)
        self.pathway_id = pathway_id

    def __str__(self) -> str:
        return f"Pathway {self.pathway_id!r} is not registered"
