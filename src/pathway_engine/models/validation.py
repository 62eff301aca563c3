"""Coercion of caller-supplied dicts into models, with engine error types."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel

from pathway_engine.errors import ValidationError
from pathway_engine.models.pathway import ActivityId
from pathway_engine.models.progress import ActivityCompletionState

ModelT = TypeVar("ModelT", bound=BaseModel)


def coerce_model(model: type[ModelT], value: Any, *, activity_id: Any = None) -> ModelT:
    """Return ``value`` as an instance of ``model``, validating dicts.

    pydantic failures are re-raised as the engine's ``ValidationError`` so
    callers only ever have to handle one error taxonomy.
    """
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f"Invalid {model.__name__}: {exc.errors(include_url=False)}",
            activity_id=activity_id,
        ) from exc


def coerce_states(
    completion_states: Mapping[ActivityId, ActivityCompletionState | dict],
) -> dict[ActivityId, ActivityCompletionState]:
    """Coerce a ``{activity_id: state}`` snapshot, accepting dict-shaped states."""
    return {
        activity_id: coerce_model(ActivityCompletionState, state, activity_id=activity_id)
        for activity_id, state in completion_states.items()
    }
