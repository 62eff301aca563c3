"""JSON pathway and enrollment snapshot files."""

from __future__ import annotations

import logging
from pathlib import Path

from pathway_engine.models.pathway import PathwayDefinition
from pathway_engine.models.progress import EnrollmentSnapshot

logger = logging.getLogger(__name__)


def load_pathway_json(path: Path) -> PathwayDefinition:
    """Load a PathwayDefinition from a JSON file."""
    definition = PathwayDefinition.model_validate_json(path.read_text())
    logger.debug(
        "Loaded pathway %s from %s (%d activities)",
        definition.pathway_id,
        path,
        len(definition.activities),
    )
    return definition


def dump_pathway_json(definition: PathwayDefinition, output_path: Path) -> None:
    """Write a PathwayDefinition as JSON."""
    output_path.write_text(definition.model_dump_json(indent=2))


def load_enrollment_json(path: Path) -> EnrollmentSnapshot:
    """Load an EnrollmentSnapshot from a JSON file."""
    snapshot = EnrollmentSnapshot.model_validate_json(path.read_text())
    logger.debug("Loaded enrollment %s from %s", snapshot.enrollment_id, path)
    return snapshot
