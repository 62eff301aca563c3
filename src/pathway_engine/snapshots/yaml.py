"""YAML pathway and enrollment snapshot files."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from pathway_engine.models.pathway import PathwayDefinition
from pathway_engine.models.progress import EnrollmentSnapshot

logger = logging.getLogger(__name__)


def load_pathway_yaml(path: Path) -> PathwayDefinition:
    """Load a PathwayDefinition from a YAML file."""
    definition = PathwayDefinition.model_validate(yaml.safe_load(path.read_text()))
    logger.debug(
        "Loaded pathway %s from %s (%d activities)",
        definition.pathway_id,
        path,
        len(definition.activities),
    )
    return definition


def dump_pathway_yaml(definition: PathwayDefinition, output_path: Path) -> None:
    """Write a PathwayDefinition as YAML."""
    data = definition.model_dump(mode="json", exclude_none=True)
    output_path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))


def load_enrollment_yaml(path: Path) -> EnrollmentSnapshot:
    """Load an EnrollmentSnapshot from a YAML file."""
    snapshot = EnrollmentSnapshot.model_validate(yaml.safe_load(path.read_text()))
    logger.debug("Loaded enrollment %s from %s", snapshot.enrollment_id, path)
    return snapshot
