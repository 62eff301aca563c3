"""Reading and writing pathway/enrollment snapshots as JSON or YAML files."""

from __future__ import annotations

from pathlib import Path

from pathway_engine.models.pathway import PathwayDefinition
from pathway_engine.models.progress import EnrollmentSnapshot
from pathway_engine.snapshots.json import (
    dump_pathway_json,
    load_enrollment_json,
    load_pathway_json,
)
from pathway_engine.snapshots.yaml import (
    dump_pathway_yaml,
    load_enrollment_yaml,
    load_pathway_yaml,
)

_YAML_SUFFIXES = {".yaml", ".yml"}


def load_pathway(path: Path) -> PathwayDefinition:
    """Load a pathway snapshot, choosing the format from the file suffix."""
    if path.suffix.lower() in _YAML_SUFFIXES:
        return load_pathway_yaml(path)
    return load_pathway_json(path)


def dump_pathway(definition: PathwayDefinition, output_path: Path) -> None:
    if output_path.suffix.lower() in _YAML_SUFFIXES:
        dump_pathway_yaml(definition, output_path)
    else:
        dump_pathway_json(definition, output_path)


def load_enrollment(path: Path) -> EnrollmentSnapshot:
    if path.suffix.lower() in _YAML_SUFFIXES:
        return load_enrollment_yaml(path)
    return load_enrollment_json(path)


__all__ = [
    "dump_pathway",
    "dump_pathway_json",
    "dump_pathway_yaml",
    "load_enrollment",
    "load_enrollment_json",
    "load_enrollment_yaml",
    "load_pathway",
    "load_pathway_json",
    "load_pathway_yaml",
]
