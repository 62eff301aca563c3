"""CLI entry point for the pathway prerequisite engine.

Developer tooling around snapshot files; the engine itself is a library.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

import pydantic
import typer
import yaml
from rich.console import Console
from rich.table import Table

from pathway_engine.engine import PrerequisiteEngine
from pathway_engine.errors import CyclicPathwayError, EngineError, ValidationError
from pathway_engine.graph.pathway import PathwayGraph
from pathway_engine.models.pathway import ActivityId, PrerequisiteGroup, PrerequisiteType
from pathway_engine.models.results import AvailabilityResult, AvailabilityStatus, LockedReason
from pathway_engine.snapshots import dump_pathway, load_enrollment, load_pathway

app = typer.Typer(
    name="pathway-engine",
    help="Pathway prerequisite engine: check prerequisite graphs and participant progress.",
    no_args_is_help=True,
)
console = Console()
logger = logging.getLogger(__name__)

_STATUS_COLORS = {
    AvailabilityStatus.COMPLETED: "green",
    AvailabilityStatus.AVAILABLE: "cyan",
    AvailabilityStatus.LOCKED: "red",
}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def check(
    pathway_file: Path = typer.Argument(
        help="Pathway snapshot (.json, .yaml or .yml)", exists=True, dir_okay=False
    ),
) -> None:
    """Validate a pathway snapshot and list its prerequisites."""
    graph = _load_graph(pathway_file)

    table = Table(title=f"Pathway {graph.name or graph.pathway_id}")
    table.add_column("Activity")
    table.add_column("Weight", justify="right")
    table.add_column("Prerequisites")
    for activity in graph.activities():
        table.add_row(
            _label(graph, activity.id),
            f"{activity.weight:g}",
            _describe_groups(graph, graph.get_groups(activity.id)) or "[dim]-[/dim]",
        )
    console.print(table)

    edge_count = sum(len(edges) for edges in graph.adjacency().values())
    console.print(
        f"[green]No circular dependencies: {len(graph)} activities, "
        f"{edge_count} prerequisite edges[/green]"
    )


@app.command()
def propose(
    pathway_file: Path = typer.Argument(
        help="Pathway snapshot (.json, .yaml or .yml)", exists=True, dir_okay=False
    ),
    activity: str = typer.Option(..., help="Activity whose prerequisites are replaced"),
    group: list[str] | None = typer.Option(
        None,
        "--group",
        "-g",
        help="Prerequisite group: all_of:A,B | any_of:A,B | n_of_m:2:A,B,C (repeatable)",
    ),
    write: bool = typer.Option(False, help="Write the accepted change back to PATHWAY_FILE"),
) -> None:
    """Propose a new prerequisite set for one activity; rejects circular dependencies."""
    graph = _load_graph(pathway_file)
    engine = PrerequisiteEngine()
    engine.register_pathway(graph)

    activity_id = _resolve_id(graph, activity)
    try:
        groups = [_parse_group(graph, spec) for spec in group or []]
        result = engine.propose_prerequisite_change(graph.pathway_id, activity_id, groups)
    except EngineError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not result.valid:
        console.print(
            f"[red]Circular dependency detected: {_format_cycle(graph, result.cycle)}. "
            f"Prerequisites were not saved.[/red]"
        )
        raise typer.Exit(1)

    described = _describe_groups(graph, graph.get_groups(activity_id)) or "no prerequisites"
    console.print(f"[green]Accepted for {_label(graph, activity_id)}: {described}[/green]")

    if write:
        dump_pathway(graph.to_definition(), pathway_file)
        console.print(f"[green]Wrote {pathway_file}[/green]")


@app.command()
def progress(
    pathway_file: Path = typer.Argument(
        help="Pathway snapshot (.json, .yaml or .yml)", exists=True, dir_okay=False
    ),
    enrollment_file: Path = typer.Argument(
        help="Enrollment snapshot (.json, .yaml or .yml)", exists=True, dir_okay=False
    ),
    now: str | None = typer.Option(
        None,
        envvar="PATHWAY_ENGINE_NOW",
        help="Reference time (ISO 8601) for drip rules; defaults to the current time",
    ),
) -> None:
    """Show unlock state and completion rollup for one enrollment."""
    graph = _load_graph(pathway_file)
    try:
        snapshot = load_enrollment(enrollment_file)
    except (OSError, yaml.YAMLError, pydantic.ValidationError) as e:
        console.print(f"[red]Could not load {enrollment_file}: {e}[/red]")
        raise typer.Exit(1)

    if str(snapshot.pathway_id) != str(graph.pathway_id):
        console.print(
            f"[red]Enrollment {snapshot.enrollment_id} is for pathway {snapshot.pathway_id}, "
            f"not {graph.pathway_id}[/red]"
        )
        raise typer.Exit(1)

    engine = PrerequisiteEngine()
    engine.register_pathway(graph)
    states = snapshot.completion_states()
    try:
        reference_time = _parse_now(now)
        results = engine.evaluate_pathway(
            graph.pathway_id, states, snapshot.overrides, now=reference_time
        )
        rollup = engine.compute_enrollment_rollup(graph.pathway_id, states)
    except EngineError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Enrollment {snapshot.enrollment_id}")
    table.add_column("Activity")
    table.add_column("Status")
    table.add_column("Complete", justify="right")
    table.add_column("Detail")
    for activity_id, result in results.items():
        state = states.get(activity_id)
        color = _STATUS_COLORS[result.status]
        table.add_row(
            _label(graph, activity_id),
            f"[{color}]{result.status.value}[/{color}]",
            f"{state.completion_percent if state else 0:g}%",
            _describe_lock(graph, result),
        )
    console.print(table)
    console.print(
        f"[bold]Pathway completion:[/bold] {rollup.percent:.1f}% "
        f"({rollup.contributing_count} weighted activities)"
    )


def _load_graph(path: Path) -> PathwayGraph:
    try:
        graph = PathwayGraph.from_definition(load_pathway(path))
    except CyclicPathwayError as e:
        console.print(f"[red]Circular dependency detected: {_format_ids(e.cycle)}[/red]")
        raise typer.Exit(1)
    except (EngineError, OSError, yaml.YAMLError, pydantic.ValidationError) as e:
        console.print(f"[red]Could not load {path}: {e}[/red]")
        raise typer.Exit(1)
    logger.debug("Built graph for pathway %s with %d activities", graph.pathway_id, len(graph))
    return graph


def _resolve_id(graph: PathwayGraph, token: str) -> ActivityId:
    """Map a command-line token onto the pathway's (int or str) activity id."""
    for activity_id in graph.activity_ids():
        if str(activity_id) == token:
            return activity_id
    return token


def _parse_group(graph: PathwayGraph, spec: str) -> PrerequisiteGroup:
    kind, _, rest = spec.partition(":")
    try:
        prereq_type = PrerequisiteType(kind)
    except ValueError:
        raise ValidationError(f"Unknown prerequisite type in group {spec!r}") from None

    n_required: int | None = None
    if prereq_type == PrerequisiteType.N_OF_M:
        count, _, rest = rest.partition(":")
        try:
            n_required = int(count)
        except ValueError:
            raise ValidationError(f"n_of_m group {spec!r} needs a count: n_of_m:N:A,B") from None

    ids = [_resolve_id(graph, token.strip()) for token in rest.split(",") if token.strip()]
    return PrerequisiteGroup(prereq_type=prereq_type, n_required=n_required, items=ids)


def _parse_now(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid reference time {value!r}; expected ISO 8601") from None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _label(graph: PathwayGraph, activity_id: ActivityId) -> str:
    if graph.has_activity(activity_id):
        title = graph.get_activity(activity_id).title
        if title:
            return title
    return str(activity_id)


def _format_ids(ids: list[ActivityId]) -> str:
    return " -> ".join(str(i) for i in ids)


def _format_cycle(graph: PathwayGraph, cycle: list[ActivityId]) -> str:
    return " -> ".join(_label(graph, i) for i in cycle)


def _describe_groups(graph: PathwayGraph, groups: list[PrerequisiteGroup]) -> str:
    parts: list[str] = []
    for group in groups:
        names = ", ".join(_label(graph, i) for i in group.activity_ids())
        if group.prereq_type == PrerequisiteType.ANY_OF:
            parts.append(f"Any of: {names}")
        elif group.prereq_type == PrerequisiteType.N_OF_M:
            parts.append(f"{group.n_required} of: {names}")
        else:
            parts.append(f"All of: {names}")
    return "; ".join(parts)


def _describe_lock(graph: PathwayGraph, result: AvailabilityResult) -> str:
    if result.locked_reason == LockedReason.PREREQ:
        waiting = ", ".join(_label(graph, i) for i in result.blockers)
        return f"waiting on {waiting}"
    if result.locked_reason == LockedReason.DRIP:
        if result.next_available_at is None:
            return "release date pending"
        return f"releases {result.next_available_at.isoformat()}"
    return ""


if __name__ == "__main__":
    app()
