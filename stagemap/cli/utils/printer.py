"""CLI Printer for consistent output formatting."""

from typing import Any

from rich.console import Console
from rich.table import Table

from stagemap.engine import MapEngine
from stagemap.stage import Stage


def describe_restrictions(stage: Stage) -> str:
    """One line summary of the access restrictions of a stage."""
    restrictions = stage.access_restrictions
    if restrictions.is_empty:
        return "-"

    joiner = f" {restrictions.combinator.value if restrictions.combinator else 'all'} "
    parts = []
    for restriction_set in restrictions.sets:
        inner = f" {restriction_set.combinator.value if restriction_set.combinator else 'all'} "
        parts.append(
            "(" + inner.join(repr(restriction) for restriction in restriction_set.restrictions) + ")"
        )
    return joiner.join(parts)


class CliPrinter:
    """Centralized printer for CLI output.

    Handles all printing for the CLI so that commands format maps,
    reachable sets and recorded sessions the same way.
    """

    def __init__(self, console: Console, verbose: bool = False, json_mode: bool = False):
        self.console = console
        self.verbose = verbose
        self.json_mode = json_mode

    def print_map_overview(self, engine: MapEngine, name: str = "") -> None:
        """Print the stages of a map as a table, followed by its islands."""
        islands = engine.stages.get_islands()
        island_of = {
            stage_id: index + 1 for index, island in enumerate(islands) for stage_id in island
        }

        table = Table(title=name or "Map", show_lines=False)
        table.add_column("Stage", style="cyan")
        table.add_column("Label")
        table.add_column("Kind")
        table.add_column("State")
        table.add_column("Neighbors")
        table.add_column("Restrictions")
        table.add_column("Island", justify="right")

        for stage in engine.stages:
            kind = stage.special_stage_type.value if stage.special_stage_type else stage.type.value
            if stage.can_be_start_stage:
                kind += " (start)"
            table.add_row(
                stage.id,
                stage.label,
                kind,
                stage.state.value,
                ", ".join(stage.neighbors) or "-",
                describe_restrictions(stage),
                str(island_of.get(stage.id, "-")),
            )

        self.console.print(table)
        self.console.print(
            f"{len(engine.stages)} stages, {len(engine.paths)} paths, "
            f"{len(islands)} island(s), max score {engine.get_max_score()}"
        )

    def describe_map(self, engine: MapEngine, name: str = "") -> dict[str, Any]:
        return {
            "name": name,
            "stages": [
                {
                    "id": stage.id,
                    "label": stage.label,
                    "type": stage.type.value,
                    "specialStageType": (
                        stage.special_stage_type.value if stage.special_stage_type else None
                    ),
                    "canBeStartStage": stage.can_be_start_stage,
                    "neighbors": stage.neighbors,
                    "accessRestrictions": stage.access_restrictions.to_dict(),
                }
                for stage in engine.stages
            ],
            "islands": [sorted(island) for island in engine.stages.get_islands()],
            "maxScore": engine.get_max_score(),
        }

    def print_reachable(self, start_ids: list[str], reachable: set[str], all_ids: list[str]) -> None:
        self.console.print(f"Reachable from [cyan]{', '.join(start_ids)}[/cyan]:")
        for stage_id in all_ids:
            if stage_id in reachable:
                self.console.print(f"  [green]•[/green] {stage_id}")
        unreachable = [stage_id for stage_id in all_ids if stage_id not in reachable]
        if unreachable:
            self.console.print(f"[yellow]Unreachable:[/yellow] {', '.join(unreachable)}")

    def show_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def print_json(self, data: Any) -> None:
        self.console.print_json(data=data)

    def print_error(self, message: str) -> None:
        """Print error message with red formatting."""
        self.console.print(f"[red]Error:[/red] {message}")
