"""
CLI Context for stagemap.

Provides centralized map loading and engine construction for all CLI commands.
"""

import random
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from stagemap.cli.utils.printer import CliPrinter
from stagemap.collaborators import EventRecorder
from stagemap.context import MapContext
from stagemap.engine import MapEngine
from stagemap.exceptions import StageMapError
from stagemap.loader import load_map
from stagemap.models import MapDefinition, MapSnapshot
from stagemap.scheduler import ManualScheduler
from stagemap.settings import MapSettings


@dataclass
class Session:
    """An engine driven by the CLI, with everything needed to observe it."""

    engine: MapEngine
    recorder: EventRecorder
    scheduler: ManualScheduler


@dataclass
class CLIContext:
    """
    Context object for CLI commands.

    Created once in the main callback and passed to all commands via Typer's
    context injection.

    Attributes:
        console: Rich console for output
        verbose: Enable verbose output (ignored when json_mode is True)
        printer: CLI printer for formatted output
        definition: Loaded map definition (if loading succeeded)
        source: Path the map was loaded from
        json_mode: When True, suppress all non-JSON output (set by commands)
    """

    console: Console
    verbose: bool = False
    printer: CliPrinter = field(init=False)
    definition: MapDefinition | None = None
    source: str = ""
    json_mode: bool = False

    def __post_init__(self):
        self.printer = CliPrinter(console=self.console, verbose=self.verbose)

    def set_json_mode(self, json_mode: bool) -> None:
        self.json_mode = json_mode
        self.printer.json_mode = json_mode

    def print_verbose(self, message: str, **kwargs) -> None:
        if self.verbose and not self.json_mode:
            self.console.print(message, **kwargs)

    def print_error(self, message: str) -> None:
        if not self.json_mode:
            self.printer.print_error(message)

    def print_json(self, data: Any) -> None:
        self.printer.print_json(data=data)

    def load_map_or_exit(self, source: Path | str) -> MapDefinition:
        """
        Load a map definition and exit on failure.

        Raises:
            typer.Exit: If loading fails
        """
        self.source = str(source)
        self.print_verbose(f"[dim]Loading map from: {source}[/dim]")

        try:
            self.definition = load_map(source)
        except StageMapError as e:
            if self.json_mode:
                self.print_json({"error": str(e)})
            else:
                self.print_error(str(e))
            raise typer.Exit(code=1) from e

        return self.definition

    def build_session(
        self,
        definition: MapDefinition,
        seed: int | None = None,
        use_animation: bool | None = None,
        previous_state: MapSnapshot | None = None,
    ) -> Session:
        """
        Build an engine on a virtual clock with a recording collaborator.

        Raises:
            ConfigurationError: If the map settings are invalid
        """
        settings = MapSettings.from_dict(definition.get("settings"))
        if use_animation is not None:
            settings = replace(
                settings,
                visual=replace(
                    settings.visual, misc=replace(settings.visual.misc, use_animation=use_animation)
                ),
            )

        recorder = EventRecorder()
        scheduler = ManualScheduler()
        context = MapContext(
            settings=settings,
            scheduler=scheduler,
            collaborators=recorder.collaborators(),
            random=random.Random(seed),
        )
        engine = MapEngine(definition, context=context, previous_state=previous_state)
        self.print_verbose(f"[dim]Settings: {settings}[/dim]")
        return Session(engine=engine, recorder=recorder, scheduler=scheduler)
