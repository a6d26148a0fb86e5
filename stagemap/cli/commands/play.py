"""Play command for driving a map session from a script of learner actions."""

from collections.abc import Callable
from pathlib import Path
from typing import Annotated, Any

import typer

from stagemap.cli.utils import Session, handle_cli_errors
from stagemap.exceptions import LoadError
from stagemap.loader import FileReader, load_snapshot, save_snapshot


def _require_stage(args: Any, step: str) -> str:
    if isinstance(args, dict):
        args = args.get("stage")
    if not isinstance(args, str) or not args:
        raise LoadError(f"Step '{step}' needs a stage id")
    return args


def _click(session: Session, args: Any) -> None:
    session.engine.click_stage(_require_stage(args, "click"))


def _score(session: Session, args: Any) -> None:
    if not isinstance(args, dict) or "score" not in args:
        raise LoadError("Step 'score' needs a mapping with 'stage' and 'score'")
    session.engine.score_exercise(
        _require_stage(args, "score"),
        args["score"],
        args.get("maxScore"),
        exercise=args.get("exercise", 0),
    )


def _close(session: Session, args: Any) -> None:
    session.engine.close_exercise()


def _continue(session: Session, args: Any) -> None:
    session.engine.continue_exercise()


def _advance(session: Session, args: Any) -> None:
    if not isinstance(args, (int, float)) or isinstance(args, bool) or args < 0:
        raise LoadError("Step 'advance' needs a number of milliseconds")
    session.scheduler.advance(args)


def _confirm(session: Session, args: Any) -> None:
    session.recorder.confirm_dialog()


def _cancel(session: Session, args: Any) -> None:
    session.recorder.cancel_dialog()


def _timeout(session: Session, args: Any) -> None:
    stage_id = _require_stage(args, "timeout")
    bundle = session.engine.exercise_bundles.get_exercise_bundle(stage_id)
    if bundle is None:
        raise LoadError(f"Stage '{stage_id}' has no exercise to time out")
    bundle.handle_timeout()


def _restart(session: Session, args: Any) -> None:
    session.engine.restart()


def _show_solutions(session: Session, args: Any) -> None:
    session.engine.show_solutions()


STEPS: dict[str, Callable[[Session, Any], None]] = {
    "click": _click,
    "score": _score,
    "close": _close,
    "continue": _continue,
    "advance": _advance,
    "confirm": _confirm,
    "cancel": _cancel,
    "timeout": _timeout,
    "restart": _restart,
    "show_solutions": _show_solutions,
}


def parse_script(data: Any) -> list[tuple[str, Any]]:
    """
    Turn raw script data into (step, args) pairs.

    A script is a list of steps, either at the root or under ``steps``.
    A step is a step name or a mapping with a single step name key.

    Raises:
        LoadError: If the script is malformed or names an unknown step
    """
    if isinstance(data, dict):
        data = data.get("steps")
    if not isinstance(data, list):
        raise LoadError("Script must be a list of steps")

    steps = []
    for index, raw in enumerate(data):
        if isinstance(raw, str):
            name, args = raw, None
        elif isinstance(raw, dict) and len(raw) == 1:
            ((name, args),) = raw.items()
        else:
            raise LoadError(f"Step {index} must be a name or a single-key mapping")

        if name not in STEPS:
            raise LoadError(
                f"Unknown step '{name}' at position {index}. "
                f"Available steps: {', '.join(STEPS)}"
            )
        steps.append((name, args))
    return steps


def run_script(session: Session, steps: list[tuple[str, Any]]) -> None:
    """Run the steps in order, letting due callbacks fire after each one."""
    for name, args in steps:
        STEPS[name](session, args)
        session.scheduler.advance(0)


@handle_cli_errors("Failed to play map")
def play_command(
    ctx: typer.Context,
    source: Annotated[Path, typer.Argument(help="Map file (YAML or JSON)")],
    script: Annotated[
        Path | None,
        typer.Option("--script", "-s", help="Script of learner actions (YAML or JSON)"),
    ] = None,
    seed: Annotated[
        int | None, typer.Option("--seed", help="Seed for random start stage selection")
    ] = None,
    state: Annotated[
        Path | None, typer.Option("--state", help="Snapshot to resume from")
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the final snapshot to a file")
    ] = None,
    no_animation: Annotated[
        bool, typer.Option("--no-animation", help="Disable animation delays")
    ] = False,
    events: Annotated[
        bool, typer.Option("--events", help="Also show every recorded event")
    ] = False,
):
    """Play a map, optionally following a script, and print the resulting snapshot."""
    cli_ctx = ctx.obj
    # Snapshots are always printed as JSON
    cli_ctx.set_json_mode(True)

    definition = cli_ctx.load_map_or_exit(source)
    previous_state = load_snapshot(state) if state else None
    steps = parse_script(FileReader.read_file(script)) if script else []

    session = cli_ctx.build_session(
        definition,
        seed=seed,
        use_animation=False if no_animation else None,
        previous_state=previous_state,
    )
    session.scheduler.advance(0)
    run_script(session, steps)

    snapshot = session.engine.get_current_state()
    if output:
        save_snapshot(snapshot, output)

    result: dict[str, Any] = {
        "score": session.engine.get_score(),
        "maxScore": session.engine.get_max_score(),
        "snapshot": snapshot,
    }
    if events:
        result["events"] = [
            {"name": event.name, **event.payload} for event in session.recorder.events
        ]
    cli_ctx.print_json(result)
