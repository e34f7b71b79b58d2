"""BranchBoard CLI - typer application entry point."""

from __future__ import annotations

import atexit
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from branchboard.board.errors import BoardConfigError, InvalidSettingsError
from branchboard.board.generator import generate_board
from branchboard.board.layout import LayoutEngine
from branchboard.board.models import (
    BoardSettings,
    BranchSelectionMode,
    RandomizationLevel,
)
from branchboard.board.movement import MovementResolver
from branchboard.board.random_source import SeededRandomSource
from branchboard.board.serialize import board_to_dict, movement_to_dict
from branchboard.board.validation import run_topology_checks
from branchboard.config import BoardConfig, load_board_config
from branchboard.observability import (
    bind_board_context,
    close_file_logging,
    configure_logging,
    get_logger,
)
from branchboard.visualization import build_board_view, render_dot, render_mermaid

if TYPE_CHECKING:
    from branchboard.board.graph import BoardGraph

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="bboard",
    help="BranchBoard: branching board generation and movement resolution.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

OUTPUT_FORMATS = ("table", "json", "dot", "mermaid")

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Board config YAML (or a directory with board.yaml)."),
]
SeedOption = Annotated[
    int | None,
    typer.Option("--seed", "-s", help="Seed for reproducible generation.", envvar="BB_SEED"),
]
LengthOption = Annotated[
    int | None,
    typer.Option("--length", "-n", help="Main line length (board_length)."),
]
PathsOption = Annotated[
    int | None,
    typer.Option("--paths", help="Maximum paths per fork (2-4)."),
]
RandomizationOption = Annotated[
    RandomizationLevel | None,
    typer.Option("--randomization", "-r", help="Randomization level."),
]
SelectionOption = Annotated[
    BranchSelectionMode | None,
    typer.Option("--selection", help="Branch selection mode for default fork picks."),
]
StrictOption = Annotated[
    bool,
    typer.Option("--strict", help="Reject out-of-range settings instead of clamping."),
]


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log-dir",
            help="Enable file logging to {dir}/logs/debug.jsonl.",
            envvar="BB_LOG_DIR",
        ),
    ] = None,
) -> None:
    """BranchBoard: branching board generation and movement resolution."""
    if log_dir is not None:
        configure_logging(verbosity=verbose, log_to_file=True, log_dir=log_dir)
        atexit.register(close_file_logging)
    else:
        configure_logging(verbosity=verbose)


def _resolve_config(
    config: Path | None,
    *,
    seed: int | None,
    length: int | None,
    paths: int | None,
    randomization: RandomizationLevel | None,
    selection: BranchSelectionMode | None = None,
    strict: bool = False,
) -> BoardConfig:
    """Merge the config file (if any) with command line overrides.

    Command line values win over the file, which wins over environment
    variables and defaults.
    """
    try:
        base = (
            load_board_config(config, strict=strict)
            if config is not None
            else BoardConfig().with_env_overrides()
        )
        overrides = {
            "board_length": length,
            "max_branch_paths": paths,
            "randomization_level": randomization,
            "branch_selection_mode": selection,
        }
        merged = {
            **base.settings.model_dump(mode="json"),
            **{k: v for k, v in overrides.items() if v is not None},
        }
        settings = BoardSettings.from_dict(merged, strict=strict)
    except (BoardConfigError, InvalidSettingsError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    return BoardConfig(
        settings=settings,
        seed=seed if seed is not None else base.seed,
        layout=base.layout,
    )


def _generate(cfg: BoardConfig) -> tuple[BoardGraph, SeededRandomSource]:
    bind_board_context(seed=cfg.seed, board_length=cfg.settings.board_length)
    rng = SeededRandomSource(cfg.seed)
    return generate_board(cfg.settings, rng), rng


def _print_board_table(graph: BoardGraph, title: str) -> None:
    table = Table(title=title)
    table.add_column("Pos", justify="right", style="cyan")
    table.add_column("Kind")
    table.add_column("Branch", style="magenta")
    table.add_column("Paths", justify="right")
    table.add_column("X", justify="right", style="dim")
    table.add_column("Y", justify="right", style="dim")

    for space in graph:
        x, y = space.coordinates if space.coordinates is not None else (None, None)
        table.add_row(
            str(space.position),
            str(space.kind),
            space.branch_id or "",
            str(space.branch_count) if space.branch_count is not None else "",
            f"{x:g}" if x is not None else "",
            f"{y:g}" if y is not None else "",
        )
    console.print(table)

    summary = graph.summary()
    console.print(
        f"{summary.total_spaces} spaces: {summary.main_line_spaces} main line, "
        f"{summary.branch_spaces} on branches, {summary.splits} fork(s)"
    )


@app.command()
def version() -> None:
    """Show version information."""
    from branchboard import __version__

    console.print(f"BranchBoard v{__version__}")


@app.command()
def generate(
    config: ConfigOption = None,
    seed: SeedOption = None,
    length: LengthOption = None,
    paths: PathsOption = None,
    randomization: RandomizationOption = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help=f"Output format: {', '.join(OUTPUT_FORMATS)}."),
    ] = "table",
    with_layout: Annotated[
        bool,
        typer.Option("--layout/--no-layout", help="Attach layout coordinates."),
    ] = False,
    strict: StrictOption = False,
) -> None:
    """Generate a board and print it."""
    if output_format not in OUTPUT_FORMATS:
        console.print(f"[red]Error:[/red] Unknown format '{output_format}'")
        raise typer.Exit(1)

    cfg = _resolve_config(
        config,
        seed=seed,
        length=length,
        paths=paths,
        randomization=randomization,
        strict=strict,
    )
    graph, _ = _generate(cfg)

    if with_layout:
        result = LayoutEngine(cfg.layout).layout(graph)
        for issue in result.issues:
            console.print(f"[yellow]Layout issue:[/yellow] {issue.position}: {issue.message}")
        graph = result.graph

    if output_format == "json":
        typer.echo(json.dumps(board_to_dict(graph), indent=2))
    elif output_format == "dot":
        typer.echo(render_dot(build_board_view(graph)))
    elif output_format == "mermaid":
        typer.echo(render_mermaid(build_board_view(graph)))
    else:
        seed_label = cfg.seed if cfg.seed is not None else "random"
        title = f"Board (length {cfg.settings.board_length}, seed {seed_label})"
        _print_board_table(graph, title=title)


@app.command()
def move(
    start: Annotated[int, typer.Option("--start", help="Starting position.")] = 0,
    roll: Annotated[int, typer.Option("--roll", help="Die roll (steps to move).")] = 1,
    fork_choice: Annotated[
        int | None,
        typer.Option("--fork-choice", help="Path index at the first fork crossed."),
    ] = None,
    config: ConfigOption = None,
    seed: SeedOption = None,
    length: LengthOption = None,
    paths: PathsOption = None,
    randomization: RandomizationOption = None,
    selection: SelectionOption = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the result as JSON.")] = False,
) -> None:
    """Generate a board and resolve one movement on it.

    The same seed drives generation and default fork picks, so a given
    command line always produces the same path.
    """
    cfg = _resolve_config(
        config,
        seed=seed,
        length=length,
        paths=paths,
        randomization=randomization,
        selection=selection,
    )
    graph, rng = _generate(cfg)
    resolver = MovementResolver(graph, rng, selection_mode=cfg.settings.branch_selection_mode)
    result = resolver.resolve(start, roll, fork_choice)

    if as_json:
        typer.echo(json.dumps(movement_to_dict(result), indent=2))
        return

    path_str = " -> ".join(str(p) for p in result.path) or "(no movement)"
    console.print(f"Path: {path_str}")
    console.print(f"Final position: [bold]{result.final_position}[/bold]")
    for split_position, path_index in result.forks_taken.items():
        console.print(f"  fork at {split_position}: took path {path_index}")
    if result.fork_fallbacks:
        console.print(
            "[yellow]Fork choice out of range, picked by default at:[/yellow] "
            + ", ".join(str(p) for p in result.fork_fallbacks)
        )
    if result.reached_end:
        console.print("[dim]Reached the end of the board.[/dim]")


@app.command()
def validate(
    config: ConfigOption = None,
    seed: SeedOption = None,
    length: LengthOption = None,
    paths: PathsOption = None,
    randomization: RandomizationOption = None,
    runs: Annotated[
        int,
        typer.Option("--runs", help="Number of consecutive seeds to check."),
    ] = 1,
) -> None:
    """Generate boards and run topology checks on them."""
    cfg = _resolve_config(
        config,
        seed=seed,
        length=length,
        paths=paths,
        randomization=randomization,
    )
    base_seed = cfg.seed if cfg.seed is not None else 0
    failed = False

    for offset in range(max(runs, 1)):
        run_seed = base_seed + offset
        bind_board_context(seed=run_seed, board_length=cfg.settings.board_length)
        graph = generate_board(cfg.settings, seed=run_seed)
        report = run_topology_checks(graph, board_length=cfg.settings.board_length)
        layout_issues = LayoutEngine(cfg.layout).layout(graph).issues

        status = "[red]✗[/red]" if report.has_failures or layout_issues else "[green]✓[/green]"
        console.print(f"{status} seed {run_seed}: {report.summary}")
        for check in report.failures:
            console.print(f"    {check.name}: {check.message}")
        for issue in layout_issues:
            console.print(f"    layout {issue.code} at {issue.position}: {issue.message}")
        failed |= report.has_failures or bool(layout_issues)

    if failed:
        log.warning("validation_failed", runs=runs, base_seed=base_seed)
        raise typer.Exit(1)
