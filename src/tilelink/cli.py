"""Command-line interface for TileLink.

Provides commands for inferring tile adjacency from a tileset image,
inspecting a single edge comparison, and validating config files.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from tilelink.config import check_spec, load_config
from tilelink.edges import extract_edges
from tilelink.errors import ConfigError, TileLinkError
from tilelink.logging import setup_logging
from tilelink.matcher import compare_edges, infer_neighbors
from tilelink.models import ExclusionMode, MatchConfig, MatchPolicy, TilesetSpec
from tilelink.observability import adjacency_report, write_run_summary
from tilelink.slicer import load_tileset
from tilelink.tiles import Direction, TileCollection

console = Console()

_POLICY_CHOICES = [p.value for p in MatchPolicy]
_EXCLUSION_CHOICES = [m.value for m in ExclusionMode]
_DIRECTION_CHOICES = [d.value for d in Direction]


def _setup_logging(verbose: bool, json_logs: bool = False) -> None:
    setup_logging(
        level=logging.DEBUG if verbose else logging.WARNING,
        verbose=verbose,
        json_logs=json_logs,
    )


def match_options(func: Any) -> Any:
    """Attach the shared match-parameter overrides to a command."""
    options = [
        click.option(
            "--config",
            "-c",
            "config_path",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            help="YAML config file (run description or match settings)",
        ),
        click.option(
            "--tolerance",
            type=click.IntRange(0, 255),
            help="Max per-channel difference for two pixels to match",
        ),
        click.option(
            "--threshold",
            type=click.FloatRange(0.0, 1.0),
            help="Minimum fraction of matching pixels",
        ),
        click.option(
            "--policy",
            type=click.Choice(_POLICY_CHOICES),
            help="Aggregate decision policy",
        ),
        click.option(
            "--exclusion",
            type=click.Choice(_EXCLUSION_CHOICES),
            help="Which pixels are skipped as non-informative",
        ),
        click.option(
            "--empty-veto/--no-empty-veto",
            default=None,
            help="Veto strips that are mostly excluded pixels",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _resolve_spec(
    config_path: Path | None,
    tolerance: int | None,
    threshold: float | None,
    policy: str | None,
    exclusion: str | None,
    empty_veto: bool | None,
) -> TilesetSpec:
    """Merge a config file (if any) with command-line overrides."""
    if config_path is None:
        spec = TilesetSpec()
    else:
        spec = load_config(config_path)

    overrides: dict[str, Any] = {
        "tolerance": tolerance,
        "match_threshold": threshold,
        "policy": policy,
        "exclusion_mode": exclusion,
        "empty_veto": empty_veto,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if not overrides:
        return spec

    try:
        match = MatchConfig(**{**spec.match.model_dump(), **overrides})
    except ValidationError as exc:
        raise ConfigError(f"Invalid match options: {exc}") from exc
    return spec.model_copy(update={"match": match})


def _load_collection(
    image: Path | None, tile_size: int | None, spec: TilesetSpec
) -> TileCollection:
    image_path = image or (Path(spec.image_path) if spec.image_path else None)
    if image_path is None:
        raise ConfigError("No tileset image given (pass IMAGE or set image_path)")
    size = tile_size if tile_size is not None else spec.tile_size
    return load_tileset(image_path, size)


def _neighbor_table(collection: TileCollection) -> Table:
    table = Table(title="Inferred neighbors")
    table.add_column("Tile", justify="right")
    table.add_column("Pos", justify="center")
    for direction in Direction:
        table.add_column(direction.value.capitalize(), justify="right")
    for tile in collection:
        pos = f"{tile.row},{tile.column}" if tile.row is not None else "-"
        table.add_row(
            str(tile.id),
            pos,
            *(str(len(tile.neighbors(d))) for d in Direction),
        )
    return table


@click.group()
@click.version_option(package_name="tilelink")
def main() -> None:
    """TileLink — infer tile adjacency from edge pixels of a tileset."""


@main.command()
@click.argument(
    "image",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--tile-size",
    "-t",
    type=click.IntRange(min=1),
    help="Tile side length in pixels (overrides config)",
)
@match_options
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=0),
    help="Threads for edge extraction and matching (0 = serial)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the adjacency report as JSON",
)
@click.option("--table/--no-table", default=True, help="Print per-tile counts")
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
def infer(
    image: Path | None,
    tile_size: int | None,
    config_path: Path | None,
    tolerance: int | None,
    threshold: float | None,
    policy: str | None,
    exclusion: str | None,
    empty_veto: bool | None,
    workers: int | None,
    output: Path | None,
    table: bool,
    verbose: bool,
    json_logs: bool,
) -> None:
    """Slice IMAGE into tiles and infer up/down/left/right neighbors.

    Example:

        \b
        tilelink infer assets/overworld.png --tile-size 16
        tilelink infer assets/overworld.png -t 16 --policy flat-ratio-with-veto \\
            --exclusion alpha+near-white -o output/adjacency.json
    """
    _setup_logging(verbose, json_logs)

    try:
        spec = _resolve_spec(
            config_path, tolerance, threshold, policy, exclusion, empty_veto
        )
        with console.status("[bold blue]Slicing tileset..."):
            collection = _load_collection(image, tile_size, spec)

        console.print(
            f"[bold green]✓[/] Sliced [bold]{len(collection)}[/] tiles "
            f"({collection.tile_size}px)"
        )

        max_workers = workers if workers is not None else spec.max_workers
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            tasks = {
                "edges": progress.add_task("[cyan]Extracting edges...", total=None),
                "matching": progress.add_task("[cyan]Matching tiles...", total=None),
            }

            def progress_callback(stage: str, current: int, total: int) -> None:
                task = tasks.get(stage)
                if task is not None:
                    progress.update(task, completed=current, total=total)

            stats = infer_neighbors(
                collection,
                spec.match,
                max_workers=max_workers,
                progress_callback=progress_callback,
            )

        console.print(
            f"[bold green]✓[/] Compared {stats.pairs_compared} pairs, "
            f"found {stats.total_matches} matches"
        )
        console.print(
            "  "
            + "  ".join(f"{d.value}: {stats.matches(d)}" for d in Direction)
        )

        if table:
            console.print(_neighbor_table(collection))

        output_path = output or (Path(spec.output_path) if spec.output_path else None)
        if output_path is not None:
            write_run_summary(
                output_path, adjacency_report(collection, spec.match, stats)
            )
            console.print(f"[bold green]✓[/] Report written: [bold]{output_path}[/]")

    except TileLinkError as e:
        console.print(f"[bold red]✗[/] Inference failed: {escape(str(e))}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[bold yellow]⚠[/] Inference interrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print(f"[bold red]✗[/] Unexpected error: {escape(str(e))}")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@click.argument(
    "image",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument("tile_a", type=click.IntRange(min=0))
@click.argument("tile_b", type=click.IntRange(min=0))
@click.option(
    "--tile-size",
    "-t",
    type=click.IntRange(min=1),
    required=True,
    help="Tile side length in pixels",
)
@click.option(
    "--direction",
    "-d",
    type=click.Choice(_DIRECTION_CHOICES),
    required=True,
    help="Where TILE_B would sit relative to TILE_A",
)
@match_options
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
def compare(
    image: Path,
    tile_a: int,
    tile_b: int,
    tile_size: int,
    direction: str,
    config_path: Path | None,
    tolerance: int | None,
    threshold: float | None,
    policy: str | None,
    exclusion: str | None,
    empty_veto: bool | None,
    verbose: bool,
) -> None:
    """Explain whether TILE_B may sit in DIRECTION of TILE_A.

    Example:

        \b
        tilelink compare assets/overworld.png 0 1 --tile-size 16 --direction right
    """
    _setup_logging(verbose)

    try:
        spec = _resolve_spec(
            config_path, tolerance, threshold, policy, exclusion, empty_veto
        )
        collection = load_tileset(image, tile_size)
        try:
            a = collection.get(tile_a)
            b = collection.get(tile_b)
        except KeyError as exc:
            raise ConfigError(str(exc.args[0])) from exc

        side = Direction(direction)
        strip_a = extract_edges(a.pixels, tile_size).facing(side)
        strip_b = extract_edges(b.pixels, tile_size).facing(side.opposite)
        result = compare_edges(strip_a, strip_b, spec.match)

        verdict = "[bold green]match[/]" if result.matched else "[bold red]no match[/]"
        console.print(
            f"Tile {tile_a} {side.value} ← tile {tile_b}: {verdict} ({result.reason})"
        )
        console.print(
            f"  valid pixels: {result.valid_a} / {result.valid_b} "
            f"of {result.length}, matching: {result.match_count}"
        )
        console.print(
            f"  ratios: a={result.ratio_a:.3f} b={result.ratio_b:.3f} "
            f"flat={result.flat_ratio:.3f} "
            f"(threshold {spec.match.match_threshold})"
        )
        if result.mismatched_indices:
            indices = ", ".join(str(i) for i in result.mismatched_indices)
            console.print(f"  mismatched at: {indices}")

    except TileLinkError as e:
        console.print(f"[bold red]✗[/] Comparison failed: {escape(str(e))}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[bold red]✗[/] Unexpected error: {escape(str(e))}")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@click.argument(
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--no-check-image",
    is_flag=True,
    help="Skip tileset image existence check",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
def validate(config_path: Path, no_check_image: bool, verbose: bool) -> None:
    """Validate a run configuration without slicing or matching.

    Example:

        \b
        tilelink validate configs/overworld.yaml
    """
    _setup_logging(verbose)

    try:
        spec = load_config(config_path)
        warnings = check_spec(spec, check_image=not no_check_image)
    except TileLinkError as e:
        console.print(f"[bold red]✗[/] Validation failed: {escape(str(e))}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[bold red]✗[/] Unexpected error: {escape(str(e))}")
        if verbose:
            console.print_exception()
        sys.exit(1)

    console.print("[bold green]✓[/] Configuration is valid")
    console.print(f"  Tile size: {spec.tile_size}")
    console.print(f"  Policy: {spec.match.policy.value}")
    console.print(f"  Exclusion: {spec.match.exclusion_mode.value}")

    if warnings:
        console.print()
        console.print(f"[bold yellow]⚠[/] {len(warnings)} warning(s):")
        for warning in warnings:
            console.print(f"  • {warning}")


if __name__ == "__main__":
    main()
