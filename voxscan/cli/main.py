from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from ..examples.synthetic import generate_mesh
from ..sdk.run import scan_from_config

app = typer.Typer(help="voxscan voxel scanning utilities")
scene_app = typer.Typer(help="Synthetic environment helpers")
app.add_typer(scene_app, name="scene")

_OUTPUT_EXTENSIONS = {".las", ".laz", ".npz", ".ply"}


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(message)s")
    logging.getLogger("voxscan").setLevel(numeric)


def _execute_scan(
    config: Path,
    output_override: Optional[Path],
    seed_override: Optional[int],
    ticks_override: Optional[int],
    log_level: str,
) -> None:
    _configure_logging(log_level)
    if output_override is not None and output_override.suffix.lower() not in _OUTPUT_EXTENSIONS:
        raise typer.BadParameter(f"Unsupported output extension '{output_override.suffix}'", param_hint="--output")
    if ticks_override is not None and ticks_override < 0:
        raise typer.BadParameter("ticks must be non-negative.", param_hint="--ticks")

    result = scan_from_config(config, output=output_override, seed=seed_override, ticks=ticks_override)
    stats = result.stats
    typer.echo(
        f"Placed {stats['placed']} voxels ({stats['colored']} colored) from {stats['rays']} rays "
        f"in {stats['ticks']} ticks → {result.output_path}"
    )


@app.command("scan")
def scan(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override output path (extension sets format)."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Override random seed."),
    ticks: Optional[int] = typer.Option(None, "--ticks", help="Override number of ticks to run."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Run a simulated scan specified by a YAML config."""

    _execute_scan(config, output, seed, ticks, log_level)


@app.command("run")
def run(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override output path (extension sets format)."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Override random seed."),
    ticks: Optional[int] = typer.Option(None, "--ticks", help="Override number of ticks to run."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Alias for `scan`"""

    _execute_scan(config, output, seed, ticks, log_level)


@scene_app.command("generate")
def scene_generate(
    output: Path = typer.Argument(..., help="Output mesh path (.ply)."),
    preset: str = typer.Option("room", "--preset", help="Synthetic environment preset (plane, wall, room, demo)."),
    size: float = typer.Option(4.0, "--size", help="Scene extent in metres."),
) -> None:
    """Generate a synthetic environment mesh usable as `environment: {kind: mesh}`."""

    if size <= 0:
        raise typer.BadParameter("size must be positive.", param_hint="--size")
    out = output.resolve()
    try:
        mesh = generate_mesh(preset=preset, size=size, path=out)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--preset") from exc
    typer.echo(f"Wrote synthetic environment ({len(mesh)} triangles) to {out}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
