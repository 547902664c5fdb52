from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np

from ..config import ScenarioConfig, load_config
from ..core.scene import VoxelScene
from ..motion.trajectory import SimulationClock
from ..runtime.builders import build_orchestrator, build_writer


@dataclass(frozen=True)
class ScanRunResult:
    """Summary of a scan driven by a configuration file."""

    stats: Dict[str, int]
    output_path: Path
    config: ScenarioConfig
    scene: VoxelScene


def scan_from_config(
    config: Union[str, Path, ScenarioConfig],
    *,
    output: Optional[Path] = None,
    seed: Optional[int] = None,
    ticks: Optional[int] = None,
) -> ScanRunResult:
    """Run a simulated scan described by a configuration file or object.

    Parameters
    ----------
    config:
        Path to a YAML file or a pre-loaded :class:`~voxscan.config.schema.ScenarioConfig`.
    output:
        Optional override for the voxel export. The extension drives the
        format (``.las``, ``.laz``, ``.npz``, or ``.ply``).
    seed:
        Optional RNG seed for feed noise. Falls back to the config or ``12345``.
    ticks:
        Optional override for the number of ticks to run.

    Returns
    -------
    ScanRunResult
        Run statistics, the resolved output path, the configuration used and
        the in-memory voxel scene.
    """

    cfg = load_config(config) if not isinstance(config, ScenarioConfig) else config.model_copy(deep=True)

    if ticks is not None:
        cfg.ticks = int(ticks)

    if output is not None:
        out_path = Path(output).resolve()
        ext = out_path.suffix.lower()
        if ext not in {".las", ".laz", ".npz", ".ply"}:
            raise ValueError(f"Unsupported output extension '{ext}'")
        cfg.output.path = out_path
        cfg.output.format = ext.lstrip(".")
        if ext == ".las":
            cfg.output.compress = False
        elif ext == ".laz":
            cfg.output.compress = True if cfg.output.compress is None else cfg.output.compress
    else:
        cfg.output.path = Path(cfg.output.path).resolve()
    cfg.output.path.parent.mkdir(parents=True, exist_ok=True)

    run_seed = seed if seed is not None else (cfg.seed if cfg.seed is not None else 12345)
    rng = np.random.default_rng(run_seed)

    clock = SimulationClock(tick_dt_s=cfg.tick_dt_s)
    scene = VoxelScene()
    orchestrator = build_orchestrator(cfg, clock, scene, rng)
    writer = build_writer(cfg)

    try:
        stats = orchestrator.run(cfg.ticks, after_tick=lambda _report: clock.advance())
        writer.write_batch(scene.to_batch())
    finally:
        close = getattr(writer, "close", None)
        if callable(close):
            close()

    return ScanRunResult(stats=stats, output_path=Path(cfg.output.path), config=cfg, scene=scene)
