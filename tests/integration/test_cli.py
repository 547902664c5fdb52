from __future__ import annotations

from pathlib import Path

import numpy as np
import yaml
from typer.testing import CliRunner

from voxscan.cli.main import app
from voxscan.core.scene import EnvironmentMesh


def _scenario(mesh_name: str) -> dict:
    return {
        "environment": {"kind": "mesh", "path": mesh_name},
        "trajectory": {"kind": "static", "xyz": [0.1, 0.3, 2.0], "rpy_deg": [180.0, 0.0, 0.0]},
        "camera": {"resolution_px": [320, 240], "focal_px": [200.0, 200.0], "image_size_px": [32, 24]},
        "feed": {"warmup_ticks": 1},
        "scanner": {
            "ray_sample_origins": [
                {"kind": "mounted"},
                {"kind": "fixed", "origin": [0.3, -0.3, 2.0], "direction": [0.0, 0.0, -1.0]},
            ],
            "voxel_size": 0.2,
            "snap": "offset",
        },
        "ticks": 3,
        "output": {"path": "scan.npz", "format": "npz"},
    }


def test_cli_scene_generate_then_scan(tmp_path: Path) -> None:
    runner = CliRunner()
    mesh_path = tmp_path / "floor.ply"
    result = runner.invoke(app, ["scene", "generate", str(mesh_path), "--preset", "plane", "--size", "4"])
    assert result.exit_code == 0, result.output
    assert "128 triangles" in result.output
    assert len(EnvironmentMesh.from_file(mesh_path)) == 128

    cfg_path = tmp_path / "scan.yaml"
    cfg_path.write_text(yaml.safe_dump(_scenario(mesh_path.name)), encoding="utf-8")

    result = runner.invoke(app, ["scan", str(cfg_path)])
    assert result.exit_code == 0, result.output
    assert "Placed 2 voxels (0 colored)" in result.output

    out = tmp_path / "scan.npz"
    assert out.exists()
    data = np.load(out)
    assert data["xyz"].shape == (2, 3)
    np.testing.assert_allclose(data["xyz"][:, 2], [0.1, 0.1])


def test_cli_run_alias_with_overrides(tmp_path: Path) -> None:
    runner = CliRunner()
    mesh_path = tmp_path / "floor.ply"
    runner.invoke(app, ["scene", "generate", str(mesh_path), "--preset", "plane"])
    cfg = _scenario(mesh_path.name)
    cfg["feed"]["warmup_ticks"] = 0
    cfg_path = tmp_path / "scan.yaml"
    cfg_path.write_text(yaml.safe_dump(cfg), encoding="utf-8")

    out = tmp_path / "scan.ply"
    result = runner.invoke(app, ["run", str(cfg_path), "--output", str(out), "--ticks", "2", "--log-level", "WARNING"])
    assert result.exit_code == 0, result.output
    assert "(2 colored)" in result.output
    assert "in 2 ticks" in result.output
    assert out.exists()


def test_cli_rejects_bad_arguments(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["scene", "generate", str(tmp_path / "x.ply"), "--preset", "castle"])
    assert result.exit_code != 0

    cfg_path = tmp_path / "scan.yaml"
    cfg_path.write_text(yaml.safe_dump(_scenario("floor.ply")), encoding="utf-8")
    result = runner.invoke(app, ["scan", str(cfg_path), "--output", str(tmp_path / "scan.txt")])
    assert result.exit_code != 0
