from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence, Tuple

import numpy as np

from ..core.scene import EnvironmentMesh

Part = Tuple[np.ndarray, np.ndarray, np.ndarray]  # vertices, faces, per-face rgb8


def _grid_quad(
    origin: Sequence[float],
    u_vec: Sequence[float],
    v_vec: Sequence[float],
    divisions: int,
    colors: Sequence[Tuple[int, int, int]],
) -> Part:
    """Rectangle ``origin + s*u_vec + t*v_vec`` split into a checkerboard of cells."""
    o = np.asarray(origin, dtype=np.float64)
    u = np.asarray(u_vec, dtype=np.float64)
    v = np.asarray(v_vec, dtype=np.float64)
    lin = np.linspace(0.0, 1.0, divisions + 1)
    ss, tt = np.meshgrid(lin, lin, indexing="ij")
    vertices = o + ss.reshape(-1, 1) * u + tt.reshape(-1, 1) * v

    faces = []
    face_colors = []
    for i in range(divisions):
        for j in range(divisions):
            idx0 = i * (divisions + 1) + j
            idx1 = idx0 + 1
            idx2 = idx0 + (divisions + 1)
            idx3 = idx2 + 1
            color = colors[(i + j) % len(colors)]
            faces.append([idx0, idx2, idx3])
            faces.append([idx0, idx3, idx1])
            face_colors.extend([color, color])
    return vertices, np.asarray(faces, dtype=np.int64), np.asarray(face_colors, dtype=np.uint8)


def _box(center: Tuple[float, float, float], size: Tuple[float, float, float], color: Tuple[int, int, int]) -> Part:
    cx, cy, cz = center
    sx, sy, sz = size
    hx, hy, hz = sx / 2.0, sy / 2.0, sz / 2.0
    vertices = np.array([
        [cx - hx, cy - hy, cz - hz],
        [cx + hx, cy - hy, cz - hz],
        [cx + hx, cy + hy, cz - hz],
        [cx - hx, cy + hy, cz - hz],
        [cx - hx, cy - hy, cz + hz],
        [cx + hx, cy - hy, cz + hz],
        [cx + hx, cy + hy, cz + hz],
        [cx - hx, cy + hy, cz + hz],
    ], dtype=np.float64)

    faces = np.array([
        [0, 1, 2], [0, 2, 3],  # bottom
        [4, 7, 6], [4, 6, 5],  # top
        [0, 4, 5], [0, 5, 1],  # front
        [1, 5, 6], [1, 6, 2],  # right
        [2, 6, 7], [2, 7, 3],  # back
        [3, 7, 4], [3, 4, 0],  # left
    ], dtype=np.int64)
    colors = np.tile(np.asarray(color, dtype=np.uint8), (faces.shape[0], 1))
    return vertices, faces, colors


def _merge_parts(parts: Iterable[Part]) -> EnvironmentMesh:
    vertices: list[np.ndarray] = []
    faces: list[np.ndarray] = []
    colors: list[np.ndarray] = []
    offset = 0
    for verts, tri, col in parts:
        vertices.append(verts)
        colors.append(col)
        faces.append(tri + offset)
        offset += verts.shape[0]
    return EnvironmentMesh(np.vstack(vertices), np.vstack(faces), np.vstack(colors))


def _floor(size: float) -> Part:
    h = size / 2.0
    return _grid_quad((-h, -h, 0.0), (size, 0.0, 0.0), (0.0, size, 0.0), 8, [(170, 150, 120), (120, 100, 80)])


def _walls(size: float, height: float) -> list[Part]:
    h = size / 2.0
    return [
        _grid_quad((h, -h, 0.0), (0.0, size, 0.0), (0.0, 0.0, height), 4, [(200, 200, 220), (90, 110, 160)]),
        _grid_quad((-h, -h, 0.0), (0.0, size, 0.0), (0.0, 0.0, height), 4, [(220, 200, 180), (160, 90, 80)]),
        _grid_quad((-h, h, 0.0), (size, 0.0, 0.0), (0.0, 0.0, height), 4, [(190, 220, 190), (80, 140, 90)]),
        _grid_quad((-h, -h, 0.0), (size, 0.0, 0.0), (0.0, 0.0, height), 4, [(230, 230, 230), (60, 60, 60)]),
    ]


def generate_environment(preset: str, size: float = 4.0) -> EnvironmentMesh:
    """Build a synthetic environment. Z is up; scenes are centered on the origin."""
    if size <= 0.0:
        raise ValueError("size must be positive")
    preset = preset.lower()
    height = size * 0.6

    if preset == "plane":
        return _merge_parts([_floor(size)])

    if preset == "wall":
        # single wall facing -x at x = size / 2
        return _merge_parts(_walls(size, height)[:1])

    if preset == "room":
        return _merge_parts([_floor(size), *_walls(size, height)])

    if preset == "demo":
        box1 = _box(center=(size * 0.2, size * 0.15, size * 0.1), size=(size * 0.2, size * 0.2, size * 0.2), color=(180, 180, 240))
        box2 = _box(center=(size * 0.1, -size * 0.25, size * 0.15), size=(size * 0.15, size * 0.15, size * 0.3), color=(240, 180, 180))
        return _merge_parts([_floor(size), *_walls(size, height), box1, box2])

    raise ValueError(f"Unknown synthetic environment preset '{preset}'.")


def generate_mesh(preset: str, size: float, path: Path) -> EnvironmentMesh:
    mesh = generate_environment(preset, size)
    mesh.to_ply(path)
    return mesh
