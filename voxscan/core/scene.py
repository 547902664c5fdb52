from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import numpy as np
import trimesh  # type: ignore

from .color import Color
from .pointcloud import VoxelBatch
from .voxels import VoxelKey, key_for
from .utils import get_logger

_log = get_logger()

DEFAULT_SURFACE_RGB = (200, 200, 200)


class EnvironmentMesh:
    """Triangle mesh standing in for the physical environment.

    Holds float vertices, triangle indices and one display-space RGB color per
    face. Meshes are loaded through trimesh and saved as ASCII PLY with
    per-vertex ``red/green/blue`` properties.
    """

    def __init__(
        self,
        vertices: np.ndarray,
        faces: np.ndarray,
        face_colors: Optional[np.ndarray] = None,
    ) -> None:
        self._vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        self._faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
        if len(self._faces) == 0:
            raise ValueError("EnvironmentMesh requires at least one triangle.")
        if self._faces.min() < 0 or self._faces.max() >= len(self._vertices):
            raise ValueError("Face indices out of range.")
        if face_colors is None:
            face_colors = np.tile(np.asarray(DEFAULT_SURFACE_RGB, dtype=np.uint8), (len(self._faces), 1))
        face_colors = np.asarray(face_colors)
        if face_colors.shape != (len(self._faces), 3):
            raise ValueError(f"face_colors must have shape ({len(self._faces)}, 3)")
        self._face_colors = np.clip(face_colors, 0, 255).astype(np.uint8)

    @classmethod
    def from_vertex_colors(cls, vertices: np.ndarray, faces: np.ndarray, vertex_colors: np.ndarray) -> "EnvironmentMesh":
        faces = np.asarray(faces, dtype=np.int64)
        vc = np.asarray(vertex_colors, dtype=np.float64)
        face_colors = np.round(vc[faces].mean(axis=1))
        return cls(vertices, faces, face_colors)

    # -- API --
    def bounds(self) -> tuple[float, float, float, float, float, float]:
        mn = self._vertices.min(axis=0)
        mx = self._vertices.max(axis=0)
        return (float(mn[0]), float(mx[0]), float(mn[1]), float(mx[1]), float(mn[2]), float(mx[2]))

    def triangles(self) -> np.ndarray:
        return self._vertices[self._faces]

    @property
    def face_colors(self) -> np.ndarray:
        return self._face_colors

    def __len__(self) -> int:
        return len(self._faces)

    # -- IO helpers --
    @classmethod
    def from_file(cls, path: str | Path) -> "EnvironmentMesh":
        """Load any mesh trimesh can read (PLY, OBJ, STL, glTF, ...).

        Face colors come from the file's face colors when present, otherwise
        from the mean of each face's vertex colors; uncolored meshes get the
        default surface gray.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Mesh file not found: {path}")
        loaded = trimesh.load_mesh(str(path), process=False)
        if isinstance(loaded, trimesh.Scene):
            loaded = loaded.dump(concatenate=True)
        if len(loaded.faces) == 0:
            raise RuntimeError(f"Mesh {path.name} contains no triangles.")

        vertices = np.asarray(loaded.vertices, dtype=np.float64)
        faces = np.asarray(loaded.faces, dtype=np.int64)
        visual_kind = getattr(loaded.visual, "kind", None)
        if visual_kind == "face":
            mesh = cls(vertices, faces, np.asarray(loaded.visual.face_colors[:, :3]))
        elif visual_kind == "vertex":
            mesh = cls.from_vertex_colors(vertices, faces, np.asarray(loaded.visual.vertex_colors[:, :3]))
        else:
            mesh = cls(vertices, faces)
        _log.info("Loaded environment mesh %s (%d triangles, bounds %s)", path.name, len(mesh), np.round(mesh.bounds(), 3).tolist())
        return mesh

    def to_ply(self, path: str | Path) -> None:
        """Write ASCII PLY with per-vertex colors (one vertex triple per face)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tris = self.triangles()
        with open(path, "w", encoding="utf-8") as f:
            f.write("ply\n")
            f.write("format ascii 1.0\n")
            f.write(f"element vertex {len(tris) * 3}\n")
            f.write("property float x\nproperty float y\nproperty float z\n")
            f.write("property uchar red\nproperty uchar green\nproperty uchar blue\n")
            f.write(f"element face {len(tris)}\n")
            f.write("property list uchar int vertex_indices\n")
            f.write("end_header\n")
            for tri, (r, g, b) in zip(tris, self._face_colors):
                for x, y, z in tri:
                    f.write(f"{x:.6f} {y:.6f} {z:.6f} {int(r)} {int(g)} {int(b)}\n")
            for i in range(len(tris)):
                f.write(f"3 {3 * i} {3 * i + 1} {3 * i + 2}\n")


@dataclass
class VoxelHandle:
    """A placed voxel. Color stays ``None`` until the color step succeeds."""

    center: np.ndarray
    edge_length: float
    color: Optional[Color] = None

    def set_color(self, color: Color) -> None:
        self.color = color


@dataclass
class VoxelScene:
    """In-memory voxel factory; records every voxel in creation order."""

    voxels: List[VoxelHandle] = field(default_factory=list)

    def create_voxel(self, center: np.ndarray, edge_length: float) -> VoxelHandle:
        handle = VoxelHandle(center=np.asarray(center, dtype=np.float64).reshape(3), edge_length=float(edge_length))
        self.voxels.append(handle)
        return handle

    def __len__(self) -> int:
        return len(self.voxels)

    def keys(self) -> List[VoxelKey]:
        return [key_for(v.center, v.edge_length) for v in self.voxels]

    def to_batch(self) -> VoxelBatch:
        n = len(self.voxels)
        xyz = np.zeros((n, 3), dtype=np.float64)
        rgb = np.zeros((n, 3), dtype=np.uint8)
        alpha = np.zeros((n,), dtype=np.float32)
        colored = np.zeros((n,), dtype=np.uint8)
        edge = np.zeros((n,), dtype=np.float32)
        keys = np.zeros((n, 3), dtype=np.int32)
        for i, (v, key) in enumerate(zip(self.voxels, self.keys())):
            xyz[i] = v.center
            edge[i] = v.edge_length
            keys[i] = key
            if v.color is not None:
                rgb[i] = v.color.to_rgb8()
                alpha[i] = v.color.a
                colored[i] = 1
        return VoxelBatch(
            xyz=xyz,
            attrs={"rgb": rgb, "alpha": alpha, "colored": colored, "voxel_size": edge, "voxel_key": keys},
        )
