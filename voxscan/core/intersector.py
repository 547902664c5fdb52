from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple
import numpy as np
from .scene import EnvironmentMesh
from .utils import ensure_unit_vectors


@dataclass
class Ray:
    origin: np.ndarray          # (3,)
    direction: np.ndarray       # (3,) unit

    def __post_init__(self) -> None:
        self.origin = np.asarray(self.origin, dtype=np.float64).reshape(3)
        self.direction = ensure_unit_vectors(np.asarray(self.direction, dtype=np.float64).reshape(3))


class HitStatus(str, Enum):
    HIT = "hit"
    NO_HIT = "no_hit"
    HIT_POINT_OUTSIDE_RANGE = "hit_point_outside_range"


@dataclass
class RaycastHit:
    """Result of one environment raycast.

    ``hit`` can be true while ``status`` is not ``HIT``: the ray met a surface
    that is not usable as an environment sample.
    """
    hit: bool
    point: np.ndarray = field(default_factory=lambda: np.zeros(3))
    normal: Optional[np.ndarray] = field(default_factory=lambda: np.zeros(3))
    status: HitStatus = HitStatus.NO_HIT
    distance: float = float("inf")

    @staticmethod
    def miss() -> "RaycastHit":
        return RaycastHit(hit=False)

    @property
    def is_surface(self) -> bool:
        return self.hit and self.status == HitStatus.HIT


class MeshRaycaster:
    """Moller-Trumbore raycaster over an :class:`EnvironmentMesh`.

    Rays are tested against every triangle at once with NumPy broadcasting;
    large ray sets are processed in chunks of ``batch_size_rays``.
    """

    def __init__(
        self,
        mesh: EnvironmentMesh,
        max_range_m: float = 1e6,
        epsilon: float = 1e-9,
        batch_size_rays: int = 2048,
    ) -> None:
        if max_range_m <= 0.0:
            raise ValueError("max_range_m must be positive")
        if batch_size_rays <= 0:
            raise ValueError("batch_size_rays must be positive")
        self.mesh = mesh
        self.max_range_m = float(max_range_m)
        self.epsilon = float(epsilon)
        self.batch_size_rays = int(batch_size_rays)

        tris = mesh.triangles()
        self._v0 = tris[:, 0]
        self._e1 = tris[:, 1] - tris[:, 0]
        self._e2 = tris[:, 2] - tris[:, 0]
        self._face_normals = ensure_unit_vectors(np.cross(self._e1, self._e2))

    def intersect_many(self, origins: np.ndarray, directions: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Nearest hit per ray, ignoring range.

        Returns ``(distances, face_ids)``; misses have ``inf`` / ``-1``.
        """
        origins = np.asarray(origins, dtype=np.float64).reshape(-1, 3)
        dirs = ensure_unit_vectors(np.asarray(directions, dtype=np.float64).reshape(-1, 3))
        n_rays = origins.shape[0]
        distances = np.full((n_rays,), np.inf, dtype=np.float64)
        face_ids = np.full((n_rays,), -1, dtype=np.int64)

        for start in range(0, n_rays, self.batch_size_rays):
            stop = min(start + self.batch_size_rays, n_rays)
            dist, ids = self._intersect_chunk(origins[start:stop], dirs[start:stop])
            distances[start:stop] = dist
            face_ids[start:stop] = ids
        return distances, face_ids

    def _intersect_chunk(self, o: np.ndarray, d: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        e1 = self._e1[None, :, :]
        e2 = self._e2[None, :, :]
        pvec = np.cross(d[:, None, :], e2)
        det = np.sum(e1 * pvec, axis=-1)
        valid = np.abs(det) > self.epsilon
        inv_det = 1.0 / np.where(valid, det, 1.0)

        tvec = o[:, None, :] - self._v0[None, :, :]
        u = np.sum(tvec * pvec, axis=-1) * inv_det
        qvec = np.cross(tvec, e1)
        v = np.sum(d[:, None, :] * qvec, axis=-1) * inv_det
        t = np.sum(e2 * qvec, axis=-1) * inv_det

        valid &= (u >= 0.0) & (u <= 1.0) & (v >= 0.0) & (u + v <= 1.0) & (t > self.epsilon)
        t = np.where(valid, t, np.inf)
        ids = np.argmin(t, axis=1)
        dist = t[np.arange(t.shape[0]), ids]
        ids = np.where(np.isfinite(dist), ids, -1)
        return dist, ids

    def cast(self, ray: Ray) -> RaycastHit:
        dist, ids = self.intersect_many(ray.origin[None, :], ray.direction[None, :])
        face = int(ids[0])
        if face < 0:
            return RaycastHit.miss()
        distance = float(dist[0])
        point = ray.origin + ray.direction * distance
        normal = self._face_normals[face].copy()
        if np.dot(normal, ray.direction) > 0.0:
            normal = -normal
        status = HitStatus.HIT if distance <= self.max_range_m else HitStatus.HIT_POINT_OUTSIDE_RANGE
        return RaycastHit(hit=True, point=point, normal=normal, status=status, distance=distance)

    def face_colors(self, face_ids: np.ndarray) -> np.ndarray:
        """RGB8 colors of the given faces; entries for misses (-1) are meaningless."""
        ids = np.asarray(face_ids, dtype=np.int64)
        return self.mesh.face_colors[np.clip(ids, 0, None)]
