from __future__ import annotations
import math
import threading
from typing import Iterator, NamedTuple, Sequence, Set

import numpy as np


class VoxelKey(NamedTuple):
    """Integer lattice coordinate of a voxel cell."""

    ix: int
    iy: int
    iz: int


def key_for(world_point: Sequence[float] | np.ndarray, voxel_size: float) -> VoxelKey:
    """Floor-divide a world point into the cell that contains it.

    Points lying exactly on a cell face belong to the cell above it, e.g.
    ``key_for((1.0, 0.0, 0.0), 0.5) == VoxelKey(2, 0, 0)``.
    """
    if voxel_size <= 0.0:
        raise ValueError("voxel_size must be positive")
    x, y, z = (float(c) for c in world_point)
    return VoxelKey(
        int(math.floor(x / voxel_size)),
        int(math.floor(y / voxel_size)),
        int(math.floor(z / voxel_size)),
    )


def cell_center(key: VoxelKey, voxel_size: float) -> np.ndarray:
    half = voxel_size / 2.0
    return np.array([key.ix * voxel_size + half, key.iy * voxel_size + half, key.iz * voxel_size + half], dtype=np.float64)


def snap_to_voxel(world_point: Sequence[float] | np.ndarray, voxel_size: float) -> np.ndarray:
    return cell_center(key_for(world_point, voxel_size), voxel_size)


class VoxelIndex:
    """Grow-only set of occupied cells.

    ``try_occupy`` is the dedup gate: it succeeds exactly once per key for the
    lifetime of the index. There is no removal.
    """

    def __init__(self) -> None:
        self._occupied: Set[VoxelKey] = set()
        self._lock = threading.Lock()

    def try_occupy(self, key: VoxelKey) -> bool:
        with self._lock:
            if key in self._occupied:
                return False
            self._occupied.add(key)
            return True

    def __contains__(self, key: object) -> bool:
        return key in self._occupied

    def __len__(self) -> int:
        return len(self._occupied)

    def __iter__(self) -> Iterator[VoxelKey]:
        return iter(list(self._occupied))
