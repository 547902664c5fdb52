import threading

import numpy as np
import pytest

from voxscan.core.voxels import VoxelIndex, VoxelKey, cell_center, key_for, snap_to_voxel


def test_key_for_boundary_uses_floor() -> None:
    assert key_for((1.0, 0.0, 0.0), 0.5) == VoxelKey(2, 0, 0)


def test_key_for_negative_coordinates_round_down() -> None:
    assert key_for((-0.01, -0.5, -0.51), 0.5) == VoxelKey(-1, -1, -2)


def test_key_for_is_deterministic() -> None:
    p = np.array([0.37, -1.42, 2.99])
    assert key_for(p, 0.25) == key_for(tuple(p), 0.25)
    assert key_for(p, 0.25) == VoxelKey(1, -6, 11)


def test_key_for_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        key_for((0.0, 0.0, 0.0), 0.0)


def test_cell_center_is_half_cell_offset() -> None:
    np.testing.assert_allclose(cell_center(VoxelKey(2, -1, 0), 0.5), [1.25, -0.25, 0.25])
    np.testing.assert_allclose(snap_to_voxel((0.1, 0.2, -0.3), 0.25), [0.125, 0.125, -0.375])


def test_try_occupy_succeeds_once_per_key() -> None:
    index = VoxelIndex()
    points = [(0.01, 0.02, 0.03), (0.2, 0.2, 0.2), (0.249, 0.0, 0.1)]
    results = [index.try_occupy(key_for(p, 0.25)) for p in points]
    assert results == [True, False, False]
    assert len(index) == 1
    assert VoxelKey(0, 0, 0) in index


def test_try_occupy_tracks_distinct_keys() -> None:
    index = VoxelIndex()
    assert index.try_occupy(VoxelKey(0, 0, 0))
    assert index.try_occupy(VoxelKey(0, 0, 1))
    assert not index.try_occupy(VoxelKey(0, 0, 1))
    assert sorted(index) == [VoxelKey(0, 0, 0), VoxelKey(0, 0, 1)]


def test_concurrent_try_occupy_grants_each_key_once() -> None:
    index = VoxelIndex()
    keys = [VoxelKey(i, -i, i % 7) for i in range(300)]
    start = threading.Barrier(8)
    wins: list[list[VoxelKey]] = [[] for _ in range(8)]

    def worker(slot: int) -> None:
        start.wait()
        for key in keys:
            if index.try_occupy(key):
                wins[slot].append(key)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    granted = [key for slot in wins for key in slot]
    assert sorted(granted) == sorted(keys)
    assert len(index) == len(keys)
