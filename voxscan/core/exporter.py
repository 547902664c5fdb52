from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Dict, Any, List, Tuple
import numpy as np
import pathlib
import warnings

import laspy  # type: ignore
from .pointcloud import VoxelBatch
from .utils import get_logger

_log = get_logger()

_RGB_FORMATS = {2, 3, 5, 7, 8, 10}


@dataclass
class LasWriter:
    """Streaming LAS/LAZ writer for voxel centers using laspy (v2+).

    The header is created lazily on the first batch so the offset and the
    ExtraBytes dimensions follow the attributes actually present.
    """
    path: str
    point_format: int = 7
    compress: bool = False
    scale: tuple[float, float, float] = (1e-4, 1e-4, 1e-4)
    offset: Optional[tuple[float, float, float]] = None

    def __post_init__(self) -> None:
        if self.point_format not in _RGB_FORMATS:
            raise ValueError(f"LAS point format {self.point_format} has no RGB; use one of {sorted(_RGB_FORMATS)}")
        self._fh: Optional[laspy.LasWriter] = None  # type: ignore
        self._header: Optional[laspy.LasHeader] = None  # type: ignore
        self._defined_extras: Dict[str, Any] = {}

    # -- public API --
    def write_batch(self, batch: VoxelBatch) -> None:
        if len(batch) == 0:
            return
        if self._fh is None:
            self._init_header_from_batch(batch)
        assert self._fh is not None and self._header is not None
        pts = self._point_record_from_batch(batch, self._header, self._defined_extras)
        self._fh.write_points(pts)

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    # -- internals --
    def _init_header_from_batch(self, batch: VoxelBatch) -> None:
        pf = laspy.PointFormat(self.point_format)
        hdr = laspy.LasHeader(point_format=pf, version="1.4")
        hdr.scales = self.scale
        if self.offset is None:
            mn = np.min(batch.xyz, axis=0)
            hdr.offsets = (float(mn[0]), float(mn[1]), float(mn[2]))
        else:
            hdr.offsets = self.offset

        extras: Dict[str, laspy.ExtraBytesParams] = {}
        def add_extra(name: str, dtype: str) -> None:
            if name in extras:
                return
            extras[name] = laspy.ExtraBytesParams(name=name, type=dtype)

        if "voxel_size" in batch.attrs:
            add_extra("voxel_size", "float32")
        if "alpha" in batch.attrs:
            add_extra("alpha", "float32")
        if "colored" in batch.attrs:
            add_extra("colored", "uint8")
        if "voxel_key" in batch.attrs:
            add_extra("key_x", "int32")
            add_extra("key_y", "int32")
            add_extra("key_z", "int32")

        for p in extras.values():
            hdr.add_extra_dim(p)
        self._defined_extras = {p.name: p for p in extras.values()}

        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = laspy.open(path, mode="w", header=hdr, do_compress=self.compress)
        self._header = hdr
        _log.info("Opened %s (PF=%d, compress=%s)", path.name, self.point_format, self.compress)

    def _point_record_from_batch(
        self, batch: VoxelBatch, header: "laspy.LasHeader", defined_extras: Dict[str, Any]
    ) -> "laspy.ScaleAwarePointRecord":
        n = len(batch.xyz)
        pts = laspy.ScaleAwarePointRecord.zeros(n, header=header)

        pts.x = batch.xyz[:, 0]
        pts.y = batch.xyz[:, 1]
        pts.z = batch.xyz[:, 2]

        if "rgb" in batch.attrs:
            rgb = batch.attrs["rgb"].astype(np.uint16) * 257  # 0..255 -> 0..65535
            pts.red = rgb[:, 0]
            pts.green = rgb[:, 1]
            pts.blue = rgb[:, 2]

        def set_extra(name: str, values: np.ndarray) -> None:
            if name not in defined_extras:
                warnings.warn(f"Extra dimension '{name}' was not declared in header; skipping.")
                return
            pts[name] = values

        for k in ("voxel_size", "alpha", "colored"):
            if k in batch.attrs:
                set_extra(k, batch.attrs[k])
        if "voxel_key" in batch.attrs:
            keys = batch.attrs["voxel_key"].astype(np.int32, copy=False)
            set_extra("key_x", keys[:, 0])
            set_extra("key_y", keys[:, 1])
            set_extra("key_z", keys[:, 2])

        return pts


class PlyWriter:
    """ASCII PLY point cloud of voxel centers.

    Each vertex carries RGBA (alpha scaled to 0..255) and the voxel edge
    length. Batches are buffered and written once on close.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._batches: List[VoxelBatch] = []

    def write_batch(self, batch: VoxelBatch) -> None:
        self._batches.append(batch)

    def close(self) -> None:
        if not self._batches:
            return
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        xyz = np.vstack([b.xyz for b in self._batches])
        rgb = np.vstack([self._attr(b, "rgb", (3,), np.uint8) for b in self._batches]).astype(np.uint8)
        alpha = np.concatenate([self._attr(b, "alpha", (), np.float32) for b in self._batches])
        alpha8 = np.round(np.clip(alpha, 0.0, 1.0) * 255.0).astype(np.uint8)
        edge = np.concatenate([self._attr(b, "voxel_size", (), np.float32) for b in self._batches])
        with open(path, "w", encoding="utf-8") as f:
            f.write("ply\nformat ascii 1.0\n")
            f.write(f"element vertex {len(xyz)}\n")
            f.write("property float x\nproperty float y\nproperty float z\n")
            f.write("property uchar red\nproperty uchar green\nproperty uchar blue\nproperty uchar alpha\n")
            f.write("property float voxel_size\n")
            f.write("end_header\n")
            for (x, y, z), (r, g, b), a, s in zip(xyz, rgb, alpha8, edge):
                f.write(f"{x:.6f} {y:.6f} {z:.6f} {int(r)} {int(g)} {int(b)} {int(a)} {float(s):.6f}\n")
        _log.info("Wrote %d voxels to %s", len(xyz), path.name)
        self._batches.clear()

    @staticmethod
    def _attr(batch: VoxelBatch, name: str, tail: Tuple[int, ...], dtype) -> np.ndarray:
        if name in batch.attrs:
            return batch.attrs[name]
        return np.zeros((len(batch),) + tail, dtype=dtype)


class NpzWriter:
    """Compressed ``.npz`` with ``xyz`` plus one array per voxel attribute."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._batches: List[VoxelBatch] = []

    def write_batch(self, batch: VoxelBatch) -> None:
        if self._batches and set(batch.attrs) != set(self._batches[0].attrs):
            raise ValueError("All batches written to one NPZ file must carry the same attributes")
        self._batches.append(batch)

    def close(self) -> None:
        if not self._batches:
            return
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        out: Dict[str, np.ndarray] = {"xyz": np.vstack([b.xyz for b in self._batches])}
        for name in sorted(self._batches[0].attrs):
            out[name] = np.concatenate([b.attrs[name] for b in self._batches], axis=0)
        np.savez_compressed(path, **out)
        _log.info("Wrote %d voxels to %s", len(out["xyz"]), path.name)
        self._batches.clear()
