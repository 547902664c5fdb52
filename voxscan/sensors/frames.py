from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ..core.color import Color
from ..core.intersector import MeshRaycaster
from ..core.utils import get_logger
from ..motion.trajectory import SimulationClock
from .camera import MountedCameraRig, directions_from_pixels
from .noise import ExposureDrift

_log = get_logger()


class ArrayImageFrame:
    """Pixel-addressable frame backed by an ``(H, W, 3|4)`` display-space array.

    ``get_pixel(x, y)`` reads column ``x`` of row ``y``.
    """

    def __init__(self, pixels: np.ndarray, is_ready: bool = True) -> None:
        arr = np.asarray(pixels, dtype=np.float64)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ValueError("pixels must have shape (H, W, 3) or (H, W, 4)")
        if arr.shape[2] == 3:
            arr = np.concatenate([arr, np.ones(arr.shape[:2] + (1,))], axis=2)
        self.pixels = arr
        self.height, self.width = int(arr.shape[0]), int(arr.shape[1])
        self.is_ready = bool(is_ready)

    @staticmethod
    def uniform(width: int, height: int, color: Color, is_ready: bool = True) -> "ArrayImageFrame":
        pixels = np.tile(np.array([color.r, color.g, color.b, color.a], dtype=np.float64), (height, width, 1))
        return ArrayImageFrame(pixels, is_ready=is_ready)

    def get_pixel(self, x: int, y: int) -> Color:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} frame")
        return Color.from_array(self.pixels[y, x])


class StaticImageSource:
    """Always returns the same frame."""

    def __init__(self, frame: ArrayImageFrame) -> None:
        self.frame = frame

    def get_frame(self) -> ArrayImageFrame:
        return self.frame


class RenderedCameraFeed:
    """Live camera feed simulated by raycasting the environment mesh.

    Every pixel of the ``image_size`` buffer shows the display color of the
    first face it hits (``background_rgb`` on a miss), then ``drift`` perturbs
    the exposure. Frames are rendered once per clock tick. During the first
    ``warmup_ticks`` ticks the feed reports ``is_ready = False``.
    """

    def __init__(
        self,
        rig: MountedCameraRig,
        raycaster: MeshRaycaster,
        clock: SimulationClock,
        image_size: Tuple[int, int],
        eye: str = "left",
        drift: Optional[ExposureDrift] = None,
        background_rgb: Tuple[int, int, int] = (0, 0, 0),
        warmup_ticks: int = 0,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        width, height = image_size
        if width <= 0 or height <= 0:
            raise ValueError("image_size must be positive")
        if warmup_ticks < 0:
            raise ValueError("warmup_ticks must be non-negative")
        self.rig = rig
        self.raycaster = raycaster
        self.clock = clock
        self.width = int(width)
        self.height = int(height)
        self.eye = eye
        self.drift = drift or ExposureDrift()
        self.background = np.asarray(background_rgb, dtype=np.float64) / 255.0
        self.warmup_ticks = int(warmup_ticks)
        self.rng = rng if rng is not None else np.random.default_rng()
        self._cached: Optional[Tuple[int, ArrayImageFrame]] = None

    def get_frame(self) -> ArrayImageFrame:
        tick = self.clock.tick
        if tick < self.warmup_ticks:
            return ArrayImageFrame(np.zeros((self.height, self.width, 4)), is_ready=False)
        if self._cached is not None and self._cached[0] == tick:
            return self._cached[1]
        frame = ArrayImageFrame(self.render(tick), is_ready=True)
        self._cached = (tick, frame)
        return frame

    def render(self, tick: int) -> np.ndarray:
        pose = self.rig.get_pose(self.eye)
        intrinsics = self.rig.get_intrinsics(self.eye)

        xs = np.arange(self.width, dtype=np.float64)
        ys = np.arange(self.height, dtype=np.float64)
        xx, yy = np.meshgrid(xs, ys, indexing="xy")
        pixels = np.column_stack([xx.reshape(-1), yy.reshape(-1)])
        dirs_cam = directions_from_pixels(pixels, intrinsics, self.width, self.height)
        dirs_world = (pose.R @ dirs_cam.T).T
        origins = np.tile(pose.t, (dirs_world.shape[0], 1))

        _, face_ids = self.raycaster.intersect_many(origins, dirs_world)
        rgb = self.raycaster.face_colors(face_ids).astype(np.float64) / 255.0
        rgb[face_ids < 0] = self.background
        rgb = self.drift.apply(rgb, tick, self.rng)

        image = np.ones((self.height, self.width, 4), dtype=np.float64)
        image[:, :, :3] = rgb.reshape(self.height, self.width, 3)
        _log.debug("Rendered %dx%d frame at tick %d (gain %.3f)", self.width, self.height, tick, self.drift.gain(tick))
        return image
