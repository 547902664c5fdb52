from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Tuple

import numpy as np

from ..core.utils import ensure_unit_vectors
from ..motion.pose import Pose
from ..motion.trajectory import SimulationClock, Trajectory

# Points closer than this to the camera plane are rejected
MIN_DEPTH = 1e-4


class PointBehindCamera(ValueError):
    """Projection rejected: the point is on or behind the camera plane."""

    def __init__(self, depth: float) -> None:
        super().__init__(f"Point depth {depth:.6g} m is not in front of the camera")
        self.depth = depth


@dataclass(frozen=True)
class CameraIntrinsics:
    """Pinhole intrinsics expressed at the sensor's native resolution."""

    focal_length: Tuple[float, float]
    principal_point: Tuple[float, float]
    resolution: Tuple[int, int]

    def __post_init__(self) -> None:
        if self.focal_length[0] <= 0 or self.focal_length[1] <= 0:
            raise ValueError("focal_length must be positive")
        if self.resolution[0] <= 0 or self.resolution[1] <= 0:
            raise ValueError("resolution must be positive")

    @staticmethod
    def centered(resolution: Tuple[int, int], focal_length: Tuple[float, float]) -> "CameraIntrinsics":
        width, height = resolution
        return CameraIntrinsics(
            focal_length=(float(focal_length[0]), float(focal_length[1])),
            principal_point=((width - 1) / 2.0, (height - 1) / 2.0),
            resolution=(int(width), int(height)),
        )

    def scaled_to(self, image_width: int, image_height: int) -> Tuple[float, float, float, float]:
        """``(fx, fy, cx, cy)`` rescaled to an image buffer of another size."""
        sx = image_width / float(self.resolution[0])
        sy = image_height / float(self.resolution[1])
        return (
            self.focal_length[0] * sx,
            self.focal_length[1] * sy,
            self.principal_point[0] * sx,
            self.principal_point[1] * sy,
        )


def project(
    world_point: Sequence[float] | np.ndarray,
    pose: Pose,
    intrinsics: CameraIntrinsics,
    image_width: int,
    image_height: int,
) -> np.ndarray:
    """Map a world point to normalized image coordinates ``(u, v)``.

    The camera looks along its local +z axis, with +x to the right and +y
    towards increasing image rows. The pinhole projection is evaluated in the
    intrinsics' native pixel grid, rescaled to the ``image_width`` x
    ``image_height`` buffer and divided by the buffer size. Values outside
    ``[0, 1]`` are returned as-is.

    Raises
    ------
    PointBehindCamera
        If the point's camera-frame depth is ``<= 1e-4``.
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError("image size must be positive")
    local = pose.inverse_apply(np.asarray(world_point, dtype=np.float64).reshape(3))
    if local[2] <= MIN_DEPTH:
        raise PointBehindCamera(float(local[2]))

    fx, fy = intrinsics.focal_length
    cx, cy = intrinsics.principal_point
    u_px = fx * (local[0] / local[2]) + cx
    v_px = fy * (local[1] / local[2]) + cy

    u_px *= image_width / float(intrinsics.resolution[0])
    v_px *= image_height / float(intrinsics.resolution[1])

    return np.array([u_px / image_width, v_px / image_height], dtype=np.float64)


def uv_to_pixel(uv: Sequence[float] | np.ndarray, image_width: int, image_height: int) -> Tuple[int, int]:
    """Nearest pixel to a normalized coordinate, clamped into the image."""
    x = int(round(float(uv[0]) * image_width))
    y = int(round(float(uv[1]) * image_height))
    return min(max(x, 0), image_width - 1), min(max(y, 0), image_height - 1)


def directions_from_pixels(
    pixels: np.ndarray,
    intrinsics: CameraIntrinsics,
    image_width: int,
    image_height: int,
) -> np.ndarray:
    """Camera-frame unit rays through buffer pixel coordinates (inverse of :func:`project`)."""
    fx, fy, cx, cy = intrinsics.scaled_to(image_width, image_height)
    uv = np.asarray(pixels, dtype=np.float64).reshape(-1, 2)
    x = (uv[:, 0] - cx) / fx
    y = (uv[:, 1] - cy) / fy
    z = np.ones_like(x)
    return ensure_unit_vectors(np.column_stack([x, y, z]))


class CameraProjector:
    """Projects world points into the current frame of one camera eye."""

    def __init__(self, rig, eye: str = "left") -> None:
        self.rig = rig
        self.eye = eye

    def project(self, world_point: Sequence[float] | np.ndarray, image_width: int, image_height: int) -> np.ndarray:
        pose = self.rig.get_pose(self.eye)
        intrinsics = self.rig.get_intrinsics(self.eye)
        return project(world_point, pose, intrinsics, image_width, image_height)


@dataclass
class MountedCameraRig:
    """Camera(s) rigidly mounted on a moving platform.

    Each eye has its own boresight rotation and lever arm relative to the
    platform pose sampled from ``trajectory`` at the clock's current time.
    """

    trajectory: Trajectory
    clock: SimulationClock
    intrinsics: CameraIntrinsics
    boresight_R: np.ndarray = field(default_factory=lambda: np.eye(3))
    lever_arm_t: np.ndarray = field(default_factory=lambda: np.zeros(3))
    eyes: Tuple[str, ...] = ("left",)

    def __post_init__(self) -> None:
        self.boresight_R = np.asarray(self.boresight_R, dtype=np.float64).reshape(3, 3)
        self.lever_arm_t = np.asarray(self.lever_arm_t, dtype=np.float64).reshape(3)

    def _check_eye(self, eye: str) -> None:
        if eye not in self.eyes:
            raise RuntimeError(f"Camera eye '{eye}' is not mounted on this rig (have {list(self.eyes)})")

    def get_pose(self, eye: str) -> Pose:
        self._check_eye(eye)
        platform = self.trajectory.sample(self.clock.time_s)
        return platform.compose(self.boresight_R, self.lever_arm_t)

    def get_intrinsics(self, eye: str) -> CameraIntrinsics:
        self._check_eye(eye)
        return self.intrinsics
