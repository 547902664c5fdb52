from __future__ import annotations
from typing import Protocol
import numpy as np
from ..core.color import Color
from ..core.intersector import Ray, RaycastHit
from ..motion.pose import Pose
from .camera import CameraIntrinsics


class Raycaster(Protocol):
    def cast(self, ray: Ray) -> RaycastHit: ...


class ImageFrame(Protocol):
    width: int
    height: int
    is_ready: bool

    def get_pixel(self, x: int, y: int) -> Color: ...


class ImageSource(Protocol):
    def get_frame(self) -> ImageFrame: ...


class CameraRig(Protocol):
    def get_pose(self, eye: str) -> Pose: ...
    def get_intrinsics(self, eye: str) -> CameraIntrinsics: ...


class VoxelHandle(Protocol):
    def set_color(self, color: Color) -> None: ...


class VoxelFactory(Protocol):
    def create_voxel(self, center: np.ndarray, edge_length: float) -> VoxelHandle: ...


class RaySource(Protocol):
    def ray(self) -> Ray: ...
