from __future__ import annotations
from dataclasses import dataclass
import numpy as np

@dataclass
class Pose:
    t: np.ndarray   # (3,) position in world
    R: np.ndarray   # (3,3) local -> world rotation

    def __post_init__(self) -> None:
        self.t = np.asarray(self.t, dtype=np.float64).reshape(3)
        self.R = np.asarray(self.R, dtype=np.float64).reshape(3, 3)

    @staticmethod
    def identity() -> "Pose":
        return Pose(t=np.zeros(3), R=np.eye(3))

    @staticmethod
    def from_xyz_rpy(xyz: tuple[float,float,float], rpy_deg: tuple[float,float,float]) -> "Pose":
        rx, ry, rz = np.deg2rad(rpy_deg)
        cx, sx = np.cos(rx), np.sin(rx)
        cy, sy = np.cos(ry), np.sin(ry)
        cz, sz = np.cos(rz), np.sin(rz)
        Rx = np.array([[1,0,0],[0,cx,-sx],[0,sx,cx]])
        Ry = np.array([[cy,0,sy],[0,1,0],[-sy,0,cy]])
        Rz = np.array([[cz,-sz,0],[sz,cz,0],[0,0,1]])
        R = Rz @ Ry @ Rx
        return Pose(t=np.array(xyz, dtype=float), R=R.astype(float))

    @property
    def forward(self) -> np.ndarray:
        """World direction of the local +z axis."""
        return self.R[:, 2].copy()

    def apply(self, p_local: np.ndarray) -> np.ndarray:
        return (self.R @ np.asarray(p_local, dtype=np.float64).T).T + self.t

    def inverse_apply(self, p_world: np.ndarray) -> np.ndarray:
        # R is orthonormal, so R^-1 == R^T
        return (self.R.T @ (np.asarray(p_world, dtype=np.float64) - self.t).T).T

    def compose(self, R_mount: np.ndarray, t_mount: np.ndarray) -> "Pose":
        """Pose of a frame mounted on this one (boresight rotation + lever arm)."""
        return Pose(t=self.apply(t_mount), R=self.R @ np.asarray(R_mount, dtype=np.float64))
