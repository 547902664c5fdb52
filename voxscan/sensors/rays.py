from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from ..core.intersector import Ray
from ..motion.trajectory import SimulationClock, Trajectory


@dataclass
class FixedRaySource:
    """A ray source that never moves."""

    origin: np.ndarray
    direction: np.ndarray

    def ray(self) -> Ray:
        return Ray(origin=self.origin, direction=self.direction)


@dataclass
class MountedRaySource:
    """Ray source attached to a moving platform (e.g. a controller or headset).

    The ray starts at the lever arm and points along the mount's local +z
    axis, re-evaluated from the trajectory at every call.
    """

    trajectory: Trajectory
    clock: SimulationClock
    boresight_R: np.ndarray = field(default_factory=lambda: np.eye(3))
    lever_arm_t: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.boresight_R = np.asarray(self.boresight_R, dtype=np.float64).reshape(3, 3)
        self.lever_arm_t = np.asarray(self.lever_arm_t, dtype=np.float64).reshape(3)

    def ray(self) -> Ray:
        pose = self.trajectory.sample(self.clock.time_s).compose(self.boresight_R, self.lever_arm_t)
        return Ray(origin=pose.t, direction=pose.forward)
