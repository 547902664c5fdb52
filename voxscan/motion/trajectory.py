from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from .pose import Pose


class Trajectory:
    """Base interface for platform (headset / rig) motion."""

    def sample(self, t: float) -> Pose:
        raise NotImplementedError


@dataclass
class StaticTrajectory(Trajectory):
    """A trajectory with a single, fixed pose."""

    pose: Pose

    def sample(self, t: float) -> Pose:
        return self.pose


class PolylineTrajectory(Trajectory):
    """Piecewise-linear trajectory through waypoints at constant speed.

    Orientation is the fixed ``rpy_deg``; with ``follow_heading`` the yaw of the
    current segment's horizontal projection is added to it.
    """

    def __init__(
        self,
        waypoints: Sequence[Sequence[float]],
        speed_mps: float,
        start_time_s: float = 0.0,
        rpy_deg: tuple[float, float, float] = (0.0, 0.0, 0.0),
        follow_heading: bool = False,
    ) -> None:
        if len(waypoints) < 2:
            raise ValueError("PolylineTrajectory requires at least two waypoints.")
        if speed_mps <= 0.0:
            raise ValueError("speed_mps must be positive.")

        self._points = np.asarray(waypoints, dtype=np.float64)
        self._speed = float(speed_mps)
        self._start_time = float(start_time_s)
        self._rpy = tuple(float(a) for a in rpy_deg)
        self._follow_heading = bool(follow_heading)

        seg_vecs = np.diff(self._points, axis=0)
        seg_lengths = np.linalg.norm(seg_vecs, axis=1)
        if np.any(seg_lengths == 0):
            raise ValueError("Consecutive waypoints must be distinct.")

        seg_durations = seg_lengths / self._speed
        times = np.concatenate([[0.0], np.cumsum(seg_durations)])

        self._segment_vectors = seg_vecs
        self._times = self._start_time + times
        self._poses = self._build_keyframes()

    def _pose_at(self, pos: np.ndarray, seg_vec: np.ndarray) -> Pose:
        roll, pitch, yaw = self._rpy
        if self._follow_heading:
            yaw += float(np.degrees(np.arctan2(seg_vec[1], seg_vec[0])))
        return Pose.from_xyz_rpy(tuple(pos), (roll, pitch, yaw))

    def _build_keyframes(self) -> List[Pose]:
        # reuse last segment direction for the final pose
        seg_dirs = np.vstack([self._segment_vectors, self._segment_vectors[-1]])
        return [self._pose_at(point, seg_dirs[idx]) for idx, point in enumerate(self._points)]

    def sample(self, t: float) -> Pose:
        if t <= self._times[0]:
            return self._poses[0]
        if t >= self._times[-1]:
            return self._poses[-1]

        idx = int(np.searchsorted(self._times, t, side="right") - 1)
        t0, t1 = self._times[idx], self._times[idx + 1]
        alpha = (t - t0) / max(t1 - t0, 1e-9)
        pos = (1.0 - alpha) * self._points[idx] + alpha * self._points[idx + 1]
        return self._pose_at(pos, self._segment_vectors[idx])


class SimulationClock:
    """Shared time base advanced once per tick by the host driver."""

    def __init__(self, tick_dt_s: float = 1.0 / 30.0, start_time_s: float = 0.0) -> None:
        if tick_dt_s <= 0.0:
            raise ValueError("tick_dt_s must be positive.")
        self.tick_dt_s = float(tick_dt_s)
        self.start_time_s = float(start_time_s)
        self.tick = 0

    @property
    def time_s(self) -> float:
        return self.start_time_s + self.tick * self.tick_dt_s

    def advance(self) -> int:
        self.tick += 1
        return self.tick
