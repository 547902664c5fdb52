from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Literal, Optional, Sequence, Tuple
import numpy as np

from .brightness import RegionBrightnessEstimator
from .color import Color
from .exposure import CorrectionState, ExposureCorrector
from .intersector import RaycastHit
from .voxels import VoxelIndex, VoxelKey, cell_center, key_for
from .utils import get_logger
from ..sensors.base import CameraRig, ImageSource, Raycaster, RaySource, VoxelFactory
from ..sensors.camera import CameraProjector, PointBehindCamera, uv_to_pixel

_log = get_logger()


class ConfigurationError(RuntimeError):
    """A required collaborator or setting is missing; scanning cannot start."""


@dataclass
class ScannerSettings:
    sampling_mode: Literal["environment", "manual"] = "environment"
    target_brightness: float = 0.8
    correction_smoothing: float = 0.5
    roi_size: int = 3
    min_correction: float = 0.8
    max_correction: float = 1.5
    voxel_size: float = 0.25
    snap: Literal["hit", "offset"] = "hit"
    eye: str = "left"

    @property
    def surface_offset(self) -> float:
        return self.voxel_size / 2.0


@dataclass(frozen=True)
class SamplePoint:
    """A surface hit observed during the current tick."""

    point: np.ndarray
    normal: Optional[np.ndarray] = None

    @staticmethod
    def from_hit(hit: RaycastHit) -> "SamplePoint":
        normal = None if hit.normal is None else np.asarray(hit.normal, dtype=np.float64)
        return SamplePoint(point=np.asarray(hit.point, dtype=np.float64), normal=normal)

    def offset_along_normal(self, distance: float) -> np.ndarray:
        if self.normal is None:
            return self.point
        return self.point + self.normal * distance


class SampleOutcome(str, Enum):
    MISSED = "missed"
    NOT_SURFACE = "not_surface"
    OCCUPIED = "occupied"
    PLACED = "placed"
    PLACED_UNCOLORED = "placed_uncolored"


@dataclass
class TickReport:
    tick: int
    outcomes: List[SampleOutcome] = field(default_factory=list)
    placed_keys: List[VoxelKey] = field(default_factory=list)


class FeedReadiness:
    """NotReady -> Ready latch polled once per tick."""

    def __init__(self) -> None:
        self.ready = False
        self.polls = 0

    def poll(self, image_source: ImageSource) -> bool:
        if self.ready:
            return True
        self.polls += 1
        frame = image_source.get_frame()
        if frame is not None and frame.is_ready:
            self.ready = True
            _log.info("Camera feed ready after %d poll(s) (%dx%d).", self.polls, frame.width, frame.height)
        return self.ready


class SamplingOrchestrator:
    """Per-tick voxel placement and coloring driver.

    Each tick casts one ray per source, in order. A surface hit whose cell is
    not yet occupied gets a voxel at the cell center; the voxel is then colored
    from the camera frame at the (unsnapped) hit point, exposure-corrected by
    the shared :class:`CorrectionState`. Voxels are created before coloring is
    attempted and stay uncolored when the color step cannot run.
    """

    def __init__(
        self,
        raycaster: Optional[Raycaster],
        image_source: Optional[ImageSource],
        camera_rig: Optional[CameraRig],
        voxel_factory: Optional[VoxelFactory],
        ray_sources: Sequence[RaySource],
        settings: Optional[ScannerSettings] = None,
        correction_state: Optional[CorrectionState] = None,
        index: Optional[VoxelIndex] = None,
    ) -> None:
        self.raycaster = raycaster
        self.image_source = image_source
        self.camera_rig = camera_rig
        self.voxel_factory = voxel_factory
        self.ray_sources = list(ray_sources or [])
        self.settings = settings or ScannerSettings()
        self.index = index if index is not None else VoxelIndex()
        self.correction_state = correction_state if correction_state is not None else CorrectionState()
        self.readiness = FeedReadiness()
        self.fatal_error: Optional[ConfigurationError] = None
        self.stats: Dict[str, int] = {
            "ticks": 0, "rays": 0, "hits": 0, "duplicates": 0, "placed": 0, "colored": 0, "uncolored": 0,
        }
        self._started = False
        self._estimator: Optional[RegionBrightnessEstimator] = None
        self._corrector: Optional[ExposureCorrector] = None
        self._projector: Optional[CameraProjector] = None

    @property
    def enabled(self) -> bool:
        return self._started and self.fatal_error is None

    def validate(self) -> None:
        missing = [
            name for name, ref in (
                ("raycaster", self.raycaster),
                ("image source", self.image_source),
                ("camera rig", self.camera_rig),
                ("voxel factory", self.voxel_factory),
            ) if ref is None
        ]
        if missing:
            raise ConfigurationError(f"Missing required references: {', '.join(missing)}")
        if self.settings.sampling_mode != "environment":
            raise ConfigurationError(f"Sampling mode '{self.settings.sampling_mode}' is not supported")
        if not self.ray_sources:
            raise ConfigurationError("No ray sample origins configured")
        if self.settings.voxel_size <= 0.0:
            raise ConfigurationError("voxel_size must be positive")
        try:
            self.camera_rig.get_intrinsics(self.settings.eye)
        except (RuntimeError, KeyError) as exc:
            raise ConfigurationError(f"Camera eye '{self.settings.eye}' unavailable: {exc}") from exc

    def start(self) -> bool:
        """Validate collaborators once. On failure scanning stays disabled for the session."""
        if self._started:
            return self.enabled
        self._started = True
        try:
            self.validate()
            s = self.settings
            self._projector = CameraProjector(self.camera_rig, eye=s.eye)
            self._estimator = RegionBrightnessEstimator(s.roi_size)
            self._corrector = ExposureCorrector(
                target_brightness=s.target_brightness,
                min_correction=s.min_correction,
                max_correction=s.max_correction,
                smoothing=s.correction_smoothing,
                state=self.correction_state,
            )
        except (ConfigurationError, ValueError) as exc:
            self.fatal_error = exc if isinstance(exc, ConfigurationError) else ConfigurationError(str(exc))
            _log.error("Scanner disabled: %s", self.fatal_error)
            return False
        _log.info("Scanner started with %d ray source(s), voxel size %.3f m.", len(self.ray_sources), self.settings.voxel_size)
        return True

    def tick(self) -> TickReport:
        report = TickReport(tick=self.stats["ticks"])
        if not self.start():
            return report
        self.stats["ticks"] += 1
        self.readiness.poll(self.image_source)
        for source in self.ray_sources:
            outcome, key = self._process(source)
            report.outcomes.append(outcome)
            if key is not None:
                report.placed_keys.append(key)
        return report

    def run(self, num_ticks: int, after_tick=None) -> Dict[str, int]:
        """Run ``num_ticks`` ticks, calling ``after_tick(report)`` after each one."""
        for _ in range(int(num_ticks)):
            report = self.tick()
            if after_tick is not None:
                after_tick(report)
            if not self.enabled:
                break
        _log.info(
            "Scan finished: %d ticks, %d rays -> %d voxels (%d colored)",
            self.stats["ticks"], self.stats["rays"], self.stats["placed"], self.stats["colored"],
        )
        return dict(self.stats)

    # -- per-sample pipeline --
    def _process(self, source: RaySource) -> Tuple[SampleOutcome, Optional[VoxelKey]]:
        self.stats["rays"] += 1
        hit = self.raycaster.cast(source.ray())
        if not hit.hit:
            return SampleOutcome.MISSED, None
        if not hit.is_surface:
            return SampleOutcome.NOT_SURFACE, None
        self.stats["hits"] += 1

        sample = SamplePoint.from_hit(hit)
        size = self.settings.voxel_size
        snap_point = sample.offset_along_normal(self.settings.surface_offset) if self.settings.snap == "offset" else sample.point
        key = key_for(snap_point, size)
        if not self.index.try_occupy(key):
            self.stats["duplicates"] += 1
            return SampleOutcome.OCCUPIED, None

        handle = self.voxel_factory.create_voxel(cell_center(key, size), size)
        self.stats["placed"] += 1
        _log.debug("Placed voxel %s", tuple(key))

        color = self._pick_color(sample)
        if color is None:
            self.stats["uncolored"] += 1
            return SampleOutcome.PLACED_UNCOLORED, key
        handle.set_color(color)
        self.stats["colored"] += 1
        return SampleOutcome.PLACED, key

    def _pick_color(self, sample: SamplePoint) -> Optional[Color]:
        assert self._projector is not None and self._estimator is not None and self._corrector is not None
        frame = self.image_source.get_frame() if self.readiness.ready else None
        if frame is None or not frame.is_ready:
            _log.warning("Camera feed not ready; voxel at %s left uncolored.", np.round(sample.point, 3).tolist())
            return None

        try:
            uv = self._projector.project(sample.point, frame.width, frame.height)
        except PointBehindCamera as exc:
            _log.warning("Cannot color voxel: %s", exc)
            return None

        x, y = uv_to_pixel(uv, frame.width, frame.height)
        sampled = frame.get_pixel(x, y)
        brightness = self._estimator.estimate(frame, x, y)
        return self._corrector.correct(sampled, brightness)
