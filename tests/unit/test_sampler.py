import logging
from typing import List, Optional

import numpy as np
import pytest

from voxscan.core.color import Color, linear_to_srgb
from voxscan.core.exposure import CorrectionState
from voxscan.core.intersector import HitStatus, Ray, RaycastHit
from voxscan.core.sampler import ConfigurationError, SampleOutcome, SamplingOrchestrator, ScannerSettings
from voxscan.core.scene import VoxelScene
from voxscan.core.voxels import VoxelKey
from voxscan.motion.pose import Pose
from voxscan.motion.trajectory import SimulationClock, StaticTrajectory
from voxscan.sensors.camera import CameraIntrinsics, MountedCameraRig
from voxscan.sensors.frames import ArrayImageFrame
from voxscan.sensors.rays import FixedRaySource

# display value whose linear luminance is exactly 0.5
GRAY_HALF = linear_to_srgb(0.5)


class ScriptedRaycaster:
    """Returns the scripted hits in order, cycling."""

    def __init__(self, hits: List[RaycastHit]) -> None:
        self.hits = hits
        self.casts = 0

    def cast(self, ray: Ray) -> RaycastHit:
        hit = self.hits[self.casts % len(self.hits)]
        self.casts += 1
        return hit


class ToggleImageSource:
    def __init__(self, ready: bool = True, value: float = GRAY_HALF) -> None:
        self.ready = ready
        self.value = value

    def get_frame(self) -> ArrayImageFrame:
        return ArrayImageFrame.uniform(64, 48, Color(self.value, self.value, self.value), is_ready=self.ready)


def surface(x: float, y: float, z: float) -> RaycastHit:
    return RaycastHit(
        hit=True,
        point=np.array([x, y, z]),
        normal=np.array([0.0, 0.0, -1.0]),
        status=HitStatus.HIT,
        distance=float(np.linalg.norm([x, y, z])),
    )


def make_rig() -> MountedCameraRig:
    # identity camera at the origin looking along +z
    return MountedCameraRig(
        trajectory=StaticTrajectory(Pose.identity()),
        clock=SimulationClock(),
        intrinsics=CameraIntrinsics.centered((64, 48), (100.0, 100.0)),
    )


def make_sources(n: int) -> List[FixedRaySource]:
    return [FixedRaySource(origin=np.zeros(3), direction=np.array([0.0, 0.0, 1.0])) for _ in range(n)]


def make_orchestrator(
    hits: List[RaycastHit],
    n_sources: int = 1,
    image_source: Optional[ToggleImageSource] = None,
    settings: Optional[ScannerSettings] = None,
    state: Optional[CorrectionState] = None,
):
    raycaster = ScriptedRaycaster(hits)
    scene = VoxelScene()
    orch = SamplingOrchestrator(
        raycaster=raycaster,
        image_source=image_source or ToggleImageSource(),
        camera_rig=make_rig(),
        voxel_factory=scene,
        ray_sources=make_sources(n_sources),
        settings=settings or ScannerSettings(voxel_size=0.5),
        correction_state=state,
    )
    return orch, raycaster, scene


def test_missing_ray_sources_disable_scanning_once(caplog) -> None:
    orch, raycaster, scene = make_orchestrator([surface(0.0, 0.0, 2.0)], n_sources=0)
    with caplog.at_level(logging.INFO, logger="voxscan"):
        for _ in range(3):
            report = orch.tick()
            assert report.outcomes == []
    assert not orch.enabled
    assert isinstance(orch.fatal_error, ConfigurationError)
    assert raycaster.casts == 0
    assert len(scene) == 0
    assert orch.stats["ticks"] == 0
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "No ray sample origins" in errors[0].getMessage()


def test_missing_reference_is_fatal() -> None:
    orch = SamplingOrchestrator(
        raycaster=None,
        image_source=ToggleImageSource(),
        camera_rig=make_rig(),
        voxel_factory=VoxelScene(),
        ray_sources=make_sources(1),
    )
    assert orch.start() is False
    assert "raycaster" in str(orch.fatal_error)
    with pytest.raises(ConfigurationError):
        orch.validate()


@pytest.mark.parametrize(
    "settings",
    [ScannerSettings(sampling_mode="manual"), ScannerSettings(voxel_size=0.0), ScannerSettings(min_correction=2.0)],
)
def test_invalid_settings_disable_scanning(settings: ScannerSettings) -> None:
    orch, raycaster, scene = make_orchestrator([surface(0.0, 0.0, 2.0)], settings=settings)
    stats = orch.run(5)
    assert not orch.enabled
    assert stats["ticks"] == 0
    assert raycaster.casts == 0
    assert len(scene) == 0


def test_duplicate_cells_are_placed_once() -> None:
    orch, _, scene = make_orchestrator([surface(0.1, 0.1, 2.1), surface(0.2, 0.3, 2.4)], n_sources=2)
    first = orch.tick()
    assert first.outcomes == [SampleOutcome.PLACED, SampleOutcome.OCCUPIED]
    assert first.placed_keys == [VoxelKey(0, 0, 4)]
    second = orch.tick()
    assert second.outcomes == [SampleOutcome.OCCUPIED, SampleOutcome.OCCUPIED]
    assert len(scene) == 1
    assert orch.stats["duplicates"] == 3
    voxel = scene.voxels[0]
    np.testing.assert_allclose(voxel.center, [0.25, 0.25, 2.25])
    assert voxel.edge_length == 0.5


def test_misses_and_non_surface_hits_place_nothing() -> None:
    far = RaycastHit(hit=True, point=np.array([0.0, 0.0, 50.0]), status=HitStatus.HIT_POINT_OUTSIDE_RANGE, distance=50.0)
    orch, _, scene = make_orchestrator([RaycastHit.miss(), far], n_sources=2)
    report = orch.tick()
    assert report.outcomes == [SampleOutcome.MISSED, SampleOutcome.NOT_SURFACE]
    assert len(scene) == 0
    assert orch.stats["rays"] == 2
    assert orch.stats["hits"] == 0


def test_voxel_stays_uncolored_until_feed_is_ready() -> None:
    feed = ToggleImageSource(ready=False)
    orch, _, scene = make_orchestrator([surface(0.1, 0.1, 2.1), surface(0.6, 0.1, 2.1)], image_source=feed)
    report = orch.tick()
    assert report.outcomes == [SampleOutcome.PLACED_UNCOLORED]
    assert scene.voxels[0].color is None
    assert not orch.readiness.ready

    feed.ready = True
    report = orch.tick()
    assert report.outcomes == [SampleOutcome.PLACED]
    assert orch.readiness.ready
    assert scene.voxels[0].color is None
    assert scene.voxels[1].color is not None
    assert orch.stats["uncolored"] == 1
    assert orch.stats["colored"] == 1


def test_point_behind_camera_is_placed_uncolored() -> None:
    orch, _, scene = make_orchestrator([surface(0.1, 0.1, -2.0)])
    report = orch.tick()
    assert report.outcomes == [SampleOutcome.PLACED_UNCOLORED]
    assert len(scene) == 1
    assert scene.voxels[0].color is None
    assert orch.correction_state.updates == 0


def test_end_to_end_correction_of_gray_sample() -> None:
    state = CorrectionState()
    settings = ScannerSettings(voxel_size=0.5, target_brightness=0.8, correction_smoothing=0.5)
    orch, _, scene = make_orchestrator([surface(0.1, 0.1, 2.1)], settings=settings, state=state)
    orch.tick()
    # measured 0.5 -> raw 1.6 clamps to 1.5; halfway from 1.0 gives 1.25
    assert state.factor == pytest.approx(1.25)
    color = scene.voxels[0].color
    assert color.r == pytest.approx(linear_to_srgb(0.5 * 1.25))
    assert color.g == pytest.approx(color.r)
    assert color.a == 1.0


def test_shared_state_advances_in_source_order() -> None:
    orch, _, scene = make_orchestrator([surface(0.1, 0.1, 2.1), surface(0.6, 0.1, 2.1)], n_sources=2)
    orch.tick()
    assert orch.correction_state.updates == 2
    assert orch.correction_state.factor == pytest.approx(1.375)
    assert scene.voxels[0].color.r == pytest.approx(linear_to_srgb(0.5 * 1.25))
    assert scene.voxels[1].color.r == pytest.approx(linear_to_srgb(0.5 * 1.375))


def test_offset_snapping_moves_boundary_hits_off_the_surface() -> None:
    hit = surface(0.1, 0.1, 2.0)
    orch_hit, _, _ = make_orchestrator([hit], settings=ScannerSettings(voxel_size=0.5, snap="hit"))
    orch_off, _, _ = make_orchestrator([hit], settings=ScannerSettings(voxel_size=0.5, snap="offset"))
    assert orch_hit.tick().placed_keys == [VoxelKey(0, 0, 4)]
    assert orch_off.tick().placed_keys == [VoxelKey(0, 0, 3)]


def test_run_calls_after_tick_and_returns_stats() -> None:
    orch, _, _ = make_orchestrator([surface(0.1, 0.1, 2.1)])
    seen = []
    stats = orch.run(4, after_tick=lambda report: seen.append(report.tick))
    assert seen == [0, 1, 2, 3]
    assert stats["ticks"] == 4
    assert stats["placed"] == 1
    assert stats["duplicates"] == 3


def test_offset_snapping_without_normal_uses_hit_point() -> None:
    hit = RaycastHit(hit=True, point=np.array([0.1, 0.1, 2.1]), normal=None, status=HitStatus.HIT, distance=2.1)
    orch, _, scene = make_orchestrator([hit], settings=ScannerSettings(voxel_size=0.5, snap="offset"))
    report = orch.tick()
    assert report.outcomes == [SampleOutcome.PLACED]
    assert report.placed_keys == [VoxelKey(0, 0, 4)]
    assert scene.voxels[0].color is not None


def test_unmounted_camera_eye_is_fatal_at_start() -> None:
    orch, raycaster, scene = make_orchestrator(
        [surface(0.1, 0.1, 2.1)], n_sources=2, settings=ScannerSettings(voxel_size=0.5, eye="right")
    )
    report = orch.tick()
    assert report.outcomes == []
    assert not orch.enabled
    assert isinstance(orch.fatal_error, ConfigurationError)
    assert "right" in str(orch.fatal_error)
    assert raycaster.casts == 0
    assert len(scene) == 0
