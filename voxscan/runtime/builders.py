from __future__ import annotations

from typing import List, Optional

import numpy as np

from ..config import ScenarioConfig
from ..config.schema import MeshEnvironmentConfig, SyntheticEnvironmentConfig
from ..core.exporter import LasWriter, NpzWriter, PlyWriter
from ..core.exposure import CorrectionState
from ..core.intersector import MeshRaycaster
from ..core.sampler import SamplingOrchestrator, ScannerSettings
from ..core.scene import EnvironmentMesh, VoxelScene
from ..examples.synthetic import generate_environment
from ..motion.pose import Pose
from ..motion.trajectory import PolylineTrajectory, SimulationClock, StaticTrajectory, Trajectory
from ..sensors.camera import CameraIntrinsics, MountedCameraRig
from ..sensors.frames import RenderedCameraFeed
from ..sensors.noise import ExposureDrift
from ..sensors.rays import FixedRaySource, MountedRaySource


def _mount_rotation(rpy_deg: Optional[tuple[float, float, float]]) -> np.ndarray:
    if rpy_deg is None:
        return np.eye(3)
    return Pose.from_xyz_rpy((0.0, 0.0, 0.0), rpy_deg).R


def _lever_arm(xyz: Optional[tuple[float, float, float]]) -> np.ndarray:
    if xyz is None:
        return np.zeros(3)
    return np.asarray(xyz, dtype=np.float64)


def build_environment(cfg: ScenarioConfig) -> EnvironmentMesh:
    env_cfg = cfg.environment
    if isinstance(env_cfg, SyntheticEnvironmentConfig):
        return generate_environment(env_cfg.preset, env_cfg.size)
    if isinstance(env_cfg, MeshEnvironmentConfig):
        return EnvironmentMesh.from_file(env_cfg.path)
    raise ValueError(f"Unsupported environment kind: {env_cfg.kind}")


def build_trajectory(cfg: ScenarioConfig) -> Trajectory:
    traj_cfg = cfg.trajectory
    if traj_cfg.kind == "static":
        pose = Pose.from_xyz_rpy(traj_cfg.xyz, traj_cfg.rpy_deg)
        return StaticTrajectory(pose)
    if traj_cfg.kind == "polyline":
        return PolylineTrajectory(
            traj_cfg.waypoints,
            speed_mps=traj_cfg.speed_mps,
            rpy_deg=traj_cfg.rpy_deg,
            follow_heading=traj_cfg.follow_heading,
        )
    raise ValueError(f"Unsupported trajectory kind: {traj_cfg.kind}")


def build_camera_rig(cfg: ScenarioConfig, trajectory: Trajectory, clock: SimulationClock) -> MountedCameraRig:
    cam = cfg.camera
    if cam.principal_px is None:
        intrinsics = CameraIntrinsics.centered(cam.resolution_px, cam.focal_px)
    else:
        intrinsics = CameraIntrinsics(
            focal_length=cam.focal_px,
            principal_point=cam.principal_px,
            resolution=cam.resolution_px,
        )
    return MountedCameraRig(
        trajectory=trajectory,
        clock=clock,
        intrinsics=intrinsics,
        boresight_R=_mount_rotation(cam.boresight_rpy_deg),
        lever_arm_t=_lever_arm(cam.lever_arm_m),
        eyes=(cam.eye,),
    )


def build_feed(
    cfg: ScenarioConfig,
    rig: MountedCameraRig,
    raycaster: MeshRaycaster,
    clock: SimulationClock,
    rng: np.random.Generator,
) -> RenderedCameraFeed:
    feed = cfg.feed
    image_size = cfg.camera.image_size_px or cfg.camera.resolution_px
    return RenderedCameraFeed(
        rig=rig,
        raycaster=raycaster,
        clock=clock,
        image_size=image_size,
        eye=cfg.camera.eye,
        drift=ExposureDrift(
            gain_amplitude=feed.gain_amplitude,
            gain_period_ticks=feed.gain_period_ticks,
            pixel_sigma=feed.pixel_sigma,
        ),
        background_rgb=feed.background_rgb,
        warmup_ticks=feed.warmup_ticks,
        rng=rng,
    )


def build_ray_sources(cfg: ScenarioConfig, trajectory: Trajectory, clock: SimulationClock) -> List[object]:
    sources: List[object] = []
    for src in cfg.scanner.ray_sample_origins:
        if src.kind == "fixed":
            sources.append(FixedRaySource(origin=np.asarray(src.origin, dtype=np.float64), direction=np.asarray(src.direction, dtype=np.float64)))
        elif src.kind == "mounted":
            sources.append(
                MountedRaySource(
                    trajectory=trajectory,
                    clock=clock,
                    boresight_R=_mount_rotation(src.boresight_rpy_deg),
                    lever_arm_t=_lever_arm(src.lever_arm_m),
                )
            )
        else:
            raise ValueError(f"Unsupported ray source kind: {src.kind}")
    return sources


def build_settings(cfg: ScenarioConfig) -> ScannerSettings:
    sc = cfg.scanner
    return ScannerSettings(
        sampling_mode=sc.sampling_mode,
        target_brightness=sc.target_brightness,
        correction_smoothing=sc.correction_smoothing,
        roi_size=sc.roi_size,
        min_correction=sc.min_correction,
        max_correction=sc.max_correction,
        voxel_size=sc.voxel_size,
        snap=sc.snap,
        eye=cfg.camera.eye,
    )


def build_orchestrator(
    cfg: ScenarioConfig,
    clock: SimulationClock,
    scene: VoxelScene,
    rng: np.random.Generator,
) -> SamplingOrchestrator:
    environment = build_environment(cfg)
    raycaster = MeshRaycaster(environment, max_range_m=cfg.raycast.max_range_m)
    trajectory = build_trajectory(cfg)
    rig = build_camera_rig(cfg, trajectory, clock)
    feed = build_feed(cfg, rig, raycaster, clock, rng)
    return SamplingOrchestrator(
        raycaster=raycaster,
        image_source=feed,
        camera_rig=rig,
        voxel_factory=scene,
        ray_sources=build_ray_sources(cfg, trajectory, clock),
        settings=build_settings(cfg),
        correction_state=CorrectionState(),
    )


def build_writer(cfg: ScenarioConfig):
    out_cfg = cfg.output
    format_lower = out_cfg.format.lower()
    if format_lower in {"las", "laz"}:
        compress = out_cfg.compress
        if compress is None:
            compress = format_lower == "laz"
        return LasWriter(
            str(out_cfg.path),
            point_format=out_cfg.point_format,
            compress=compress,
        )
    if format_lower == "npz":
        return NpzWriter(str(out_cfg.path))
    if format_lower == "ply":
        return PlyWriter(str(out_cfg.path))
    raise ValueError(f"Unsupported output format: {out_cfg.format}")
