from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Optional, Union, List

import yaml
from pydantic import BaseModel, Field, model_validator


class SyntheticEnvironmentConfig(BaseModel):
    kind: Literal["synthetic"]
    preset: Literal["plane", "wall", "room", "demo"] = "room"
    size: float = Field(4.0, gt=0.0)


class MeshEnvironmentConfig(BaseModel):
    kind: Literal["mesh"]
    path: Path


EnvironmentConfig = Annotated[
    Union[SyntheticEnvironmentConfig, MeshEnvironmentConfig],
    Field(discriminator="kind"),
]


class StaticTrajectoryConfig(BaseModel):
    kind: Literal["static"]
    xyz: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rpy_deg: tuple[float, float, float] = (0.0, 0.0, 0.0)


class PolylineTrajectoryConfig(BaseModel):
    kind: Literal["polyline"]
    waypoints: List[tuple[float, float, float]] = Field(min_length=2)
    speed_mps: float = Field(gt=0.0)
    rpy_deg: tuple[float, float, float] = (0.0, 0.0, 0.0)
    follow_heading: bool = False


TrajectoryConfig = Annotated[
    Union[StaticTrajectoryConfig, PolylineTrajectoryConfig],
    Field(discriminator="kind"),
]


class CameraConfig(BaseModel):
    resolution_px: tuple[int, int] = (1280, 960)
    focal_px: tuple[float, float] = (870.0, 870.0)
    principal_px: Optional[tuple[float, float]] = None
    image_size_px: Optional[tuple[int, int]] = None
    eye: str = "left"
    boresight_rpy_deg: Optional[tuple[float, float, float]] = None
    lever_arm_m: Optional[tuple[float, float, float]] = None

    @model_validator(mode="after")
    def _validate_sizes(self) -> "CameraConfig":
        if min(self.resolution_px) <= 0:
            raise ValueError("camera.resolution_px must be positive")
        if min(self.focal_px) <= 0:
            raise ValueError("camera.focal_px must be positive")
        if self.image_size_px is not None and min(self.image_size_px) <= 0:
            raise ValueError("camera.image_size_px must be positive")
        return self


class FeedConfig(BaseModel):
    warmup_ticks: int = Field(0, ge=0)
    gain_amplitude: float = Field(0.0, ge=0.0, lt=1.0)
    gain_period_ticks: float = Field(60.0, gt=0.0)
    pixel_sigma: float = Field(0.0, ge=0.0)
    background_rgb: tuple[int, int, int] = (0, 0, 0)


class RaycastConfig(BaseModel):
    max_range_m: float = Field(10.0, gt=0.0)


class FixedRaySourceConfig(BaseModel):
    kind: Literal["fixed"]
    origin: tuple[float, float, float]
    direction: tuple[float, float, float]

    @model_validator(mode="after")
    def _nonzero_direction(self) -> "FixedRaySourceConfig":
        if all(c == 0.0 for c in self.direction):
            raise ValueError("ray direction must be non-zero")
        return self


class MountedRaySourceConfig(BaseModel):
    kind: Literal["mounted"]
    boresight_rpy_deg: tuple[float, float, float] = (0.0, 0.0, 0.0)
    lever_arm_m: tuple[float, float, float] = (0.0, 0.0, 0.0)


RaySourceConfig = Annotated[
    Union[FixedRaySourceConfig, MountedRaySourceConfig],
    Field(discriminator="kind"),
]


class ScannerConfig(BaseModel):
    sampling_mode: Literal["environment", "manual"] = "environment"
    ray_sample_origins: List[RaySourceConfig] = Field(default_factory=list)
    target_brightness: float = Field(0.8, ge=0.0, le=1.0)
    correction_smoothing: float = Field(0.5, ge=0.0, le=1.0)
    roi_size: int = Field(3, gt=0)
    min_correction: float = Field(0.8, gt=0.0)
    max_correction: float = Field(1.5, gt=0.0)
    voxel_size: float = Field(0.25, gt=0.0)
    snap: Literal["hit", "offset"] = "hit"

    @property
    def surface_offset(self) -> float:
        return self.voxel_size / 2.0

    @model_validator(mode="after")
    def _validate_bounds(self) -> "ScannerConfig":
        if self.min_correction > self.max_correction:
            raise ValueError("min_correction must not exceed max_correction")
        return self


class OutputConfig(BaseModel):
    path: Path
    format: Literal["las", "laz", "npz", "ply"] = "npz"
    compress: Optional[bool] = None
    point_format: int = 7

    @model_validator(mode="after")
    def _validate_format(self) -> "OutputConfig":
        if self.format == "laz" and self.compress is False:
            raise ValueError("format 'laz' implies compress=True")
        return self


class ScenarioConfig(BaseModel):
    environment: EnvironmentConfig
    trajectory: TrajectoryConfig = StaticTrajectoryConfig(kind="static")
    camera: CameraConfig = CameraConfig()
    feed: FeedConfig = FeedConfig()
    raycast: RaycastConfig = RaycastConfig()
    scanner: ScannerConfig = ScannerConfig()
    ticks: int = Field(120, ge=0)
    tick_dt_s: float = Field(1.0 / 30.0, gt=0.0)
    output: OutputConfig
    seed: Optional[int] = None


def load_config(path: str | Path) -> ScenarioConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping.")
    cfg = ScenarioConfig.model_validate(data)
    cfg.output.path = (path.parent / cfg.output.path).resolve()
    if isinstance(cfg.environment, MeshEnvironmentConfig) and not cfg.environment.path.is_absolute():
        cfg.environment.path = (path.parent / cfg.environment.path).resolve()
    return cfg
