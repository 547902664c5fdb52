"""voxscan – incremental colored voxel scanning from raycast hits and a live camera.

Core components:
- VoxelIndex & VoxelKey (core.voxels): dedup gate over the integer lattice
- Pinhole projection & camera rigs (sensors.camera)
- RegionBrightnessEstimator (core.brightness)
- ExposureCorrector & CorrectionState (core.exposure)
- SamplingOrchestrator (core.sampler): per-tick placement and coloring

Simulation capabilities (mesh raycaster, rendered camera feed, voxel scene)
and voxel exporters let the core run end to end from a YAML scenario.
"""

from .core.color import Color
from .core.voxels import VoxelIndex, VoxelKey, key_for, cell_center, snap_to_voxel
from .core.brightness import RegionBrightnessEstimator
from .core.exposure import CorrectionState, ExposureCorrector, correct_exposure
from .core.intersector import Ray, RaycastHit, HitStatus, MeshRaycaster
from .core.scene import EnvironmentMesh, VoxelScene, VoxelHandle
from .core.exporter import LasWriter, PlyWriter, NpzWriter
from .core.sampler import (
    SamplingOrchestrator, ScannerSettings, SampleOutcome, TickReport, ConfigurationError
)
from .sensors.camera import (
    CameraIntrinsics, CameraProjector, MountedCameraRig, PointBehindCamera, project
)
from .sensors.frames import ArrayImageFrame, StaticImageSource, RenderedCameraFeed
from .sensors.rays import FixedRaySource, MountedRaySource
