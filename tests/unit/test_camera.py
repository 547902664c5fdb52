import numpy as np
import pytest

from voxscan.motion.pose import Pose
from voxscan.motion.trajectory import SimulationClock, StaticTrajectory
from voxscan.sensors.camera import (
    CameraIntrinsics,
    CameraProjector,
    MountedCameraRig,
    PointBehindCamera,
    directions_from_pixels,
    project,
    uv_to_pixel,
)

INTRINSICS = CameraIntrinsics(focal_length=(500.0, 500.0), principal_point=(320.0, 240.0), resolution=(640, 480))


def test_point_on_optical_axis_projects_to_image_center() -> None:
    uv = project((0.0, 0.0, 1.0), Pose.identity(), INTRINSICS, 640, 480)
    np.testing.assert_allclose(uv, [0.5, 0.5])


def test_projection_uses_camera_pose() -> None:
    # camera at (1, 2, 3) looking along world +x
    pose = Pose.from_xyz_rpy((1.0, 2.0, 3.0), (-90.0, 0.0, -90.0))
    np.testing.assert_allclose(pose.forward, [1.0, 0.0, 0.0], atol=1e-12)
    uv = project((3.0, 2.0, 3.0), pose, INTRINSICS, 640, 480)
    np.testing.assert_allclose(uv, [0.5, 0.5])
    # a point to the world -y side of the axis lands right of center
    uv_right = project((3.0, 1.8, 3.0), pose, INTRINSICS, 640, 480)
    assert uv_right[0] > 0.5
    np.testing.assert_allclose(uv_right[0], (500.0 * 0.1 + 320.0) / 640.0)


def test_projection_scales_to_buffer_resolution() -> None:
    point = (0.2, -0.1, 2.0)
    full = project(point, Pose.identity(), INTRINSICS, 640, 480)
    half = project(point, Pose.identity(), INTRINSICS, 320, 240)
    # normalized coordinates do not depend on the buffer size
    np.testing.assert_allclose(full, half)
    np.testing.assert_allclose(full, [(500.0 * 0.1 + 320.0) / 640.0, (500.0 * -0.05 + 240.0) / 480.0])


def test_projection_does_not_clamp_outside_image() -> None:
    uv = project((5.0, 0.0, 1.0), Pose.identity(), INTRINSICS, 640, 480)
    assert uv[0] > 1.0


@pytest.mark.parametrize("z", [0.0, 1e-4, -2.0])
def test_points_on_or_behind_camera_plane_are_rejected(z: float) -> None:
    with pytest.raises(PointBehindCamera):
        project((0.0, 0.0, z), Pose.identity(), INTRINSICS, 640, 480)


def test_uv_to_pixel_rounds_and_clamps() -> None:
    assert uv_to_pixel((0.5, 0.5), 640, 480) == (320, 240)
    assert uv_to_pixel((-0.2, 1.3), 640, 480) == (0, 479)
    assert uv_to_pixel((1.0, 0.0), 640, 480) == (639, 0)


def test_directions_from_pixels_inverts_projection() -> None:
    dirs = directions_from_pixels(np.array([[100.0, 50.0]]), INTRINSICS, 320, 240)
    point = dirs[0] * 3.0
    uv = project(point, Pose.identity(), INTRINSICS, 320, 240)
    np.testing.assert_allclose(uv * [320, 240], [100.0, 50.0], atol=1e-9)


def test_centered_intrinsics() -> None:
    intr = CameraIntrinsics.centered((641, 481), (400.0, 400.0))
    assert intr.principal_point == (320.0, 240.0)
    with pytest.raises(ValueError):
        CameraIntrinsics(focal_length=(0.0, 1.0), principal_point=(0.0, 0.0), resolution=(10, 10))


def test_mounted_rig_applies_lever_arm_and_eye_check() -> None:
    clock = SimulationClock(tick_dt_s=0.1)
    rig = MountedCameraRig(
        trajectory=StaticTrajectory(Pose.from_xyz_rpy((1.0, 0.0, 0.0), (0.0, 0.0, 90.0))),
        clock=clock,
        intrinsics=INTRINSICS,
        lever_arm_t=np.array([1.0, 0.0, 0.0]),
    )
    np.testing.assert_allclose(rig.get_pose("left").t, [1.0, 1.0, 0.0], atol=1e-12)
    assert rig.get_intrinsics("left") is INTRINSICS
    with pytest.raises(RuntimeError):
        rig.get_pose("right")

    projector = CameraProjector(rig, eye="left")
    uv = projector.project(rig.get_pose("left").apply(np.array([0.0, 0.0, 2.0])), 640, 480)
    np.testing.assert_allclose(uv, [0.5, 0.5])
