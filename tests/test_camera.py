import numpy as np
import pytest
from blackhole_renders import constants
from blackhole_renders.camera import CameraMode, CameraType, FreeCamDirection, OrbitCamera, look_at


def assert_orthonormal(matrix):
    np.testing.assert_allclose(matrix.T @ matrix, np.eye(3), atol=1e-12)


def test_default_camera_looks_at_origin():
    camera = OrbitCamera()
    position = camera.position()
    view = camera.view_matrix()

    assert np.linalg.norm(position) == pytest.approx(constants.CAMERA_RADIUS)
    assert_orthonormal(view)
    np.testing.assert_allclose(view[:, 2], -position / np.linalg.norm(position), atol=1e-12)
    # World up stays roughly up on screen
    assert view[2, 1] > 0.0


def test_elevation_is_clamped_away_from_poles():
    for elevation in (0.0, np.pi, -1.0):
        camera = OrbitCamera(elevation=elevation)
        position = camera.position()
        assert np.hypot(position[0], position[1]) > 0.0
        view = camera.view_matrix()
        assert np.all(np.isfinite(view))
        assert_orthonormal(view)


def test_radius_is_clamped():
    assert OrbitCamera(radius=1000.0).radius == constants.CAMERA_MAX_RADIUS
    assert OrbitCamera(radius=0.5).radius == constants.CAMERA_MIN_RADIUS


def test_preset_views():
    front = OrbitCamera(mode=CameraMode.FRONT_VIEW)
    np.testing.assert_array_equal(front.position(), [10.0, 10.0, 1.0])
    top = OrbitCamera(mode="top_view")
    np.testing.assert_array_equal(top.position(), [0.1, 0.0, 15.0])
    assert_orthonormal(top.view_matrix())


def test_auto_orbit_follows_time():
    camera = OrbitCamera(mode=CameraMode.AUTO_ORBIT)
    camera.update(10.0)
    assert camera.azimuth == pytest.approx(10.0 * constants.CAMERA_AUTO_ORBIT_SPEED)

    free = OrbitCamera()
    azimuth = free.azimuth
    free.update(10.0)
    assert free.azimuth == azimuth


def test_look_at_along_up_axis_falls_back():
    view = look_at([0.0, 0.0, 20.0])
    assert np.all(np.isfinite(view))
    assert_orthonormal(view)
    np.testing.assert_allclose(view[:, 2], [0.0, 0.0, -1.0])


def test_roll_keeps_forward_axis():
    position = np.array([0.0, -15.0, 3.0])
    plain = look_at(position)
    rolled = look_at(position, roll=0.5)
    np.testing.assert_allclose(rolled[:, 2], plain[:, 2])
    assert_orthonormal(rolled)
    assert np.dot(rolled[:, 0], plain[:, 0]) == pytest.approx(np.cos(0.5))


def test_toggle_to_free_camera_keeps_the_frame():
    camera = OrbitCamera(roll=0.2)
    position, view = camera.position(), camera.view_matrix()

    assert camera.toggle_camera_type() is CameraType.FREE
    np.testing.assert_allclose(camera.position(), position, atol=1e-12)
    np.testing.assert_allclose(camera.view_matrix(), view, atol=1e-9)


def test_free_camera_moves_across_the_view_plane():
    camera = OrbitCamera()
    camera.toggle_camera_type()
    start = camera.position()
    view = camera.view_matrix()
    right, up = view[:, 0], view[:, 1]

    camera.move_freecam(FreeCamDirection.RIGHT)
    np.testing.assert_allclose(camera.position() - start, right * constants.CAMERA_MOVE_SPEED, atol=1e-12)
    camera.move_freecam(FreeCamDirection.UP, amount=2.5)
    np.testing.assert_allclose(camera.position() - start,
                               (right + 2.5 * up) * constants.CAMERA_MOVE_SPEED, atol=1e-12)
    camera.move_freecam("left")
    camera.move_freecam(FreeCamDirection.DOWN, amount=2.5)
    np.testing.assert_allclose(camera.position(), start, atol=1e-12)

    # Moving never turns the camera, so the hole drifts off-center
    np.testing.assert_allclose(camera.view_matrix()[:, 2], view[:, 2], atol=1e-12)


def test_locked_camera_ignores_free_moves():
    camera = OrbitCamera()
    position = camera.position()
    camera.move_freecam(FreeCamDirection.RIGHT, amount=5.0)
    np.testing.assert_array_equal(camera.position(), position)
    assert camera.camera_type is CameraType.LOCKED


def test_toggle_back_refits_the_orbit():
    camera = OrbitCamera()
    camera.toggle_camera_type()
    camera.move_freecam(FreeCamDirection.RIGHT, amount=4.0)
    moved = camera.position()

    assert camera.toggle_camera_type() is CameraType.LOCKED
    np.testing.assert_allclose(camera.position(), moved, atol=1e-9)
    assert camera.radius == pytest.approx(np.linalg.norm(moved))
    # Locked again, so it looks back at the hole
    np.testing.assert_allclose(camera.view_matrix()[:, 2], -moved / np.linalg.norm(moved), atol=1e-9)


def test_free_camera_preset_and_auto_orbit():
    camera = OrbitCamera()
    camera.toggle_camera_type()

    camera.set_mode(CameraMode.FRONT_VIEW)
    np.testing.assert_array_equal(camera.position(), [10.0, 10.0, 1.0])
    np.testing.assert_allclose(camera.view_matrix()[:, 2], -camera.position() / np.linalg.norm([10.0, 10.0, 1.0]))
    assert camera.toggle_camera_type() is CameraType.LOCKED
    assert camera.mode is CameraMode.FREE_ORBIT
    np.testing.assert_allclose(camera.position(), [10.0, 10.0, 1.0], atol=1e-9)

    camera.toggle_camera_type()
    camera.set_mode(CameraMode.AUTO_ORBIT)
    distance = np.linalg.norm(camera.position())
    camera.update(20.0)
    assert camera.azimuth == pytest.approx(20.0 * constants.CAMERA_AUTO_ORBIT_SPEED)
    assert np.linalg.norm(camera.position()) == pytest.approx(distance)
    np.testing.assert_allclose(camera.view_matrix()[:, 2], -camera.position() / distance, atol=1e-9)

    # A free move ends the auto orbit
    camera.move_freecam(FreeCamDirection.LEFT)
    assert camera.mode is CameraMode.FREE_ORBIT


def test_camera_type_accepts_strings():
    camera = OrbitCamera(camera_type="free", free_position=[0.0, -20.0, 2.0])
    assert camera.camera_type is CameraType.FREE
    np.testing.assert_array_equal(camera.position(), [0.0, -20.0, 2.0])
    with pytest.raises(ValueError):
        OrbitCamera(camera_type="drone")
