import numpy as np
import pytest
from blackhole_renders import constants
from blackhole_renders.camera import look_at
from blackhole_renders.core import FrameConfig, Renderer, primary_rays, tone_map
from blackhole_renders.geodesic import IntegrationMode
from blackhole_renders.rendering import Termination


@pytest.fixture
def small_frame():
    """4x4 frame looking from -z straight at the hole."""
    return dict(width=4, height=4, camera_position=(0.0, 0.0, -10.0), fov_degrees=60.0,
                render_disk=True, gravitational_lensing=True)


@pytest.mark.parametrize("mode", list(IntegrationMode))
def test_end_to_end_small_frame(renderer, small_frame, mode):
    """
    Critical Test: the hole's shadow is black and the outer pixels are lit.

    The center pixel's ray has impact parameter ~2 R_S, below the capture
    threshold, and crosses the disk plane inside the inner radius. The corner
    pixel's ray (impact parameter ~5 R_S) escapes after crossing the disk.
    """
    config = FrameConfig(mode=mode, **small_frame)
    image = renderer.render_linear(config)

    assert image.shape == (4, 4, 3)
    np.testing.assert_allclose(image[2, 2], 0.0, atol=1e-12)
    assert np.sum(image[0, 0]) > 0.0
    assert np.all(np.isfinite(image))
    assert np.all((image >= 0.0) & (image <= 1.0))

    result = renderer.trace(config.origin, primary_rays(config), config)
    assert result.termination[2 * 4 + 2] == Termination.CAPTURED.value
    assert result.termination[0] == Termination.ESCAPED.value


def test_tiled_render_matches_single_batch(renderer):
    config = FrameConfig(width=12, height=9)
    single = renderer.render_linear(config, tile_rows=config.height, workers=1)
    tiled = renderer.render_linear(config, tile_rows=2, workers=4)
    np.testing.assert_allclose(tiled, single, rtol=1e-12, atol=1e-12)


def test_render_returns_uint8_image(renderer):
    config = FrameConfig(width=8, height=6)
    img = renderer.render(config)
    assert img.shape == (6, 8, 3)
    assert img.dtype == np.uint8


def test_single_vs_batch_color(renderer):
    config = FrameConfig()
    origin = config.origin
    directions = primary_rays(FrameConfig(width=3, height=3))
    for direction in directions:
        color_single = renderer.get_color(origin, direction, config)
        color_batch = renderer.get_color(origin, direction[None, :], config)[0]
        np.testing.assert_allclose(color_single, color_batch, rtol=1e-10, atol=1e-10)
        assert color_single.shape == (3,)


def test_primary_rays_geometry():
    config = FrameConfig(width=3, height=3, camera_position=(0.0, 0.0, -10.0))
    directions = primary_rays(config)
    right, up, _ = config.orientation.T

    assert directions.shape == (9, 3)
    np.testing.assert_allclose(np.linalg.norm(directions, axis=1), 1.0)
    # Center pixel looks straight along the forward axis
    np.testing.assert_allclose(directions[4], [0.0, 0.0, 1.0], atol=1e-15)
    # Top row looks up, left column looks left
    assert directions[1] @ up > 0.0
    assert directions[3] @ right < 0.0
    # Seen from -z, the camera's left is world +x
    assert directions[3, 0] > 0.0


def test_default_orientation_matches_look_at():
    """Frames built with the defaults are not mirrored against camera-built frames."""
    config = FrameConfig()
    np.testing.assert_allclose(config.orientation, look_at(config.origin), atol=1e-15)
    right, up, forward = config.orientation.T
    np.testing.assert_allclose(np.cross(right, up), -forward, atol=1e-15)


def test_primary_rays_follow_orientation():
    position = np.array([0.0, -15.0, 0.0])
    orientation = look_at(position)
    config = FrameConfig(width=1, height=1, camera_position=position, view_orientation=orientation)
    np.testing.assert_allclose(primary_rays(config)[0], [0.0, 1.0, 0.0], atol=1e-12)


def test_primary_rays_tiles_cover_frame():
    config = FrameConfig(width=5, height=7)
    full = primary_rays(config)
    tiles = np.concatenate([primary_rays(config, start, min(start + 3, 7)) for start in range(0, 7, 3)])
    np.testing.assert_allclose(tiles, full, rtol=0.0, atol=1e-15)


def test_tone_map():
    mapped = tone_map(np.array([[0.0, 1.0, 1e6], [np.nan, -1.0, np.inf]]))
    assert mapped[0, 0] == 0.0
    assert mapped[0, 1] == pytest.approx(0.5 ** (1.0 / constants.GAMMA))
    assert 0.99 < mapped[0, 2] <= 1.0
    assert mapped[1, 0] == 0.0
    assert mapped[1, 1] == 0.0
    assert np.all((mapped >= 0.0) & (mapped <= 1.0))


def test_frame_config_validation():
    with pytest.raises(ValueError):
        FrameConfig(camera_position=(0.0, np.nan, -10.0))
    with pytest.raises(ValueError):
        FrameConfig(camera_position=(0.0, 0.0))
    with pytest.raises(ValueError):
        FrameConfig(view_orientation=np.full((3, 3), np.inf))


def test_frame_config_clamps_ranges():
    assert FrameConfig(fov_degrees=0.0).fov_degrees == constants.MIN_FOV_DEGREES
    assert FrameConfig(fov_degrees=500.0).fov_degrees == constants.MAX_FOV_DEGREES
    assert FrameConfig(fov_degrees=np.nan).fov_degrees == constants.DEFAULT_FOV_DEGREES

    config = FrameConfig(width=0, height=-3)
    assert (config.width, config.height) == (1, 1)
    assert FrameConfig(mode="accurate").mode is IntegrationMode.ACCURATE


def test_frame_in_flight_keeps_its_assets():
    """Swapping assets mid-frame only affects the next frame."""
    renderer = Renderer()

    def blue(directions):
        return np.tile([0.0, 0.0, 1.0], (len(directions), 1))

    def red(directions):
        return np.tile([1.0, 0.0, 0.0], (len(directions), 1))

    def blue_then_red(directions):
        renderer.set_assets(background=red)
        return blue(directions)

    renderer.set_assets(background=blue_then_red)
    position = np.array([0.0, 0.0, -10.0])
    config = FrameConfig(width=4, height=6, camera_position=position,
                         view_orientation=look_at(position, target=(0.0, 0.0, -20.0)),
                         render_disk=False, gravitational_lensing=False)

    first = renderer.render_linear(config, tile_rows=2, workers=1)
    np.testing.assert_allclose(first.reshape(-1, 3), tone_map(blue(np.zeros((24, 3)))))

    second = renderer.render_linear(config, tile_rows=2, workers=1)
    np.testing.assert_allclose(second.reshape(-1, 3), tone_map(red(np.zeros((24, 3)))))


def test_lensing_toggle_changes_image(renderer):
    lensed = renderer.render_linear(FrameConfig(width=8, height=6))
    straight = renderer.render_linear(FrameConfig(width=8, height=6, gravitational_lensing=False))
    assert not np.allclose(lensed, straight)


def test_disk_toggle_changes_image(renderer):
    with_disk = renderer.render_linear(FrameConfig(width=8, height=6))
    without_disk = renderer.render_linear(FrameConfig(width=8, height=6, render_disk=False))
    assert not np.allclose(with_disk, without_disk)
