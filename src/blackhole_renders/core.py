from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import logging
import time

import numpy as np
from blackhole_renders import constants
from blackhole_renders.background import default_color_ramp, procedural_background
from blackhole_renders.disk import DiskEnvelope
from blackhole_renders.geodesic import IntegrationMode
from blackhole_renders.rendering import MarchSettings, QualitySettings, march
from blackhole_renders.utils import normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameConfig:
    """
    Everything one frame needs besides the assets.

    Coordinate System:
    - Origin (0,0,0): the black hole, lengths in Schwarzschild radii.
    - Disk: the z = 0 plane.
    - view_orientation: 3x3 matrix whose columns are the camera's right, up
      and forward axes in world space.
    """
    width: int = 320
    height: int = 240
    camera_position: tuple = (0.0, 0.0, -15.0)
    # look_at(camera_position): right is -x for a camera on -z facing the hole
    view_orientation: tuple = ((-1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))
    fov_degrees: float = constants.DEFAULT_FOV_DEGREES
    render_disk: bool = True
    gravitational_lensing: bool = True
    quality: QualitySettings = field(default_factory=QualitySettings)
    mode: IntegrationMode = IntegrationMode.FAST
    time_sec: float = 0.0
    disk: DiskEnvelope = field(default_factory=DiskEnvelope)

    def __post_init__(self):
        position = np.asarray(self.camera_position, dtype=float)
        orientation = np.asarray(self.view_orientation, dtype=float)
        if position.shape != (3,) or not np.all(np.isfinite(position)):
            raise ValueError(f"camera_position must be a finite 3-vector, got {self.camera_position}")
        if orientation.shape != (3, 3) or not np.all(np.isfinite(orientation)):
            raise ValueError(f"view_orientation must be a finite 3x3 matrix, got shape {orientation.shape}")

        # Clamp instead of rejecting so a bad slider value cannot NaN the first ray
        fov = float(self.fov_degrees) if np.isfinite(self.fov_degrees) else constants.DEFAULT_FOV_DEGREES
        object.__setattr__(self, "fov_degrees",
                           float(np.clip(fov, constants.MIN_FOV_DEGREES, constants.MAX_FOV_DEGREES)))
        object.__setattr__(self, "width", max(int(self.width), 1))
        object.__setattr__(self, "height", max(int(self.height), 1))
        object.__setattr__(self, "mode", IntegrationMode(self.mode))
        object.__setattr__(self, "camera_position", tuple(position.tolist()))
        object.__setattr__(self, "view_orientation", tuple(map(tuple, orientation.tolist())))

    @property
    def origin(self):
        return np.array(self.camera_position)

    @property
    def orientation(self):
        return np.array(self.view_orientation)

    def march_settings(self):
        """The subset of the frame configuration the march consumes."""
        return MarchSettings(
            quality=self.quality,
            mode=self.mode,
            render_disk=self.render_disk,
            gravitational_lensing=self.gravitational_lensing,
            disk=self.disk,
            time_sec=self.time_sec,
        )


def primary_rays(config, row_start=0, row_stop=None):
    """
    World-space unit directions through pixel centers.

    Camera-space direction is (x tan(fov/2), -y tan(fov/2), 1) with x, y in
    aspect-corrected normalized device coordinates (y grows downward).

    Args:
        config: FrameConfig
        row_start, row_stop: Optional row range for tiled rendering

    Returns:
        (rows * width, 3) array, row-major
    """
    row_stop = config.height if row_stop is None else row_stop
    aspect_ratio = config.width / config.height
    tan_half_fov = np.tan(np.deg2rad(config.fov_degrees / 2.0))

    cols = np.arange(config.width)
    rows = np.arange(row_start, row_stop)
    x = (2.0 * (cols + 0.5) / config.width - 1.0) * aspect_ratio
    y = 2.0 * (rows + 0.5) / config.height - 1.0
    px, py = np.meshgrid(x, y)

    cam_dirs = np.stack([px * tan_half_fov, -py * tan_half_fov, np.ones_like(px)], axis=-1)
    cam_dirs = normalize(cam_dirs.reshape(-1, 3))
    # Elementwise rotation keeps each ray independent of the batch size
    world_dirs = np.sum(cam_dirs[:, None, :] * config.orientation[None, :, :], axis=2)
    return normalize(world_dirs)


def tone_map(color):
    """Reinhard curve c / (c + 1) followed by gamma correction."""
    color = np.maximum(np.nan_to_num(np.asarray(color, dtype=float), nan=0.0, posinf=1e6), 0.0)
    mapped = color / (color + 1.0)
    return np.clip(mapped ** (1.0 / constants.GAMMA), 0.0, 1.0)


class Renderer:
    def __init__(self, color_ramp=None, background=None):
        """
        Initialize the renderer with its sampling assets.

        Args:
            color_ramp: Disk color lookup (N,) -> (N, 3); procedural gradient by default
            background: Sky lookup (N, 3) -> (N, 3); procedural star field by default
        """
        self.color_ramp = color_ramp if color_ramp is not None else default_color_ramp
        self.background = background if background is not None else procedural_background

    def set_assets(self, color_ramp=None, background=None):
        """Swap assets; frames already in flight keep the ones they started with."""
        if color_ramp is not None:
            self.color_ramp = color_ramp
        if background is not None:
            self.background = background

    def _assets(self):
        return self.color_ramp, self.background

    def trace(self, ray_origin, ray_directions, config, assets=None):
        """
        March rays and return the raw MarchResult (linear radiance).
        """
        color_ramp, background = assets if assets is not None else self._assets()
        return march(ray_origin, ray_directions, config.march_settings(), color_ramp, background)

    def get_color(self, ray_origin, ray_directions, config, assets=None):
        """
        Calculate the tone-mapped color for each ray.
        vectorized for N rays.
        """
        is_single = np.ndim(ray_directions) == 1
        result = self.trace(ray_origin, ray_directions, config, assets)
        colors = tone_map(result.color)
        if is_single:
            return colors[0]
        return colors

    def render_linear(self, config, tile_rows=16, workers=None):
        """
        Render a frame as a (height, width, 3) float image in [0, 1].

        Row tiles are traced on a thread pool. Every pixel is independent, so
        the result does not depend on the tiling.
        """
        assets = self._assets()  # one snapshot for the whole frame
        origin = config.origin
        tile_rows = max(int(tile_rows), 1)
        bounds = [(start, min(start + tile_rows, config.height))
                  for start in range(0, config.height, tile_rows)]

        def trace_tile(rows):
            directions = primary_rays(config, *rows)
            return self.get_color(origin, directions, config, assets)

        t0 = time.time()
        if workers == 1 or len(bounds) == 1:
            tiles = [trace_tile(rows) for rows in bounds]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                tiles = list(pool.map(trace_tile, bounds))
        image = np.concatenate(tiles, axis=0).reshape(config.height, config.width, 3)
        logger.info("rendered %dx%d (%s) in %.2fs", config.width, config.height,
                    config.mode.value, time.time() - t0)
        return image

    def render(self, config, tile_rows=16, workers=None):
        """
        Render a single 8-bit RGB image of the black hole.
        """
        image = self.render_linear(config, tile_rows=tile_rows, workers=workers)
        return (image * 255).astype(np.uint8)
