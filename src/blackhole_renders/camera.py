"""
Orbit camera producing the camera position and view orientation for a frame.

The world is z-up (the disk lies in z = 0). Elevation is the polar angle from
+z, so elevation = pi / 2 sits in the disk plane.

A locked camera always sits on its orbit and looks at the hole. A free camera
keeps its own position and looks along its azimuth/elevation, so it can be
moved sideways off the orbit.
"""
from dataclasses import dataclass
from enum import Enum

import numpy as np
from blackhole_renders import constants

_ELEVATION_LIMIT = 0.01

FRONT_VIEW_POSITION = (10.0, 10.0, 1.0)
TOP_VIEW_POSITION = (0.1, 0.0, 15.0)


class CameraMode(Enum):
    FREE_ORBIT = "free_orbit"
    AUTO_ORBIT = "auto_orbit"
    FRONT_VIEW = "front_view"
    TOP_VIEW = "top_view"


class CameraType(Enum):
    LOCKED = "locked"
    FREE = "free"


class FreeCamDirection(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


def spherical_direction(elevation, azimuth):
    """Unit vector for a polar angle from +z and an azimuth around +z."""
    elevation = np.clip(elevation, _ELEVATION_LIMIT, np.pi - _ELEVATION_LIMIT)
    return np.array([
        np.sin(elevation) * np.cos(azimuth),
        np.sin(elevation) * np.sin(azimuth),
        np.cos(elevation),
    ])


def direction_angles(vector):
    """(elevation, azimuth) of ``vector``, elevation clamped away from the poles."""
    vector = np.asarray(vector, dtype=float)
    unit = vector / np.linalg.norm(vector)
    elevation = np.clip(np.arccos(np.clip(unit[2], -1.0, 1.0)),
                        _ELEVATION_LIMIT, np.pi - _ELEVATION_LIMIT)
    return float(elevation), float(np.arctan2(unit[1], unit[0]))


def look_at(position, target=(0.0, 0.0, 0.0), up=(0.0, 0.0, 1.0), roll=0.0):
    """
    View orientation looking from ``position`` toward ``target``.

    Returns:
        3x3 matrix with columns (right, up, forward)
    """
    position = np.asarray(position, dtype=float)
    forward = np.asarray(target, dtype=float) - position
    forward = forward / np.linalg.norm(forward)

    world_up = np.asarray(up, dtype=float)
    right = np.cross(forward, world_up)
    if np.linalg.norm(right) < 1e-9:
        # Looking along the up axis: fall back to +y
        right = np.cross(forward, np.array([0.0, 1.0, 0.0]))
    right = right / np.linalg.norm(right)
    cam_up = np.cross(right, forward)

    if abs(roll) > 1e-3:
        cos_roll, sin_roll = np.cos(roll), np.sin(roll)
        right, cam_up = (right * cos_roll + cam_up * sin_roll,
                         -right * sin_roll + cam_up * cos_roll)

    return np.stack([right, cam_up, forward], axis=1)


@dataclass(eq=False)
class OrbitCamera:
    """
    Camera orbiting the origin, optionally detached into a free camera.

    Attributes:
        azimuth: Angle around +z (radians)
        elevation: Polar angle from +z (radians), clamped away from the poles
        radius: Distance from the origin in R_S
        roll: Rotation about the view axis (radians)
        mode: CameraMode
        camera_type: CameraType, LOCKED orbits the origin, FREE keeps its own position
        free_position: Position of the free camera, starts on the orbit
        move_speed: Free camera translation per move_freecam call
    """
    azimuth: float = np.pi * 0.25
    elevation: float = np.pi * 0.45
    radius: float = constants.CAMERA_RADIUS
    roll: float = 0.0
    mode: CameraMode = CameraMode.FREE_ORBIT
    auto_orbit_speed: float = constants.CAMERA_AUTO_ORBIT_SPEED
    camera_type: CameraType = CameraType.LOCKED
    free_position: np.ndarray = None
    move_speed: float = constants.CAMERA_MOVE_SPEED

    def __post_init__(self):
        self.mode = CameraMode(self.mode)
        self.camera_type = CameraType(self.camera_type)
        self.radius = float(np.clip(self.radius, constants.CAMERA_MIN_RADIUS, constants.CAMERA_MAX_RADIUS))
        if self.free_position is None:
            self.free_position = self._orbit_position()
        self.free_position = np.asarray(self.free_position, dtype=float)

    def _orbit_position(self):
        return self.radius * spherical_direction(self.elevation, self.azimuth)

    def update(self, time_sec):
        """Advance the auto orbit: azimuth follows time, elevation oscillates."""
        if self.mode != CameraMode.AUTO_ORBIT:
            return
        self.azimuth = time_sec * self.auto_orbit_speed
        self.elevation = np.pi * 0.3 + np.sin(time_sec * 0.05) * 0.3
        if self.camera_type == CameraType.FREE:
            distance = np.linalg.norm(self.free_position)
            self.free_position = distance * spherical_direction(self.elevation, self.azimuth)

    def position(self):
        if self.mode == CameraMode.FRONT_VIEW:
            return np.array(FRONT_VIEW_POSITION)
        if self.mode == CameraMode.TOP_VIEW:
            return np.array(TOP_VIEW_POSITION)
        if self.camera_type == CameraType.FREE:
            return self.free_position.copy()
        return self._orbit_position()

    def view_matrix(self):
        position = self.position()
        if self.camera_type == CameraType.FREE and self.mode == CameraMode.FREE_ORBIT:
            forward = spherical_direction(self.elevation, self.azimuth)
            return look_at(position, target=position + forward, roll=self.roll)
        return look_at(position, roll=self.roll)

    def set_mode(self, mode):
        """
        Switch the camera mode.

        A free camera jumps to the preset positions, and turns to face the hole
        on any change of mode other than into the auto orbit.
        """
        mode = CameraMode(mode)
        if self.camera_type == CameraType.FREE:
            if mode == CameraMode.FRONT_VIEW:
                self.free_position = np.array(FRONT_VIEW_POSITION)
            elif mode == CameraMode.TOP_VIEW:
                self.free_position = np.array(TOP_VIEW_POSITION)
            elif mode == CameraMode.FREE_ORBIT and self.mode != CameraMode.FREE_ORBIT:
                self.free_position = self.position()
            if mode not in (CameraMode.AUTO_ORBIT, self.mode):
                self.elevation, self.azimuth = direction_angles(-self.free_position)
        self.mode = mode

    def move_freecam(self, direction, amount=1.0):
        """
        Translate a free camera across its view plane.

        The view direction is unchanged. Locked cameras ignore the call, and
        an auto orbiting free camera stops orbiting first.

        Args:
            direction: FreeCamDirection
            amount: Multiple of move_speed to travel (negative reverses)
        """
        if self.camera_type != CameraType.FREE:
            return
        if self.mode == CameraMode.AUTO_ORBIT:
            self.set_mode(CameraMode.FREE_ORBIT)

        view = self.view_matrix()
        right, up = view[:, 0], view[:, 1]
        offset = {
            FreeCamDirection.UP: up,
            FreeCamDirection.DOWN: -up,
            FreeCamDirection.LEFT: -right,
            FreeCamDirection.RIGHT: right,
        }[FreeCamDirection(direction)]
        self.free_position = self.free_position + offset * self.move_speed * amount

    def toggle_camera_type(self):
        """
        Switch between the locked orbit and the free camera in place.

        Locked to free: the free camera starts where the orbit camera was,
        looking at the hole. Free to locked: the orbit is re-fitted through
        the free camera's position.
        """
        position = self.position()
        if self.camera_type == CameraType.LOCKED:
            self.free_position = position
            self.elevation, self.azimuth = direction_angles(-position)
            self.camera_type = CameraType.FREE
            return self.camera_type

        distance = np.linalg.norm(position)
        self.radius = float(np.clip(distance, constants.CAMERA_MIN_RADIUS, constants.CAMERA_MAX_RADIUS))
        if distance > 1e-3:
            self.elevation, self.azimuth = direction_angles(position)
        if self.mode in (CameraMode.FRONT_VIEW, CameraMode.TOP_VIEW):
            self.mode = CameraMode.FREE_ORBIT
        self.camera_type = CameraType.LOCKED
        return self.camera_type
