"""
Numerical constants and default configuration for the Black Hole Renderer.

All lengths are in units of the Schwarzschild radius (R_S = 1).
"""

# Geometry
SCHWARZSCHILD_RADIUS = 1.0
HORIZON_MARGIN = 1.01  # Capture margin for the strict geodesic mode
PHOTON_SPHERE_RADIUS = 1.5
CRITICAL_IMPACT_PARAMETER = 2.598076211353316  # 3*sqrt(3)/2 R_S

# Guards
EPSILON = 1e-6

# Step sizing
BASE_STEP = 0.1
ADAPTIVE_RADIUS = 4.0
MIN_STEP_FACTOR = 0.5
MAX_STEP_FACTOR = 4.0
DISK_STEP_FRACTION = 0.5
RENORMALIZE_INTERVAL = 4

# Termination
ESCAPE_FACTOR = 4.0
TRANSMITTANCE_FLOOR = 1e-3

# Accretion disk defaults
DISK_INNER_RADIUS = 2.6
DISK_OUTER_RADIUS = 12.0
DISK_HALF_HEIGHT = 0.2
DISK_RADIAL_FALLOFF = 1.0
DISK_VERTICAL_FALLOFF = 2.0
DISK_INNER_EDGE_WIDTH = 0.4
DISK_ROTATION_SPEED = 0.5
DISK_NOISE_OCTAVES = 5
DISK_NOISE_SCALE = 1.5
DISK_ABSORPTION = 8.0
DISK_EMISSION_STRENGTH = 4.0
DENSITY_THRESHOLD = 1e-4

# Pixel driver
DEFAULT_FOV_DEGREES = 60.0
MIN_FOV_DEGREES = 1.0
MAX_FOV_DEGREES = 179.0
GAMMA = 2.2

# Quality presets: (max_iterations, step_scale, noise_lod)
QUALITY_PRESETS = {
    "low": (300, 2.0, 2),
    "medium": (800, 1.0, 4),
    "high": (1500, 0.6, 6),
    "ultra": (3000, 0.35, 8),
}
DEFAULT_QUALITY = "medium"

# Camera (orbit defaults, z-up)
CAMERA_RADIUS = 15.0
CAMERA_MIN_RADIUS = 2.0
CAMERA_MAX_RADIUS = 500.0
CAMERA_AUTO_ORBIT_SPEED = 0.05
CAMERA_MOVE_SPEED = 1.0  # Free camera translation per move

# Color ramp stops: normalized radius -> linear RGB (inner hot, outer dim)
COLOR_RAMP_STOPS = [
    (0.00, [1.00, 0.95, 0.85]),
    (0.15, [1.00, 0.75, 0.40]),
    (0.40, [0.95, 0.45, 0.15]),
    (0.70, [0.60, 0.18, 0.05]),
    (1.00, [0.15, 0.03, 0.01]),
]

# Procedural background
STAR_FREQUENCY = 120.0
STAR_POWER = 24.0
STAR_BRIGHTNESS = 2.5
NEBULA_FREQUENCY = 2.0
NEBULA_OCTAVES = 3
NEBULA_TINT = [0.10, 0.06, 0.16]
BACKGROUND_FLOOR = [0.004, 0.004, 0.008]

# Skybox faces in +x, -x, +y, -y, +z, -z order
SKYBOX_FACES = ["right.png", "left.png", "top.png", "bottom.png", "front.png", "back.png"]
