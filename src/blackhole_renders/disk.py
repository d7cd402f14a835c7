"""
Volumetric accretion disk: envelope, density, emission and compositing.

The disk is a thin emissive/absorbing slab in the z = 0 plane. It is treated
as a medium rather than a surface, so its contribution is accumulated on every
march step the ray spends inside it.
"""
from dataclasses import dataclass

import numpy as np
from blackhole_renders import constants
from blackhole_renders.noise import fbm
from blackhole_renders.utils import smoothstep


@dataclass(frozen=True)
class DiskEnvelope:
    """
    Static disk configuration, in R_S units.

    Attributes:
        inner_radius: Innermost stable orbit, density fades in above it
        outer_radius: Radius where the radial falloff reaches zero
        half_height: Vertical half thickness
        radial_falloff: Exponent of the radial profile
        vertical_falloff: Exponent of the vertical profile
        rotation_speed: Angular speed of the turbulence pattern (rad / time)
        noise_octaves: Turbulence octaves before the LOD cap
        inner_edge_width: Width of the smooth cutoff above inner_radius
        absorption: Absorption coefficient per unit density and length
        emission_strength: Emission multiplier applied to the color ramp
        noise_scale: Spatial frequency of the turbulence
    """
    inner_radius: float = constants.DISK_INNER_RADIUS
    outer_radius: float = constants.DISK_OUTER_RADIUS
    half_height: float = constants.DISK_HALF_HEIGHT
    radial_falloff: float = constants.DISK_RADIAL_FALLOFF
    vertical_falloff: float = constants.DISK_VERTICAL_FALLOFF
    rotation_speed: float = constants.DISK_ROTATION_SPEED
    noise_octaves: int = constants.DISK_NOISE_OCTAVES
    inner_edge_width: float = constants.DISK_INNER_EDGE_WIDTH
    absorption: float = constants.DISK_ABSORPTION
    emission_strength: float = constants.DISK_EMISSION_STRENGTH
    noise_scale: float = constants.DISK_NOISE_SCALE

    def __post_init__(self):
        if not 0.0 < self.inner_radius < self.outer_radius:
            raise ValueError(f"need 0 < inner_radius < outer_radius, got {self.inner_radius}, {self.outer_radius}")
        if self.half_height <= 0.0:
            raise ValueError(f"half_height must be positive, got {self.half_height}")
        if self.noise_octaves < 1:
            raise ValueError(f"noise_octaves must be >= 1, got {self.noise_octaves}")
        if self.inner_edge_width <= 0.0:
            raise ValueError(f"inner_edge_width must be positive, got {self.inner_edge_width}")


def in_envelope(positions, envelope):
    """Cheap bounding test: inside the slab and within the outer radius."""
    rho2 = positions[:, 0]**2 + positions[:, 1]**2
    return (np.abs(positions[:, 2]) < envelope.half_height) & (rho2 < envelope.outer_radius**2)


def disk_density(positions, envelope):
    """
    Local disk density for each point.

    Product of a radial falloff, a vertical falloff and a smooth mask above
    the inner radius. Densities below the threshold are returned as zero.

    Args:
        positions: (N, 3) array
        envelope: DiskEnvelope

    Returns:
        (N,) densities in [0, 1]
    """
    rho = np.hypot(positions[:, 0], positions[:, 1])
    height = np.abs(positions[:, 2])

    radial = np.maximum(1.0 - rho / envelope.outer_radius, 0.0) ** envelope.radial_falloff
    vertical = np.maximum(1.0 - height / envelope.half_height, 0.0) ** envelope.vertical_falloff
    edge = smoothstep(envelope.inner_radius,
                      envelope.inner_radius + envelope.inner_edge_width, rho)

    density = radial * vertical * edge
    density[density < constants.DENSITY_THRESHOLD] = 0.0
    return density


def shade_disk(positions, envelope, time_sec, color_ramp, noise_lod=None):
    """
    Emission color and density of the disk at each point.

    The color ramp is indexed by normalized radius and modulated by fractal
    noise sampled in a frame rotated by ``time_sec * rotation_speed``.

    Args:
        positions: (N, 3) array
        envelope: DiskEnvelope
        time_sec: Animation time
        color_ramp: Callable mapping (N,) normalized radius to (N, 3) color
        noise_lod: Optional cap on the noise octave count

    Returns:
        tuple: (emission (N, 3), density (N,))
    """
    n = positions.shape[0]
    density = disk_density(positions, envelope)
    emission = np.zeros((n, 3))

    lit = density > 0.0
    if not np.any(lit):
        return emission, density

    p = positions[lit]
    rho = np.hypot(p[:, 0], p[:, 1])
    u = np.clip((rho - envelope.inner_radius) / (envelope.outer_radius - envelope.inner_radius), 0.0, 1.0)
    base = np.asarray(color_ramp(u), dtype=float)

    angle = np.arctan2(p[:, 1], p[:, 0]) + time_sec * envelope.rotation_speed
    rotated = np.stack([rho * np.cos(angle), rho * np.sin(angle), p[:, 2]], axis=1)
    turbulence = fbm(rotated * envelope.noise_scale, envelope.noise_octaves, noise_lod)

    emission[lit] = base * (envelope.emission_strength * (0.5 + turbulence))[:, None]
    return emission, density


def accumulate(color, transmittance, emission, density, step_length, absorption):
    """
    Beer-Lambert compositing of one march step.

    Args:
        color: (N, 3) accumulated radiance
        transmittance: (N,) remaining transmittance
        emission: (N, 3) local emission
        density: (N,) local density
        step_length: (N,) distance covered by the step
        absorption: Absorption coefficient

    Returns:
        tuple: (color, transmittance) after the step
    """
    tau = density * absorption * step_length
    attenuation = np.exp(-tau)
    color = color + ((1.0 - attenuation) * transmittance)[:, None] * emission
    return color, transmittance * attenuation
