"""
Seedless procedural noise for disk turbulence and the star field.

Value noise on the integer lattice: each lattice cell gets a pseudo-random
value from a sine hash, and the field is the smooth trilinear blend of the
eight surrounding cells. Everything is a pure function of the input point.
"""
import numpy as np
from blackhole_renders.utils import batch_compatible

_HASH_VECTOR = np.array([127.1, 311.7, 74.7])
_HASH_SCALE = 43758.5453

# Offsets of the 8 lattice corners around a point
_CORNERS = np.array([[i, j, k] for i in (0, 1) for j in (0, 1) for k in (0, 1)], dtype=float)


def hash3(cells):
    """
    Map integer lattice coordinates to pseudo-random values in [0, 1).

    Args:
        cells: (..., 3) array of lattice coordinates

    Returns:
        (...) array of hash values
    """
    cells = np.asarray(cells, dtype=float)
    h = np.sin(cells[..., 0] * _HASH_VECTOR[0]
               + cells[..., 1] * _HASH_VECTOR[1]
               + cells[..., 2] * _HASH_VECTOR[2]) * _HASH_SCALE
    return h - np.floor(h)


def _value_noise(points):
    cell = np.floor(points)
    frac = points - cell
    u = frac * frac * (3.0 - 2.0 * frac)

    # (N, 8) corner values
    values = hash3(cell[:, None, :] + _CORNERS[None, :, :])

    ux, uy, uz = u[:, 0:1], u[:, 1:2], u[:, 2:3]
    # Collapse z, then y, then x. Corner index = 4i + 2j + k.
    vz = values[:, 0::2] * (1.0 - uz) + values[:, 1::2] * uz   # (N, 4): (i,j)
    vy = vz[:, 0::2] * (1.0 - uy) + vz[:, 1::2] * uy           # (N, 2): i
    vx = vy[:, 0:1] * (1.0 - ux) + vy[:, 1:2] * ux             # (N, 1)
    return vx[:, 0]


@batch_compatible
def noise3(points):
    """
    Smooth value noise in [0, 1].

    Args:
        points: (N, 3) sample coordinates, or a single (3,) point

    Returns:
        (N,) noise values, or a float for a single point
    """
    return _value_noise(points)


@batch_compatible
def signed_noise3(points):
    """Value noise remapped to [-1, 1]."""
    return 2.0 * _value_noise(points) - 1.0


@batch_compatible
def fbm(points, octaves, lod=None):
    """
    Fractal sum of noise octaves.

    Amplitude halves and frequency doubles with each octave. The octave count
    is capped by ``lod`` and the sum is normalized by the total amplitude, so
    the result stays in [0, 1] regardless of how many octaves survive the cap.

    Args:
        points: (N, 3) sample coordinates, or a single (3,) point
        octaves: Requested number of octaves
        lod: Optional level-of-detail cap on the octave count

    Returns:
        (N,) values in [0, 1], or a float for a single point
    """
    n_octaves = octaves if lod is None else min(octaves, lod)
    n_octaves = max(int(n_octaves), 1)

    total = np.zeros(points.shape[0])
    amplitude = 1.0
    frequency = 1.0
    norm = 0.0
    for _ in range(n_octaves):
        total += amplitude * _value_noise(points * frequency)
        norm += amplitude
        amplitude *= 0.5
        frequency *= 2.0
    return total / norm
