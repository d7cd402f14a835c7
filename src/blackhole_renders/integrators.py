"""
Ray state and step integrators for the ray-marching loop.

Each propagation strategy implements the same three calls:

- ``initialize(positions, directions)`` builds a :class:`RayState`
- ``step(state, dl, iteration)`` advances every ray by its own step ``dl``
- ``directions(state)`` returns the current unit propagation directions

``get_integrator`` picks the strategy from the integration mode and the
lensing toggle, so the march loop never branches on the mode itself.
"""
from dataclasses import dataclass, fields, replace

import numpy as np
from blackhole_renders import constants
from blackhole_renders.geodesic import (
    IntegrationMode,
    angular_momentum_squared,
    cartesian_to_spherical,
    cartesian_to_spherical_velocity,
    conserved_quantities,
    geodesic_rhs,
    pseudo_newtonian_acceleration,
    spherical_to_cartesian,
    spherical_to_cartesian_velocity,
)
from blackhole_renders.utils import normalize


@dataclass
class RayState:
    """
    Batched state of N rays.

    Attributes:
        position: (N, 3) Cartesian positions in R_S units
        direction: (N, 3) propagation vectors. The fast mode lets these carry
            momentum between renormalizations.
        h2: (N,) squared angular momentum, fast mode only
        spherical: (N, 6) (r, theta, phi, dr, dtheta, dphi), accurate mode only
        energy: (N,) conserved energy, accurate mode only
        angular_momentum: (N,) conserved angular momentum, accurate mode only
        frame: (N, 3, 3) rows are the orbital-frame axes, accurate mode only
    """
    position: np.ndarray
    direction: np.ndarray
    h2: np.ndarray | None = None
    spherical: np.ndarray | None = None
    energy: np.ndarray | None = None
    angular_momentum: np.ndarray | None = None
    frame: np.ndarray | None = None

    def __post_init__(self):
        if self.position.ndim != 2 or self.position.shape[1] != 3:
            raise ValueError(f"position must be (N,3) array, got shape {self.position.shape}")
        if self.direction.shape != self.position.shape:
            raise ValueError(f"direction shape {self.direction.shape} doesn't match position shape {self.position.shape}")

    def __len__(self):
        return self.position.shape[0]

    def subset(self, idx):
        """Copy of the rays selected by ``idx``."""
        values = {}
        for field in fields(self):
            arr = getattr(self, field.name)
            values[field.name] = None if arr is None else arr[idx]
        return RayState(**values)

    def assign(self, idx, other):
        """Write the rays of ``other`` back into positions ``idx``."""
        for field in fields(self):
            arr = getattr(self, field.name)
            if arr is not None:
                arr[idx] = getattr(other, field.name)


class StraightLineIntegrator:
    """Unbent propagation, used when gravitational lensing is disabled."""

    mode = None
    horizon_radius = constants.SCHWARZSCHILD_RADIUS

    def initialize(self, positions, directions):
        return RayState(position=np.array(positions, dtype=float),
                        direction=np.array(directions, dtype=float))

    def step(self, state, dl, iteration):
        return replace(state, position=state.position + state.direction * dl[:, None])

    def directions(self, state):
        return state.direction


class PseudoNewtonianIntegrator:
    """
    Fast mode: semi-implicit Euler under the pseudo-Newtonian force.

    The direction absorbs the acceleration before the position moves, and is
    only renormalized every ``renormalize_interval`` iterations.
    """

    mode = IntegrationMode.FAST
    horizon_radius = constants.SCHWARZSCHILD_RADIUS

    def __init__(self, renormalize_interval=constants.RENORMALIZE_INTERVAL):
        self.renormalize_interval = renormalize_interval

    def initialize(self, positions, directions):
        position = np.array(positions, dtype=float)
        direction = normalize(directions)
        return RayState(position=position, direction=direction,
                        h2=angular_momentum_squared(position, direction))

    def step(self, state, dl, iteration):
        accel = pseudo_newtonian_acceleration(state.position, state.direction)
        direction = state.direction + accel * dl[:, None]
        position = state.position + direction * dl[:, None]
        if (iteration + 1) % self.renormalize_interval == 0:
            direction = normalize(direction)
        return replace(state, position=position, direction=direction,
                       h2=angular_momentum_squared(position, direction))

    def directions(self, state):
        return normalize(state.direction)


class SchwarzschildIntegrator:
    """
    Accurate mode: classical RK4 on the Schwarzschild geodesic equations.

    The metric is spherically symmetric, so every ray is integrated in its own
    orbital frame: local x points at the start position and local z along the
    orbit normal. The ray starts on the chart's equator, away from the
    theta = 0 / pi coordinate singularity.
    """

    mode = IntegrationMode.ACCURATE
    horizon_radius = constants.SCHWARZSCHILD_RADIUS * constants.HORIZON_MARGIN

    def initialize(self, positions, directions):
        position = np.array(positions, dtype=float)
        direction = normalize(directions)
        frame = orbital_frames(position, direction)

        local_pos = np.einsum("nij,nj->ni", frame, position)
        local_dir = np.einsum("nij,nj->ni", frame, direction)
        r, theta, phi = cartesian_to_spherical(local_pos)
        dr, dtheta, dphi = cartesian_to_spherical_velocity(r, theta, phi, local_dir)
        energy, angular_momentum = conserved_quantities(r, theta, dr, dtheta, dphi)

        spherical = np.stack([r, theta, phi, dr, dtheta, dphi], axis=1)
        return RayState(position=position, direction=direction,
                        spherical=spherical, energy=energy,
                        angular_momentum=angular_momentum, frame=frame)

    def step(self, state, dl, iteration):
        y = state.spherical
        energy = state.energy
        h = dl[:, None]

        k1 = geodesic_rhs(y, energy)
        k2 = geodesic_rhs(y + 0.5 * h * k1, energy)
        k3 = geodesic_rhs(y + 0.5 * h * k2, energy)
        k4 = geodesic_rhs(y + h * k3, energy)
        y_next = y + (h / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)

        r, theta, phi = y_next[:, 0], y_next[:, 1], y_next[:, 2]
        local_pos = spherical_to_cartesian(r, theta, phi)
        local_dir = spherical_to_cartesian_velocity(r, theta, phi,
                                                    y_next[:, 3], y_next[:, 4], y_next[:, 5])
        position = np.einsum("nji,nj->ni", state.frame, local_pos)
        direction = np.einsum("nji,nj->ni", state.frame, local_dir)
        return replace(state, position=position, direction=direction, spherical=y_next)

    def directions(self, state):
        return normalize(state.direction)


def orbital_frames(positions, directions):
    """
    Per-ray orthonormal frames (N, 3, 3) whose rows are (e1, e2, e3).

    e1 points at the position, e3 along position x direction. Radial rays get
    an arbitrary normal perpendicular to e1.
    """
    e1 = normalize(positions)
    normal = np.cross(positions, directions)
    degenerate = np.linalg.norm(normal, axis=1) < 1e-12
    if np.any(degenerate):
        # Pick the world axis least aligned with e1
        axis = np.eye(3)[np.argmin(np.abs(e1[degenerate]), axis=1)]
        normal[degenerate] = np.cross(e1[degenerate], axis)
    e3 = normalize(normal)
    e2 = np.cross(e3, e1)
    return np.stack([e1, e2, e3], axis=1)


_INTEGRATORS = {
    IntegrationMode.FAST: PseudoNewtonianIntegrator,
    IntegrationMode.ACCURATE: SchwarzschildIntegrator,
}


def get_integrator(mode, lensing=True):
    """
    Select the propagation strategy.

    Args:
        mode: IntegrationMode (or its string value)
        lensing: When False rays travel in straight lines regardless of mode

    Returns:
        Integrator instance
    """
    if not lensing:
        return StraightLineIntegrator()
    return _INTEGRATORS[IntegrationMode(mode)]()


def adaptive_step(positions, step_scale=1.0, envelope=None):
    """
    Per-ray step size.

    Small near the hole and larger far away, clamped to a bounded multiplier
    range and scaled by the quality setting. Within one step of the disk slab
    the step is capped to a fraction of the disk half height, never more than
    the half height itself, so no step can carry a ray across the slab.

    Args:
        positions: (N, 3) array
        step_scale: Quality step multiplier
        envelope: Optional DiskEnvelope

    Returns:
        (N,) step sizes
    """
    r = np.linalg.norm(positions, axis=1)
    factor = np.clip(r / constants.ADAPTIVE_RADIUS,
                     constants.MIN_STEP_FACTOR, constants.MAX_STEP_FACTOR)
    dl = constants.BASE_STEP * factor * step_scale
    if envelope is not None:
        rho = np.hypot(positions[:, 0], positions[:, 1])
        near = ((np.abs(positions[:, 2]) < envelope.half_height + dl)
                & (rho < envelope.outer_radius + dl))
        if np.any(near):
            cap = min(constants.DISK_STEP_FRACTION * envelope.half_height * step_scale,
                      envelope.half_height)
            dl[near] = np.minimum(dl[near], cap)
    return dl
