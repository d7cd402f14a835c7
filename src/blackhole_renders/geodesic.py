"""
Light propagation models around a Schwarzschild black hole.

Two force models share this module:

- The strict model evaluates the right-hand side of the Schwarzschild null
  geodesic equations in spherical coordinates (r, theta, phi) and their
  affine-parameter derivatives.
- The fast model is a pseudo-Newtonian central force, a = -1.5 h^2 x / r^5,
  evaluated directly in Cartesian coordinates.

For a photon the fast force reproduces the Binet equation of the strict model
(u'' + u = 1.5 R_S u^2), so both bend light the same way in the weak field.
"""
from enum import Enum

import numpy as np
from blackhole_renders import constants
from blackhole_renders.utils import safe_reciprocal

R_S = constants.SCHWARZSCHILD_RADIUS


class IntegrationMode(Enum):
    """Fidelity of the ray propagation."""
    FAST = "fast"
    ACCURATE = "accurate"


def cartesian_to_spherical(positions):
    """
    Convert Cartesian points to spherical coordinates (theta measured from +z).

    Args:
        positions: (N, 3) array

    Returns:
        tuple: (r, theta, phi), each (N,)
    """
    x, y, z = positions[:, 0], positions[:, 1], positions[:, 2]
    r = np.sqrt(x**2 + y**2 + z**2)
    cos_theta = np.clip(z * safe_reciprocal(r), -1.0, 1.0)
    theta = np.arccos(cos_theta)
    phi = np.arctan2(y, x)
    return r, theta, phi


def spherical_to_cartesian(r, theta, phi):
    """Inverse of :func:`cartesian_to_spherical`. Returns (N, 3)."""
    sin_theta = np.sin(theta)
    return np.stack([
        r * sin_theta * np.cos(phi),
        r * sin_theta * np.sin(phi),
        r * np.cos(theta),
    ], axis=-1)


def spherical_basis(theta, phi):
    """
    Orthonormal local basis vectors (r_hat, theta_hat, phi_hat), each (N, 3).
    """
    st, ct = np.sin(theta), np.cos(theta)
    sp, cp = np.sin(phi), np.cos(phi)
    r_hat = np.stack([st * cp, st * sp, ct], axis=-1)
    theta_hat = np.stack([ct * cp, ct * sp, -st], axis=-1)
    phi_hat = np.stack([-sp, cp, np.zeros_like(phi)], axis=-1)
    return r_hat, theta_hat, phi_hat


def cartesian_to_spherical_velocity(r, theta, phi, velocity):
    """
    Project Cartesian velocities onto coordinate rates (dr, dtheta, dphi).
    """
    r_hat, theta_hat, phi_hat = spherical_basis(theta, phi)
    dr = np.sum(velocity * r_hat, axis=1)
    dtheta = np.sum(velocity * theta_hat, axis=1) * safe_reciprocal(r)
    dphi = np.sum(velocity * phi_hat, axis=1) * safe_reciprocal(r * np.sin(theta))
    return dr, dtheta, dphi


def spherical_to_cartesian_velocity(r, theta, phi, dr, dtheta, dphi):
    """Cartesian velocity (N, 3) from coordinate rates."""
    r_hat, theta_hat, phi_hat = spherical_basis(theta, phi)
    return (dr[:, None] * r_hat
            + (r * dtheta)[:, None] * theta_hat
            + (r * np.sin(theta) * dphi)[:, None] * phi_hat)


def metric_factor(r):
    """Schwarzschild metric factor f = 1 - R_S / r."""
    return 1.0 - R_S * safe_reciprocal(r)


def conserved_quantities(r, theta, dr, dtheta, dphi):
    """
    Energy and angular momentum of a null geodesic.

    dt/dlambda follows from the null condition
    -f dt^2 + dr^2 / f + r^2 (dtheta^2 + sin^2(theta) dphi^2) = 0.

    Returns:
        tuple: (energy, angular_momentum), each (N,)
    """
    f = metric_factor(r)
    inv_f = safe_reciprocal(f)
    sin_theta = np.sin(theta)
    tangential = r**2 * (dtheta**2 + sin_theta**2 * dphi**2)
    dt_dlambda = np.sqrt(np.maximum(dr**2 * inv_f**2 + tangential * inv_f, 0.0))
    energy = f * dt_dlambda
    angular_momentum = r**2 * sin_theta**2 * dphi
    return energy, angular_momentum


def geodesic_rhs(y, energy):
    """
    Derivatives of the geodesic state.

    Args:
        y: (N, 6) state (r, theta, phi, dr, dtheta, dphi)
        energy: (N,) conserved energy E

    Returns:
        (N, 6) array (dr, dtheta, dphi, d2r, d2theta, d2phi)
    """
    r, theta = y[:, 0], y[:, 1]
    dr, dtheta, dphi = y[:, 3], y[:, 4], y[:, 5]

    f = metric_factor(r)
    inv_r = safe_reciprocal(r)
    inv_f = safe_reciprocal(f)
    sin_theta = np.sin(theta)
    cos_theta = np.cos(theta)
    dt_dlambda = energy * inv_f

    d2r = (-(R_S * 0.5 * inv_r**2) * f * dt_dlambda**2
           + (R_S * 0.5 * inv_r**2 * inv_f) * dr**2
           + (r - R_S) * (dtheta**2 + sin_theta**2 * dphi**2))
    d2theta = -2.0 * inv_r * dr * dtheta + sin_theta * cos_theta * dphi**2
    d2phi = (-2.0 * inv_r * dr * dphi
             - 2.0 * cos_theta * safe_reciprocal(sin_theta) * dtheta * dphi)

    return np.stack([dr, dtheta, dphi, d2r, d2theta, d2phi], axis=1)


def angular_momentum_squared(positions, directions):
    """h^2 = |x cross v|^2 for each ray."""
    h = np.cross(positions, directions)
    return np.sum(h * h, axis=1)


def pseudo_newtonian_acceleration(positions, directions):
    """
    Light-bending acceleration of the fast model.

    h^2 is recomputed from the current position and direction on every call
    rather than carried from the ray's start.

    Args:
        positions: (N, 3) array
        directions: (N, 3) array (not necessarily unit length)

    Returns:
        (N, 3) acceleration
    """
    h2 = angular_momentum_squared(positions, directions)
    r2 = np.sum(positions * positions, axis=1)
    r5 = r2 * r2 * np.sqrt(r2)
    return (-1.5 * h2 * safe_reciprocal(r5))[:, None] * positions
