import numpy as np
import pytest
from blackhole_renders.geodesic import (
    angular_momentum_squared,
    cartesian_to_spherical,
    cartesian_to_spherical_velocity,
    conserved_quantities,
    geodesic_rhs,
    metric_factor,
    pseudo_newtonian_acceleration,
    spherical_to_cartesian,
    spherical_to_cartesian_velocity,
)
from blackhole_renders.utils import safe_reciprocal


def test_safe_reciprocal_is_exact_away_from_zero():
    x = np.array([2.0, -4.0, 1e-3, 1e5])
    np.testing.assert_array_equal(safe_reciprocal(x), 1.0 / x)


def test_safe_reciprocal_guards_zero():
    result = safe_reciprocal(np.array([0.0, 1e-12, -1e-12]))
    assert np.all(np.isfinite(result))
    assert result[0] > 0.0, "sign(0) is treated as positive"
    assert result[1] > 0.0
    assert result[2] < 0.0
    assert safe_reciprocal(0.0) == pytest.approx(1e6)


def test_spherical_round_trip(random_points):
    """Cartesian -> spherical -> Cartesian is the identity outside the horizon."""
    r, theta, phi = cartesian_to_spherical(random_points)
    back = spherical_to_cartesian(r, theta, phi)
    np.testing.assert_allclose(back, random_points, rtol=1e-9, atol=1e-9)


def test_spherical_angles_in_range(random_points):
    r, theta, phi = cartesian_to_spherical(random_points)
    assert np.all(r > 1.0)
    assert np.all((theta >= 0.0) & (theta <= np.pi))
    assert np.all((phi >= -np.pi) & (phi <= np.pi))


def test_spherical_at_poles_is_finite():
    points = np.array([[0.0, 0.0, 5.0], [0.0, 0.0, -5.0], [0.0, 0.0, 0.0]])
    r, theta, phi = cartesian_to_spherical(points)
    assert np.all(np.isfinite(theta)) and np.all(np.isfinite(phi))
    assert theta[0] == pytest.approx(0.0)
    assert theta[1] == pytest.approx(np.pi)


def test_velocity_round_trip(random_points):
    rng = np.random.default_rng(99)
    velocity = rng.normal(size=random_points.shape)
    r, theta, phi = cartesian_to_spherical(random_points)
    dr, dtheta, dphi = cartesian_to_spherical_velocity(r, theta, phi, velocity)
    back = spherical_to_cartesian_velocity(r, theta, phi, dr, dtheta, dphi)
    np.testing.assert_allclose(back, velocity, rtol=1e-8, atol=1e-8)


def test_metric_factor():
    assert metric_factor(np.array([2.0]))[0] == pytest.approx(0.5)
    assert metric_factor(np.array([1.0]))[0] == pytest.approx(0.0)
    assert metric_factor(np.array([1e6]))[0] == pytest.approx(1.0, abs=1e-5)


def test_conserved_quantities_radial_ray():
    r = np.array([10.0])
    theta = np.array([np.pi / 2])
    energy, angular_momentum = conserved_quantities(r, theta, np.array([-1.0]),
                                                    np.array([0.0]), np.array([0.0]))
    assert energy[0] == pytest.approx(1.0)
    assert angular_momentum[0] == pytest.approx(0.0)


def test_photon_sphere_is_circular_orbit():
    """At r = 1.5 R_S a tangential photon has no radial acceleration."""
    r = np.array([1.5])
    theta = np.array([np.pi / 2])
    dphi = np.array([1.0 / 1.5])
    energy, _ = conserved_quantities(r, theta, np.array([0.0]), np.array([0.0]), dphi)
    y = np.array([[1.5, np.pi / 2, 0.0, 0.0, 0.0, dphi[0]]])

    derivs = geodesic_rhs(y, energy)
    assert derivs.shape == (1, 6)
    assert derivs[0, 3] == pytest.approx(0.0, abs=1e-12)   # d2r
    assert derivs[0, 4] == pytest.approx(0.0, abs=1e-12)   # d2theta
    assert derivs[0, 2] == pytest.approx(dphi[0])


def test_tangential_photon_falls_inside_photon_sphere():
    r = np.array([2.0])
    theta = np.array([np.pi / 2])
    dphi = np.array([0.5])
    energy, _ = conserved_quantities(r, theta, np.array([0.0]), np.array([0.0]), dphi)
    y = np.array([[2.0, np.pi / 2, 0.0, 0.0, 0.0, 0.5]])
    # Outside the photon sphere a tangential photon is pushed outward
    assert geodesic_rhs(y, energy)[0, 3] > 0.0

    y_inner = np.array([[1.2, np.pi / 2, 0.0, 0.0, 0.0, 1.0 / 1.2]])
    energy_inner, _ = conserved_quantities(np.array([1.2]), theta, np.array([0.0]),
                                           np.array([0.0]), np.array([1.0 / 1.2]))
    assert geodesic_rhs(y_inner, energy_inner)[0, 3] < 0.0


def test_geodesic_rhs_finite_on_pole():
    y = np.array([[5.0, 0.0, 0.0, -1.0, 0.1, 0.1]])
    energy = np.array([1.0])
    assert np.all(np.isfinite(geodesic_rhs(y, energy)))


def test_pseudo_newtonian_acceleration():
    positions = np.array([[10.0, 0.0, 0.0]])
    directions = np.array([[0.0, 1.0, 0.0]])
    accel = pseudo_newtonian_acceleration(positions, directions)
    # -1.5 h^2 x / r^5 with h^2 = 100
    np.testing.assert_allclose(accel, [[-0.015, 0.0, 0.0]], atol=1e-15)


def test_pseudo_newtonian_matches_circular_photon_orbit():
    """The force supplies exactly v^2 / r at the photon sphere."""
    positions = np.array([[1.5, 0.0, 0.0]])
    directions = np.array([[0.0, 1.0, 0.0]])
    accel = pseudo_newtonian_acceleration(positions, directions)
    assert -accel[0, 0] == pytest.approx(1.0 / 1.5)


def test_radial_ray_feels_no_force():
    positions = np.array([[0.0, 0.0, -10.0]])
    directions = np.array([[0.0, 0.0, 1.0]])
    assert angular_momentum_squared(positions, directions)[0] == 0.0
    np.testing.assert_array_equal(pseudo_newtonian_acceleration(positions, directions), 0.0)
