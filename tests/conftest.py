"""
Pytest fixtures and configuration for Black Hole Renderer tests.

This module provides shared fixtures and utilities to reduce test code duplication
and improve test organization.
"""

import numpy as np
import pytest
from blackhole_renders.background import default_color_ramp, procedural_background
from blackhole_renders.core import Renderer
from blackhole_renders.disk import DiskEnvelope
from blackhole_renders.geodesic import IntegrationMode
from blackhole_renders.rendering import MarchSettings, QualitySettings


@pytest.fixture
def renderer():
    """Create a standard renderer instance for tests."""
    return Renderer()


@pytest.fixture
def envelope():
    """Default accretion disk envelope."""
    return DiskEnvelope()


@pytest.fixture
def long_quality():
    """Generous step budget so rays always reach a terminal state."""
    return QualitySettings(max_iterations=4000, step_scale=0.5, noise_lod=4)


@pytest.fixture
def fast_settings(long_quality):
    return MarchSettings(quality=long_quality, mode=IntegrationMode.FAST)


@pytest.fixture
def assets():
    """(color_ramp, background) pair used by direct march calls."""
    return default_color_ramp, procedural_background


@pytest.fixture
def random_points():
    """Reproducible cloud of points away from the horizon."""
    rng = np.random.default_rng(1234)
    directions = rng.normal(size=(200, 3))
    directions /= np.linalg.norm(directions, axis=1, keepdims=True)
    radii = rng.uniform(1.05, 80.0, size=200)
    return directions * radii[:, None]


