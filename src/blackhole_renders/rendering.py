"""
Data structures and the ray-marching loop of the Black Hole rendering pipeline.
"""
from dataclasses import dataclass, field
from enum import Enum
import logging

import numpy as np
from blackhole_renders import constants
from blackhole_renders.disk import DiskEnvelope, accumulate, in_envelope, shade_disk
from blackhole_renders.geodesic import IntegrationMode
from blackhole_renders.integrators import adaptive_step, get_integrator
from blackhole_renders.utils import normalize

logger = logging.getLogger(__name__)


class Termination(Enum):
    """How a ray's march ended."""
    CAPTURED = "captured"
    ABSORBED = "absorbed"
    ESCAPED = "escaped"


@dataclass(frozen=True)
class QualitySettings:
    """
    Per-frame cost bounds.

    Attributes:
        max_iterations: March step budget per ray
        step_scale: Multiplier on the adaptive step size
        noise_lod: Cap on the disk turbulence octave count
    """
    max_iterations: int = constants.QUALITY_PRESETS[constants.DEFAULT_QUALITY][0]
    step_scale: float = constants.QUALITY_PRESETS[constants.DEFAULT_QUALITY][1]
    noise_lod: int = constants.QUALITY_PRESETS[constants.DEFAULT_QUALITY][2]

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if not self.step_scale > 0.0:
            raise ValueError(f"step_scale must be positive, got {self.step_scale}")
        if self.noise_lod < 1:
            raise ValueError(f"noise_lod must be >= 1, got {self.noise_lod}")

    @classmethod
    def preset(cls, name):
        """Build one of the named presets (low, medium, high, ultra)."""
        try:
            max_iterations, step_scale, noise_lod = constants.QUALITY_PRESETS[name]
        except KeyError:
            raise ValueError(f"Unknown quality preset {name!r}. Valid presets: {sorted(constants.QUALITY_PRESETS)}") from None
        return cls(max_iterations=max_iterations, step_scale=step_scale, noise_lod=noise_lod)


@dataclass(frozen=True)
class MarchSettings:
    """
    Immutable per-frame configuration of the march.

    Attributes:
        quality: QualitySettings
        mode: IntegrationMode used when lensing is on
        render_disk: Accumulate disk emission/absorption
        gravitational_lensing: Bend rays; straight lines when False
        disk: DiskEnvelope (also sets the escape distance)
        time_sec: Animation time for the disk rotation
    """
    quality: QualitySettings = field(default_factory=QualitySettings)
    mode: IntegrationMode = IntegrationMode.FAST
    render_disk: bool = True
    gravitational_lensing: bool = True
    disk: DiskEnvelope = field(default_factory=DiskEnvelope)
    time_sec: float = 0.0

    def __post_init__(self):
        # Accept the enum's string value
        object.__setattr__(self, "mode", IntegrationMode(self.mode))


@dataclass
class MarchResult:
    """
    Outcome of marching N rays.

    Attributes:
        color: (N, 3) linear radiance
        transmittance: (N,) remaining transmittance in [0, 1]
        termination: (N,) Termination values
        final_position: (N, 3) last position
        final_direction: (N, 3) last unit direction
        iterations: (N,) steps taken
    """
    color: np.ndarray
    transmittance: np.ndarray
    termination: np.ndarray
    final_position: np.ndarray
    final_direction: np.ndarray
    iterations: np.ndarray

    def __post_init__(self):
        """Validate array shapes and types."""
        if self.color.ndim != 2 or self.color.shape[1] != 3:
            raise ValueError(f"color must be (N,3) array, got shape {self.color.shape}")
        n_rays = self.color.shape[0]
        for name in ("transmittance", "termination", "iterations"):
            arr = getattr(self, name)
            if arr.shape != (n_rays,):
                raise ValueError(f"{name} shape {arr.shape} doesn't match {n_rays} rays")
        for name in ("final_position", "final_direction"):
            arr = getattr(self, name)
            if arr.shape != (n_rays, 3):
                raise ValueError(f"{name} shape {arr.shape} doesn't match {n_rays} rays")

        valid_types = {t.value for t in Termination}
        invalid_types = set(self.termination) - valid_types
        if invalid_types:
            raise ValueError(f"Invalid terminations: {invalid_types}. Valid types: {valid_types}")

    def mask(self, termination):
        """Boolean mask of rays that ended with ``termination``."""
        return self.termination == Termination(termination).value


def march(origins, directions, settings, color_ramp, background):
    """
    March rays from ``origins`` along ``directions``.

    Per iteration, in order: horizon capture, disk accumulation (with early
    exit once the disk is opaque), escape. Rays still running when the
    iteration budget is spent are treated as escaped. Escaped rays add the
    background seen along their final direction, scaled by the remaining
    transmittance.

    Args:
        origins: (3,) shared origin or (N, 3) per-ray origins
        directions: (N, 3) directions, normalized here (a single (3,) vector is accepted)
        settings: MarchSettings
        color_ramp: Disk color lookup, (N,) -> (N, 3)
        background: Background lookup, (N, 3) -> (N, 3)

    Returns:
        MarchResult
    """
    directions = normalize(directions)
    if directions.ndim == 1:
        directions = directions[None, :]
    n_rays = directions.shape[0]
    origins = np.broadcast_to(np.asarray(origins, dtype=float), (n_rays, 3))

    integrator = get_integrator(settings.mode, settings.gravitational_lensing)
    state = integrator.initialize(origins, directions)
    envelope = settings.disk
    quality = settings.quality

    color = np.zeros((n_rays, 3))
    transmittance = np.ones(n_rays)
    termination = np.full(n_rays, Termination.ESCAPED.value, dtype=object)
    iterations = np.zeros(n_rays, dtype=int)
    travelled = np.zeros(n_rays)
    escape_distance = constants.ESCAPE_FACTOR * envelope.outer_radius + np.linalg.norm(origins, axis=1)
    horizon_sq = integrator.horizon_radius**2

    active = np.ones(n_rays, dtype=bool)
    for iteration in range(quality.max_iterations):
        # 1. Horizon capture (a non-finite state has fallen through the horizon)
        r_sq = np.sum(state.position**2, axis=1)
        captured = active & ~(r_sq >= horizon_sq)
        termination[captured] = Termination.CAPTURED.value
        active &= ~captured

        idx = np.flatnonzero(active)
        if idx.size == 0:
            break

        position = state.position[idx]
        dl = adaptive_step(position, quality.step_scale, envelope if settings.render_disk else None)

        # 2. Disk accumulation over the upcoming step
        if settings.render_disk:
            inside = in_envelope(position, envelope)
            if np.any(inside):
                hit = idx[inside]
                step_length = dl[inside] * np.linalg.norm(state.direction[hit], axis=1)
                emission, density = shade_disk(position[inside], envelope, settings.time_sec,
                                               color_ramp, quality.noise_lod)
                color[hit], transmittance[hit] = accumulate(
                    color[hit], transmittance[hit], emission, density, step_length, envelope.absorption)

                opaque = hit[transmittance[hit] < constants.TRANSMITTANCE_FLOOR]
                termination[opaque] = Termination.ABSORBED.value
                active[opaque] = False

        # 3. Escape
        active &= ~(travelled > escape_distance)

        keep = active[idx]
        idx, dl = idx[keep], dl[keep]
        if idx.size == 0:
            continue

        sub = state.subset(idx)
        previous = sub.position
        sub = integrator.step(sub, dl, iteration)
        travelled[idx] += np.linalg.norm(sub.position - previous, axis=1)
        iterations[idx] += 1
        state.assign(idx, sub)

    # The last step of the budget may have crossed the horizon
    r_sq = np.sum(state.position**2, axis=1)
    termination[active & ~(r_sq >= horizon_sq)] = Termination.CAPTURED.value

    final_direction = integrator.directions(state)
    escaped = termination == Termination.ESCAPED.value
    if np.any(escaped):
        sky = np.asarray(background(final_direction[escaped]), dtype=float)
        color[escaped] += transmittance[escaped, None] * sky

    logger.debug("marched %d rays: %d captured, %d absorbed, %d escaped",
                 n_rays,
                 np.count_nonzero(termination == Termination.CAPTURED.value),
                 np.count_nonzero(termination == Termination.ABSORBED.value),
                 np.count_nonzero(escaped))

    return MarchResult(
        color=color,
        transmittance=transmittance,
        termination=termination,
        final_position=state.position.copy(),
        final_direction=final_direction,
        iterations=iterations,
    )
