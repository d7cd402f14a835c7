import os

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from blackhole_renders import constants
from blackhole_renders.geodesic import IntegrationMode
from blackhole_renders.integrators import adaptive_step, get_integrator
from blackhole_renders.rendering import Termination


def trace_paths(impact_parameters, mode=IntegrationMode.ACCURATE, start_distance=20.0,
                max_steps=4000, step_scale=0.5):
    """
    Trace a fan of parallel rays in the disk plane.

    Rays start at x = -start_distance, offset along y by their impact
    parameter, and travel toward +x.

    Returns:
        tuple: (paths, terminations) where paths is a list of (K, 2) xy arrays
    """
    impact_parameters = np.atleast_1d(np.asarray(impact_parameters, dtype=float))
    n = impact_parameters.shape[0]
    origins = np.stack([np.full(n, -start_distance), impact_parameters, np.zeros(n)], axis=1)
    directions = np.tile([1.0, 0.0, 0.0], (n, 1))

    integrator = get_integrator(mode)
    state = integrator.initialize(origins, directions)
    horizon_sq = integrator.horizon_radius**2
    escape_sq = (1.5 * start_distance)**2

    trails = [[origins[i, :2].copy()] for i in range(n)]
    terminations = [Termination.ESCAPED.value] * n
    active = np.ones(n, dtype=bool)

    for iteration in range(max_steps):
        idx = np.flatnonzero(active)
        if idx.size == 0:
            break
        sub = integrator.step(state.subset(idx), adaptive_step(state.position[idx], step_scale), iteration)
        state.assign(idx, sub)

        r_sq = np.sum(sub.position**2, axis=1)
        for k, i in enumerate(idx):
            trails[i].append(sub.position[k, :2].copy())
            if not r_sq[k] >= horizon_sq:
                terminations[i] = Termination.CAPTURED.value
                active[i] = False
            elif r_sq[k] > escape_sq:
                active[i] = False

    return [np.array(trail) for trail in trails], terminations


def plot_paths(paths, terminations, title="Equatorial light paths"):
    """Draw traced paths around the horizon and photon sphere."""
    fig, ax = plt.subplots(figsize=(8, 8))
    ax.set_title(title)
    ax.set_aspect("equal")
    ax.set_facecolor("black")

    horizon = plt.Circle((0, 0), constants.SCHWARZSCHILD_RADIUS, color="red", zorder=5)
    ax.add_patch(horizon)
    photon_sphere = plt.Circle((0, 0), constants.PHOTON_SPHERE_RADIUS, color="white",
                               fill=False, linestyle="--", linewidth=0.8)
    ax.add_patch(photon_sphere)

    for path, termination in zip(paths, terminations):
        color = "orange" if termination == Termination.CAPTURED.value else "deepskyblue"
        ax.plot(path[:, 0], path[:, 1], color=color, linewidth=0.8, alpha=0.8)

    extent = max(np.max(np.abs(path)) for path in paths) if paths else 10.0
    ax.set_xlim(-extent, extent)
    ax.set_ylim(-extent, extent)
    return fig


def create_visualization(output_dir="output", spawn_count=50):
    impact = np.linspace(-8.0, 8.0, spawn_count)
    os.makedirs(output_dir, exist_ok=True)
    for mode in IntegrationMode:
        paths, terminations = trace_paths(impact, mode=mode)
        fig = plot_paths(paths, terminations, title=f"Equatorial light paths ({mode.value})")
        path = os.path.join(output_dir, f"trajectories_{mode.value}.png")
        print(f"Saving {path}...")
        fig.savefig(path, dpi=120)
        plt.close(fig)
    print("Done.")


if __name__ == "__main__":
    create_visualization()
