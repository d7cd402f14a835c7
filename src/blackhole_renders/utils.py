"""
Utility functions for the Black Hole Renderer.

This module provides the numerical guards shared by the integrators and the
shading code, plus helpers for moving between single vectors and batches.
"""

import numpy as np
from blackhole_renders import constants


def safe_reciprocal(x, eps=constants.EPSILON):
    """
    Reciprocal with the denominator kept at least ``eps`` away from zero.

    This is the only place the coordinate singularities (r = 0, sin(theta) = 0,
    f = 0) are patched. Denominators with magnitude below ``eps`` are replaced
    by ``eps`` carrying their sign; larger ones are left exact.

    Args:
        x: Scalar or array denominator
        eps: Smallest allowed denominator magnitude

    Returns:
        1 / x with |x| floored at eps, sign(0) treated as positive
    """
    x = np.asarray(x, dtype=float)
    sign = np.where(x < 0.0, -1.0, 1.0)
    return 1.0 / np.where(np.abs(x) < eps, sign * eps, x)


def normalize(v):
    """Normalize vectors along the last axis (zero vectors stay zero)."""
    v = np.asarray(v, dtype=float)
    norm = np.linalg.norm(v, axis=-1, keepdims=True)
    return np.where(norm > 0.0, v / np.where(norm > 0.0, norm, 1.0), 0.0)


def smoothstep(edge0, edge1, x):
    """Hermite interpolation between two edges, clamped to [0, 1]."""
    t = np.clip((np.asarray(x, dtype=float) - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def ensure_batch(arr):
    """
    Promote a single 3-vector to a (1, 3) batch.

    Returns:
        tuple: (batched array, was_single flag)
    """
    arr = np.asarray(arr, dtype=float)
    if arr.ndim == 1:
        return arr[None, :], True
    return arr, False


def unbatch_if_needed(arrays, was_single):
    """
    Strip the batch axis from results computed for a single input.

    Args:
        arrays: Single array or tuple of arrays
        was_single: Whether the original input was a single vector

    Returns:
        Arrays in the original format
    """
    if not was_single:
        return arrays
    if isinstance(arrays, tuple):
        return tuple(_unbatch(arr) for arr in arrays)
    return _unbatch(arrays)


def _unbatch(arr):
    arr = np.asarray(arr)
    if arr.ndim == 1 and arr.shape[0] == 1:
        return float(arr[0])
    if arr.ndim >= 1 and arr.shape[0] == 1:
        return arr[0]
    return arr


def batch_compatible(func):
    """
    Decorator letting a batch function accept a single (3,) point.

    The first positional argument is treated as the point set; the function
    always receives an (N, 3) array and the result is unbatched when the
    caller passed a single vector. Scalar results come back as ``float``.
    """
    def wrapper(points, *args, **kwargs):
        batched, was_single = ensure_batch(points)
        result = func(batched, *args, **kwargs)
        return unbatch_if_needed(result, was_single)

    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    return wrapper
