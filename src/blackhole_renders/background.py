"""
Color ramp and background samplers consumed by the march.

The march only sees two callables:

- ``color_ramp(u)``: (N,) normalized disk radius -> (N, 3) linear color
- ``background(directions)``: (N, 3) unit directions -> (N, 3) linear color

This module provides procedural defaults for both, samplers over image data
(a 1D strip texture and a six-face cubemap), and Pillow loaders for assets
on disk.
"""
import os

import numpy as np
import PIL.Image
from blackhole_renders import constants
from blackhole_renders.noise import fbm, noise3

_RAMP_POSITIONS = np.array([stop[0] for stop in constants.COLOR_RAMP_STOPS])
_RAMP_COLORS = np.array([stop[1] for stop in constants.COLOR_RAMP_STOPS])


def default_color_ramp(u):
    """Hot white-yellow at the inner edge fading to dim red at the outer edge."""
    u = np.clip(np.asarray(u, dtype=float), 0.0, 1.0)
    return np.stack([np.interp(u, _RAMP_POSITIONS, _RAMP_COLORS[:, c]) for c in range(3)], axis=-1)


def _to_float_image(data):
    arr = np.asarray(data)
    if arr.dtype == np.uint8:
        return arr.astype(float) / 255.0
    return arr.astype(float)


def strip_sampler(texture):
    """
    Build a color ramp from a strip texture.

    Args:
        texture: (W, 3) or (H, W, 3) image, uint8 or float in [0, 1].
            A 2D image is sampled along its middle row.

    Returns:
        Callable mapping (N,) u in [0, 1] to (N, 3) colors with linear filtering
    """
    data = _to_float_image(texture)
    if data.ndim == 3:
        data = data[data.shape[0] // 2]
    if data.ndim != 2 or data.shape[1] < 3:
        raise ValueError(f"strip texture must be (W,3) or (H,W,3), got shape {np.shape(texture)}")
    data = data[:, :3]
    width = data.shape[0]
    texel_centers = (np.arange(width) + 0.5) / width

    def sample(u):
        u = np.clip(np.asarray(u, dtype=float), 0.0, 1.0)
        return np.stack([np.interp(u, texel_centers, data[:, c]) for c in range(3)], axis=-1)

    return sample


def procedural_background(directions):
    """
    Star field with a faint nebula.

    Stars are sparse bright points from high-frequency noise raised to a high
    power; the nebula is low-frequency fractal noise. A small floor keeps
    every direction non-black.

    Args:
        directions: (N, 3) unit vectors

    Returns:
        (N, 3) linear colors
    """
    directions = np.asarray(directions, dtype=float)
    stars = noise3(directions * constants.STAR_FREQUENCY) ** constants.STAR_POWER
    stars = stars * constants.STAR_BRIGHTNESS
    nebula = fbm(directions * constants.NEBULA_FREQUENCY + 7.3, constants.NEBULA_OCTAVES)
    nebula = nebula * nebula

    tint = np.array(constants.NEBULA_TINT)
    floor = np.array(constants.BACKGROUND_FLOOR)
    return floor[None, :] + nebula[:, None] * tint[None, :] + stars[:, None]


def cubemap_sampler(faces):
    """
    Build a background sampler from six cubemap faces.

    Args:
        faces: Sequence of six (S, S, 3) images ordered +x, -x, +y, -y, +z, -z
            (uint8 or float in [0, 1])

    Returns:
        Callable mapping (N, 3) directions to (N, 3) colors (nearest texel)
    """
    if len(faces) != 6:
        raise ValueError(f"cubemap needs 6 faces, got {len(faces)}")
    images = [_to_float_image(face)[..., :3] for face in faces]

    def sample(directions):
        d = np.asarray(directions, dtype=float)
        ax = np.abs(d)
        major = np.argmax(ax, axis=1)
        idx = np.arange(d.shape[0])
        sign_positive = d[idx, major] >= 0.0
        face = major * 2 + np.where(sign_positive, 0, 1)

        # Standard cubemap (s, t) convention per face
        x, y, z = d[:, 0], d[:, 1], d[:, 2]
        ma = np.maximum(ax[idx, major], 1e-12)
        sc = np.select(
            [face == 0, face == 1, face == 2, face == 3, face == 4, face == 5],
            [-z, z, x, x, x, -x])
        tc = np.select(
            [face == 0, face == 1, face == 2, face == 3, face == 4, face == 5],
            [-y, -y, z, -z, -y, -y])
        s = 0.5 * (sc / ma + 1.0)
        t = 0.5 * (tc / ma + 1.0)

        colors = np.zeros((d.shape[0], 3))
        for f, img in enumerate(images):
            mask = face == f
            if not np.any(mask):
                continue
            h, w = img.shape[:2]
            col = np.clip((s[mask] * w).astype(int), 0, w - 1)
            row = np.clip((t[mask] * h).astype(int), 0, h - 1)
            colors[mask] = img[row, col]
        return colors

    return sample


def load_color_ramp(path):
    """Load a strip texture from disk and wrap it in :func:`strip_sampler`."""
    with PIL.Image.open(path) as img:
        data = np.asarray(img.convert("RGB"))
    return strip_sampler(data)


def load_cubemap(folder):
    """
    Load a skybox folder holding right/left/top/bottom/front/back PNG faces.

    Raises:
        FileNotFoundError: If a face image is missing
    """
    faces = []
    for name in constants.SKYBOX_FACES:
        path = os.path.join(folder, name)
        if not os.path.exists(path):
            raise FileNotFoundError(f"Failed to load cubemap face {path}")
        with PIL.Image.open(path) as img:
            faces.append(np.asarray(img.convert("RGB")))
    return cubemap_sampler(faces)
