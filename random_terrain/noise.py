"""Noise functions used by terrain pipeline."""

from __future__ import annotations

from functools import lru_cache

import numpy as np

from random_terrain.rng import RngStream

_GRADIENTS = np.array(
    [
        (1.0, 0.0),
        (-1.0, 0.0),
        (0.0, 1.0),
        (0.0, -1.0),
        (1.0, 1.0),
        (-1.0, 1.0),
        (1.0, -1.0),
        (-1.0, -1.0),
    ],
    dtype=np.float64,
)
_GRADIENTS /= np.linalg.norm(_GRADIENTS, axis=1)[:, None]

# Unit gradients peak at sqrt(1/2) in 2D.
_PERLIN_SCALE = float(np.sqrt(2.0))


def _fade(t: np.ndarray) -> np.ndarray:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


@lru_cache(maxsize=64)
def _permutation(seed: int) -> np.ndarray:
    perm = RngStream(seed).fork("perlin-permutation").generator().permutation(256)
    table = np.concatenate([perm, perm]).astype(np.int64)
    table.flags.writeable = False
    return table


def perlin_noise(seed: int, x: np.ndarray | float, y: np.ndarray | float) -> np.ndarray:
    """Sample seeded 2D gradient noise in [-1, 1] at broadcastable coordinates."""

    perm = _permutation(int(seed))
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    x0 = np.floor(x)
    y0 = np.floor(y)
    fx = x - x0
    fy = y - y0
    xi = x0.astype(np.int64) & 255
    yi = y0.astype(np.int64) & 255

    h00 = perm[perm[xi] + yi] & 7
    h10 = perm[perm[xi + 1] + yi] & 7
    h01 = perm[perm[xi] + yi + 1] & 7
    h11 = perm[perm[xi + 1] + yi + 1] & 7

    n00 = _GRADIENTS[h00, 0] * fx + _GRADIENTS[h00, 1] * fy
    n10 = _GRADIENTS[h10, 0] * (fx - 1.0) + _GRADIENTS[h10, 1] * fy
    n01 = _GRADIENTS[h01, 0] * fx + _GRADIENTS[h01, 1] * (fy - 1.0)
    n11 = _GRADIENTS[h11, 0] * (fx - 1.0) + _GRADIENTS[h11, 1] * (fy - 1.0)

    u = _fade(fx)
    v = _fade(fy)
    bottom = n00 + u * (n10 - n00)
    top = n01 + u * (n11 - n01)
    value = (bottom + v * (top - bottom)) * _PERLIN_SCALE
    return np.clip(value, -1.0, 1.0)


def octaved_noise(
    seed: int,
    x: np.ndarray | float,
    y: np.ndarray | float,
    octaves: int,
    persistence: np.ndarray | float,
    lacunarity: float,
) -> np.ndarray:
    """Sum `octaves` layers of gradient noise, normalized by the total amplitude.

    Each octave multiplies the amplitude by `persistence` and the frequency by
    `lacunarity`. `persistence` may be an array broadcastable against the
    coordinates, which lets callers vary roughness per point. For persistence
    in [0, 1] the result stays within [-1, 1].
    """

    if octaves < 1:
        raise ValueError("octaves must be >= 1")

    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    persistence = np.asarray(persistence, dtype=np.float64)

    value = np.zeros(np.broadcast(x, y, persistence).shape, dtype=np.float64)
    amplitude = np.ones_like(value)
    max_value = np.zeros_like(value)
    frequency = 1.0

    for _ in range(octaves):
        value += perlin_noise(seed, x * frequency, y * frequency) * amplitude
        max_value += amplitude
        amplitude = amplitude * persistence
        frequency *= lacunarity

    return value / max_value
