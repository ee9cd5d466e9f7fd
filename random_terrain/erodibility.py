"""Per-site erodibility from noise."""

from __future__ import annotations

import numpy as np

from random_terrain.noise import octaved_noise

ERODIBILITY_SCALE = 75.0
MIN_ERODIBILITY = 0.1
MAX_ERODIBILITY = 0.6


def erodibility_field(seed: int, points: np.ndarray, *, power: float) -> np.ndarray:
    """Erodibility in [0.1, 0.6] at (already displaced) points.

    Noise is folded into [0, 1], its distance from the midpoint is raised to
    `power` and rescaled. Larger powers push most sites toward the floor, which
    leaves fewer, sharper erodible bands.
    """

    if power < 0:
        raise ValueError("power must be >= 0")

    pts = np.asarray(points, dtype=np.float64)
    noise = octaved_noise(
        seed,
        pts[:, 0] / ERODIBILITY_SCALE,
        pts[:, 1] / ERODIBILITY_SCALE,
        5,
        0.7,
        2.2,
    )
    folded = noise * 0.5 + 0.5
    erodibility = np.power(np.abs(1.0 - folded * 2.0), power) * 0.5 + MIN_ERODIBILITY
    return np.clip(erodibility, MIN_ERODIBILITY, MAX_ERODIBILITY)
