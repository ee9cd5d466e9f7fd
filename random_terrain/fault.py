"""Noise-driven fault displacement of site coordinates."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from random_terrain.noise import octaved_noise

FAULT_NOISE_SCALE = 100.0


@dataclass(frozen=True)
class FaultField:
    """Warps coordinates along virtual faults before noise-derived parameters are sampled.

    The displacement at `(x, y)` is a direction vector from two decorrelated
    noise samples, scaled by a modulus from a third. Offsetting the direction
    samples by the domain range keeps them independent of the modulus sample.
    """

    seed: int
    fault_scale: float
    bound_range: tuple[float, float]

    def offsets(self, points: np.ndarray) -> np.ndarray:
        """Return the `(N, 2)` displacement vectors for `(N, 2)` points."""

        pts = _as_points(points)
        x = pts[:, 0]
        y = pts[:, 1]
        range_x, range_y = self.bound_range
        scale = FAULT_NOISE_SCALE

        modulus = np.abs(octaved_noise(self.seed, x / scale, y / scale, 3, 0.5, 2.0)) * 2.0 * self.fault_scale
        direction_x = (
            octaved_noise(self.seed, (x + range_x) / scale, (y + range_y) / scale, 4, 0.6, 2.2) * 2.0
        )
        direction_y = (
            octaved_noise(self.seed, (x - range_x) / scale, (y - range_y) / scale, 4, 0.6, 2.2) * 2.0
        )
        return np.stack((direction_x * modulus, direction_y * modulus), axis=-1)

    def displace(self, points: np.ndarray) -> np.ndarray:
        """Return fault-displaced copies of `points`."""

        pts = _as_points(points)
        if self.fault_scale == 0:
            return pts.copy()
        return pts + self.offsets(pts)


def _as_points(points: np.ndarray) -> np.ndarray:
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim == 1 and pts.shape[0] == 2:
        pts = pts[None, :]
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError("points must have shape (N, 2)")
    return pts
