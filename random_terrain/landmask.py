"""Land and sea classification of sites."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging

import numpy as np

from random_terrain.noise import octaved_noise

logger = logging.getLogger(__name__)

PERSISTENCE_SCALE = 50.0
PLATE_SCALE = 50.0
CONTINENT_SCALE = 200.0

# plate is in [0, 1] and continent in [-0.2, 1.2], so plate - continent is in [-1.2, 1.2].
MARGIN_BOUND = 1.25

_CURVE_LEVELS = 201

_REFERENCE_SEEDS = (0, 1, 2, 3, 4, 5, 6, 7)
_REFERENCE_EXTENT = 2400.0
_REFERENCE_GRID = 80


@dataclass(frozen=True)
class NoiseCurve:
    """Empirical quantiles of the plate-minus-continent margin."""

    levels: np.ndarray
    quantiles: np.ndarray
    sample_count: int

    @classmethod
    def from_margins(cls, margins: np.ndarray) -> "NoiseCurve":
        """Fit the curve to a margin sample.

        The two end quantiles are pinned to the theoretical margin bounds so
        that a land ratio of 0 classifies every site as ocean and 1 none.
        """

        samples = np.asarray(margins, dtype=np.float64).ravel()
        if samples.size == 0:
            raise ValueError("at least one margin sample is required")
        levels = np.linspace(0.0, 1.0, _CURVE_LEVELS)
        quantiles = np.quantile(samples, levels)
        quantiles[0] = -MARGIN_BOUND
        quantiles[-1] = MARGIN_BOUND
        quantiles = np.maximum.accumulate(quantiles)
        return cls(levels=levels, quantiles=quantiles, sample_count=int(samples.size))

    def inverse(self, ratio: float) -> float:
        return float(np.interp(ratio, self.levels, self.quantiles))


def plate_and_continent(seed: int, points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Evaluate the plate and continent noise layers at (already displaced) points."""

    x = points[:, 0]
    y = points[:, 1]

    noise_persistence = (
        np.abs(octaved_noise(seed, x / PERSISTENCE_SCALE, y / PERSISTENCE_SCALE, 2, 0.5, 2.0)) * 0.7 + 0.3
    )
    noise_plate = octaved_noise(seed, x / PLATE_SCALE, y / PLATE_SCALE, 8, noise_persistence, 2.4) * 0.5 + 0.5
    noise_continent = (
        octaved_noise(seed, x / CONTINENT_SCALE, y / CONTINENT_SCALE, 3, 0.5, 1.8) * 0.7 + 0.5
    )
    return noise_plate, noise_continent


def ocean_margin(seed: int, points: np.ndarray) -> np.ndarray:
    """Return `plate - continent`; larger values are more ocean-like."""

    plate, continent = plate_and_continent(seed, np.asarray(points, dtype=np.float64))
    return plate - continent


@lru_cache(maxsize=1)
def noise_curve() -> NoiseCurve:
    """Seed-independent reference curve from a fixed wide grid and fixed seeds.

    Used when no point set is at hand. Small domains near the origin have a
    different margin distribution, so the generator fits a curve to its own
    sites instead.
    """

    step = 2.0 * _REFERENCE_EXTENT / _REFERENCE_GRID
    # Offset off the lattice; gradient noise is exactly zero at integer coordinates.
    axis = -_REFERENCE_EXTENT + (np.arange(_REFERENCE_GRID) + 0.37) * step
    xx, yy = np.meshgrid(axis, axis + 0.21 * step)
    points = np.column_stack((xx.ravel(), yy.ravel()))

    curve = NoiseCurve.from_margins(np.concatenate([ocean_margin(seed, points) for seed in _REFERENCE_SEEDS]))
    logger.debug("calibrated reference noise curve from %d samples", curve.sample_count)
    return curve


def inverse_noise_curve(land_ratio: float, *, curve: NoiseCurve | None = None) -> float:
    """Map a desired land fraction to the noise-domain threshold that yields it."""

    if not 0.0 <= land_ratio <= 1.0:
        raise ValueError("land_ratio must be within [0, 1]")
    return (curve or noise_curve()).inverse(land_ratio) + 0.5


def land_bias(land_ratio: float, *, curve: NoiseCurve | None = None) -> float:
    return -(inverse_noise_curve(land_ratio, curve=curve) - 0.5)


def classify_margins(margins: np.ndarray, bias: float) -> np.ndarray:
    """`plate > continent - bias`, expressed on precomputed margins."""

    return np.asarray(margins) > -bias


def classify_ocean(
    seed: int,
    points: np.ndarray,
    *,
    land_ratio: float,
    curve: NoiseCurve | None = None,
) -> np.ndarray:
    """Return True for ocean-like sites, the candidates for drainage outlets.

    Without an explicit `curve` the threshold is fitted to the margins of
    `points` themselves, so close to `land_ratio` of them come out as land.
    """

    margins = ocean_margin(seed, points)
    if curve is None:
        curve = NoiseCurve.from_margins(margins)
    return classify_margins(margins, land_bias(land_ratio, curve=curve))


def is_land(
    seed: int,
    points: np.ndarray,
    *,
    land_ratio: float,
    curve: NoiseCurve | None = None,
) -> np.ndarray:
    return ~classify_ocean(seed, points, land_ratio=land_ratio, curve=curve)
