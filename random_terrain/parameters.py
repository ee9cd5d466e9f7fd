"""Per-site parameters handed to the elevation solver."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class TopographicalParameters:
    """Struct-of-arrays record, one row per site.

    `max_slope` is in radians; NaN leaves a site uncapped.
    """

    erodibility: np.ndarray
    is_outlet: np.ndarray
    max_slope: np.ndarray

    def __len__(self) -> int:
        return int(self.erodibility.shape[0])

    def validate(self, site_count: int) -> None:
        for name in ("erodibility", "is_outlet", "max_slope"):
            if getattr(self, name).shape != (site_count,):
                raise ValueError(f"{name} must have shape ({site_count},)")
        if not np.all(self.erodibility > 0):
            raise ValueError("erodibility must be positive")
        capped = self.max_slope[~np.isnan(self.max_slope)]
        if np.any(capped <= 0) or np.any(capped > np.pi / 2):
            raise ValueError("max_slope must be within (0, pi/2]")


def assemble_parameters(
    erodibility: np.ndarray,
    is_outlet: np.ndarray,
    max_slope: float | np.ndarray | None,
) -> TopographicalParameters:
    """Combine per-site fields into the record the solver consumes."""

    erodibility = np.asarray(erodibility, dtype=np.float64)
    is_outlet = np.asarray(is_outlet, dtype=bool)
    if max_slope is None:
        slopes = np.full(erodibility.shape, np.nan, dtype=np.float64)
    else:
        slopes = np.broadcast_to(np.asarray(max_slope, dtype=np.float64), erodibility.shape).copy()

    params = TopographicalParameters(erodibility=erodibility, is_outlet=is_outlet, max_slope=slopes)
    params.validate(erodibility.shape[0])
    return params
