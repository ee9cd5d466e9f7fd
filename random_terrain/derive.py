"""Derived raster products from elevation surfaces."""

from __future__ import annotations

import numpy as np

from random_terrain.surface import ElevationSurface

# Renderers treat averaged elevations below this as open water.
SEA_LEVEL = 0.05


def rasterize(surface: ElevationSurface, width: int, height: int) -> np.ndarray:
    """Sample the surface at pixel centres covering the mesh bounds, row 0 at the top.

    Pixels outside the mesh are NaN.
    """

    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")

    lo = surface.mesh.bound_min
    hi = surface.mesh.bound_max
    xs = lo.x + (np.arange(width) + 0.5) * (hi.x - lo.x) / width
    ys = hi.y - (np.arange(height) + 0.5) * (hi.y - lo.y) / height
    xx, yy = np.meshgrid(xs, ys)
    return surface.elevations_at(xx, yy)


def hillshade(
    elevation: np.ndarray,
    *,
    cell_size: float,
    azimuth_deg: float = 315.0,
    altitude_deg: float = 45.0,
    z_factor: float = 1.0,
) -> np.ndarray:
    """Compute an 8-bit grayscale hillshade from an elevation raster; NaN cells are flat."""

    if elevation.ndim != 2:
        raise ValueError("elevation must be a 2D array")
    if cell_size <= 0:
        raise ValueError("cell_size must be positive")

    filled = np.nan_to_num(elevation.astype(np.float64), nan=0.0)
    dz_dy, dz_dx = np.gradient(filled, cell_size, cell_size)
    dz_dx = dz_dx * float(z_factor)
    dz_dy = dz_dy * float(z_factor)

    slope = np.pi / 2.0 - np.arctan(np.hypot(dz_dx, dz_dy))
    aspect = np.arctan2(-dz_dx, dz_dy)

    azimuth = np.deg2rad(azimuth_deg)
    altitude = np.deg2rad(altitude_deg)

    shaded = (
        np.sin(altitude) * np.sin(slope)
        + np.cos(altitude) * np.cos(slope) * np.cos(azimuth - aspect)
    )
    shaded = np.clip(shaded, 0.0, 1.0)
    return np.round(shaded * 255.0).astype(np.uint8)


def height_preview_u16(elevation: np.ndarray, *, robust_percentiles: tuple[float, float] = (1.0, 99.0)) -> np.ndarray:
    """Map float elevations to 16-bit preview grayscale; NaN maps to 0."""

    defined = ~np.isnan(elevation)
    out = np.zeros(elevation.shape, dtype=np.uint16)
    if not np.any(defined):
        return out
    lo, hi = np.percentile(elevation[defined], robust_percentiles)
    scale = max(hi - lo, 1e-6)
    norm = np.clip((elevation[defined] - lo) / scale, 0.0, 1.0)
    out[defined] = np.round(norm * 65535.0).astype(np.uint16)
    return out


def land_mask_u8(elevation: np.ndarray, *, sea_level: float = SEA_LEVEL) -> np.ndarray:
    """Encode cells at or above `sea_level` as 255, everything else as 0."""

    with np.errstate(invalid="ignore"):
        land = elevation >= sea_level
    return np.where(land, 255, 0).astype(np.uint8)
