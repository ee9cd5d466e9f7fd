"""Elevation surface over an irregular site mesh."""

from __future__ import annotations

import numpy as np

from random_terrain.mesh import TerrainMesh


class ElevationSurface:
    """Per-site elevations with barycentric lookup between sites.

    Queries outside the triangulated hull return NaN. Callers aggregating
    several samples must drop the NaNs rather than treat them as zero.
    """

    def __init__(self, mesh: TerrainMesh, elevations: np.ndarray):
        elevations = np.asarray(elevations, dtype=np.float64)
        if elevations.shape != (mesh.site_count,):
            raise ValueError("elevations must have one value per site")
        self.mesh = mesh
        self.elevations = elevations

    @property
    def site_count(self) -> int:
        return self.mesh.site_count

    def elevation_of(self, index: int) -> float:
        return float(self.elevations[index])

    def elevations_at(self, x: np.ndarray | float, y: np.ndarray | float) -> np.ndarray:
        """Vectorized `elevation_at` over broadcastable coordinate arrays."""

        x, y = np.broadcast_arrays(np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64))
        shape = x.shape
        points = np.column_stack((x.ravel(), y.ravel()))

        tri = self.mesh.triangulation
        simplex = tri.find_simplex(points)
        inside = simplex >= 0
        values = np.full(points.shape[0], np.nan, dtype=np.float64)
        if np.any(inside):
            found = simplex[inside]
            transform = tri.transform[found]
            offset = points[inside] - transform[:, 2]
            bary = np.einsum("ijk,ik->ij", transform[:, :2], offset)
            weights = np.column_stack((bary, 1.0 - bary.sum(axis=1)))
            corners = self.elevations[tri.simplices[found]]
            values[inside] = np.sum(corners * weights, axis=1)
        return values.reshape(shape)

    def elevation_at(self, x: float, y: float) -> float:
        """Interpolated elevation at `(x, y)`, NaN outside the mesh."""

        return float(self.elevations_at(x, y))

    def mean_elevation(self, x: np.ndarray, y: np.ndarray) -> float:
        """Average of the defined samples; NaN when every sample is undefined."""

        values = self.elevations_at(x, y)
        defined = values[~np.isnan(values)]
        if defined.size == 0:
            return float("nan")
        return float(defined.mean())
