"""Terrain quality and connectivity metrics."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from random_terrain.mesh import SiteGraph


@dataclass(frozen=True)
class ConnectivityMetrics:
    """Connected component and coverage summary for a boolean site mask."""

    num_components: int
    largest_component_size: int
    total_masked_sites: int
    largest_component_ratio: float
    mask_fraction: float


@dataclass(frozen=True)
class TerrainMetrics:
    """Summary of one generation run."""

    site_count: int
    boundary_site_count: int
    land_site_count: int
    land_fraction: float
    outlet_count: int
    landmass: ConnectivityMetrics
    max_elevation: float
    mean_land_elevation: float


def connected_components_metrics(graph: SiteGraph, mask: np.ndarray) -> ConnectivityMetrics:
    """Compute connected component statistics of masked sites over the graph."""

    mask_bool = np.asarray(mask, dtype=bool)
    if mask_bool.shape != (graph.size,):
        raise ValueError("mask must have one entry per site")

    total = int(mask_bool.sum())
    if total == 0:
        return ConnectivityMetrics(0, 0, 0, 0.0, 0.0)

    visited = np.zeros(graph.size, dtype=bool)
    sizes: list[int] = []

    for start in np.flatnonzero(mask_bool):
        if visited[start]:
            continue
        visited[start] = True
        stack = [int(start)]
        component_size = 0

        while stack:
            current = stack.pop()
            component_size += 1
            for neighbor in graph.neighbors_of(current):
                if mask_bool[neighbor] and not visited[neighbor]:
                    visited[neighbor] = True
                    stack.append(int(neighbor))

        sizes.append(component_size)

    largest = max(sizes)
    return ConnectivityMetrics(
        num_components=len(sizes),
        largest_component_size=largest,
        total_masked_sites=total,
        largest_component_ratio=float(largest / total),
        mask_fraction=float(total / graph.size),
    )


def summarize(
    graph: SiteGraph,
    boundary_indices: np.ndarray,
    land_mask: np.ndarray,
    is_outlet: np.ndarray,
    elevations: np.ndarray,
) -> TerrainMetrics:
    land = np.asarray(land_mask, dtype=bool)
    land_elevations = elevations[land]
    return TerrainMetrics(
        site_count=graph.size,
        boundary_site_count=int(np.asarray(boundary_indices).size),
        land_site_count=int(land.sum()),
        land_fraction=float(land.mean()) if land.size else 0.0,
        outlet_count=int(np.count_nonzero(is_outlet)),
        landmass=connected_components_metrics(graph, land),
        max_elevation=float(elevations.max()) if elevations.size else 0.0,
        mean_land_elevation=float(land_elevations.mean()) if land_elevations.size else 0.0,
    )
