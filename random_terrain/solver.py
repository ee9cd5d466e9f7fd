"""Elevation solvers: stream-power uplift against erosion over a site mesh."""

from __future__ import annotations

import heapq
import logging
from typing import Protocol

import numpy as np

from random_terrain.config import SolverConfig
from random_terrain.errors import SolverError
from random_terrain.mesh import TerrainMesh
from random_terrain.parameters import TopographicalParameters
from random_terrain.surface import ElevationSurface

logger = logging.getLogger(__name__)


class ErosionSolver(Protocol):
    def solve(self, mesh: TerrainMesh, parameters: TopographicalParameters) -> ElevationSurface: ...


class StreamPowerSolver:
    """Steady-state stream-power terrain anchored at the outlets.

    Every non-outlet site drains to one receiver. Its height above the receiver
    balances uplift against erosion, `uplift * d / (k * A**m)`, where `d` is the
    edge length, `k` the site's erodibility and `A` its upstream drainage area,
    and is capped by the site's maximum slope. The drainage tree is rebuilt from
    the resulting heights until it stops changing or `max_iterations` trees
    have been built; the last tree is kept either way.
    """

    def __init__(self, config: SolverConfig | None = None):
        self.config = config or SolverConfig()

    def solve(self, mesh: TerrainMesh, parameters: TopographicalParameters) -> ElevationSurface:
        parameters.validate(mesh.site_count)
        outlets = np.flatnonzero(parameters.is_outlet)
        if outlets.size == 0:
            raise SolverError("at least one outlet is required")

        cfg = self.config
        areas = mesh.areas
        tan_slope = np.where(np.isnan(parameters.max_slope), np.inf, np.tan(parameters.max_slope))

        def settle(order: list[int], receivers: np.ndarray) -> np.ndarray:
            drainage = _drainage_area(order, receivers, areas)
            return _integrate(mesh.sites, order, receivers, drainage, parameters.erodibility, tan_slope, cfg)

        order, receivers = _drainage_tree(mesh, outlets, None)
        elevation = settle(order, receivers)
        for iteration in range(1, cfg.max_iterations):
            order, next_receivers = _drainage_tree(mesh, outlets, elevation)
            if np.array_equal(next_receivers, receivers):
                logger.debug("drainage tree converged after %d iterations", iteration)
                break
            receivers = next_receivers
            elevation = settle(order, receivers)
        else:
            logger.debug("drainage tree not settled within %d iterations", cfg.max_iterations)

        return ElevationSurface(mesh, elevation)


def _drainage_tree(
    mesh: TerrainMesh,
    outlets: np.ndarray,
    elevation: np.ndarray | None,
) -> tuple[list[int], np.ndarray]:
    """Priority flood from the outlets; returns visit order and receivers.

    Without elevations the flood is keyed on accumulated edge length, so the
    first tree follows shortest paths to the sea.
    """

    graph = mesh.graph
    count = mesh.site_count
    receivers = np.full(count, -1, dtype=np.int64)
    visited = np.zeros(count, dtype=bool)
    order: list[int] = []

    heap: list[tuple[float, int]] = []
    for outlet in outlets:
        i = int(outlet)
        visited[i] = True
        key = 0.0 if elevation is None else float(elevation[i])
        heapq.heappush(heap, (key, i))

    while heap:
        key, current = heapq.heappop(heap)
        order.append(current)
        neighbors = graph.neighbors_of(current)
        weights = graph.weights_of(current)
        for neighbor, weight in zip(neighbors.tolist(), weights.tolist()):
            if visited[neighbor]:
                continue
            visited[neighbor] = True
            receivers[neighbor] = current
            if elevation is None:
                next_key = key + weight
            else:
                next_key = max(key, float(elevation[neighbor]))
            heapq.heappush(heap, (next_key, neighbor))

    if len(order) != count:
        raise SolverError(f"{count - len(order)} sites are not connected to any outlet")
    return order, receivers


def _drainage_area(order: list[int], receivers: np.ndarray, areas: np.ndarray) -> np.ndarray:
    drainage = areas.astype(np.float64, copy=True)
    for i in reversed(order):
        receiver = receivers[i]
        if receiver >= 0:
            drainage[receiver] += drainage[i]
    return drainage


def _integrate(
    sites: np.ndarray,
    order: list[int],
    receivers: np.ndarray,
    drainage: np.ndarray,
    erodibility: np.ndarray,
    tan_slope: np.ndarray,
    cfg: SolverConfig,
) -> np.ndarray:
    draining = receivers >= 0
    rise = np.zeros(sites.shape[0], dtype=np.float64)
    distance = np.linalg.norm(sites[draining] - sites[receivers[draining]], axis=1)
    stream_power = cfg.uplift_rate * distance / (
        erodibility[draining] * np.power(np.maximum(drainage[draining], 1e-12), cfg.area_exponent)
    )
    rise[draining] = np.minimum(stream_power, tan_slope[draining] * distance)

    elevation = np.full(sites.shape[0], cfg.base_elevation, dtype=np.float64)
    for i in order:
        receiver = receivers[i]
        if receiver >= 0:
            elevation[i] = elevation[receiver] + rise[i]
    return elevation
