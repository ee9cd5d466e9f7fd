"""Drainage outlet propagation over the site graph."""

from __future__ import annotations

import logging

import numpy as np

from random_terrain.errors import DegenerateMeshError
from random_terrain.mesh import SiteGraph

logger = logging.getLogger(__name__)


def determine_outlets(
    base_is_outlet: np.ndarray,
    boundary_indices: np.ndarray,
    graph: SiteGraph,
    *,
    convex_hull_is_always_outlet: bool = False,
) -> np.ndarray:
    """Mark the sites that drain to the sea.

    The flood starts from boundary sites (all of them when
    `convex_hull_is_always_outlet` is set, otherwise only the ocean-like ones)
    and spreads through ocean-like neighbours only. Land never carries the
    flood, so an inland sea that does not touch a seeded boundary site stays
    unmarked. The marked set is independent of traversal order.

    When nothing gets marked, the first boundary site in index order becomes
    the single outlet so the solver always has a drainage anchor.

    Raises:
        DegenerateMeshError: if there are no boundary sites at all.
    """

    base = np.asarray(base_is_outlet, dtype=bool)
    boundary = np.asarray(boundary_indices, dtype=np.int64)
    if base.shape != (graph.size,):
        raise ValueError("base_is_outlet must have one entry per site")
    if boundary.size == 0:
        raise DegenerateMeshError("no boundary sites; no outlet can be determined")

    if convex_hull_is_always_outlet:
        stack = boundary.tolist()
    else:
        stack = boundary[base[boundary]].tolist()

    is_outlet = np.zeros(graph.size, dtype=bool)
    while stack:
        current = stack.pop()
        if is_outlet[current]:
            continue
        is_outlet[current] = True
        for neighbor in graph.neighbors_of(current):
            if not is_outlet[neighbor] and base[neighbor]:
                stack.append(int(neighbor))

    if not is_outlet.any():
        fallback = int(boundary.min())
        logger.debug("no ocean-like boundary site; using site %d as the only outlet", fallback)
        is_outlet[fallback] = True

    return is_outlet
