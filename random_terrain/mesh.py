"""Site meshes: points, adjacency graph and triangulation."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
import logging
import math
from typing import Protocol

import numpy as np
from scipy import sparse
from scipy.spatial import Delaunay, cKDTree

from random_terrain.config import MeshConfig
from random_terrain.errors import DegenerateMeshError
from random_terrain.rng import RngStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Site2D:
    """A point in domain units."""

    x: float
    y: float

    def __sub__(self, other: "Site2D") -> "Site2D":
        return Site2D(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class SiteGraph:
    """Undirected weighted adjacency over site indices in CSR form."""

    indptr: np.ndarray
    indices: np.ndarray
    weights: np.ndarray

    @property
    def size(self) -> int:
        return int(self.indptr.shape[0] - 1)

    @property
    def edge_count(self) -> int:
        return int(self.indices.shape[0] // 2)

    def neighbors_of(self, index: int) -> np.ndarray:
        return self.indices[self.indptr[index] : self.indptr[index + 1]]

    def weights_of(self, index: int) -> np.ndarray:
        return self.weights[self.indptr[index] : self.indptr[index + 1]]

    @classmethod
    def from_edges(cls, site_count: int, edges: np.ndarray, weights: np.ndarray | None = None) -> "SiteGraph":
        """Build a symmetric graph from an `(E, 2)` array of index pairs."""

        edges = np.asarray(edges, dtype=np.int64).reshape(-1, 2)
        if edges.size and (edges.min() < 0 or edges.max() >= site_count):
            raise ValueError("edge indices must be within [0, site_count)")
        if weights is None:
            weights = np.ones(edges.shape[0], dtype=np.float64)
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape[0] != edges.shape[0]:
            raise ValueError("weights must have one entry per edge")

        keep = edges[:, 0] != edges[:, 1]
        edges = edges[keep]
        weights = weights[keep]
        ordered = np.sort(edges, axis=1)
        if ordered.shape[0]:
            ordered, first = np.unique(ordered, axis=0, return_index=True)
            weights = weights[first]

        rows = np.concatenate([ordered[:, 0], ordered[:, 1]])
        cols = np.concatenate([ordered[:, 1], ordered[:, 0]])
        data = np.concatenate([weights, weights])
        matrix = sparse.csr_matrix((data, (rows, cols)), shape=(site_count, site_count))
        matrix.sort_indices()
        return cls(
            indptr=matrix.indptr.astype(np.int64),
            indices=matrix.indices.astype(np.int64),
            weights=matrix.data.astype(np.float64),
        )


class TerrainMesh:
    """Sites, their adjacency graph, and the rectangle they cover."""

    def __init__(
        self,
        sites: np.ndarray,
        graph: SiteGraph,
        bound_min: Site2D,
        bound_max: Site2D,
        *,
        triangulation: Delaunay | None = None,
    ):
        sites = np.asarray(sites, dtype=np.float64)
        if sites.ndim != 2 or sites.shape[1] != 2:
            raise ValueError("sites must have shape (N, 2)")
        if graph.size != sites.shape[0]:
            raise ValueError("graph size must match the number of sites")
        self.sites = sites
        self.graph = graph
        self.bound_min = bound_min
        self.bound_max = bound_max
        if triangulation is not None:
            self.__dict__["triangulation"] = triangulation

    @property
    def site_count(self) -> int:
        return int(self.sites.shape[0])

    @cached_property
    def boundary_mask(self) -> np.ndarray:
        x = self.sites[:, 0]
        y = self.sites[:, 1]
        return (
            (x == self.bound_min.x)
            | (x == self.bound_max.x)
            | (y == self.bound_min.y)
            | (y == self.bound_max.y)
        )

    @cached_property
    def boundary_indices(self) -> np.ndarray:
        """Indices of sites on the bounding rectangle, ascending."""

        return np.flatnonzero(self.boundary_mask)

    @cached_property
    def triangulation(self) -> Delaunay:
        if self.site_count < 3:
            raise DegenerateMeshError("at least three sites are needed to triangulate a mesh")
        return Delaunay(self.sites)

    @cached_property
    def areas(self) -> np.ndarray:
        """Cell area per site: one third of every incident triangle."""

        simplices = self.triangulation.simplices
        corners = self.sites[simplices]
        ab = corners[:, 1] - corners[:, 0]
        ac = corners[:, 2] - corners[:, 0]
        tri_area = 0.5 * np.abs(ab[:, 0] * ac[:, 1] - ab[:, 1] * ac[:, 0])
        areas = np.zeros(self.site_count, dtype=np.float64)
        np.add.at(areas, simplices.ravel(), np.repeat(tri_area / 3.0, 3))
        return areas


class MeshBuilder(Protocol):
    def build(self, site_count: int, bound_min: Site2D, bound_max: Site2D) -> TerrainMesh: ...


class RelaxedMeshBuilder:
    """Random sites, Lloyd-relaxed, with edge sites along the bounding rectangle.

    Relaxation moves each site to the centroid of its Voronoi cell, estimated
    from uniform samples assigned to their nearest site. Edge sites are appended
    after the interior sites at roughly the mean site spacing, and the graph is
    the Delaunay triangulation of all sites.
    """

    def __init__(self, rng: RngStream, config: MeshConfig | None = None):
        self.rng = rng
        self.config = config or MeshConfig()

    def build(self, site_count: int, bound_min: Site2D, bound_max: Site2D) -> TerrainMesh:
        if site_count < 1:
            raise DegenerateMeshError("mesh needs at least one site")
        low = np.array(bound_min.as_tuple(), dtype=np.float64)
        high = np.array(bound_max.as_tuple(), dtype=np.float64)
        if np.any(high <= low):
            raise ValueError("bound_max must exceed bound_min on both axes")

        logger.debug("placing %d random sites", site_count)
        sites = self.rng.fork("mesh-sites").generator().uniform(low, high, size=(site_count, 2))
        sites = self._relax(sites, low, high)

        edge_sites = _edge_sites(site_count, low, high, self.config.edge_spacing_factor)
        all_sites = np.vstack((sites, edge_sites))
        triangulation = Delaunay(all_sites)
        graph = _delaunay_graph(triangulation, all_sites)
        logger.debug(
            "built mesh with %d sites (%d on the edge) and %d edges",
            all_sites.shape[0],
            edge_sites.shape[0],
            graph.edge_count,
        )
        return TerrainMesh(all_sites, graph, bound_min, bound_max, triangulation=triangulation)

    def _relax(self, sites: np.ndarray, low: np.ndarray, high: np.ndarray) -> np.ndarray:
        count = sites.shape[0]
        sample_rng = self.rng.fork("mesh-lloyd").generator()
        sample_count = count * self.config.lloyd_samples_per_site
        for _ in range(self.config.relaxation_iterations):
            samples = sample_rng.uniform(low, high, size=(sample_count, 2))
            _, owner = cKDTree(sites).query(samples)
            hits = np.bincount(owner, minlength=count)
            sum_x = np.bincount(owner, weights=samples[:, 0], minlength=count)
            sum_y = np.bincount(owner, weights=samples[:, 1], minlength=count)
            moved = hits > 0
            sites = sites.copy()
            sites[moved, 0] = sum_x[moved] / hits[moved]
            sites[moved, 1] = sum_y[moved] / hits[moved]
        return sites


def build_grid_mesh(columns: int, rows: int, bound_min: Site2D, bound_max: Site2D) -> TerrainMesh:
    """Regular lattice mesh with 4-neighbour adjacency."""

    if columns < 2 or rows < 2:
        raise DegenerateMeshError("grid mesh needs at least 2x2 sites")
    xs = np.linspace(bound_min.x, bound_max.x, columns)
    ys = np.linspace(bound_min.y, bound_max.y, rows)
    xx, yy = np.meshgrid(xs, ys)
    sites = np.column_stack((xx.ravel(), yy.ravel()))

    index = np.arange(rows * columns).reshape(rows, columns)
    horizontal = np.column_stack((index[:, :-1].ravel(), index[:, 1:].ravel()))
    vertical = np.column_stack((index[:-1, :].ravel(), index[1:, :].ravel()))
    edges = np.vstack((horizontal, vertical))
    weights = np.linalg.norm(sites[edges[:, 0]] - sites[edges[:, 1]], axis=1)
    return TerrainMesh(sites, SiteGraph.from_edges(sites.shape[0], edges, weights), bound_min, bound_max)


def _edge_sites(site_count: int, low: np.ndarray, high: np.ndarray, spacing_factor: float) -> np.ndarray:
    width, height = high - low
    spacing = math.sqrt(width * height / site_count) * spacing_factor
    nx = max(1, math.ceil(width / spacing))
    ny = max(1, math.ceil(height / spacing))

    xs = np.linspace(low[0], high[0], nx + 1)
    ys = np.linspace(low[1], high[1], ny + 1)[1:-1]
    bottom = np.column_stack((xs, np.full_like(xs, low[1])))
    top = np.column_stack((xs, np.full_like(xs, high[1])))
    left = np.column_stack((np.full_like(ys, low[0]), ys))
    right = np.column_stack((np.full_like(ys, high[0]), ys))
    return np.vstack((bottom, top, left, right))


def _delaunay_graph(triangulation: Delaunay, sites: np.ndarray) -> SiteGraph:
    indptr, indices = triangulation.vertex_neighbor_vertices
    owners = np.repeat(np.arange(sites.shape[0]), np.diff(indptr))
    edges = np.column_stack((owners, indices))
    weights = np.linalg.norm(sites[owners] - sites[indices], axis=1)
    return SiteGraph.from_edges(sites.shape[0], edges, weights)
