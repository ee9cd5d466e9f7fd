"""Terrain generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
import logging

import numpy as np

from random_terrain.config import TerrainConfig
from random_terrain.erodibility import erodibility_field
from random_terrain.errors import ConfigError, DegenerateMeshError
from random_terrain.fault import FaultField
from random_terrain.landmask import NoiseCurve, classify_margins, land_bias, ocean_margin
from random_terrain.mesh import MeshBuilder, RelaxedMeshBuilder, Site2D, TerrainMesh
from random_terrain.metrics import TerrainMetrics, summarize
from random_terrain.outlets import determine_outlets
from random_terrain.parameters import TopographicalParameters, assemble_parameters
from random_terrain.rng import RngStream
from random_terrain.solver import ErosionSolver, StreamPowerSolver
from random_terrain.surface import ElevationSurface

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    """Elevation surface plus the per-site intermediates that produced it."""

    surface: ElevationSurface
    mesh: TerrainMesh
    faulted_sites: np.ndarray
    land_mask: np.ndarray
    is_outlet: np.ndarray
    erodibility: np.ndarray
    parameters: TopographicalParameters
    land_bias: float
    metrics: TerrainMetrics


def run_generation(
    config: TerrainConfig,
    bound_min: Site2D,
    bound_max: Site2D,
    bound_range: Site2D | None = None,
    *,
    mesh_builder: MeshBuilder | None = None,
    solver: ErosionSolver | None = None,
) -> GenerationResult:
    """Generate a deterministic terrain and keep its intermediate fields."""

    bound_range = _check_bounds(bound_min, bound_max, bound_range)
    seed = config.seed
    builder = mesh_builder or RelaxedMeshBuilder(RngStream(seed).fork("mesh"), config.mesh)
    solver = solver or StreamPowerSolver(config.solver)

    logger.debug("creating a model...")
    mesh = builder.build(config.particle_num, bound_min, bound_max)
    if mesh.site_count == 0:
        raise DegenerateMeshError("mesh builder returned no sites")

    logger.debug("distributing params...")
    fault = FaultField(seed, config.fault_scale, bound_range.as_tuple())
    faulted = fault.displace(mesh.sites)

    margins = ocean_margin(seed, faulted)
    curve = NoiseCurve.from_margins(margins)
    bias = land_bias(config.land_ratio, curve=curve)
    base_is_outlet = classify_margins(margins, bias)
    logger.debug("land bias %.4f for land ratio %.3f over %d sites", bias, config.land_ratio, curve.sample_count)
    is_outlet = determine_outlets(
        base_is_outlet,
        mesh.boundary_indices,
        mesh.graph,
        convex_hull_is_always_outlet=config.convex_hull_is_always_outlet,
    )
    erodibility = erodibility_field(seed, faulted, power=config.erodibility_distribution_power)
    parameters = assemble_parameters(erodibility, is_outlet, config.global_max_slope)

    logger.debug("generating...")
    surface = solver.solve(mesh, parameters)

    land_mask = ~base_is_outlet
    metrics = summarize(mesh.graph, mesh.boundary_indices, land_mask, is_outlet, surface.elevations)
    logger.info(
        "generated terrain: seed=%d sites=%d land=%.3f outlets=%d max_elevation=%.2f",
        seed,
        metrics.site_count,
        metrics.land_fraction,
        metrics.outlet_count,
        metrics.max_elevation,
    )
    return GenerationResult(
        surface=surface,
        mesh=mesh,
        faulted_sites=faulted,
        land_mask=land_mask,
        is_outlet=is_outlet,
        erodibility=erodibility,
        parameters=parameters,
        land_bias=bias,
        metrics=metrics,
    )


def generate_terrain(
    config: TerrainConfig,
    bound_min: Site2D,
    bound_max: Site2D,
    bound_range: Site2D | None = None,
    *,
    mesh_builder: MeshBuilder | None = None,
    solver: ErosionSolver | None = None,
) -> ElevationSurface:
    """Generate the elevation surface for the rectangle `bound_min`..`bound_max`."""

    return run_generation(
        config,
        bound_min,
        bound_max,
        bound_range,
        mesh_builder=mesh_builder,
        solver=solver,
    ).surface


def _check_bounds(bound_min: Site2D, bound_max: Site2D, bound_range: Site2D | None) -> Site2D:
    expected = bound_max - bound_min
    if expected.x <= 0 or expected.y <= 0:
        raise ConfigError("bound_max must exceed bound_min on both axes")
    if bound_range is None:
        return expected
    if not (np.isclose(bound_range.x, expected.x) and np.isclose(bound_range.y, expected.y)):
        raise ConfigError(f"bound_range {bound_range} does not match bound_max - bound_min {expected}")
    return bound_range
