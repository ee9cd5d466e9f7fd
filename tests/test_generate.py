from __future__ import annotations

import logging
import math

import numpy as np
import pytest

from random_terrain import ConfigError, DegenerateMeshError, ElevationSurface, generate_terrain
from random_terrain.config import MeshConfig, TerrainConfig
from random_terrain.generate import run_generation
from random_terrain.mesh import Site2D, SiteGraph, TerrainMesh, build_grid_mesh
from random_terrain.parameters import TopographicalParameters

LOW = Site2D(-100.0, -60.0)
HIGH = Site2D(100.0, 60.0)


def _config(**overrides) -> TerrainConfig:
    values = {"seed": 7, "particle_num": 100, "mesh": MeshConfig(relaxation_iterations=3)}
    values.update(overrides)
    return TerrainConfig(**values)


class _FlatSolver:
    def __init__(self) -> None:
        self.calls: list[TopographicalParameters] = []

    def solve(self, mesh: TerrainMesh, parameters: TopographicalParameters) -> ElevationSurface:
        self.calls.append(parameters)
        return ElevationSurface(mesh, np.where(parameters.is_outlet, 0.0, parameters.erodibility))


class _GridBuilder:
    def build(self, site_count: int, bound_min: Site2D, bound_max: Site2D) -> TerrainMesh:
        return build_grid_mesh(9, 6, bound_min, bound_max)


class _InteriorOnlyBuilder:
    def build(self, site_count: int, bound_min: Site2D, bound_max: Site2D) -> TerrainMesh:
        sites = np.array([[-10.0, -10.0], [10.0, -10.0], [0.0, 10.0]])
        graph = SiteGraph.from_edges(3, np.array([[0, 1], [1, 2], [2, 0]]))
        return TerrainMesh(sites, graph, bound_min, bound_max)


def test_generate_terrain_returns_a_queryable_surface() -> None:
    surface = generate_terrain(_config(), LOW, HIGH)

    assert isinstance(surface, ElevationSurface)
    assert math.isfinite(surface.elevation_at(0.0, 0.0))
    assert math.isnan(surface.elevation_at(500.0, 0.0))
    for i in range(0, 100, 13):
        x, y = surface.mesh.sites[i]
        assert surface.elevation_at(x, y) == pytest.approx(surface.elevation_of(i), abs=1e-9)


def test_outlets_are_at_base_and_land_rises() -> None:
    result = run_generation(_config(), LOW, HIGH)
    elevations = result.surface.elevations

    assert np.all(elevations[result.is_outlet] == 0.0)
    assert np.all(elevations[~result.is_outlet] > 0.0)
    assert len(result.parameters) == result.mesh.site_count
    assert np.allclose(result.parameters.max_slope, 1.57)


def test_full_land_has_a_single_fallback_outlet() -> None:
    result = run_generation(_config(land_ratio=1.0), LOW, HIGH)

    assert np.all(result.land_mask)
    assert result.metrics.outlet_count == 1
    assert result.is_outlet[result.mesh.boundary_indices[0]]
    assert result.metrics.max_elevation > 0.0


def test_full_land_with_hull_outlets_marks_the_whole_edge() -> None:
    result = run_generation(_config(land_ratio=1.0, convex_hull_is_always_outlet=True), LOW, HIGH)

    assert np.array_equal(np.flatnonzero(result.is_outlet), result.mesh.boundary_indices)


def test_zero_land_ratio_floods_everything() -> None:
    result = run_generation(_config(land_ratio=0.0), LOW, HIGH)

    assert not np.any(result.land_mask)
    assert np.all(result.is_outlet)
    assert np.allclose(result.surface.elevations, 0.0)
    assert result.metrics.landmass.num_components == 0


def test_outlets_are_ocean_unless_falling_back() -> None:
    result = run_generation(_config(land_ratio=0.5), LOW, HIGH)

    if np.any(~result.land_mask[result.mesh.boundary_indices]):
        assert not np.any(result.land_mask[result.is_outlet])


def test_fault_scale_changes_the_classification_inputs() -> None:
    still = run_generation(_config(fault_scale=0.0), LOW, HIGH)
    faulted = run_generation(_config(fault_scale=35.0), LOW, HIGH)

    assert np.array_equal(still.faulted_sites, still.mesh.sites)
    assert np.array_equal(still.mesh.sites, faulted.mesh.sites)
    assert not np.allclose(faulted.faulted_sites, faulted.mesh.sites)
    assert not np.array_equal(still.erodibility, faulted.erodibility)


def test_fault_scale_changes_the_land_pattern() -> None:
    low = Site2D(-400.0, -400.0)
    high = Site2D(400.0, 400.0)

    still = run_generation(_config(fault_scale=0.0, land_ratio=0.5), low, high, solver=_FlatSolver())
    faulted = run_generation(_config(fault_scale=35.0, land_ratio=0.5), low, high, solver=_FlatSolver())

    assert np.any(still.land_mask) and not np.all(still.land_mask)
    assert not np.array_equal(still.land_mask, faulted.land_mask)


def test_injected_builder_and_solver_are_used() -> None:
    solver = _FlatSolver()

    result = run_generation(_config(), LOW, HIGH, mesh_builder=_GridBuilder(), solver=solver)

    assert result.mesh.site_count == 54
    assert len(solver.calls) == 1
    assert len(solver.calls[0]) == 54
    assert np.array_equal(result.surface.elevations[result.is_outlet], np.zeros(int(result.is_outlet.sum())))


def test_mesh_without_boundary_sites_is_degenerate() -> None:
    with pytest.raises(DegenerateMeshError):
        run_generation(_config(), LOW, HIGH, mesh_builder=_InteriorOnlyBuilder(), solver=_FlatSolver())


def test_bound_range_must_match_bounds() -> None:
    with pytest.raises(ConfigError):
        run_generation(_config(), LOW, HIGH, Site2D(100.0, 100.0))


def test_inverted_bounds_are_rejected() -> None:
    with pytest.raises(ConfigError):
        run_generation(_config(), HIGH, LOW)


def test_generation_logs_its_stages(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="random_terrain")

    run_generation(_config(), LOW, HIGH, mesh_builder=_GridBuilder(), solver=_FlatSolver())

    messages = [record.getMessage() for record in caplog.records]
    assert "creating a model..." in messages
    assert "distributing params..." in messages
    assert "generating..." in messages


@pytest.mark.parametrize("land_ratio", [0.29, 0.45, 0.6])
@pytest.mark.parametrize("seed", [0, 21])
def test_land_ratio_is_met_on_host_bounds(seed: int, land_ratio: float) -> None:
    config = _config(seed=seed, particle_num=400, land_ratio=land_ratio)

    result = run_generation(config, Site2D(-37.25, -20.06), Site2D(37.25, 20.06), solver=_FlatSolver())

    assert abs(result.metrics.land_fraction - land_ratio) < 0.015


def test_all_land_scenario_from_seed_zero() -> None:
    config = TerrainConfig(seed=0, particle_num=100, land_ratio=1.0)

    result = run_generation(config, LOW, HIGH)

    assert np.all(result.land_mask)
    assert result.metrics.outlet_count >= 1
    assert np.any(result.is_outlet[result.mesh.boundary_indices])
    assert np.all(np.isfinite(result.surface.elevations))


def test_all_ocean_scenario_from_seed_zero() -> None:
    config = TerrainConfig(seed=0, particle_num=100, land_ratio=0.0)

    result = run_generation(config, LOW, HIGH)

    assert not np.any(result.land_mask)
    assert np.all(result.is_outlet)
    assert np.allclose(result.surface.elevations, 0.0)
