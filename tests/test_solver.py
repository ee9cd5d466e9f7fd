from __future__ import annotations

import logging

import numpy as np
import pytest

from random_terrain.config import SolverConfig
from random_terrain.errors import SolverError
from random_terrain.mesh import Site2D, SiteGraph, TerrainMesh, build_grid_mesh
from random_terrain.parameters import assemble_parameters
from random_terrain.solver import StreamPowerSolver


def _grid() -> TerrainMesh:
    return build_grid_mesh(7, 6, Site2D(0.0, 0.0), Site2D(6.0, 5.0))


def _receiver_checks(mesh: TerrainMesh, elevations: np.ndarray, is_outlet: np.ndarray, tan_cap: float) -> None:
    for i in np.flatnonzero(~is_outlet):
        neighbors = mesh.graph.neighbors_of(i)
        distances = mesh.graph.weights_of(i)
        drops = (elevations[i] - elevations[neighbors]) / distances
        assert np.any((drops > 0) & (drops <= tan_cap + 1e-9))


def test_outlets_sit_at_base_and_every_site_drains() -> None:
    mesh = _grid()
    is_outlet = mesh.boundary_mask.copy()
    params = assemble_parameters(np.full(mesh.site_count, 0.4), is_outlet, None)

    surface = StreamPowerSolver().solve(mesh, params)

    assert np.all(surface.elevations[is_outlet] == 0.0)
    assert np.all(surface.elevations[~is_outlet] > 0.0)
    _receiver_checks(mesh, surface.elevations, is_outlet, np.inf)


def test_slope_cap_limits_rise_toward_receiver() -> None:
    mesh = _grid()
    is_outlet = np.zeros(mesh.site_count, dtype=bool)
    is_outlet[0] = True
    params = assemble_parameters(np.full(mesh.site_count, 0.1), is_outlet, 0.2)

    surface = StreamPowerSolver().solve(mesh, params)

    _receiver_checks(mesh, surface.elevations, is_outlet, float(np.tan(0.2)))


def test_higher_erodibility_gives_lower_terrain() -> None:
    mesh = _grid()
    is_outlet = mesh.boundary_mask.copy()
    solver = StreamPowerSolver()

    hard = solver.solve(mesh, assemble_parameters(np.full(mesh.site_count, 0.2), is_outlet, None))
    soft = solver.solve(mesh, assemble_parameters(np.full(mesh.site_count, 0.6), is_outlet, None))

    assert float(soft.elevations.max()) < float(hard.elevations.max())


def test_solver_is_deterministic() -> None:
    mesh = _grid()
    erodibility = np.random.default_rng(0).uniform(0.1, 0.6, mesh.site_count)
    params = assemble_parameters(erodibility, mesh.boundary_mask.copy(), 1.0)

    a = StreamPowerSolver().solve(mesh, params)
    b = StreamPowerSolver().solve(mesh, params)

    assert np.array_equal(a.elevations, b.elevations)


def test_no_outlets_is_a_solver_error() -> None:
    mesh = _grid()
    params = assemble_parameters(np.full(mesh.site_count, 0.3), np.zeros(mesh.site_count, dtype=bool), None)

    with pytest.raises(SolverError):
        StreamPowerSolver().solve(mesh, params)


def test_unreachable_site_is_a_solver_error() -> None:
    sites = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    graph = SiteGraph.from_edges(4, np.array([[0, 1], [1, 2]]))
    mesh = TerrainMesh(sites, graph, Site2D(0.0, 0.0), Site2D(1.0, 1.0))
    params = assemble_parameters(np.full(4, 0.3), np.array([True, False, False, False]), None)

    with pytest.raises(SolverError):
        StreamPowerSolver().solve(mesh, params)


def test_parameter_length_must_match_mesh() -> None:
    mesh = _grid()
    params = assemble_parameters(np.full(3, 0.3), np.array([True, False, False]), None)

    with pytest.raises(ValueError):
        StreamPowerSolver().solve(mesh, params)


def test_assemble_parameters_rejects_bad_slopes() -> None:
    with pytest.raises(ValueError):
        assemble_parameters(np.full(3, 0.3), np.ones(3, dtype=bool), 2.0)
    with pytest.raises(ValueError):
        assemble_parameters(np.zeros(3), np.ones(3, dtype=bool), 1.0)


def test_solver_reports_a_settled_drainage_tree(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="random_terrain.solver")
    mesh = build_grid_mesh(3, 3, Site2D(0.0, 0.0), Site2D(2.0, 2.0))
    params = assemble_parameters(np.full(9, 0.3), mesh.boundary_mask.copy(), None)

    StreamPowerSolver().solve(mesh, params)

    assert any("converged" in record.getMessage() for record in caplog.records)


def test_solver_reports_an_unsettled_drainage_tree(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="random_terrain.solver")
    mesh = _grid()
    params = assemble_parameters(np.full(mesh.site_count, 0.3), mesh.boundary_mask.copy(), None)

    surface = StreamPowerSolver(SolverConfig(max_iterations=1)).solve(mesh, params)

    assert np.all(surface.elevations[~mesh.boundary_mask] > 0.0)
    assert any("not settled within 1 iterations" in record.getMessage() for record in caplog.records)
