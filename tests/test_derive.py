from __future__ import annotations

import numpy as np
import pytest

from random_terrain.derive import height_preview_u16, hillshade, land_mask_u8, rasterize
from random_terrain.mesh import Site2D, build_grid_mesh
from random_terrain.surface import ElevationSurface


def test_hillshade_flat_is_uniform() -> None:
    flat = np.zeros((16, 16), dtype=np.float64)
    shaded = hillshade(flat, cell_size=1.0)

    assert shaded.dtype == np.uint8
    assert np.all(shaded == shaded[0, 0])
    assert int(shaded[0, 0]) == int(round(np.sin(np.deg2rad(45.0)) * 255.0))


def test_hillshade_treats_undefined_cells_as_flat() -> None:
    raster = np.zeros((8, 8))
    raster[0, :] = np.nan

    shaded = hillshade(raster, cell_size=2.0)

    assert np.all(shaded == shaded[4, 4])


def test_hillshade_lights_slopes_facing_the_sun() -> None:
    x = np.linspace(0.0, 10.0, 32)
    facing_west = np.tile(x, (32, 1))
    facing_east = np.tile(10.0 - x, (32, 1))

    assert hillshade(facing_west, cell_size=1.0).mean() > hillshade(facing_east, cell_size=1.0).mean()


def test_hillshade_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        hillshade(np.zeros(4), cell_size=1.0)
    with pytest.raises(ValueError):
        hillshade(np.zeros((4, 4)), cell_size=0.0)


def test_rasterize_puts_north_at_the_top() -> None:
    mesh = build_grid_mesh(5, 4, Site2D(0.0, 0.0), Site2D(4.0, 3.0))
    surface = ElevationSurface(mesh, mesh.sites[:, 1])

    raster = rasterize(surface, 8, 6)

    assert raster.shape == (6, 8)
    assert np.all(np.isfinite(raster))
    assert np.all(raster[0] > raster[-1])
    assert raster[0, 0] == pytest.approx(3.0 - 0.25)


def test_height_preview_ignores_nan() -> None:
    raster = np.array([[np.nan, 0.0], [5.0, 10.0]])

    preview = height_preview_u16(raster, robust_percentiles=(0.0, 100.0))

    assert preview.dtype == np.uint16
    assert preview.tolist() == [[0, 0], [32768, 65535]]


def test_land_mask_threshold() -> None:
    raster = np.array([[np.nan, 0.0], [0.05, 1.0]])

    assert land_mask_u8(raster).tolist() == [[0, 0], [255, 255]]
