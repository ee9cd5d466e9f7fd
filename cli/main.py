"""CLI entry point for terrain generation."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import logging
from pathlib import Path
import platform
import shutil
import tempfile
import time
from typing import Any

import numpy as np
import scipy

from random_terrain.config import DEFAULT_PARTICLE_NUM, TerrainConfig, random_config
from random_terrain.derive import SEA_LEVEL, height_preview_u16, hillshade, land_mask_u8, rasterize
from random_terrain.errors import ConfigError
from random_terrain.generate import GenerationResult, run_generation
from random_terrain.io import (
    output_dir_for,
    prepare_output_dir,
    replace_contents,
    write_elevation,
    write_json,
    write_png,
)
from random_terrain.mesh import Site2D
from random_terrain.rng import RngStream
from random_terrain.seed import ParsedSeed, SeedParseError, parse_seed

DEFAULT_EXTENT = (74.5, 40.12)
DEFAULT_RASTER = (512, 276)


def build_parser() -> argparse.ArgumentParser:
    defaults = TerrainConfig()
    parser = argparse.ArgumentParser(description="Seeded terrain generator over a relaxed site mesh")
    parser.add_argument("--seed", required=True, help="Unsigned 32-bit seed or a seed name (e.g. MistyForge)")
    parser.add_argument("--out", default="out", help="Output root directory")
    parser.add_argument("--particles", type=int, default=DEFAULT_PARTICLE_NUM, help="Number of random sites")
    parser.add_argument("--land-ratio", type=float, default=defaults.land_ratio, help="Approximate land fraction")
    parser.add_argument("--fault-scale", type=float, default=defaults.fault_scale, help="Fault displacement scale")
    parser.add_argument(
        "--erodibility-power",
        type=float,
        default=defaults.erodibility_distribution_power,
        help="Power of the erodibility distribution",
    )
    parser.add_argument(
        "--max-slope",
        type=float,
        default=defaults.global_max_slope,
        help="Maximum slope angle in radians",
    )
    parser.add_argument(
        "--hull-outlets",
        action="store_true",
        help="Treat every site on the domain edge as an outlet",
    )
    parser.add_argument(
        "--randomize",
        action="store_true",
        help="Derive the terrain seed and land ratio from --seed as a map seed",
    )
    parser.add_argument(
        "--extent",
        type=float,
        nargs=2,
        metavar=("WIDTH", "HEIGHT"),
        default=DEFAULT_EXTENT,
        help="Domain size in world units, centred on the origin",
    )
    parser.add_argument("--w", type=int, default=DEFAULT_RASTER[0], help="Raster width in pixels")
    parser.add_argument("--h", type=int, default=DEFAULT_RASTER[1], help="Raster height in pixels")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite files in existing output directory")
    parser.add_argument(
        "--json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write metadata JSON files",
    )
    parser.add_argument("--verbose", action="store_true", help="Log generation stages")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        parsed_seed = parse_seed(args.seed)
    except SeedParseError as exc:
        parser.error(str(exc))

    if args.w <= 0 or args.h <= 0:
        parser.error("--w and --h must be positive")

    try:
        config = TerrainConfig(
            seed=parsed_seed.seed,
            particle_num=args.particles,
            erodibility_distribution_power=args.erodibility_power,
            fault_scale=args.fault_scale,
            land_ratio=args.land_ratio,
            convex_hull_is_always_outlet=args.hull_outlets,
            global_max_slope=args.max_slope,
        )
        if args.randomize:
            config = random_config(RngStream(parsed_seed.seed), base=config)
    except ConfigError as exc:
        parser.error(str(exc))

    extent_x, extent_y = args.extent
    if extent_x <= 0 or extent_y <= 0:
        parser.error("--extent values must be positive")
    bound_min = Site2D(-extent_x / 2.0, -extent_y / 2.0)
    bound_max = Site2D(extent_x / 2.0, extent_y / 2.0)

    generation_start = time.perf_counter()
    result = run_generation(config, bound_min, bound_max, Site2D(extent_x, extent_y))
    generation_seconds = time.perf_counter() - generation_start

    elevation = rasterize(result.surface, args.w, args.h)
    rasters = {
        "elevation_16.png": height_preview_u16(elevation),
        "hillshade.png": hillshade(elevation, cell_size=extent_x / args.w),
        "land_mask.png": land_mask_u8(elevation),
    }

    out_root = Path(args.out)
    out_dir = prepare_output_dir(
        output_dir_for(out_root, parsed_seed.canonical, args.w, args.h),
        overwrite=args.overwrite,
    )
    stage_dir = Path(tempfile.mkdtemp(prefix=".staging-", dir=str(out_dir.parent)))
    try:
        write_elevation(stage_dir / "elevation.npy", elevation)
        for name, raster in rasters.items():
            write_png(stage_dir / name, raster)
        if args.json:
            deterministic_meta = _deterministic_meta(args, parsed_seed, config, result, elevation)
            write_json(stage_dir / "deterministic_meta.json", deterministic_meta)
            write_json(
                stage_dir / "meta.json",
                {
                    **deterministic_meta,
                    "generated_at_utc": datetime.now(timezone.utc).isoformat(),
                    "original_seed": parsed_seed.original,
                    "generation_seconds": generation_seconds,
                    "python_version": platform.python_version(),
                    "numpy_version": np.__version__,
                    "scipy_version": scipy.__version__,
                },
            )
        replace_contents(stage_dir, out_dir, out_root=out_root)
    finally:
        shutil.rmtree(stage_dir, ignore_errors=True)

    metrics = result.metrics
    print(f"Generated terrain: {out_dir}")
    print(
        f"Seed {config.seed}; land ratio target {config.land_ratio:.3f}, "
        f"land sites {metrics.land_fraction:.3f} ({metrics.landmass.num_components} landmasses)"
    )
    print(f"Outlets: {metrics.outlet_count} of {metrics.site_count} sites; max elevation {metrics.max_elevation:.2f}")
    print(f"Generation time: {generation_seconds:.3f} s ({config.particle_num} particles)")
    return 0


def _deterministic_meta(
    args: argparse.Namespace,
    parsed_seed: ParsedSeed,
    config: TerrainConfig,
    result: GenerationResult,
    elevation: np.ndarray,
) -> dict[str, Any]:
    metrics = result.metrics
    defined = elevation[~np.isnan(elevation)]
    return {
        "canonical_seed": parsed_seed.canonical,
        "width": args.w,
        "height": args.h,
        "extent": list(args.extent),
        "config": config.to_dict(),
        "land_bias": result.land_bias,
        "metrics": {
            "site_count": metrics.site_count,
            "boundary_site_count": metrics.boundary_site_count,
            "land_site_count": metrics.land_site_count,
            "land_fraction": metrics.land_fraction,
            "outlet_count": metrics.outlet_count,
            "landmass_components": metrics.landmass.num_components,
            "largest_landmass_ratio": metrics.landmass.largest_component_ratio,
            "max_elevation": metrics.max_elevation,
            "mean_land_elevation": metrics.mean_land_elevation,
            "raster_land_fraction": float(np.mean(defined >= SEA_LEVEL)) if defined.size else 0.0,
        },
    }


if __name__ == "__main__":
    raise SystemExit(main())
