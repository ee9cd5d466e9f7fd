"""Seeded terrain generation over a relaxed site mesh."""

from .config import MeshConfig, SolverConfig, TerrainConfig, random_config
from .errors import ConfigError, DegenerateMeshError, SolverError, TerrainError
from .generate import GenerationResult, generate_terrain, run_generation
from .mesh import Site2D
from .surface import ElevationSurface

__all__ = [
    "ConfigError",
    "DegenerateMeshError",
    "ElevationSurface",
    "GenerationResult",
    "MeshConfig",
    "Site2D",
    "SolverConfig",
    "SolverError",
    "TerrainConfig",
    "TerrainError",
    "generate_terrain",
    "random_config",
    "run_generation",
]
