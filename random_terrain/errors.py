"""Error taxonomy for terrain generation."""

from __future__ import annotations


class TerrainError(Exception):
    """Base exception for terrain generation failures."""


class ConfigError(TerrainError, ValueError):
    """Raised when a configuration value is out of range."""


class DegenerateMeshError(TerrainError):
    """Raised when a mesh has no sites or no boundary sites to drain into."""


class SolverError(TerrainError):
    """Raised when the elevation solver cannot produce a valid assignment."""
