"""Configuration models for terrain generation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
import math
import numbers
from typing import Any

from random_terrain.errors import ConfigError
from random_terrain.rng import U32_LIMIT, RngStream


DEFAULT_PARTICLE_NUM = 50_000
DEFAULT_LAND_RATIO_RANGE = (0.29, 0.6)


def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _require_finite(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise ConfigError(f"{name} must be a finite number, got {value!r}")


@dataclass(frozen=True)
class MeshConfig:
    """Controls site placement and relaxation of the default mesh builder."""

    relaxation_iterations: int = 10
    lloyd_samples_per_site: int = 12
    edge_spacing_factor: float = 1.0

    def __post_init__(self) -> None:
        _require_int("relaxation_iterations", self.relaxation_iterations)
        _require_int("lloyd_samples_per_site", self.lloyd_samples_per_site)
        _require_finite("edge_spacing_factor", self.edge_spacing_factor)
        if self.relaxation_iterations < 0:
            raise ConfigError("relaxation_iterations must be >= 0")
        if self.lloyd_samples_per_site < 1:
            raise ConfigError("lloyd_samples_per_site must be >= 1")
        if self.edge_spacing_factor <= 0:
            raise ConfigError("edge_spacing_factor must be positive")


@dataclass(frozen=True)
class SolverConfig:
    """Controls the default stream-power elevation solver."""

    base_elevation: float = 0.0
    uplift_rate: float = 1.0
    area_exponent: float = 0.5
    max_iterations: int = 10

    def __post_init__(self) -> None:
        for name in ("base_elevation", "uplift_rate", "area_exponent"):
            _require_finite(name, getattr(self, name))
        _require_int("max_iterations", self.max_iterations)
        if self.uplift_rate <= 0:
            raise ConfigError("uplift_rate must be positive")
        if self.area_exponent < 0:
            raise ConfigError("area_exponent must be >= 0")
        if self.max_iterations < 1:
            raise ConfigError("max_iterations must be >= 1")


@dataclass(frozen=True)
class TerrainConfig:
    """Primary generation configuration."""

    # Seed of the noise generator and of every derived random stream.
    seed: int = 0
    # Number of randomly placed sites; more sites give finer terrain.
    particle_num: int = DEFAULT_PARTICLE_NUM
    # Larger values concentrate erodibility on the low side.
    erodibility_distribution_power: float = 4.0
    # Larger values let virtual faults warp the terrain further.
    fault_scale: float = 35.0
    # Approximate fraction of land sites (0.0-1.0).
    land_ratio: float = 0.6
    # If true, every site on the bounding rectangle is an outlet fixed at base elevation.
    convex_hull_is_always_outlet: bool = False
    # Maximum slope angle in radians (max: pi/2).
    global_max_slope: float = 1.57
    mesh: MeshConfig = field(default_factory=MeshConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)

    def __post_init__(self) -> None:
        _require_int("seed", self.seed)
        _require_int("particle_num", self.particle_num)
        for name in ("erodibility_distribution_power", "fault_scale", "land_ratio", "global_max_slope"):
            _require_finite(name, getattr(self, name))
        if not isinstance(self.convex_hull_is_always_outlet, bool):
            raise ConfigError("convex_hull_is_always_outlet must be a bool")
        if not 0 <= self.seed < U32_LIMIT:
            raise ConfigError(f"seed must be an unsigned 32-bit integer, got {self.seed}")
        if self.particle_num < 1:
            raise ConfigError(f"particle_num must be >= 1, got {self.particle_num}")
        if self.erodibility_distribution_power < 0:
            raise ConfigError("erodibility_distribution_power must be >= 0")
        if self.fault_scale < 0:
            raise ConfigError("fault_scale must be >= 0")
        if not 0.0 <= self.land_ratio <= 1.0:
            raise ConfigError(f"land_ratio must be within [0, 1], got {self.land_ratio}")
        if not 0.0 < self.global_max_slope <= math.pi / 2:
            raise ConfigError(f"global_max_slope must be within (0, pi/2], got {self.global_max_slope}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def random_config(
    rng: RngStream,
    *,
    land_ratio_range: tuple[float, float] = DEFAULT_LAND_RATIO_RANGE,
    base: TerrainConfig | None = None,
) -> TerrainConfig:
    """Derive a terrain seed and land ratio from a map-level random stream."""

    low, high = land_ratio_range
    if not 0.0 <= low <= high <= 1.0:
        raise ConfigError("land_ratio_range must be an ordered pair within [0, 1]")

    cfg = base or TerrainConfig()
    return replace(
        cfg,
        seed=rng.fork("terrain-seed").u32(),
        land_ratio=rng.fork("land-ratio").uniform(low, high),
    )
