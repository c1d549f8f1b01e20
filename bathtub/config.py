"""Configuration models for the shallow-water bathtub."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


DEFAULT_QUANT = 100
DEFAULT_LENGTH = 10.0
DEFAULT_GRAVITY = 9.807
DEFAULT_HEIGHT = 1.0


@dataclass(frozen=True)
class GridConfig:
    """Grid resolution, domain size, gravity and the resting water level."""

    quant: int = DEFAULT_QUANT
    length: float = DEFAULT_LENGTH
    gravity: float = DEFAULT_GRAVITY
    initial_height: float = DEFAULT_HEIGHT
    clamp_indices: bool = False


@dataclass(frozen=True)
class DripConfig:
    """Gaussian drip kernel: amplitude * exp(-decay * r^2) with r in cells."""

    amplitude: float = 5.0
    decay: float = 1.0


@dataclass(frozen=True)
class StabilityConfig:
    """Courant limit used for safe time-step suggestions and optional enforcement."""

    max_courant: float = 0.5
    enforce: bool = False


@dataclass(frozen=True)
class RenderConfig:
    """Raster output settings."""

    cell_px: int = 5


@dataclass(frozen=True)
class SimulationConfig:
    """Primary simulation configuration."""

    grid: GridConfig = field(default_factory=GridConfig)
    drip: DripConfig = field(default_factory=DripConfig)
    stability: StabilityConfig = field(default_factory=StabilityConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
