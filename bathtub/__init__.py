"""Interactive 2D shallow-water bathtub."""

from .config import (
    DEFAULT_GRAVITY,
    DEFAULT_HEIGHT,
    DEFAULT_LENGTH,
    DEFAULT_QUANT,
    DripConfig,
    GridConfig,
    SimulationConfig,
    StabilityConfig,
)
from .swe import InstabilityFault, ShallowWaterSystem, StepResult

__all__ = [
    "DEFAULT_QUANT",
    "DEFAULT_LENGTH",
    "DEFAULT_GRAVITY",
    "DEFAULT_HEIGHT",
    "DripConfig",
    "GridConfig",
    "SimulationConfig",
    "StabilityConfig",
    "ShallowWaterSystem",
    "StepResult",
    "InstabilityFault",
]
