"""Conservation and stability diagnostics for a running bathtub."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from bathtub.swe import ShallowWaterSystem


@dataclass(frozen=True)
class SimulationMetrics:
    """Snapshot of integral quantities and extremes of the current grid."""

    total_mass: float
    total_energy: float
    min_height: float
    max_height: float
    max_speed: float
    courant: float
    step_count: int
    time: float


def total_mass(system: ShallowWaterSystem) -> float:
    """Water volume: sum of column heights times cell area."""

    return float(np.sum(system.heights) * system.dd * system.dd)


def total_energy(system: ShallowWaterSystem) -> float:
    """Kinetic plus potential energy: sum(n*(u^2+v^2)/2 + g*n^2/2) * cell area."""

    h = system.heights
    u, v = system.velocities()
    kinetic = 0.5 * h * (u * u + v * v)
    potential = 0.5 * system.gravity * h * h
    return float(np.sum(kinetic + potential) * system.dd * system.dd)


def summarize(system: ShallowWaterSystem, *, dt: float | None = None) -> SimulationMetrics:
    h = system.heights
    u, v = system.velocities()
    return SimulationMetrics(
        total_mass=total_mass(system),
        total_energy=total_energy(system),
        min_height=float(np.min(h)),
        max_height=float(np.max(h)),
        max_speed=float(np.max(np.hypot(u, v))),
        courant=system.courant_number(dt) if dt is not None else 0.0,
        step_count=system.step_count,
        time=system.time,
    )
