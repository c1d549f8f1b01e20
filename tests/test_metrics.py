from __future__ import annotations

import pytest

from bathtub.metrics import summarize, total_energy, total_mass
from bathtub.swe import ShallowWaterSystem


def test_resting_tub_diagnostics() -> None:
    system = ShallowWaterSystem(10, 5.0, gravity=10.0, initial_height=2.0)

    assert total_mass(system) == pytest.approx(2.0 * 25.0)
    assert total_energy(system) == pytest.approx(0.5 * 10.0 * 4.0 * 25.0)

    snapshot = summarize(system, dt=0.1)
    assert snapshot.min_height == snapshot.max_height == 2.0
    assert snapshot.max_speed == 0.0
    assert snapshot.courant == pytest.approx(0.1 * (20.0**0.5) / 0.5)
    assert snapshot.step_count == 0


def test_moving_water_reports_speed() -> None:
    system = ShallowWaterSystem(10, 5.0, initial_height=1.0)
    system.perturb(2, 7, amplitude=0.5, decay=0.3)
    dt = system.max_stable_dt()
    for _ in range(10):
        assert system.step(dt).ok

    snapshot = summarize(system)
    u, v = system.velocity_at(3, 6)
    assert snapshot.max_speed >= (u * u + v * v) ** 0.5
    assert snapshot.max_speed > 0.0
    assert snapshot.courant == 0.0
    assert snapshot.time == pytest.approx(10 * dt)
    assert snapshot.max_height > snapshot.min_height > 0.0
