from __future__ import annotations

import numpy as np
import pytest

from bathtub.config import GridConfig, SimulationConfig
from bathtub.swe import ConfigurationError, ShallowWaterSystem


@pytest.mark.parametrize("quant", [0, -4])
def test_non_positive_grid_is_rejected(quant: int) -> None:
    with pytest.raises(ConfigurationError):
        ShallowWaterSystem(quant, 10.0)


def test_mismatched_initial_fields_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        ShallowWaterSystem(4, 4.0, n0=np.ones((4, 5)))
    with pytest.raises(ConfigurationError):
        ShallowWaterSystem(4, 4.0, u0=np.zeros((3, 4)))
    with pytest.raises(ConfigurationError):
        ShallowWaterSystem(4, 4.0, v0=np.zeros((4, 4, 1)))
    with pytest.raises(ConfigurationError):
        ShallowWaterSystem(2, 2.0, n0=[[1.0, 1.0], [1.0]])


def test_physically_meaningless_parameters_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        ShallowWaterSystem(4, 0.0)
    with pytest.raises(ConfigurationError):
        ShallowWaterSystem(4, 4.0, gravity=-9.807)
    with pytest.raises(ConfigurationError):
        ShallowWaterSystem(4, 4.0, n0=np.zeros((4, 4)))
    with pytest.raises(ConfigurationError):
        ShallowWaterSystem(4, 4.0, initial_height=-1.0)


def test_configuration_errors_are_value_errors() -> None:
    with pytest.raises(ValueError):
        ShallowWaterSystem(0, 1.0)


def test_from_config_and_defaults() -> None:
    config = SimulationConfig(grid=GridConfig(quant=20, length=5.0, gravity=10.0, initial_height=20.0))
    system = ShallowWaterSystem.from_config(config)

    assert system.quant == 20
    assert system.dd == pytest.approx(0.25)
    assert system.gravity == 10.0
    assert np.all(system.heights == 20.0)
    u, v = system.velocities()
    assert not u.any() and not v.any()

    payload = config.to_dict()
    assert payload["grid"]["quant"] == 20
    assert payload["drip"]["amplitude"] == 5.0
    assert payload["stability"]["enforce"] is False


def test_initial_fields_are_copied() -> None:
    n0 = np.full((3, 3), 2.0)
    u0 = np.full((3, 3), 0.5)
    system = ShallowWaterSystem(3, 3.0, n0=n0, u0=u0)
    n0[:] = 7.0

    assert system.height_at(1, 1) == 2.0
    assert system.state[1, 1, 1] == pytest.approx(1.0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"length": "wide"},
        {"length": None},
        {"gravity": "down"},
        {"gravity": float("nan")},
        {"initial_height": "full"},
    ],
)
def test_non_numeric_parameters_are_configuration_errors(kwargs: dict) -> None:
    params = {"length": 4.0, **kwargs}
    length = params.pop("length")
    with pytest.raises(ConfigurationError):
        ShallowWaterSystem(4, length, **params)
