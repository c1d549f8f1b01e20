"""Interactive shallow-water system integrated with a two-step Lax-Wendroff scheme.

The grid holds the packed conserved state ``U[x, y] = [n, n*u, n*v]`` on a
``quant x quant`` lattice covering a square basin of side ``length``. Walls are
reflective: the wall-normal momentum vanishes on every edge.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import operator
from typing import Callable

import numpy as np

from bathtub.config import (
    DEFAULT_GRAVITY,
    DEFAULT_HEIGHT,
    DripConfig,
    SimulationConfig,
    StabilityConfig,
)
from bathtub.flux import flux_x, flux_y


HeightObserver = Callable[[int, int, float], None]


class ConfigurationError(ValueError):
    """Raised when a system cannot be built from the given parameters."""


class GridIndexError(IndexError):
    """Raised for cell coordinates outside [0, quant)."""


class SimulationBusyError(RuntimeError):
    """Raised when the system is re-entered while a step is in progress."""


class CFLViolationError(ValueError):
    """Raised when an enforced Courant limit is exceeded by the requested dt."""


class PerturbationError(ValueError):
    """Raised when a drip would leave a cell with non-positive height."""


@dataclass(frozen=True)
class InstabilityFault:
    """First offending cell of a rejected step."""

    cell: tuple[int, int]
    height: float
    step: int
    reason: str


@dataclass(frozen=True)
class StepResult:
    """Outcome of one call to ``ShallowWaterSystem.step``."""

    step_count: int
    time: float
    dt: float
    courant: float
    fault: InstabilityFault | None = None

    @property
    def ok(self) -> bool:
        return self.fault is None


class ShallowWaterSystem:
    """Square bathtub of shallow water with reflective walls."""

    def __init__(
        self,
        quant: int,
        length: float,
        n0: np.ndarray | None = None,
        u0: np.ndarray | None = None,
        v0: np.ndarray | None = None,
        gravity: float = DEFAULT_GRAVITY,
        *,
        initial_height: float = DEFAULT_HEIGHT,
        drip: DripConfig | None = None,
        stability: StabilityConfig | None = None,
        clamp_indices: bool = False,
        observer: HeightObserver | None = None,
    ) -> None:
        if isinstance(quant, bool) or not isinstance(quant, (int, np.integer)):
            raise ConfigurationError(f"quant must be an integer, got {quant!r}")
        if quant <= 0:
            raise ConfigurationError(f"quant must be positive, got {quant}")
        length = _as_scalar(length, "length")
        gravity = _as_scalar(gravity, "gravity")
        if length <= 0:
            raise ConfigurationError(f"length must be positive, got {length}")
        if gravity <= 0:
            raise ConfigurationError(f"gravity must be a positive magnitude, got {gravity}")

        self.quant = int(quant)
        self.length = length
        self.dd = self.length / self.quant
        self.gravity = gravity
        self.drip = drip or DripConfig()
        self.stability = stability or StabilityConfig()
        self.clamp_indices = bool(clamp_indices)
        self.observer = observer

        if not math.isfinite(self.drip.amplitude):
            raise ConfigurationError("drip amplitude must be finite")
        if not math.isfinite(self.drip.decay) or self.drip.decay <= 0:
            raise ConfigurationError("drip decay must be positive")
        if not math.isfinite(self.stability.max_courant) or self.stability.max_courant <= 0:
            raise ConfigurationError("max_courant must be positive")

        shape = (self.quant, self.quant)
        if n0 is None:
            initial_height = _as_scalar(initial_height, "initial_height")
            if initial_height <= 0:
                raise ConfigurationError(f"initial_height must be positive, got {initial_height}")
            n0 = np.full(shape, initial_height, dtype=np.float64)
        n = _as_field(n0, shape, "n0")
        u = np.zeros(shape, dtype=np.float64) if u0 is None else _as_field(u0, shape, "u0")
        v = np.zeros(shape, dtype=np.float64) if v0 is None else _as_field(v0, shape, "v0")
        if not np.all(n > 0):
            raise ConfigurationError("n0 must be strictly positive everywhere")

        self._state = np.stack((n, n * u, n * v), axis=-1)
        self._initial_state = self._state.copy()
        self._step_count = 0
        self._time = 0.0
        self._busy = False

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        n0: np.ndarray | None = None,
        u0: np.ndarray | None = None,
        v0: np.ndarray | None = None,
        *,
        observer: HeightObserver | None = None,
    ) -> "ShallowWaterSystem":
        grid = config.grid
        return cls(
            grid.quant,
            grid.length,
            n0,
            u0,
            v0,
            grid.gravity,
            initial_height=grid.initial_height,
            drip=config.drip,
            stability=config.stability,
            clamp_indices=grid.clamp_indices,
            observer=observer,
        )

    @property
    def state(self) -> np.ndarray:
        """Copy of the packed conserved state, shape (quant, quant, 3)."""

        return self._state.copy()

    @property
    def heights(self) -> np.ndarray:
        return self._state[..., 0].copy()

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def time(self) -> float:
        return self._time

    @property
    def stepping(self) -> bool:
        return self._busy

    def velocities(self) -> tuple[np.ndarray, np.ndarray]:
        """Derived velocity fields (u, v)."""

        h = self._state[..., 0]
        return self._state[..., 1] / h, self._state[..., 2] / h

    def height_at(self, x: int, y: int) -> float:
        xi, yi = self._resolve_cell(x, y)
        return float(self._state[xi, yi, 0])

    def velocity_at(self, x: int, y: int) -> tuple[float, float]:
        xi, yi = self._resolve_cell(x, y)
        h, hu, hv = self._state[xi, yi]
        return float(hu / h), float(hv / h)

    def max_wave_speed(self) -> float:
        """Largest characteristic speed max(|u|, |v|) + sqrt(g*n) over the grid."""

        h = np.maximum(self._state[..., 0], 0.0)
        celerity = np.sqrt(self.gravity * h)
        u, v = self.velocities()
        speed = np.maximum(np.abs(u), np.abs(v)) + celerity
        return float(np.max(speed))

    def courant_number(self, dt: float) -> float:
        return float(dt) * self.max_wave_speed() / self.dd

    def max_stable_dt(self, courant: float | None = None) -> float:
        """Largest dt keeping the current state within the Courant limit."""

        limit = self.stability.max_courant if courant is None else float(courant)
        if limit <= 0:
            raise ValueError("courant must be positive")
        return limit * self.dd / self.max_wave_speed()

    def step(self, dt: float) -> StepResult:
        """Advance the grid by dt seconds; a faulted step leaves the grid untouched."""

        if self._busy:
            raise SimulationBusyError("step called while a step is already in progress")
        dt = float(dt)
        if not math.isfinite(dt) or dt <= 0:
            raise ValueError(f"dt must be positive and finite, got {dt}")
        courant = self.courant_number(dt)
        if self.stability.enforce and courant > self.stability.max_courant * (1.0 + 1e-9):
            raise CFLViolationError(
                f"dt={dt:.6g} gives Courant number {courant:.3f} > {self.stability.max_courant:.3f}; "
                f"use dt <= {self.max_stable_dt():.6g}"
            )

        self._busy = True
        try:
            old = self._state
            with np.errstate(all="ignore"):
                candidate = self._lax_wendroff(old, dt)
            fault = self._find_fault(candidate)
            if fault is not None:
                return StepResult(self._step_count, self._time, dt, courant, fault)

            prev_count, prev_time = self._step_count, self._time
            self._state = candidate
            self._step_count += 1
            self._time += dt
            if self.observer is not None:
                try:
                    self._notify(old[..., 0], candidate[..., 0])
                except Exception:
                    # A failed notification undoes the whole step.
                    self._state = old
                    self._step_count = prev_count
                    self._time = prev_time
                    raise
            return StepResult(self._step_count, self._time, dt, courant)
        finally:
            self._busy = False

    def perturb(self, i: int, j: int, *, amplitude: float | None = None, decay: float | None = None) -> None:
        """Drip a Gaussian bump centred on cell (i, j), preserving velocity."""

        if self._busy:
            raise SimulationBusyError("perturb called while a step is in progress")
        ci, cj = self._resolve_cell(i, j)
        amp = self.drip.amplitude if amplitude is None else float(amplitude)
        rate = self.drip.decay if decay is None else float(decay)
        if not math.isfinite(amp):
            raise PerturbationError("amplitude must be finite")
        if not math.isfinite(rate) or rate <= 0:
            raise PerturbationError("decay must be positive")

        idx = np.arange(self.quant, dtype=np.float64)
        dist2 = (idx[:, None] - ci) ** 2 + (idx[None, :] - cj) ** 2
        bump = amp * np.exp(-rate * dist2)

        h_old = self._state[..., 0]
        h_new = h_old + bump
        if not np.all(h_new > 0):
            raise PerturbationError(
                f"drip at ({ci}, {cj}) with amplitude {amp} leaves non-positive heights"
            )
        scale = h_new / h_old
        self._state[..., 0] = h_new
        self._state[..., 1] *= scale
        self._state[..., 2] *= scale

    plip = perturb

    def randomize(self, rng: np.random.Generator, *, low: float = 1.0, high: float = 40.0) -> None:
        """Replace heights with uniform noise in [low, high) and bring the water to rest."""

        if self._busy:
            raise SimulationBusyError("randomize called while a step is in progress")
        if not 0 < low < high:
            raise ValueError("randomize requires 0 < low < high")
        heights = rng.uniform(low, high, size=(self.quant, self.quant))
        self._state = np.stack(
            (heights, np.zeros_like(heights), np.zeros_like(heights)),
            axis=-1,
        )

    def reset(self) -> None:
        """Restore the construction-time state and zero the clock."""

        if self._busy:
            raise SimulationBusyError("reset called while a step is in progress")
        self._state = self._initial_state.copy()
        self._step_count = 0
        self._time = 0.0

    def _lax_wendroff(self, state: np.ndarray, dt: float) -> np.ndarray:
        g = self.gravity
        half = 0.5 * dt / self.dd

        # Stage 1: half step on x faces (quant+1, quant) and y faces (quant, quant+1).
        lo = np.concatenate((state[:1], state), axis=0)
        hi = np.concatenate((state, state[-1:]), axis=0)
        half_x = 0.5 * (lo + hi) - half * (flux_x(hi, g) - flux_x(lo, g))
        half_x[0, :, 1] = 0.0
        half_x[-1, :, 1] = 0.0

        lo = np.concatenate((state[:, :1], state), axis=1)
        hi = np.concatenate((state, state[:, -1:]), axis=1)
        half_y = 0.5 * (lo + hi) - half * (flux_y(hi, g) - flux_y(lo, g))
        half_y[:, 0, 2] = 0.0
        half_y[:, -1, 2] = 0.0

        # Stage 2: full step from the staggered flux divergence.
        fx = flux_x(half_x, g)
        fy = flux_y(half_y, g)
        divergence = (fx[1:] - fx[:-1]) + (fy[:, 1:] - fy[:, :-1])
        out = state - (2.0 * half) * divergence

        out[0, :, 1] = 0.0
        out[-1, :, 1] = 0.0
        out[:, 0, 2] = 0.0
        out[:, -1, 2] = 0.0
        return out

    def _find_fault(self, candidate: np.ndarray) -> InstabilityFault | None:
        finite = np.isfinite(candidate).all(axis=-1)
        heights = candidate[..., 0]
        bad = ~finite | ~(heights > 0)
        if not np.any(bad):
            return None
        x, y = (int(k) for k in np.argwhere(bad)[0])
        reason = "non-finite" if not finite[x, y] else "non-positive height"
        return InstabilityFault(
            cell=(x, y),
            height=float(heights[x, y]),
            step=self._step_count + 1,
            reason=reason,
        )

    def _notify(self, old_h: np.ndarray, new_h: np.ndarray) -> None:
        observer = self.observer
        for x, y in np.argwhere(new_h != old_h):
            observer(int(x), int(y), float(new_h[x, y]))

    def _resolve_cell(self, x: int, y: int) -> tuple[int, int]:
        xi = operator.index(x)
        yi = operator.index(y)
        q = self.quant
        if self.clamp_indices:
            return min(max(xi, 0), q - 1), min(max(yi, 0), q - 1)
        if not (0 <= xi < q and 0 <= yi < q):
            raise GridIndexError(f"cell ({xi}, {yi}) is outside the {q}x{q} grid")
        return xi, yi


def _as_field(values: np.ndarray, shape: tuple[int, int], name: str) -> np.ndarray:
    try:
        arr = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} is not a numeric grid: {exc}") from exc
    if arr.shape != shape:
        raise ConfigurationError(f"{name} must have shape {shape}, got {arr.shape}")
    if not np.isfinite(arr).all():
        raise ConfigurationError(f"{name} must be finite")
    return arr


def _as_scalar(value: float, name: str) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(out):
        raise ConfigurationError(f"{name} must be finite, got {value!r}")
    return out
