"""Flux vectors of the conservative 2D shallow-water equations.

For a packed state ``U = [n, n*u, n*v]`` the system reads

    dU/dt + dF(U)/dx + dG(U)/dy = 0

with ``F = [n*u, n*u^2 + g*n^2/2, n*u*v]`` and
``G = [n*v, n*u*v, n*v^2 + g*n^2/2]``.
"""

from __future__ import annotations

import numpy as np


def flux_x(state: np.ndarray, gravity: float) -> np.ndarray:
    """Return the x-direction flux F for states of shape (..., 3)."""

    u_arr = np.asarray(state, dtype=np.float64)
    h = u_arr[..., 0]
    hu = u_arr[..., 1]
    hv = u_arr[..., 2]
    vel_u = hu / h

    out = np.empty_like(u_arr)
    out[..., 0] = hu
    out[..., 1] = hu * vel_u + 0.5 * gravity * h * h
    out[..., 2] = hv * vel_u
    return out


def flux_y(state: np.ndarray, gravity: float) -> np.ndarray:
    """Return the y-direction flux G for states of shape (..., 3)."""

    u_arr = np.asarray(state, dtype=np.float64)
    h = u_arr[..., 0]
    hu = u_arr[..., 1]
    hv = u_arr[..., 2]
    vel_v = hv / h

    out = np.empty_like(u_arr)
    out[..., 0] = hv
    out[..., 1] = hu * vel_v
    out[..., 2] = hv * vel_v + 0.5 * gravity * h * h
    return out
