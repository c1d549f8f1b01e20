"""Raster views of the bathtub and the pointer-to-cell adapter."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np
from matplotlib.colors import ListedColormap
from scipy.ndimage import zoom

if TYPE_CHECKING:
    from bathtub.swe import ShallowWaterSystem


def _bathtub_colormap() -> ListedColormap:
    # Index k paints (255 - k, 255 - k, 255): deep water fades from white to blue.
    ramp = (255.0 - np.arange(256, dtype=np.float64)) / 255.0
    colors = np.stack((ramp, ramp, np.ones_like(ramp)), axis=-1)
    return ListedColormap(colors, name="bathtub")


_BATHTUB_CMAP = _bathtub_colormap()


def height_to_rgb(heights: np.ndarray) -> np.ndarray:
    """Map an [x, y] height grid to an 8-bit RGB image with rows along y.

    Heights wrap every 256 units; non-finite heights paint black.
    """

    h = np.asarray(heights, dtype=np.float64)
    if h.ndim != 2:
        raise ValueError("heights must be a 2D array")

    finite = np.isfinite(h)
    idx = np.zeros(h.shape, dtype=np.int64)
    idx[finite] = np.mod(np.round(h[finite]), 256.0).astype(np.int64)
    rgb = np.round(_BATHTUB_CMAP(idx)[..., :3] * 255.0).astype(np.uint8)
    rgb[~finite] = 0
    return np.ascontiguousarray(rgb.transpose(1, 0, 2))


def upscale_cells(image: np.ndarray, cell_px: int) -> np.ndarray:
    """Blow every grid cell up to a cell_px x cell_px block."""

    if cell_px < 1:
        raise ValueError("cell_px must be >= 1")
    if cell_px == 1:
        return image.copy()
    factors = (cell_px, cell_px) + (1,) * (image.ndim - 2)
    return zoom(image, factors, order=0, mode="nearest", grid_mode=True)


def render_frame(system: "ShallowWaterSystem", *, cell_px: int = 1) -> np.ndarray:
    """Render the full height field of a system to an RGB canvas."""

    return upscale_cells(height_to_rgb(system.heights), cell_px)


def speed_preview_u8(system: "ShallowWaterSystem") -> np.ndarray:
    """Map flow speed to 8-bit grayscale, rows along y."""

    u, v = system.velocities()
    speed = np.hypot(u, v)
    lo = float(np.min(speed))
    scale = max(float(np.max(speed)) - lo, 1e-12)
    norm = np.clip((speed - lo) / scale, 0.0, 1.0)
    return np.ascontiguousarray(np.round(norm * 255.0).astype(np.uint8).T)


def pixel_to_cell(px: float, py: float, dd: float) -> tuple[int, int]:
    """Convert a pointer offset on a canvas into integer grid coordinates."""

    if dd <= 0:
        raise ValueError("dd must be positive")
    return int(math.floor(px / dd)), int(math.floor(py / dd))


class IncrementalCanvas:
    """Height observer that repaints only the cells reported as changed."""

    def __init__(self, quant: int, *, cell_px: int = 1) -> None:
        if quant <= 0:
            raise ValueError("quant must be positive")
        if cell_px < 1:
            raise ValueError("cell_px must be >= 1")
        self.quant = quant
        self.cell_px = cell_px
        self.rgb = np.zeros((quant * cell_px, quant * cell_px, 3), dtype=np.uint8)
        self.painted = 0

    def __call__(self, x: int, y: int, height: float) -> None:
        color = height_to_rgb(np.array([[height]], dtype=np.float64))[0, 0]
        c = self.cell_px
        self.rgb[y * c : (y + 1) * c, x * c : (x + 1) * c] = color
        self.painted += 1

    def refresh(self, system: "ShallowWaterSystem") -> None:
        """Repaint everything, e.g. after a drip."""

        self.rgb = render_frame(system, cell_px=self.cell_px)
