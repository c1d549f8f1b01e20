from __future__ import annotations

import numpy as np

from bathtub.canvas import (
    IncrementalCanvas,
    height_to_rgb,
    pixel_to_cell,
    render_frame,
    speed_preview_u8,
    upscale_cells,
)
from bathtub.swe import ShallowWaterSystem


def test_height_colors_wrap_and_mark_bad_cells() -> None:
    heights = np.array([[1.0, 300.0], [np.nan, 255.0]])
    rgb = height_to_rgb(heights)

    assert rgb.shape == (2, 2, 3)
    assert rgb.dtype == np.uint8
    assert tuple(rgb[0, 0]) == (254, 254, 255)
    assert tuple(rgb[1, 0]) == (211, 211, 255)
    assert tuple(rgb[0, 1]) == (0, 0, 0)
    assert tuple(rgb[1, 1]) == (0, 0, 255)


def test_upscale_repeats_cells_as_blocks() -> None:
    image = np.arange(12, dtype=np.uint8).reshape(2, 2, 3)
    expected = np.repeat(np.repeat(image, 3, axis=0), 3, axis=1)

    assert np.array_equal(upscale_cells(image, 3), expected)
    assert np.array_equal(upscale_cells(image, 1), image)


def test_pointer_offsets_map_to_cells() -> None:
    assert pixel_to_cell(12.7, 0.2, 5.0) == (2, 0)
    assert pixel_to_cell(100.0, 494.0, 4.95) == (20, 99)

    system = ShallowWaterSystem(100, 495.0)
    x, y = pixel_to_cell(250.0, 120.0, system.dd)
    system.perturb(x, y)
    assert system.height_at(50, 24) == max(system.heights.ravel())


def test_incremental_canvas_matches_full_render() -> None:
    system = ShallowWaterSystem(6, 3.0, initial_height=20.0)
    canvas = IncrementalCanvas(6, cell_px=2)
    system.perturb(2, 3, amplitude=40.0, decay=0.3)
    canvas.refresh(system)
    system.observer = canvas

    dt = system.max_stable_dt()
    for _ in range(4):
        assert system.step(dt).ok

    assert canvas.painted > 0
    assert np.array_equal(canvas.rgb, render_frame(system, cell_px=2))


def test_speed_preview_spans_full_range() -> None:
    system = ShallowWaterSystem(10, 5.0)
    still = speed_preview_u8(system)
    assert still.shape == (10, 10)
    assert not still.any()

    system.perturb(3, 6, amplitude=0.5, decay=0.3)
    dt = system.max_stable_dt()
    for _ in range(5):
        assert system.step(dt).ok
    moving = speed_preview_u8(system)
    assert int(moving.max()) == 255
    assert int(moving.min()) == 0
