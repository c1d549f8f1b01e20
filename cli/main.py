"""CLI entry point: run the bathtub headlessly and write rasters and metadata."""

from __future__ import annotations

import argparse
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
import platform
import shutil
import tempfile
import time

import numpy as np
from bathtub.canvas import render_frame, speed_preview_u8, upscale_cells
from bathtub.config import (
    DEFAULT_GRAVITY,
    DEFAULT_HEIGHT,
    DEFAULT_LENGTH,
    DEFAULT_QUANT,
    DripConfig,
    GridConfig,
    RenderConfig,
    SimulationConfig,
    StabilityConfig,
)
from bathtub.io import (
    move_tree_contents,
    resolve_output_dir,
    safe_clean_output_dir,
    write_height_npy,
    write_json,
    write_png_rgb,
    write_png_u8,
    write_state_npy,
)
from bathtub.metrics import summarize
from bathtub.swe import ConfigurationError, GridIndexError, PerturbationError, ShallowWaterSystem


def _drip_point(text: str) -> tuple[int, int]:
    parts = text.split(",")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"drip must look like X,Y (got {text!r})")
    try:
        return int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"drip coordinates must be integers (got {text!r})") from exc


def build_parser() -> argparse.ArgumentParser:
    drip_defaults = DripConfig()
    parser = argparse.ArgumentParser(description="Headless 2D shallow-water bathtub")
    parser.add_argument("--quant", type=int, default=DEFAULT_QUANT, help="Grid cells per side")
    parser.add_argument("--length", type=float, default=DEFAULT_LENGTH, help="Physical side length of the tub")
    parser.add_argument("--gravity", type=float, default=DEFAULT_GRAVITY, help="Gravity magnitude")
    parser.add_argument("--height", type=float, default=DEFAULT_HEIGHT, help="Resting water height")
    parser.add_argument("--steps", type=int, default=200, help="Number of time steps to run")
    parser.add_argument("--dt", type=float, default=None, help="Fixed time step (default: from the Courant limit)")
    parser.add_argument(
        "--courant",
        type=float,
        default=StabilityConfig().max_courant,
        help="Courant number used to pick dt when --dt is omitted",
    )
    parser.add_argument(
        "--drip",
        type=_drip_point,
        action="append",
        default=[],
        metavar="X,Y",
        help="Drip a drop at cell X,Y before the run (repeatable)",
    )
    parser.add_argument("--amplitude", type=float, default=drip_defaults.amplitude, help="Drip amplitude")
    parser.add_argument("--decay", type=float, default=drip_defaults.decay, help="Drip decay per squared cell")
    parser.add_argument("--randomize", action="store_true", help="Start from random heights instead of a flat tub")
    parser.add_argument("--random-high", type=float, default=40.0, help="Upper bound of random heights")
    parser.add_argument("--seed", type=int, default=0, help="Seed for --randomize")
    parser.add_argument("--frame-every", type=int, default=0, help="Write a frame PNG every N steps (0 = off)")
    parser.add_argument("--cell-px", type=int, default=RenderConfig().cell_px, help="Pixels per grid cell in PNGs")
    parser.add_argument("--name", default="bathtub", help="Run name used for the output subdirectory")
    parser.add_argument("--out", default="out", help="Output root directory")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite files in existing output directory")
    parser.add_argument(
        "--json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write metadata JSON files",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.steps < 0:
        parser.error("--steps must be >= 0")
    if args.frame_every < 0:
        parser.error("--frame-every must be >= 0")
    if args.cell_px < 1:
        parser.error("--cell-px must be >= 1")

    config = SimulationConfig(
        grid=GridConfig(
            quant=args.quant,
            length=args.length,
            gravity=args.gravity,
            initial_height=args.height,
        ),
        drip=DripConfig(amplitude=args.amplitude, decay=args.decay),
        stability=StabilityConfig(max_courant=args.courant),
        render=RenderConfig(cell_px=args.cell_px),
    )
    try:
        system = ShallowWaterSystem.from_config(config)
    except ConfigurationError as exc:
        parser.error(str(exc))

    if args.randomize:
        if not 0 < args.height < args.random_high:
            parser.error("--randomize needs 0 < --height < --random-high")
        rng = np.random.default_rng(args.seed)
        system.randomize(rng, low=args.height, high=args.random_high)

    for x, y in args.drip:
        try:
            system.perturb(x, y)
        except (GridIndexError, PerturbationError) as exc:
            parser.error(str(exc))

    dt = args.dt if args.dt is not None else system.max_stable_dt()
    if not dt > 0:
        parser.error("--dt must be positive")

    initial = summarize(system, dt=dt)
    out_dir = resolve_output_dir(args.out, args.name, args.quant, overwrite=args.overwrite)
    stage_dir = Path(tempfile.mkdtemp(prefix=".staging-", dir=str(out_dir.parent)))
    try:
        fault = None
        frame_count = 0
        if args.frame_every:
            write_png_rgb(stage_dir / "frame_00000.png", render_frame(system, cell_px=args.cell_px))
            frame_count += 1

        run_start = time.perf_counter()
        for _ in range(args.steps):
            result = system.step(dt)
            if not result.ok:
                fault = result.fault
                break
            if args.frame_every and result.step_count % args.frame_every == 0:
                frame = render_frame(system, cell_px=args.cell_px)
                write_png_rgb(stage_dir / f"frame_{result.step_count:05d}.png", frame)
                frame_count += 1
        run_seconds = time.perf_counter() - run_start

        final = summarize(system, dt=dt)
        write_state_npy(stage_dir / "state.npy", system.state)
        write_height_npy(stage_dir / "height.npy", system.heights)
        write_png_rgb(stage_dir / "height.png", render_frame(system, cell_px=args.cell_px))
        write_png_u8(stage_dir / "debug_speed.png", upscale_cells(speed_preview_u8(system), args.cell_px))

        if args.json:
            deterministic_meta = {
                "name": args.name,
                "quant": args.quant,
                "length": args.length,
                "dt": dt,
                "steps_requested": args.steps,
                "steps_completed": system.step_count,
                "drips": [list(point) for point in args.drip],
                "randomize_seed": args.seed if args.randomize else None,
                "config": config.to_dict(),
                "initial": asdict(initial),
                "final": asdict(final),
                "mass_drift": final.total_mass - initial.total_mass,
                "frames_written": frame_count,
                "fault": asdict(fault) if fault is not None else None,
            }
            meta = {
                **deterministic_meta,
                "generated_at_utc": datetime.now(timezone.utc).isoformat(),
                "run_seconds": run_seconds,
                "python_version": platform.python_version(),
                "numpy_version": np.__version__,
            }
            write_json(stage_dir / "deterministic_meta.json", deterministic_meta)
            write_json(stage_dir / "meta.json", meta)

        safe_clean_output_dir(out_dir, out_root=Path(args.out))
        move_tree_contents(stage_dir, out_dir)
    finally:
        shutil.rmtree(stage_dir, ignore_errors=True)

    print(f"Simulated bathtub: {out_dir}")
    print(
        f"Grid {args.quant}x{args.quant}, dd={system.dd:.4g}, dt={dt:.4g}, "
        f"Courant {initial.courant:.3f} at start"
    )
    print(
        "Mass: "
        f"initial={initial.total_mass:.6g}, final={final.total_mass:.6g}, "
        f"drift={final.total_mass - initial.total_mass:.3e}"
    )
    print(
        "Height: "
        f"min={final.min_height:.4g}, max={final.max_height:.4g}; "
        f"max speed={final.max_speed:.4g}"
    )
    print(f"Steps: {system.step_count}/{args.steps} in {run_seconds:.3f} s")
    if fault is not None:
        print(
            f"Instability at step {fault.step}: cell {fault.cell} "
            f"({fault.reason}, height={fault.height:.4g}); run halted"
        )
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
