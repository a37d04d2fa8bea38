"""
main.py — Master Entry Point
=============================
Runs the solver without a window. Rendering belongs to whatever drives
the simulation; this script only steps it and reports.

Usage:
    python main.py                          # Headless dam break (default)
    python main.py --mode benchmark         # Per-phase timing breakdown
    python main.py --config step.json       # Step parameters from a JSON file
    python main.py --res 50 --frames 300    # Coarser grid, longer run
"""

import argparse
import logging

import numpy as np

from flipfluid import StepParams, setup_dam_break


def run_headless(res: int = 100, frames: int = 100, params: StepParams = None):
    """Run simulation without display — prints stats every 10 frames."""
    params = params or StepParams()
    sim = setup_dam_break(resolution=res)

    print(f"\nHeadless simulation | res={res} | {sim.num_particles} particles | {frames} frames")
    print(f"{'─'*60}")

    total_times = []
    for f in range(frames):
        metrics = sim.step(params)
        total_times.append(metrics["total_ms"])

        if f % 10 == 0:
            print(f"  Frame {f:03d} | {metrics['total_ms']:6.1f}ms "
                  f"({metrics['fps']:.1f} FPS) | "
                  f"fluid_cells={metrics['num_fluid_cells']} | "
                  f"div_max={metrics['divergence_max']:.5f}")

    print(f"\n{'─'*60}")
    print(sim.status())
    print(f"  Average: {np.mean(total_times):.1f}ms/frame ({1000/np.mean(total_times):.1f} FPS)")


def run_benchmark(res: int = 100, frames: int = 50, params: StepParams = None):
    """
    Detailed performance breakdown.
    Shows how long each phase of the tick takes.
    """
    params = params or StepParams()
    sim = setup_dam_break(resolution=res)

    print(f"\n{'='*60}")
    print(f"  PIC/FLIP BENCHMARK | res={res} | {sim.num_particles} particles | {frames} frames")
    print(f"{'='*60}")

    # Warm up (includes kernel compilation)
    for _ in range(5):
        sim.step(params)

    logs = [sim.step(params) for _ in range(frames)]

    keys = ["integrate_ms", "separate_ms", "collide_ms", "to_grid_ms",
            "pressure_ms", "to_particles_ms", "colors_ms", "total_ms"]

    print(f"\n{'Step':<20} {'Mean':>8} {'Min':>8} {'Max':>8}")
    print(f"{'─'*50}")
    for k in keys:
        vals = [m[k] for m in logs]
        print(f"  {k:<18} {np.mean(vals):>7.1f}ms {np.min(vals):>7.1f}ms {np.max(vals):>7.1f}ms")

    total_vals = [m["total_ms"] for m in logs]
    print(f"\n{'─'*50}")
    print(f"  FPS (physics only): {1000/np.mean(total_vals):.1f}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="2D PIC/FLIP Fluid Simulation")
    parser.add_argument(
        "--mode", choices=["headless", "benchmark"],
        default="headless",
        help="Run mode (default: headless)"
    )
    parser.add_argument("--res",    type=int, default=100, help="Grid cells along the tank height (default: 100)")
    parser.add_argument("--frames", type=int, default=100, help="Number of frames")
    parser.add_argument("--config", type=str, default=None, help="JSON file with step parameters")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Library log level (default: WARNING)")

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="[%(name)s] %(levelname)s: %(message)s")

    params = StepParams.from_json(args.config) if args.config else StepParams()

    if args.mode == "headless":
        run_headless(res=args.res, frames=args.frames, params=params)
    elif args.mode == "benchmark":
        run_benchmark(res=args.res, frames=args.frames, params=params)
