"""
simulation.py — PIC/FLIP Step Orchestrator
===========================================
One call to `simulate()` advances the fluid by one fixed timestep.

Pipeline per tick (single substep):
  1. Integrate particles    (gravity + quadratic drag, move)
  2. Separate particles     (spatial hash push-apart, optional)
  3. Collide                (obstacle + walls)
  4. Scatter to grid        (classify cells, particle → grid)
  5. Particle density       (one-time rest density calibration)
  6. Pressure projection    (Gauss–Seidel SOR + drift compensation)
  7. Gather from grid       (PIC/FLIP blend)
  8. Collide again          (the projection may push particles into walls)
  9. Recolor                (particles + cells, visualization only)

The simulation owns every array. Callers read them between ticks to
render, and only mutate state through seed_particles(), set_obstacle()
and reset().
"""

import logging
import time
from collections import deque

import numpy as np

from .collisions import handle_particle_collisions
from .colors import update_cell_colors, update_particle_colors
from .config import FluidConfig, StepParams
from .forces import integrate_particles
from .grid import FlipGrid
from .particles import ParticleStore
from .solver import solve_incompressibility
from .spatial_hash import SpatialHash, push_particles_apart
from .transfer import transfer_to_grid, transfer_to_particles, update_particle_density

logger = logging.getLogger(__name__)

PERF_LOG_SIZE = 1000


class FlipFluid:
    """
    The complete 2D PIC/FLIP fluid.

    Usage:
        sim = FlipFluid(density=1000.0, width=3.0, height=3.0,
                        spacing=0.03, particle_radius=0.009, max_particles=20000)
        sim.seed_particles(positions)
        sim.set_obstacle(3.0, 2.0, reset=True)
        for frame in range(100):
            sim.step(StepParams())
            pos = sim.particles.active_pos()     # hand to a renderer
    """

    def __init__(self, density: float, width: float, height: float, spacing: float,
                 particle_radius: float, max_particles: int):
        """
        Args:
            density         : Fluid density (diagnostic pressure scale)
            width, height   : Domain size in world units
            spacing         : Requested grid cell size
            particle_radius : Particle radius
            max_particles   : Fixed particle capacity

        Raises:
            ConfigError if the configuration cannot form a valid grid
        """
        self.config = FluidConfig(
            density=density, width=width, height=height, spacing=spacing,
            particle_radius=particle_radius, max_particles=max_particles,
        ).validate()
        self.reset()

    @classmethod
    def from_config(cls, config: FluidConfig) -> "FlipFluid":
        return cls(
            config.density, config.width, config.height, config.spacing,
            config.particle_radius, config.max_particles,
        )

    def reset(self):
        """
        Reallocate grid, particle and hash arrays from the stored config.
        All particles are dropped and the rest density returns to 0.
        """
        cfg = self.config
        self.grid = FlipGrid(cfg.width, cfg.height, cfg.spacing, cfg.density)
        self.particles = ParticleStore(cfg.max_particles, cfg.particle_radius)
        self.hash = SpatialHash(cfg.width, cfg.height, cfg.particle_radius, cfg.max_particles)

        self.obstacle_x = 0.0
        self.obstacle_y = 0.0
        self.obstacle_radius = 0.0
        self.obstacle_vel_x = 0.0
        self.obstacle_vel_y = 0.0

        self.frame = 0
        self.perf_log = deque(maxlen=PERF_LOG_SIZE)

        logger.info(
            "FlipFluid reset: grid %dx%d (h=%.4f), hash %dx%d, capacity %d particles",
            self.grid.f_num_x, self.grid.f_num_y, self.grid.h,
            self.hash.p_num_x, self.hash.p_num_y, self.particles.max_particles,
        )

    # ── Read access ─────────────────────────────────────────────────────────

    @property
    def num_particles(self) -> int:
        return self.particles.num_particles

    @property
    def particle_radius(self) -> float:
        return self.particles.radius

    @property
    def particle_rest_density(self) -> float:
        return self.grid.particle_rest_density

    def render_state(self) -> dict:
        """Copies of everything a renderer draws."""
        return {
            "frame": self.frame,
            "f_num_x": self.grid.f_num_x,
            "f_num_y": self.grid.f_num_y,
            "h": self.grid.h,
            "particle_radius": self.particles.radius,
            "particle_pos": self.particles.active_pos().copy(),
            "particle_vel": self.particles.active_vel().copy(),
            "particle_color": self.particles.active_color().copy(),
            "cell_color": self.grid.cell_color.copy(),
            "cell_type": self.grid.cell_type.copy(),
            "particle_density": self.grid.particle_density.copy(),
            "obstacle": (self.obstacle_x, self.obstacle_y, self.obstacle_radius),
        }

    # ── Mutation between ticks ──────────────────────────────────────────────

    def seed_particles(self, positions, velocities=None):
        """Replace the active particle block (the explicit reseed)."""
        self.particles.seed(positions, velocities)
        logger.info("Seeded %d particles", self.particles.num_particles)

    def set_obstacle(self, x: float, y: float, reset: bool = False, dt: float = None,
                     radius: float = None):
        """
        Move the obstacle. Unless `reset`, its velocity is the displacement
        over `dt`, so dragging it through the fluid stirs the fluid.

        Args:
            x, y   : New obstacle center
            reset  : Teleport with zero velocity (drag start / scene setup)
            dt     : Timestep the displacement happened over
            radius : New radius, keeps the current one when None
        """
        if radius is not None:
            if radius < 0.0:
                raise ValueError(f"obstacle radius must be non-negative, got {radius!r}")
            self.obstacle_radius = float(radius)

        vx = vy = 0.0
        if not reset:
            if dt is None or dt <= 0.0:
                raise ValueError("dragging the obstacle needs a positive dt")
            vx = (x - self.obstacle_x) / dt
            vy = (y - self.obstacle_y) / dt

        self.obstacle_x = float(x)
        self.obstacle_y = float(y)
        self.obstacle_vel_x = vx
        self.obstacle_vel_y = vy
        self.grid.carve_obstacle(x, y, self.obstacle_radius, vx, vy)

    def end_drag(self):
        self.obstacle_vel_x = 0.0
        self.obstacle_vel_y = 0.0

    # ── Stepping ────────────────────────────────────────────────────────────

    def _collide(self, obstacle_x, obstacle_y, obstacle_radius, obstacle_vel_x, obstacle_vel_y,
                 vertical_wrap):
        g = self.grid
        handle_particle_collisions(
            self.particles.pos, self.particles.vel, self.particles.num_particles,
            g.f_num_x, g.f_num_y, g.h, self.particles.radius,
            obstacle_x, obstacle_y, obstacle_radius, obstacle_vel_x, obstacle_vel_y,
            vertical_wrap,
        )

    def simulate(self, dt: float, gravity: float, flip_ratio: float, num_pressure_iters: int,
                 num_particle_iters: int, over_relaxation: float, compensate_drift: bool,
                 separate_particles: bool, obstacle_x: float, obstacle_y: float,
                 obstacle_radius: float, obstacle_vel_x: float, obstacle_vel_y: float,
                 damping: float = 1.0, vertical_wrap: bool = False) -> dict:
        """
        Advance the simulation by one timestep.

        Returns performance metrics dict for benchmarking.
        """
        t_total_start = time.perf_counter()
        g = self.grid
        ps = self.particles
        n = ps.num_particles
        obstacle = (obstacle_x, obstacle_y, obstacle_radius, obstacle_vel_x, obstacle_vel_y)

        # ── Step 1: Integrate ──────────────────────────────────────────────
        t0 = time.perf_counter()
        integrate_particles(ps.pos, ps.vel, n, dt, gravity, damping)
        t_integrate = (time.perf_counter() - t0) * 1000

        # ── Step 2: Separate ───────────────────────────────────────────────
        t0 = time.perf_counter()
        if separate_particles:
            push_particles_apart(self.hash, ps.pos, ps.color, n, num_particle_iters)
        t_separate = (time.perf_counter() - t0) * 1000

        # ── Step 3: Collide ────────────────────────────────────────────────
        t0 = time.perf_counter()
        self._collide(*obstacle, vertical_wrap)
        t_collide = (time.perf_counter() - t0) * 1000

        # ── Step 4 + 5: Scatter, density ───────────────────────────────────
        t0 = time.perf_counter()
        transfer_to_grid(g, ps.pos, ps.vel, n)
        update_particle_density(g, ps.pos, n)
        t_to_grid = (time.perf_counter() - t0) * 1000

        # ── Step 6: Project ────────────────────────────────────────────────
        proj_metrics = solve_incompressibility(
            g, num_pressure_iters, dt, over_relaxation, compensate_drift,
        )

        # ── Step 7 + 8: Gather, collide again ──────────────────────────────
        t0 = time.perf_counter()
        transfer_to_particles(g, ps.pos, ps.vel, n, flip_ratio)
        self._collide(*obstacle, vertical_wrap)
        t_to_particles = (time.perf_counter() - t0) * 1000

        # ── Step 9: Recolor ────────────────────────────────────────────────
        t0 = time.perf_counter()
        update_particle_colors(g, ps.pos, ps.color, n)
        update_cell_colors(g)
        t_colors = (time.perf_counter() - t0) * 1000

        self.frame += 1
        t_total = (time.perf_counter() - t_total_start) * 1000

        metrics = {
            "frame"             : self.frame,
            "total_ms"          : t_total,
            "fps"               : 1000.0 / t_total if t_total > 0 else 0,
            "integrate_ms"      : t_integrate,
            "separate_ms"       : t_separate,
            "collide_ms"        : t_collide,
            "to_grid_ms"        : t_to_grid,
            "pressure_ms"       : proj_metrics["time_ms"],
            "to_particles_ms"   : t_to_particles,
            "colors_ms"         : t_colors,
            "divergence_max"    : proj_metrics["divergence_after_max"],
            "num_fluid_cells"   : g.num_fluid_cells(),
            "rest_density"      : g.particle_rest_density,
        }
        self.perf_log.append(metrics)
        logger.debug("frame %d: %.2f ms, div_max=%.5f", self.frame, t_total, metrics["divergence_max"])
        return metrics

    def step(self, params: StepParams) -> dict:
        """Validated tick using the stored obstacle state."""
        params.validate()
        return self.simulate(
            params.dt, params.gravity, params.flip_ratio, params.num_pressure_iters,
            params.num_particle_iters, params.over_relaxation, params.compensate_drift,
            params.separate_particles, self.obstacle_x, self.obstacle_y, self.obstacle_radius,
            self.obstacle_vel_x, self.obstacle_vel_y, params.damping, params.vertical_wrap,
        )

    def get_snapshot(self) -> dict:
        """Full solver state (grid + particles) as numpy copies."""
        snapshot = {"frame": self.frame}
        snapshot.update(self.grid.save_state())
        snapshot.update(self.particles.save_state())
        return snapshot

    def status(self) -> str:
        """One-block human readable summary of the current state."""
        ps = self.particles
        speed = np.linalg.norm(ps.active_vel(), axis=1) if ps.num_particles else np.zeros(1)
        lines = [
            f"  Frame: {self.frame}  |  Particles: {ps.num_particles}/{ps.max_particles}",
            f"  Fluid cells : {self.grid.num_fluid_cells()}  |  rest density={self.grid.particle_rest_density:.4f}",
            f"  Speed       : max={speed.max():.4f}, mean={speed.mean():.4f}",
            f"  Divergence  : max={self.grid.max_fluid_divergence():.6f}",
        ]
        if self.perf_log:
            last = self.perf_log[-1]
            lines.append(f"  Perf        : {last['total_ms']:.1f}ms/frame ({last['fps']:.1f} FPS)")
        return "\n".join(lines)
