"""
transfer.py — Particle ↔ Grid Velocity Transfer (PIC / FLIP)
=============================================================
The coupling between the two halves of the solver.

SCATTER (particles → grid), before the pressure solve:
  Every particle spreads its velocity onto the 4 surrounding samples of
  each staggered component with bilinear (area) weights. Accumulated
  velocity is divided by accumulated weight. Faces touching a solid cell
  are put back to their pre-scatter values so walls and the obstacle
  keep their prescribed velocity.

      u samples sit at (i*h, (j+0.5)*h)  → offset (0, h/2)
      v samples sit at ((i+0.5)*h, j*h)  → offset (h/2, 0)

GATHER (grid → particles), after the pressure solve:
  Same 4 samples and weights, but a sample only counts if the face it
  lives on borders a non-AIR cell. Two estimates are blended:

      PIC  : v_p = interpolated grid velocity          (stable, diffusive)
      FLIP : v_p = v_p + interpolated grid *change*    (lively, noisy)
      new  = (1 - flip_ratio) * PIC + flip_ratio * FLIP

DENSITY:
  A cell-centered splat of 1 per particle gives a per-cell particle
  density. The first time any fluid cell exists its mean becomes the rest
  density, the yardstick for drift compensation in the pressure solve.
"""

import logging
import math

import numba as nb
import numpy as np

from .grid import AIR_CELL, FLUID_CELL, SOLID_CELL, FlipGrid

logger = logging.getLogger(__name__)

U_FIELD = 0
V_FIELD = 1


@nb.njit(cache=True)
def _clamp(x, lo, hi):
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x


@nb.njit(cache=True)
def _scatter_component(field, weight, pos, vel, component, num_particles,
                       f_num_x, f_num_y, h, f_inv_spacing, dx, dy):
    n = f_num_y
    for i in range(num_particles):
        x = _clamp(pos[i, 0], h, (f_num_x - 1) * h)
        y = _clamp(pos[i, 1], h, (f_num_y - 1) * h)

        x0 = min(int(math.floor((x - dx) * f_inv_spacing)), f_num_x - 2)
        tx = ((x - dx) - x0 * h) * f_inv_spacing
        x1 = min(x0 + 1, f_num_x - 2)

        y0 = min(int(math.floor((y - dy) * f_inv_spacing)), f_num_y - 2)
        ty = ((y - dy) - y0 * h) * f_inv_spacing
        y1 = min(y0 + 1, f_num_y - 2)

        sx = 1.0 - tx
        sy = 1.0 - ty

        d0 = sx * sy
        d1 = tx * sy
        d2 = tx * ty
        d3 = sx * ty

        nr0 = x0 * n + y0
        nr1 = x1 * n + y0
        nr2 = x1 * n + y1
        nr3 = x0 * n + y1

        pv = vel[i, component]
        field[nr0] += pv * d0
        weight[nr0] += d0
        field[nr1] += pv * d1
        weight[nr1] += d1
        field[nr2] += pv * d2
        weight[nr2] += d2
        field[nr3] += pv * d3
        weight[nr3] += d3


@nb.njit(cache=True)
def _gather_component(field, prev_field, cell_type, pos, vel, component, num_particles,
                      f_num_x, f_num_y, h, f_inv_spacing, dx, dy, flip_ratio):
    n = f_num_y
    # neighbour across the face: left cell for u, bottom cell for v
    offset = n if component == U_FIELD else 1

    for i in range(num_particles):
        x = _clamp(pos[i, 0], h, (f_num_x - 1) * h)
        y = _clamp(pos[i, 1], h, (f_num_y - 1) * h)

        x0 = min(int(math.floor((x - dx) * f_inv_spacing)), f_num_x - 2)
        tx = ((x - dx) - x0 * h) * f_inv_spacing
        x1 = min(x0 + 1, f_num_x - 2)

        y0 = min(int(math.floor((y - dy) * f_inv_spacing)), f_num_y - 2)
        ty = ((y - dy) - y0 * h) * f_inv_spacing
        y1 = min(y0 + 1, f_num_y - 2)

        sx = 1.0 - tx
        sy = 1.0 - ty

        d0 = sx * sy
        d1 = tx * sy
        d2 = tx * ty
        d3 = sx * ty

        nr0 = x0 * n + y0
        nr1 = x1 * n + y0
        nr2 = x1 * n + y1
        nr3 = x0 * n + y1

        valid0 = 1.0 if (cell_type[nr0] != AIR_CELL or cell_type[nr0 - offset] != AIR_CELL) else 0.0
        valid1 = 1.0 if (cell_type[nr1] != AIR_CELL or cell_type[nr1 - offset] != AIR_CELL) else 0.0
        valid2 = 1.0 if (cell_type[nr2] != AIR_CELL or cell_type[nr2 - offset] != AIR_CELL) else 0.0
        valid3 = 1.0 if (cell_type[nr3] != AIR_CELL or cell_type[nr3 - offset] != AIR_CELL) else 0.0

        total_weight = valid0 * d0 + valid1 * d1 + valid2 * d2 + valid3 * d3
        if total_weight > 0.0:
            v = vel[i, component]
            pic_v = (
                valid0 * d0 * field[nr0] + valid1 * d1 * field[nr1]
                + valid2 * d2 * field[nr2] + valid3 * d3 * field[nr3]
            ) / total_weight
            corr = (
                valid0 * d0 * (field[nr0] - prev_field[nr0])
                + valid1 * d1 * (field[nr1] - prev_field[nr1])
                + valid2 * d2 * (field[nr2] - prev_field[nr2])
                + valid3 * d3 * (field[nr3] - prev_field[nr3])
            ) / total_weight
            flip_v = v + corr
            vel[i, component] = (1.0 - flip_ratio) * pic_v + flip_ratio * flip_v


@nb.njit(cache=True)
def _splat_density(density, pos, num_particles, f_num_x, f_num_y, h, f_inv_spacing):
    n = f_num_y
    h2 = 0.5 * h
    density[:] = 0.0

    for i in range(num_particles):
        x = _clamp(pos[i, 0], h, (f_num_x - 1) * h)
        y = _clamp(pos[i, 1], h, (f_num_y - 1) * h)

        x0 = int(math.floor((x - h2) * f_inv_spacing))
        tx = ((x - h2) - x0 * h) * f_inv_spacing
        x1 = min(x0 + 1, f_num_x - 2)

        y0 = int(math.floor((y - h2) * f_inv_spacing))
        ty = ((y - h2) - y0 * h) * f_inv_spacing
        y1 = min(y0 + 1, f_num_y - 2)

        sx = 1.0 - tx
        sy = 1.0 - ty

        if x0 < f_num_x and y0 < f_num_y:
            density[x0 * n + y0] += sx * sy
        if x1 < f_num_x and y0 < f_num_y:
            density[x1 * n + y0] += tx * sy
        if x1 < f_num_x and y1 < f_num_y:
            density[x1 * n + y1] += tx * ty
        if x0 < f_num_x and y1 < f_num_y:
            density[x0 * n + y1] += sx * ty


def _component_offsets(grid: FlipGrid, component: int) -> tuple:
    h2 = 0.5 * grid.h
    return (0.0, h2) if component == U_FIELD else (h2, 0.0)


def transfer_to_grid(grid: FlipGrid, pos: np.ndarray, vel: np.ndarray, num_particles: int):
    """
    Scatter particle velocities onto the staggered grid.

    Also snapshots prev_u/prev_v and re-classifies every cell, since the
    face validity used by the gather depends on the new cell types.
    """
    np.copyto(grid.prev_u, grid.u)
    np.copyto(grid.prev_v, grid.v)
    grid.du.fill(0.0)
    grid.dv.fill(0.0)
    grid.u.fill(0.0)
    grid.v.fill(0.0)

    grid.classify(pos, num_particles)

    for component, field, weight in ((U_FIELD, grid.u, grid.du), (V_FIELD, grid.v, grid.dv)):
        dx, dy = _component_offsets(grid, component)
        _scatter_component(
            field, weight, pos, vel, component, num_particles,
            grid.f_num_x, grid.f_num_y, grid.h, grid.f_inv_spacing, dx, dy,
        )
        np.divide(field, weight, out=field, where=weight > 0.0)

    # ── Solid faces keep their pre-scatter velocity ────────────────────────
    solid = grid.as_2d(grid.cell_type) == SOLID_CELL
    u_solid = solid.copy()
    u_solid[1:, :] |= solid[:-1, :]
    v_solid = solid.copy()
    v_solid[:, 1:] |= solid[:, :-1]

    u_solid = u_solid.ravel()
    v_solid = v_solid.ravel()
    grid.u[u_solid] = grid.prev_u[u_solid]
    grid.v[v_solid] = grid.prev_v[v_solid]


def transfer_to_particles(grid: FlipGrid, pos: np.ndarray, vel: np.ndarray, num_particles: int,
                          flip_ratio: float):
    """
    Gather grid velocities back onto particles with the PIC/FLIP blend.

    prev_u/prev_v must hold the grid velocity from just before the
    pressure solve, so `u - prev_u` is exactly the projection's change.
    """
    for component, field, prev_field in ((U_FIELD, grid.u, grid.prev_u), (V_FIELD, grid.v, grid.prev_v)):
        dx, dy = _component_offsets(grid, component)
        _gather_component(
            field, prev_field, grid.cell_type, pos, vel, component, num_particles,
            grid.f_num_x, grid.f_num_y, grid.h, grid.f_inv_spacing, dx, dy, float(flip_ratio),
        )


def update_particle_density(grid: FlipGrid, pos: np.ndarray, num_particles: int):
    """
    Splat particles onto cell centers, then calibrate the rest density the
    first time fluid cells exist. Calibration happens once per reset.
    """
    _splat_density(
        grid.particle_density, pos, num_particles,
        grid.f_num_x, grid.f_num_y, grid.h, grid.f_inv_spacing,
    )

    if grid.particle_rest_density == 0.0:
        fluid = grid.cell_type == FLUID_CELL
        num_fluid_cells = int(np.count_nonzero(fluid))
        if num_fluid_cells > 0:
            total = float(grid.particle_density[fluid].sum(dtype=np.float64))
            grid.particle_rest_density = total / num_fluid_cells
            logger.info(
                "Rest density calibrated to %.4f over %d fluid cells",
                grid.particle_rest_density, num_fluid_cells,
            )
