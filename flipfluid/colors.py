"""
colors.py — Visualization Colors
=================================
Purely cosmetic state the renderer reads back; the solver never uses it.

Particles drift toward pure blue by 0.01 per channel per tick. A particle
sitting in a cell below 70 % of rest density (a spray droplet or the edge
of a bubble) is shown as bright (0.8, 0.8, 1.0) instead.

Cells: solid → mid gray, air → black, fluid → 4-band "scientific" ramp
over density / rest density in [0, 2]:

  blue → cyan → green → yellow → red
"""

import numpy as np

from .grid import FLUID_CELL, SOLID_CELL, FlipGrid

COLOR_DRIFT = 0.01
BUBBLE_DENSITY_RATIO = 0.7
BUBBLE_COLOR = (0.8, 0.8, 1.0)
SOLID_COLOR = (0.5, 0.5, 0.5)


def update_particle_colors(grid: FlipGrid, pos: np.ndarray, color: np.ndarray, num_particles: int):
    c = color[:num_particles]
    c[:, 0] = np.clip(c[:, 0] - COLOR_DRIFT, 0.0, 1.0)
    c[:, 1] = np.clip(c[:, 1] - COLOR_DRIFT, 0.0, 1.0)
    c[:, 2] = np.clip(c[:, 2] + COLOR_DRIFT, 0.0, 1.0)

    d0 = grid.particle_rest_density
    if d0 <= 0.0:
        return

    x = pos[:num_particles, 0]
    y = pos[:num_particles, 1]
    xi = np.clip(np.floor(x * grid.f_inv_spacing).astype(np.int64), 1, grid.f_num_x - 1)
    yi = np.clip(np.floor(y * grid.f_inv_spacing).astype(np.int64), 1, grid.f_num_y - 1)
    rel_density = grid.particle_density[xi * grid.f_num_y + yi] / d0
    c[rel_density < BUBBLE_DENSITY_RATIO] = BUBBLE_COLOR


def sci_color(val, min_val: float, max_val: float) -> np.ndarray:
    """
    Map values onto the 4-band ramp.

    Args:
        val              : scalar or array of values
        min_val, max_val : ramp range; values outside are clamped

    Returns: (n, 3) float32 RGB
    """
    val = np.atleast_1d(np.asarray(val, dtype=np.float64))
    val = np.minimum(np.maximum(val, min_val), max_val - 0.0001)
    d = max_val - min_val
    val = np.full_like(val, 0.5) if d == 0.0 else (val - min_val) / d

    m = 0.25
    num = np.floor(val / m)
    s = (val - num * m) / m
    zero = np.zeros_like(s)
    one = np.ones_like(s)

    bands = [num == 0, num == 1, num == 2, num == 3]
    r = np.select(bands, [zero, zero, s, one], default=0.0)
    g = np.select(bands, [s, one, one, 1.0 - s], default=0.0)
    b = np.select(bands, [one, 1.0 - s, zero, zero], default=0.0)
    return np.stack([r, g, b], axis=-1).astype(np.float32)


def update_cell_colors(grid: FlipGrid):
    grid.cell_color.fill(0.0)
    grid.cell_color[grid.cell_type == SOLID_CELL] = SOLID_COLOR

    fluid = grid.cell_type == FLUID_CELL
    if not fluid.any():
        return
    d = grid.particle_density[fluid].astype(np.float64)
    if grid.particle_rest_density > 0.0:
        d /= grid.particle_rest_density
    grid.cell_color[fluid] = sci_color(d, 0.0, 2.0)
