"""
grid.py — MAC (Marker-and-Cell) Staggered Grid
================================================
The Eulerian half of the PIC/FLIP solver.

Layout on a single cell (i, j), stored flat at index i * f_num_y + j:
  - Pressure `p`, open fraction `s`, cell type and particle density
    live at the CELL CENTER
  - Velocity `u` lives on the LEFT face   (x = i*h,       y = (j+0.5)*h)
  - Velocity `v` lives on the BOTTOM face (x = (i+0.5)*h, y = j*h)

Cells are classified every tick:
  SOLID → domain boundary or s == 0 (obstacle)
  FLUID → open cell holding at least one particle
  AIR   → open, empty cell
"""

import math

import numba as nb
import numpy as np


FLUID_CELL = 0
AIR_CELL = 1
SOLID_CELL = 2


@nb.njit(cache=True)
def classify_cells(cell_type, s, pos, num_particles, f_num_x, f_num_y, f_inv_spacing):
    n = f_num_y
    for i in range(f_num_x):
        for j in range(f_num_y):
            boundary = i == 0 or j == 0 or i == f_num_x - 1 or j == f_num_y - 1
            if boundary or s[i * n + j] == 0.0:
                cell_type[i * n + j] = SOLID_CELL
            else:
                cell_type[i * n + j] = AIR_CELL

    for p in range(num_particles):
        xi = min(max(int(math.floor(pos[p, 0] * f_inv_spacing)), 0), f_num_x - 1)
        yi = min(max(int(math.floor(pos[p, 1] * f_inv_spacing)), 0), f_num_y - 1)
        cell_nr = xi * n + yi
        if cell_type[cell_nr] == AIR_CELL:
            cell_type[cell_nr] = FLUID_CELL


class FlipGrid:
    """
    Staggered velocity grid plus every per-cell field the solver needs.
    Owned by FlipFluid; the arrays are reallocated only by reset().
    """

    def __init__(self, width: float, height: float, spacing: float, density: float = 1000.0):
        """
        Args:
            width, height : Domain size in world units
            spacing       : Requested cell size; the actual size `h` is the
                            largest of width/f_num_x and height/f_num_y
            density       : Fluid density (scales the diagnostic pressure)
        """
        self.density = density
        self.f_num_x = math.floor(width / spacing) + 1
        self.f_num_y = math.floor(height / spacing) + 1
        self.h = max(width / self.f_num_x, height / self.f_num_y)
        self.f_inv_spacing = 1.0 / self.h
        self.f_num_cells = self.f_num_x * self.f_num_y

        n = self.f_num_cells

        # ── Staggered velocities + scatter weights ─────────────────────────
        self.u = np.zeros(n, dtype=np.float32)
        self.v = np.zeros(n, dtype=np.float32)
        self.du = np.zeros(n, dtype=np.float32)
        self.dv = np.zeros(n, dtype=np.float32)
        self.prev_u = np.zeros(n, dtype=np.float32)
        self.prev_v = np.zeros(n, dtype=np.float32)

        # ── Cell-centered fields ───────────────────────────────────────────
        self.p = np.zeros(n, dtype=np.float32)
        self.s = np.zeros(n, dtype=np.float32)
        self.cell_type = np.full(n, AIR_CELL, dtype=np.int32)
        self.cell_color = np.zeros((n, 3), dtype=np.float32)
        self.particle_density = np.zeros(n, dtype=np.float32)
        self.particle_rest_density = 0.0

        self._init_walls()

    def _init_walls(self):
        """Open interior, solid border on all four sides."""
        s = self.s.reshape(self.f_num_x, self.f_num_y)
        s[:, :] = 1.0
        s[0, :] = 0.0
        s[-1, :] = 0.0
        s[:, 0] = 0.0
        s[:, -1] = 0.0
        self.cell_type.reshape(self.f_num_x, self.f_num_y)[:, :] = np.where(
            s == 0.0, SOLID_CELL, AIR_CELL
        )

    def cell_index(self, i: int, j: int) -> int:
        return i * self.f_num_y + j

    def cell_of(self, x: float, y: float) -> tuple:
        """Cell (i, j) owning world position (x, y), clamped to the grid."""
        i = min(max(math.floor(x * self.f_inv_spacing), 0), self.f_num_x - 1)
        j = min(max(math.floor(y * self.f_inv_spacing), 0), self.f_num_y - 1)
        return i, j

    def as_2d(self, field: np.ndarray) -> np.ndarray:
        """(f_num_x, f_num_y) view of a flat per-cell field."""
        return field.reshape(self.f_num_x, self.f_num_y)

    def carve_obstacle(self, x: float, y: float, radius: float, vel_x: float = 0.0, vel_y: float = 0.0):
        """
        Re-open the interior, then mark every interior cell whose center lies
        inside the circle as solid. Faces of carved cells take the obstacle
        velocity so the next scatter snapshot carries the obstacle motion.
        """
        nx, ny = self.f_num_x, self.f_num_y
        s = self.as_2d(self.s)
        u = self.as_2d(self.u)
        v = self.as_2d(self.v)

        s[1:nx - 1, 1:ny - 1] = 1.0

        ci = (np.arange(1, nx - 1) + 0.5) * self.h - x
        cj = (np.arange(1, ny - 1) + 0.5) * self.h - y
        inside = ci[:, None] ** 2 + cj[None, :] ** 2 < radius * radius
        if not inside.any():
            return

        ii, jj = np.nonzero(inside)
        ii += 1
        jj += 1
        s[ii, jj] = 0.0
        u[ii, jj] = vel_x
        u[ii + 1, jj] = vel_x
        v[ii, jj] = vel_y
        v[ii, jj + 1] = vel_y

    def classify(self, pos: np.ndarray, num_particles: int):
        classify_cells(
            self.cell_type, self.s, pos, num_particles,
            self.f_num_x, self.f_num_y, self.f_inv_spacing,
        )

    def num_fluid_cells(self) -> int:
        return int(np.count_nonzero(self.cell_type == FLUID_CELL))

    def compute_divergence(self) -> np.ndarray:
        """
        Discrete divergence per cell: u[i+1,j] - u[i,j] + v[i,j+1] - v[i,j].
        The last row/column has no outgoing face and is left at 0.

        Returns: (f_num_x, f_num_y) array.
        """
        u = self.as_2d(self.u)
        v = self.as_2d(self.v)
        div = np.zeros((self.f_num_x, self.f_num_y), dtype=np.float32)
        div[:-1, :-1] = (u[1:, :-1] - u[:-1, :-1]) + (v[:-1, 1:] - v[:-1, :-1])
        return div

    def max_fluid_divergence(self) -> float:
        fluid = self.as_2d(self.cell_type) == FLUID_CELL
        if not fluid.any():
            return 0.0
        return float(np.abs(self.compute_divergence()[fluid]).max())

    def save_state(self) -> dict:
        """Snapshot of every per-cell field as numpy copies."""
        return {
            "u": self.u.copy(),
            "v": self.v.copy(),
            "pressure": self.p.copy(),
            "s": self.s.copy(),
            "cell_type": self.cell_type.copy(),
            "cell_color": self.cell_color.copy(),
            "particle_density": self.particle_density.copy(),
            "particle_rest_density": self.particle_rest_density,
        }

    def __repr__(self):
        counts = np.bincount(self.cell_type, minlength=3)
        return (
            f"FlipGrid({self.f_num_x}x{self.f_num_y}, h={self.h:.4f})\n"
            f"  cells    : fluid={counts[FLUID_CELL]}, air={counts[AIR_CELL]}, solid={counts[SOLID_CELL]}\n"
            f"  velocity : max|u|={np.abs(self.u).max():.4f}, max|v|={np.abs(self.v).max():.4f}\n"
            f"  rest density: {self.particle_rest_density:.4f}"
        )
