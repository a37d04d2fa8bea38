import numpy as np
import pytest

from flipfluid import FlipGrid
from flipfluid.solver import solve_incompressibility

DT = 1.0 / 60.0


@pytest.fixture
def grid():
    g = FlipGrid(10.0, 10.0, 1.1)
    g.classify(np.array([[5.5, 5.5]], dtype=np.float32), 1)
    return g


def test_single_sweep_removes_cell_divergence(grid):
    v = grid.as_2d(grid.v)
    v[5, 6] = 1.0

    metrics = solve_incompressibility(grid, 1, DT, over_relaxation=1.0, compensate_drift=False)

    u = grid.as_2d(grid.u)
    assert u[5, 5] == pytest.approx(0.25)
    assert u[6, 5] == pytest.approx(-0.25)
    assert v[5, 5] == pytest.approx(0.25)
    assert v[5, 6] == pytest.approx(0.75)
    assert grid.compute_divergence()[5, 5] == pytest.approx(0.0, abs=1e-6)

    assert metrics["divergence_before_max"] == pytest.approx(1.0)
    assert metrics["divergence_after_max"] == pytest.approx(0.0, abs=1e-6)
    assert metrics["iterations"] == 1


def test_snapshot_and_pressure(grid):
    grid.p[:] = 123.0
    grid.as_2d(grid.v)[5, 6] = 1.0

    solve_incompressibility(grid, 1, DT, over_relaxation=1.0, compensate_drift=False)

    assert grid.as_2d(grid.prev_v)[5, 6] == 1.0
    p = grid.as_2d(grid.p)
    assert p[5, 5] == pytest.approx(grid.density * grid.h / DT * -0.25, rel=1e-5)
    assert np.count_nonzero(p) == 1


def test_non_fluid_cells_untouched(grid):
    v = grid.as_2d(grid.v)
    v[2, 3] = 1.0
    solve_incompressibility(grid, 10, DT, over_relaxation=1.9, compensate_drift=False)
    assert v[2, 3] == 1.0
    assert np.count_nonzero(grid.u) == 0


def test_enclosed_cell_skipped(grid):
    s = grid.as_2d(grid.s)
    s[4, 5] = s[6, 5] = s[5, 4] = s[5, 6] = 0.0
    grid.classify(np.array([[5.5, 5.5]], dtype=np.float32), 1)
    grid.as_2d(grid.v)[5, 6] = 1.0

    solve_incompressibility(grid, 5, DT, over_relaxation=1.9, compensate_drift=False)
    assert grid.as_2d(grid.v)[5, 6] == 1.0
    assert np.count_nonzero(grid.p) == 0


def test_drift_compensation_pushes_compressed_cell_outward(grid):
    grid.particle_rest_density = 1.0
    grid.as_2d(grid.particle_density)[5, 5] = 3.0

    solve_incompressibility(grid, 1, DT, over_relaxation=1.0, compensate_drift=True)

    u = grid.as_2d(grid.u)
    v = grid.as_2d(grid.v)
    assert u[5, 5] == pytest.approx(-0.5)
    assert u[6, 5] == pytest.approx(0.5)
    assert v[5, 5] == pytest.approx(-0.5)
    assert v[5, 6] == pytest.approx(0.5)


def test_drift_compensation_off(grid):
    grid.particle_rest_density = 1.0
    grid.as_2d(grid.particle_density)[5, 5] = 3.0
    solve_incompressibility(grid, 1, DT, over_relaxation=1.0, compensate_drift=False)
    assert np.count_nonzero(grid.u) == 0
    assert np.count_nonzero(grid.v) == 0


def test_sweeps_reduce_divergence_of_fluid_block():
    g = FlipGrid(10.0, 10.0, 1.1)
    pos = np.array([[i + 0.5, j + 0.5] for i in range(3, 7) for j in range(3, 7)], dtype=np.float32)
    g.classify(pos, len(pos))
    g.as_2d(g.v)[3:7, 5] = -1.0

    before = g.max_fluid_divergence()
    solve_incompressibility(g, 50, DT, over_relaxation=1.9, compensate_drift=False)
    assert g.max_fluid_divergence() < 0.1 * before
