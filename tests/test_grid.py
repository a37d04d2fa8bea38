import numpy as np
import pytest

from flipfluid import AIR_CELL, FLUID_CELL, SOLID_CELL, FlipGrid


@pytest.fixture
def grid():
    return FlipGrid(10.0, 10.0, 1.1)


def test_dimensions_divide_domain_evenly():
    g = FlipGrid(10.0, 10.0, 1.1)
    assert (g.f_num_x, g.f_num_y) == (10, 10)
    assert g.h == pytest.approx(1.0)
    assert g.f_num_cells == 100

    g = FlipGrid(2.0, 1.0, 0.25)
    assert (g.f_num_x, g.f_num_y) == (9, 5)
    assert g.h == pytest.approx(max(2.0 / 9, 1.0 / 5))


def test_walls_are_solid_on_all_sides(grid):
    s = grid.as_2d(grid.s)
    ct = grid.as_2d(grid.cell_type)
    for border in (s[0, :], s[-1, :], s[:, 0], s[:, -1]):
        assert np.all(border == 0.0)
    assert np.all(s[1:-1, 1:-1] == 1.0)
    assert np.all(ct[0, :] == SOLID_CELL)
    assert np.all(ct[1:-1, 1:-1] == AIR_CELL)


def test_classify_marks_occupied_cells_fluid(grid):
    pos = np.array([[5.5, 5.5], [5.2, 5.9], [2.5, 7.5], [0.5, 5.5], [-3.0, 20.0]], dtype=np.float32)
    grid.classify(pos, len(pos))
    ct = grid.as_2d(grid.cell_type)

    assert ct[5, 5] == FLUID_CELL
    assert ct[2, 7] == FLUID_CELL
    # wall cells never turn fluid, even when a particle is clamped into them
    assert ct[0, 5] == SOLID_CELL
    assert ct[0, 9] == SOLID_CELL
    assert grid.num_fluid_cells() == 2


def test_classify_respects_particle_count(grid):
    pos = np.array([[5.5, 5.5], [2.5, 2.5]], dtype=np.float32)
    grid.classify(pos, 1)
    assert grid.as_2d(grid.cell_type)[2, 2] == AIR_CELL


def test_carve_obstacle_marks_covered_cells(grid):
    grid.carve_obstacle(5.0, 5.0, 1.0, vel_x=2.0, vel_y=-1.0)
    s = grid.as_2d(grid.s)
    carved = {tuple(ij) for ij in np.argwhere(s[1:-1, 1:-1] == 0.0) + 1}
    assert carved == {(4, 4), (4, 5), (5, 4), (5, 5)}

    u = grid.as_2d(grid.u)
    v = grid.as_2d(grid.v)
    assert u[4, 4] == 2.0 and u[6, 5] == 2.0
    assert v[5, 4] == -1.0 and v[5, 6] == -1.0

    pos = np.array([[5.5, 5.5]], dtype=np.float32)
    grid.classify(pos, 1)
    assert grid.as_2d(grid.cell_type)[5, 5] == SOLID_CELL


def test_carve_again_reopens_previous_cells(grid):
    grid.carve_obstacle(5.0, 5.0, 1.0)
    grid.carve_obstacle(3.0, 3.0, 0.8)
    s = grid.as_2d(grid.s)
    assert s[5, 5] == 1.0
    assert s[2, 2] == 0.0
    assert s[0, 0] == 0.0


def test_divergence_of_single_face(grid):
    grid.as_2d(grid.u)[6, 5] = 1.0
    div = grid.compute_divergence()
    assert div[5, 5] == pytest.approx(1.0)
    assert div[6, 5] == pytest.approx(-1.0)
    assert np.count_nonzero(div) == 2
