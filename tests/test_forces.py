import numpy as np
import pytest

from flipfluid.forces import integrate_particles


def make(vel):
    vel = np.array(vel, dtype=np.float32)
    pos = np.full_like(vel, 5.0)
    return pos, vel


def test_gravity_moves_down():
    pos, vel = make([[0.0, 0.0]])
    integrate_particles(pos, vel, 1, dt=0.1, gravity=-10.0, damping=0.0)
    assert vel[0, 1] == pytest.approx(-1.0)
    assert pos[0, 1] == pytest.approx(4.9)
    assert vel[0, 0] == 0.0
    assert pos[0, 0] == 5.0


def test_quadratic_drag_opposes_motion():
    pos, vel = make([[2.0, 0.0], [-2.0, 0.0]])
    integrate_particles(pos, vel, 2, dt=0.1, gravity=0.0, damping=0.1)
    assert vel[0, 0] == pytest.approx(1.6)
    assert vel[1, 0] == pytest.approx(-1.6)
    assert pos[0, 0] == pytest.approx(5.16)
    assert pos[1, 0] == pytest.approx(4.84)


def test_zero_damping_leaves_speed():
    pos, vel = make([[3.0, -4.0]])
    integrate_particles(pos, vel, 1, dt=0.5, gravity=0.0, damping=0.0)
    np.testing.assert_allclose(vel[0], [3.0, -4.0])
    np.testing.assert_allclose(pos[0], [6.5, 3.0])


def test_inactive_slots_untouched():
    pos, vel = make([[0.0, 0.0], [1.0, 1.0]])
    integrate_particles(pos, vel, 1, dt=0.1, gravity=-10.0, damping=0.0)
    np.testing.assert_array_equal(vel[1], np.float32([1.0, 1.0]))
    np.testing.assert_array_equal(pos[1], np.float32([5.0, 5.0]))
