import math

import numpy as np
import pytest

from flipfluid import hex_block, setup_dam_break


def test_hex_block_layout():
    pos = hex_block(2, 2, 1.0, 0.3)
    assert pos.shape == (4, 2)
    np.testing.assert_allclose(pos[0], (1.3, 1.3), atol=1e-6)
    np.testing.assert_allclose(pos[1], (1.6, 1.3 + math.sqrt(3.0) * 0.3), atol=1e-6)
    np.testing.assert_allclose(pos[2], (1.9, 1.3), atol=1e-6)


def test_dam_break_scene():
    sim = setup_dam_break(resolution=20)

    assert sim.num_particles == 15 * 25
    assert sim.particles.max_particles == sim.num_particles
    assert sim.particle_radius == pytest.approx(0.3 * 3.0 / 20)
    assert (sim.obstacle_x, sim.obstacle_y, sim.obstacle_radius) == (3.0, 2.0, 0.15)

    pos = sim.particles.active_pos()
    assert pos[:, 0].max() < 0.6 * 3.0
    assert pos[:, 1].max() < 0.8 * 3.0
    assert pos.min() > 0.0


def test_dam_break_without_water():
    with pytest.raises(ValueError):
        setup_dam_break(resolution=20, rel_water_width=0.01)
