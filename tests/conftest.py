import numpy as np
import pytest

from flipfluid import FlipFluid

FAR_AWAY = 100.0


@pytest.fixture
def small_fluid():
    """10x10 cells of size h = 1.0, particle radius 0.3."""
    return FlipFluid(density=1000.0, width=10.0, height=10.0, spacing=1.1,
                     particle_radius=0.3, max_particles=16)


@pytest.fixture
def quiet_tick():
    """Run one tick with no obstacle in reach; keyword overrides allowed."""
    def tick(sim, **overrides):
        params = dict(
            dt=1.0 / 60.0,
            gravity=0.0,
            flip_ratio=0.9,
            num_pressure_iters=50,
            num_particle_iters=0,
            over_relaxation=1.9,
            compensate_drift=True,
            separate_particles=False,
            obstacle_x=FAR_AWAY,
            obstacle_y=FAR_AWAY,
            obstacle_radius=0.15,
            obstacle_vel_x=0.0,
            obstacle_vel_y=0.0,
            damping=0.0,
        )
        params.update(overrides)
        return sim.simulate(**params)

    return tick


def seed_one(sim, x, y, vx=0.0, vy=0.0):
    sim.seed_particles(np.array([[x, y]]), np.array([[vx, vy]]))
