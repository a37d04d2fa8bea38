import pytest

from flipfluid import ConfigError, FlipFluid, FluidConfig, StepParams


def test_defaults_are_valid():
    assert FluidConfig().validate() is not None
    assert StepParams().validate() is not None


@pytest.mark.parametrize("overrides", [
    {"max_particles": 0},
    {"max_particles": -5},
    {"width": 0.0},
    {"height": -1.0},
    {"spacing": 0.0},
    {"particle_radius": 0.0},
    {"density": -1000.0},
    {"width": 3.0, "spacing": 5.0},
])
def test_invalid_fluid_config_rejected(overrides):
    with pytest.raises(ConfigError):
        FluidConfig(**overrides).validate()


def test_constructor_rejects_zero_capacity():
    with pytest.raises(ValueError):
        FlipFluid(1000.0, 3.0, 3.0, 0.03, 0.009, 0)


@pytest.mark.parametrize("overrides", [
    {"dt": 0.0},
    {"flip_ratio": 1.5},
    {"flip_ratio": -0.1},
    {"num_pressure_iters": -1},
    {"num_particle_iters": -1},
    {"damping": -0.5},
])
def test_invalid_step_params_rejected(overrides):
    with pytest.raises(ConfigError):
        StepParams(**overrides).validate()


def test_unknown_keys_rejected():
    with pytest.raises(ConfigError, match="gravityy"):
        StepParams.from_dict({"gravityy": -9.81})


def test_json_round_trip(tmp_path):
    params = StepParams(flip_ratio=0.5, num_pressure_iters=10, vertical_wrap=True)
    path = tmp_path / "step.json"
    params.to_json(str(path))
    assert StepParams.from_json(str(path)) == params

    config = FluidConfig(width=2.0, height=1.0, spacing=0.05, max_particles=100)
    path = tmp_path / "fluid.json"
    config.to_json(str(path))
    assert FluidConfig.from_json(str(path)) == config


def test_from_config_builds_matching_fluid():
    config = FluidConfig(width=2.0, height=1.0, spacing=0.1, particle_radius=0.03, max_particles=50)
    sim = FlipFluid.from_config(config)
    assert sim.config == config
    assert sim.particles.max_particles == 50
