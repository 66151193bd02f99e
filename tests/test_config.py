import pytest

from cloth_solver import Mode, SimConfig


def test_defaults():
    config = SimConfig(device="cpu")
    assert config.timestep == 0.1
    assert config.gravity == 9.8
    assert config.air_resistance == 0.0
    assert config.ground_height == 0.0
    assert config.constant_of_restitution == 0.9
    assert config.mode is Mode.NEWTON
    assert config.num_particles == 64


def test_mode_from_string():
    assert SimConfig(mode="projective", device="cpu").mode is Mode.PROJECTIVE_DYNAMICS
    with pytest.raises(ValueError):
        SimConfig(mode="explicit", device="cpu")


@pytest.mark.parametrize(
    "overrides",
    [
        dict(air_resistance=-0.1),
        dict(air_resistance=1.5),
        dict(constant_of_restitution=2.0),
        dict(timestep=0.0),
        dict(projective_iterations=0),
        dict(multigrid_depth=0),
    ],
)
def test_invalid_values(overrides):
    with pytest.raises(ValueError):
        SimConfig(device="cpu", **overrides)


def test_default_device_is_resolved():
    config = SimConfig()
    assert config.device is not None
    assert config.wp_device is not None
