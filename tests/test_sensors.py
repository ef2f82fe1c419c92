import numpy as np
import pytest
from scipy.spatial.transform import Rotation as ScR

from arborsim.dynamics.sensors import (
    GaussianNoise,
    Gps,
    Rate3Sensor,
    RateSensor,
    Sensor,
    StarTracker,
    UniformNoise,
)
from arborsim.utils.orientation import frame_aligned_axes, frame_from_euler

RATE = [0.1, 0.2, 0.3]


@pytest.fixture
def spinning(make_free_body):
    """Free body with a fixed attitude and body rate, evaluated once."""
    def _make(sensors, attitude=None):
        system = make_free_body(angular_rate=RATE, attitude=attitude)
        for name, model, transform in sensors:
            system.add_sensor(name, model)
            system.connect(name, "sat", transform)
        system.initialize()
        system.derivative(system.state_vector_init(), 0.0)
        system.update_sensors()
        return system
    return _make


def test_rate3_identity_mount(spinning):
    system = spinning([("gyro", Rate3Sensor(), None)])
    model = system.sensor("gyro").model
    assert np.allclose(model.value, RATE)
    assert np.allclose(model.noise, 0.0)
    assert model.result_values() == pytest.approx([*RATE, 0.0, 0.0, 0.0])


def test_single_axis_rate_sensor_follows_mount(spinning):
    system = spinning([("gyro_z", RateSensor(), frame_aligned_axes("x", [0.0, 0.0, 1.0]))])
    assert system.sensor("gyro_z").model.value == pytest.approx(RATE[2])


def test_rate3_rotated_mount(spinning):
    system = spinning([("gyro", Rate3Sensor(), frame_from_euler(yaw=90))])
    # Sensor axes yawed +90 deg: body x reads on sensor -y, body y on sensor +x
    assert np.allclose(system.sensor("gyro").model.value, [0.2, -0.1, 0.3])


def test_seeded_noise_is_reproducible(spinning):
    def readings():
        system = spinning([("gyro", Rate3Sensor(GaussianNoise(0.0, 0.01, seed=7)), None)])
        return system.sensor("gyro").model.value.copy()

    first, second = readings(), readings()
    assert np.array_equal(first, second)
    assert not np.allclose(first, RATE, atol=1e-6)
    assert np.allclose(first, RATE, atol=0.1)


def test_per_axis_noise_streams_differ():
    sensor = Rate3Sensor(GaussianNoise(0.0, 1.0, seed=3))
    samples = [n.sample() for n in sensor.noise_models]
    assert len(set(samples)) == 3


def test_uniform_noise_bounds():
    noise = UniformNoise(-0.5, 0.5, seed=1)
    samples = [noise.sample() for _ in range(200)]
    assert min(samples) >= -0.5
    assert max(samples) < 0.5
    with pytest.raises(ValueError):
        UniformNoise(1.0, -1.0)


def test_gaussian_noise_rejects_negative_sigma():
    with pytest.raises(ValueError):
        GaussianNoise(sigma=-1.0)


def test_star_tracker_reports_attitude(spinning):
    q = ScR.from_rotvec([0.0, 0.0, 0.5]).as_quat()
    system = spinning([("st", StarTracker(), None)], attitude=q)
    assert np.allclose(system.sensor("st").model.measurement, q)


def test_star_tracker_includes_mount(spinning):
    q_body = ScR.from_rotvec([0.0, 0.0, 0.5])
    system = spinning([("st", StarTracker(), frame_from_euler(roll=30))], attitude=q_body.as_quat())
    expected = (q_body * ScR.from_euler("xyz", [30.0, 0.0, 0.0], degrees=True)).as_quat()
    if expected[3] < 0:
        expected = -expected
    assert np.allclose(system.sensor("st").model.measurement, expected)


def test_star_tracker_scalar_part_non_negative(spinning):
    q = ScR.from_rotvec([0.0, 0.0, 3.0]).as_quat()
    system = spinning([("st", StarTracker(), None)], attitude=-q)
    m = system.sensor("st").model.measurement
    assert m[3] >= 0.0
    assert np.allclose(np.abs(m), np.abs(q))


def test_sensor_entity_checks_model():
    with pytest.raises(TypeError):
        Sensor("bad", object())


def _gps_reading(system, transform=None, **noise):
    system.add_sensor("gps", Gps(**noise))
    system.connect("gps", "sat", transform)
    system.initialize()
    system.derivative(system.state_vector_init(), 0.0)
    system.update_sensors()
    return system.sensor("gps").model


def test_gps_reports_base_position_and_velocity(make_free_body):
    system = make_free_body(position=[1.0, 2.0, 3.0], velocity=[0.5, 0.0, 0.0])
    gps = _gps_reading(system)
    assert np.allclose(gps.position, [1.0, 2.0, 3.0])
    assert np.allclose(gps.velocity, [0.5, 0.0, 0.0])
    assert gps.result_values() == pytest.approx([1.0, 2.0, 3.0, 0.5, 0.0, 0.0])


def test_gps_includes_lever_arm(make_free_body):
    system = make_free_body(angular_rate=RATE)
    antenna = frame_from_euler(translation=[1.0, 0.0, 0.0])
    gps = _gps_reading(system, antenna)
    assert np.allclose(gps.position, [1.0, 0.0, 0.0])
    # w x r
    assert np.allclose(gps.velocity, [0.0, 0.3, -0.2])


def test_gps_noise(make_free_body):
    gps = _gps_reading(
        make_free_body(position=[10.0, 0.0, 0.0]),
        position_noise=GaussianNoise(0.0, 0.5, seed=3),
        velocity_noise=UniformNoise(-0.1, 0.1, seed=4),
    )
    assert not np.allclose(gps.position, [10.0, 0.0, 0.0])
    assert np.allclose(gps.position, [10.0, 0.0, 0.0], atol=5.0)
    assert np.all(np.abs(gps.velocity) <= 0.1)
