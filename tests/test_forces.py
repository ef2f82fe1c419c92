import numpy as np
import pytest
from scipy.spatial.transform import Rotation as ScR

from arborsim.dynamics.body import Body
from arborsim.dynamics.forces import (
    BodyForce,
    CelestialGravity,
    ConstantGravity,
    NewtonianGravity,
    TwoBodyGravity,
    apply_gravity,
)
from arborsim.dynamics.mass_properties import MassProperties
from arborsim.errors import NumericalError


@pytest.fixture
def body():
    return Body("block", MassProperties(2.0, [0.5, 0.0, 0.0]))


def test_constant_gravity():
    g = ConstantGravity([0.0, 0.0, -9.81])
    a = g.acceleration(np.array([1.0, 2.0, 3.0]), 0.0)
    assert np.allclose(a, [0.0, 0.0, -9.81])
    a[2] = 0.0
    assert g.g[2] == -9.81
    assert g.potential(np.array([0.0, 0.0, 10.0])) == pytest.approx(98.1)


def test_constant_gravity_rejects_bad_vector():
    with pytest.raises(ValueError):
        ConstantGravity([0.0, -9.81])


def test_two_body_gravity_inverse_square():
    mu, r = 3.986004418e14, 7.0e6
    g = TwoBodyGravity(mu)
    a = g.acceleration(np.array([r, 0.0, 0.0]))
    assert np.allclose(a, [-mu / r**2, 0.0, 0.0])
    with pytest.raises(ValueError):
        TwoBodyGravity(-1.0)


def test_point_mass_singular_center():
    with pytest.raises(NumericalError):
        TwoBodyGravity(1.0).acceleration(np.zeros(3))


def test_point_mass_close_approach_warns():
    with pytest.warns(RuntimeWarning, match="from its center"):
        TwoBodyGravity(1.0).acceleration(np.array([0.01, 0.0, 0.0]))


def test_newtonian_superposition_cancels_at_midpoint():
    g = NewtonianGravity([(5.0, [-1.0, 0.0, 0.0]), (5.0, [1.0, 0.0, 0.0])])
    assert np.allclose(g.acceleration(np.zeros(3)), 0.0)
    a = g.acceleration(np.array([0.0, 2.0, 0.0]))
    assert a[0] == pytest.approx(0.0)
    assert a[1] < 0.0
    with pytest.raises(ValueError):
        NewtonianGravity([])


def test_celestial_gravity_passes_epoch():
    calls = []

    def model(position, epoch):
        calls.append(epoch)
        return -position

    g = CelestialGravity(model, epoch=100.0)
    assert np.allclose(g.acceleration(np.array([1.0, 0.0, 0.0]), 2.5), [-1.0, 0.0, 0.0])
    assert calls == [102.5]


def test_celestial_gravity_checks_output():
    with pytest.raises(TypeError):
        CelestialGravity("not callable")
    g = CelestialGravity(lambda p, e: np.zeros(2))
    with pytest.raises(ValueError):
        g.acceleration(np.zeros(3))


def test_body_force_at_point(body):
    BodyForce([0.0, 1.0, 0.0], point=[1.0, 0.0, 0.0]).apply(body, 0.0)
    f = body.state.external_force
    assert np.allclose(f.translation, [0.0, 1.0, 0.0])
    assert np.allclose(f.rotation, [0.0, 0.0, 1.0])


def test_body_force_callable_and_torque(body):
    load = BodyForce(lambda t, b: [t, 0.0, 0.0], torque=[0.0, 0.0, 2.0])
    load.apply(body, 3.0)
    f = body.state.external_force
    assert np.allclose(f.translation, [3.0, 0.0, 0.0])
    assert np.allclose(f.rotation, [0.0, 0.0, 2.0])


def test_loads_accumulate_until_cleared(body):
    load = BodyForce([1.0, 0.0, 0.0])
    load.apply(body)
    load.apply(body)
    assert np.allclose(body.state.external_force.translation, [2.0, 0.0, 0.0])
    body.clear_forces()
    assert np.allclose(body.state.external_force.to_array(), 0.0)


def test_gravity_applied_at_center_of_mass(body):
    apply_gravity(body, ConstantGravity([0.0, 0.0, -10.0]), 0.0)
    f = body.state.external_force
    assert np.allclose(f.translation, [0.0, 0.0, -20.0])
    assert np.allclose(f.rotation, np.cross([0.5, 0.0, 0.0], [0.0, 0.0, -20.0]))
    assert np.allclose(body.state.gravity_force, [0.0, 0.0, -20.0])


def test_gravity_rotated_into_body_frame(body):
    # Body yawed 90 deg: base -z stays -z, but a base +x field appears along body -y
    body.state.attitude_base = ScR.from_rotvec([0.0, 0.0, np.pi / 2]).as_quat()
    apply_gravity(body, ConstantGravity([1.0, 0.0, 0.0]), 0.0)
    assert np.allclose(body.state.gravity_force, [0.0, -2.0, 0.0])


def test_two_body_gravity_evaluated_at_center_of_mass(body):
    body.state.position_base = np.array([9.5, 0.0, 0.0])
    apply_gravity(body, TwoBodyGravity(100.0), 0.0)
    # Center of mass sits at x = 10
    assert np.allclose(body.state.gravity_force, [-2.0 * 100.0 / 100.0, 0.0, 0.0])
