import numpy as np
import pytest

from arborsim.dynamics.mass_properties import MassProperties


def test_defaults():
    mp = MassProperties()
    assert mp.mass == 1.0
    assert np.allclose(mp.center_of_mass, 0.0)
    assert np.allclose(mp.inertia, np.eye(3))


def test_from_principal():
    mp = MassProperties.from_principal(2.0, 1.0, 2.0, 3.0, ixy=0.1, center_of_mass=[0, 0, 1])
    assert mp.inertia[0, 1] == pytest.approx(0.1)
    assert mp.inertia[1, 0] == pytest.approx(0.1)
    assert np.allclose(np.diag(mp.inertia), [1.0, 2.0, 3.0])


def test_parallel_axis():
    mp = MassProperties(2.0, [0.0, 0.0, 1.0], np.eye(3))
    assert np.allclose(mp.inertia_about_origin(), np.diag([3.0, 3.0, 1.0]))


@pytest.mark.parametrize("mass", [0.0, -1.0, np.nan])
def test_invalid_mass(mass):
    with pytest.raises(ValueError):
        MassProperties(mass)


def test_tiny_mass_warns():
    with pytest.warns(RuntimeWarning, match="small mass"):
        MassProperties(1e-12)


def test_inertia_must_be_positive_definite():
    with pytest.raises(ValueError, match="positive definite"):
        MassProperties(1.0, None, np.diag([1.0, 0.0, 1.0]))


def test_asymmetric_inertia_is_symmetrized():
    I = np.array([
        [1.0, 0.2, 0.0],
        [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0],
    ])
    with pytest.warns(RuntimeWarning, match="not symmetric"):
        mp = MassProperties(1.0, None, I)
    assert np.allclose(mp.inertia, mp.inertia.T)
    assert mp.inertia[0, 1] == pytest.approx(0.1)


def test_bad_center_of_mass_shape():
    with pytest.raises(ValueError):
        MassProperties(1.0, [0.0, 1.0])
