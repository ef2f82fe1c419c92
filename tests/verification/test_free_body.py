"""
Free Body Verification Tests.

A body on a floating joint with no other connections:
- Under uniform gravity its center of mass accelerates at exactly g and it
  does not start to rotate, wherever the center of mass is.
- Without external loads its energy and angular momentum are conserved.
"""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation as ScR

from arborsim.core.solver import RK4Solver
from arborsim.dynamics.mass_properties import MassProperties

ACCEL_TOLERANCE = 1e-9
ENERGY_TOLERANCE = 1e-6  # relative drift over a run


class TestFreeFall:

    def test_offset_com_accelerates_at_g(self, make_free_body, g):
        mp = MassProperties(3.0, [0.3, -0.1, 0.2], np.diag([0.5, 0.7, 0.9]))
        system = make_free_body(mp)
        system.set_gravity_constant([0.0, 0.0, -g])
        system.initialize()
        dx = system.derivative(system.state_vector_init(), 0.0)

        assert np.allclose(dx[7:10], 0.0, atol=ACCEL_TOLERANCE)
        assert np.allclose(dx[10:13], [0.0, 0.0, -g], atol=ACCEL_TOLERANCE)

    def test_rotated_body_sees_gravity_in_its_frame(self, make_free_body, g):
        R = ScR.from_euler("xyz", [90.0, 0.0, 30.0], degrees=True)
        system = make_free_body(MassProperties(2.0, [0.0, 0.5, 0.0]), attitude=R.as_quat())
        system.set_gravity_constant([0.0, 0.0, -g])
        system.initialize()
        dx = system.derivative(system.state_vector_init(), 0.0)

        g_body = R.as_matrix().T @ [0.0, 0.0, -g]
        assert np.allclose(dx[7:10], 0.0, atol=ACCEL_TOLERANCE)
        assert np.allclose(dx[10:13], g_body, atol=ACCEL_TOLERANCE)

    def test_trajectory_is_parabolic(self, make_free_body, g):
        mp = MassProperties(1.0, [0.2, 0.0, 0.0])
        system = make_free_body(mp, velocity=[1.0, 0.0, 2.0])
        system.set_gravity_constant([0.0, 0.0, -g])
        system.initialize()
        times, states = RK4Solver(0.01).integrate(system, system.state_vector_init(), 0.0, 1.0)

        t = times[-1]
        expected = np.array([1.0 * t, 0.0, 2.0 * t - 0.5 * g * t**2])
        assert np.allclose(states[-1, 4:7], expected, atol=1e-9)
        assert np.allclose(states[-1, 0:4], [0.0, 0.0, 0.0, 1.0], atol=1e-12)


class TestTorqueFreeRotation:

    def test_principal_axis_spin_is_steady(self, make_free_body):
        system = make_free_body(MassProperties(1.0, None, np.diag([1.0, 2.0, 3.0])),
                                angular_rate=[0.0, 0.0, 2.0])
        system.initialize()
        _, states = RK4Solver(0.01).integrate(system, system.state_vector_init(), 0.0, 2.0)
        assert np.allclose(states[:, 7:10], [0.0, 0.0, 2.0], atol=1e-12)

    def test_energy_and_momentum_conserved(self, make_free_body):
        I = np.diag([1.0, 2.0, 3.0])
        system = make_free_body(MassProperties(1.0, None, I), angular_rate=[0.5, 0.05, 0.3])
        system.initialize()
        times, states = RK4Solver(0.001).integrate(system, system.state_vector_init(), 0.0, 5.0)

        def momentum_base(x):
            return ScR.from_quat(x[0:4]).as_matrix() @ (I @ x[7:10])

        def energy(x):
            return 0.5 * x[7:10] @ I @ x[7:10]

        E0, E1 = energy(states[0]), energy(states[-1])
        assert abs(E1 - E0) / E0 < ENERGY_TOLERANCE
        assert np.allclose(momentum_base(states[-1]), momentum_base(states[0]), atol=1e-6)
        # Body rates do change: the spin is about no principal axis
        assert not np.allclose(states[-1, 7:10], states[0, 7:10], atol=1e-3)
