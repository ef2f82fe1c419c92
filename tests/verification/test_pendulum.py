"""
Pendulum Verification Tests.

A single revolute joint carrying an offset mass is the smallest system
that exercises every ABA pass with gravity:

    theta_dd = -m g L sin(theta) / (Ic + m L²)
"""

import numpy as np
import pytest

from arborsim.core.solver import RK4Solver
from arborsim.dynamics.joints import JointParameters

ACCEL_TOLERANCE = 1e-9  # relative, single evaluation
PERIOD_TOLERANCE = 0.01  # 1% for oscillation periods


class TestPendulumDynamics:
    """Instantaneous accelerations against the closed form."""

    @pytest.mark.parametrize("theta", [0.1, 0.4, 1.2, 2.5, -0.7])
    def test_angular_acceleration(self, make_pendulum, g, theta):
        m, L, Ic = 2.0, 1.5, 0.1
        system = make_pendulum(m=m, L=L, Ic=Ic, theta0=theta, g=g)
        system.initialize()
        dx = system.derivative(system.state_vector_init(), 0.0)

        expected = -m * g * L * np.sin(theta) / (Ic + m * L**2)
        assert dx[0] == 0.0
        assert dx[1] == pytest.approx(expected, rel=ACCEL_TOLERANCE)

    def test_rate_does_not_change_acceleration(self, make_pendulum, g):
        """A single hinge has no velocity-product terms."""
        system = make_pendulum(theta0=0.4, rate0=3.0, g=g)
        system.initialize()
        dx_moving = system.derivative(system.state_vector_init(), 0.0)
        dx_still = system.derivative(np.array([0.4, 0.0]), 0.0)
        assert dx_moving[1] == pytest.approx(dx_still[1], rel=ACCEL_TOLERANCE)
        assert dx_moving[0] == 3.0

    def test_spring_and_damping(self, make_pendulum):
        m, L, Ic = 1.0, 1.0, 0.2
        k, c, eq = 5.0, 0.5, 0.2
        params = JointParameters(spring_constant=k, damping=c, equilibrium=eq)
        system = make_pendulum(m=m, L=L, Ic=Ic, theta0=0.5, rate0=1.0, g=0.0, parameters=params)
        system.initialize()
        dx = system.derivative(system.state_vector_init(), 0.0)

        expected = (k * (eq - 0.5) - c * 1.0) / (Ic + m * L**2)
        assert dx[1] == pytest.approx(expected, rel=ACCEL_TOLERANCE)

    def test_body_acceleration_at_pivot(self, make_pendulum, g):
        """The hinge point does not move, so the body-origin linear acceleration is zero."""
        system = make_pendulum(theta0=0.9, rate0=1.0, g=g)
        system.initialize()
        system.derivative(system.state_vector_init(), 0.0)
        bob = system.body("bob")
        assert np.allclose(bob.state.acceleration.translation, 0.0, atol=1e-12)
        assert bob.state.acceleration.rotation[2] == pytest.approx(system.joint("hinge").cache.qdd[0])


class TestPendulumMotion:
    """Integrated motion against small-angle theory."""

    def test_small_angle_period(self, make_pendulum, g):
        m, L, Ic = 1.0, 1.0, 0.01
        T_analytical = 2 * np.pi * np.sqrt((Ic + m * L**2) / (m * g * L))

        system = make_pendulum(m=m, L=L, Ic=Ic, theta0=0.01, g=g)
        system.initialize()
        times, states = RK4Solver(0.001).integrate(system, system.state_vector_init(), 0.0, 5.0)

        theta = states[:, 0]
        # Downward zero crossings, linearly interpolated
        idx = np.where((theta[:-1] > 0) & (theta[1:] <= 0))[0]
        crossings = [
            times[i] + theta[i] / (theta[i] - theta[i + 1]) * (times[i + 1] - times[i])
            for i in idx
        ]
        assert len(crossings) >= 2
        T_measured = crossings[1] - crossings[0]
        assert abs(T_measured - T_analytical) / T_analytical < PERIOD_TOLERANCE

    def test_hangs_still_at_equilibrium(self, make_pendulum, g):
        system = make_pendulum(theta0=0.0, g=g)
        system.initialize()
        _, states = RK4Solver(0.01).integrate(system, system.state_vector_init(), 0.0, 2.0)
        assert np.allclose(states, 0.0, atol=1e-12)
