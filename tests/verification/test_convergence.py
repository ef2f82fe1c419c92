"""
Integrator Convergence Verification Tests.

Classical RK4 has global error O(dt^4): halving the step should divide the
error by about 16.
"""

import numpy as np

from arborsim.core.solver import RK4Solver


def _final_state(system, tstop, dt):
    system.initialize()
    times, states = RK4Solver(dt).integrate(system, system.state_vector_init(), 0.0, tstop)
    return times[-1], states[-1]


class TestConvergenceOrder:

    def test_harmonic_oscillator(self, make_oscillator):
        m, k, x0, tstop = 1.0, 4.0, 0.5, 2.0
        omega = np.sqrt(k / m)

        errors = []
        for dt in (0.1, 0.05, 0.025):
            t, x = _final_state(make_oscillator(m, k, x0), tstop, dt)
            errors.append(abs(x[0] - x0 * np.cos(omega * t)))

        orders = np.log2(np.array(errors[:-1]) / np.array(errors[1:]))
        assert np.all(orders > 3.7), f"Observed orders {orders}"
        assert np.all(orders < 4.3), f"Observed orders {orders}"

    def test_nonlinear_pendulum(self, make_pendulum):
        _, ref = _final_state(make_pendulum(theta0=1.0), 1.0, 0.0025)
        _, coarse = _final_state(make_pendulum(theta0=1.0), 1.0, 0.04)
        _, fine = _final_state(make_pendulum(theta0=1.0), 1.0, 0.02)

        ratio = np.linalg.norm(coarse - ref) / np.linalg.norm(fine - ref)
        assert 12.0 < ratio < 20.0, f"Error ratio {ratio:.2f}"
