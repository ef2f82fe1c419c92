import numpy as np
import pytest

from arborsim.core.solver import RK4Solver, rk4_step, solve_fixed_rk4, step_times
from arborsim.errors import NumericalError, SimulationError
from arborsim.logger import ResultLogger


def _decay(dx, x, t):
    dx[:] = -x


def test_rk4_step_scalar_decay():
    dt = 0.1
    x1 = rk4_step(_decay, np.array([1.0]), 0.0, dt)
    # RK4 reproduces the Taylor series of exp(-dt) through dt^4
    expected = 1 - dt + dt**2 / 2 - dt**3 / 6 + dt**4 / 24
    assert x1[0] == pytest.approx(expected, abs=1e-15)


def test_rk4_step_uses_supplied_first_stage():
    calls = []

    def f(dx, x, t):
        calls.append(t)
        dx[:] = 1.0

    rk4_step(f, np.zeros(1), 0.0, 0.2, k1=np.ones(1))
    assert calls == pytest.approx([0.1, 0.1, 0.2])


def test_step_times_divisible():
    times = step_times(0.0, 1.0, 0.25)
    assert np.allclose(times, [0.0, 0.25, 0.5, 0.75, 1.0])


def test_step_times_shortens_last_step():
    times = step_times(0.0, 1.0, 0.3)
    assert len(times) == 5
    assert times[-1] == 1.0
    assert times[-1] - times[-2] == pytest.approx(0.1)


def test_step_times_empty_span():
    assert np.array_equal(step_times(2.0, 2.0, 0.1), [2.0])


def test_invalid_arguments():
    with pytest.raises(ValueError):
        RK4Solver(0.0)
    with pytest.raises(ValueError):
        RK4Solver(-0.1)
    with pytest.raises(ValueError):
        step_times(1.0, 0.0, 0.1)


def test_large_step_warns():
    with pytest.warns(RuntimeWarning, match="Large timestep"):
        RK4Solver(2.0)


def test_integrate_records_every_output(make_pendulum):
    system = make_pendulum()
    system.initialize()
    seen = []
    times, states = RK4Solver(0.01).integrate(
        system, system.state_vector_init(), 0.0, 0.1,
        on_step=lambda k, t, x: seen.append((k, t, system.t)),
    )
    assert times.shape == (11,)
    assert states.shape == (11, 2)
    assert [k for k, _, _ in seen] == list(range(11))
    # Callback sees the system evaluated at the output time
    assert all(t == pytest.approx(st) for _, t, st in seen)
    assert states[0, 0] == pytest.approx(0.4)


def test_integrate_normalizes_quaternion(make_free_body):
    system = make_free_body(angular_rate=[0.3, 2.0, -1.0])
    system.initialize()
    _, states = RK4Solver(0.05).integrate(system, system.state_vector_init(), 0.0, 2.0)
    norms = np.linalg.norm(states[:, 0:4], axis=1)
    assert np.allclose(norms, 1.0, atol=1e-12)


def test_step_advances_state(make_pendulum):
    system = make_pendulum(theta0=0.4)
    system.initialize()
    x1 = RK4Solver(0.01).step(system, system.state_vector_init(), 0.0)
    assert x1[0] < 0.4
    assert x1[1] < 0.0


def test_failure_is_reported_with_step_and_time(make_free_body):
    system = make_free_body()
    system.set_gravity_two_body(1.0)
    system.initialize()
    with pytest.raises(SimulationError) as exc:
        RK4Solver(0.01).integrate(system, system.state_vector_init(), 0.0, 1.0)
    assert exc.value.step == 0
    assert exc.value.t == 0.0
    assert isinstance(exc.value.cause, NumericalError)


def test_solve_fixed_rk4_logs_and_flushes(make_pendulum, tmp_path):
    system = make_pendulum()
    with ResultLogger(tmp_path, buffer_size=1000) as logger:
        times, states = solve_fixed_rk4(system, 0.0, 0.05, 0.01, logger=logger)
        lines = (tmp_path / "joints.csv").read_text().splitlines()
        assert len(lines) == 1 + len(times)
    assert states.shape == (6, 2)


def test_solve_fixed_rk4_flushes_partial_results(make_pendulum, tmp_path):
    system = make_pendulum()
    system.set_gravity(_FailsAfter(0.0295))
    with ResultLogger(tmp_path) as logger:
        with pytest.raises(SimulationError) as exc:
            solve_fixed_rk4(system, 0.0, 1.0, 0.01, logger=logger)
        lines = (tmp_path / "joints.csv").read_text().splitlines()
    assert exc.value.step == 2
    assert len(lines) == 1 + 3


def test_failure_carries_recorded_times_and_states(make_pendulum):
    system = make_pendulum(theta0=0.4)
    system.set_gravity(_FailsAfter(0.0295))
    system.initialize()
    x0 = system.state_vector_init()
    with pytest.raises(SimulationError) as exc:
        RK4Solver(0.01).integrate(system, x0, 0.0, 1.0)
    assert np.allclose(exc.value.times, [0.0, 0.01, 0.02])
    assert exc.value.states.shape == (3, 2)
    assert np.allclose(exc.value.states[0], x0)


class _FailsAfter:
    """Gravity field that becomes unavailable after a given time."""
    def __init__(self, t_fail):
        self.t_fail = t_fail

    def acceleration(self, position, t=0.0):
        if t >= self.t_fail:
            raise NumericalError("gravity field unavailable")
        return np.zeros(3)
