from __future__ import annotations

from typing import Callable

import numpy as np

from arborsim.errors import MultibodyError, SimulationError
from arborsim.utils.validation import validate_time_span, validate_timestep

Array = np.ndarray

# Fraction of dt below which a leftover final step is dropped
MIN_STEP_FRACTION = 1e-9


def rk4_step(f: Callable[[Array, Array, float], None], x: Array, t: float, dt: float,
             k1: Array | None = None) -> Array:
    """
    One classical Runge-Kutta step.

    ``f(dx, x, t)`` writes the derivative into ``dx``. Pass ``k1`` when the
    first stage was already evaluated at (x, t).

      k1 = f(x, t)
      k2 = f(x + dt/2 k1, t + dt/2)
      k3 = f(x + dt/2 k2, t + dt/2)
      k4 = f(x + dt k3, t + dt)
      x+ = x + dt/6 (k1 + 2 k2 + 2 k3 + k4)
    """
    if k1 is None:
        k1 = np.zeros_like(x)
        f(k1, x, t)
    k2 = np.zeros_like(x)
    k3 = np.zeros_like(x)
    k4 = np.zeros_like(x)
    half = 0.5 * dt
    f(k2, x + half * k1, t + half)
    f(k3, x + half * k2, t + half)
    f(k4, x + dt * k3, t + dt)
    return x + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


def step_times(tstart: float, tstop: float, dt: float) -> Array:
    """
    Output times from tstart to tstop with spacing dt.

    The last interval is shortened so the final time is exactly tstop.
    """
    validate_time_span(tstart, tstop)
    span = tstop - tstart
    n = int(np.floor(span / dt + MIN_STEP_FRACTION))
    times = tstart + dt * np.arange(n + 1, dtype=np.float64)
    if tstop - times[-1] > MIN_STEP_FRACTION * dt:
        times = np.append(times, tstop)
    else:
        times[-1] = tstop
    return times


class RK4Solver:
    """
    Fixed-step classical RK4 driver for a :class:`MultibodySystem`.

    Parameters
    ----------
    dt : float
        Nominal time step [s]. Must be positive.
    max_dt : float
        Steps above this trigger a stability warning [s]

    Notes
    -----
    Actuators are updated at the start of every step and their loads are held
    over its four ``system.run`` evaluations. After the first stage the system
    holds the state at the step start, so sensors are updated and the
    ``on_step`` callback is invoked there. Commands set in the callback apply
    from the next step. Quaternion parts of the state are renormalized after
    every step.
    """
    def __init__(self, dt: float, max_dt: float = 1.0) -> None:
        validate_timestep(dt, max_dt)
        self.dt = float(dt)

    def step(self, system, x: Array, t: float, dt: float | None = None) -> Array:
        """Advance one step and return the new (normalized) state."""
        h = self.dt if dt is None else float(dt)
        system.update_actuators(x, t)
        x_new = rk4_step(system.run, x, t, h)
        system.normalize_state(x_new)
        return x_new

    def integrate(
        self,
        system,
        x0: Array,
        tstart: float,
        tstop: float,
        on_step: Callable[[int, float, Array], None] | None = None,
    ) -> tuple[Array, Array]:
        """
        Integrate from tstart to tstop.

        Parameters
        ----------
        system : MultibodySystem
            Initialized system
        x0 : Array
            Initial state
        tstart, tstop : float
            Integration interval [s]
        on_step : Callable[[int, float, Array], None] | None
            Called as ``on_step(k, t, x)`` at every output time, including
            tstart and tstop, with the system evaluated at (x, t).

        Returns
        -------
        tuple[Array, Array]
            Output times (N,) and states (N, n_states)

        Raises
        ------
        SimulationError
            Wrapping any MultibodyError raised during a step
        """
        times = step_times(tstart, tstop, self.dt)
        x = np.array(x0, dtype=np.float64)
        system.normalize_state(x)
        states = np.zeros((len(times), x.size), dtype=np.float64)

        n_recorded = 0
        for k, t in enumerate(times):
            try:
                system.update_actuators(x, t)
                k1 = np.zeros_like(x)
                system.run(k1, x, t)
                system.update_sensors()
                states[k] = x
                n_recorded = k + 1
                if on_step is not None:
                    on_step(k, t, x)
                if k + 1 < len(times):
                    x = rk4_step(system.run, x, t, times[k + 1] - t, k1=k1)
                    system.normalize_state(x)
            except MultibodyError as e:
                raise SimulationError(
                    k, float(t), e,
                    times=times[:n_recorded].copy(),
                    states=states[:n_recorded].copy(),
                ) from e

        return times, states


def solve_fixed_rk4(
    system,
    tstart: float,
    tstop: float,
    dt: float,
    logger=None,
    x0: Array | None = None,
) -> tuple[Array, Array]:
    """
    Initialize ``system`` and integrate it with fixed-step RK4.

    Parameters
    ----------
    system : MultibodySystem
        Assembled system. Validated and reordered here.
    tstart, tstop : float
        Integration interval [s]
    dt : float
        Step size [s]
    logger : ResultLogger | None
        Receives one row per output time. Flushed even if a step fails.
    x0 : Array | None
        Initial state. Defaults to the state held by the joint models.

    Returns
    -------
    tuple[Array, Array]
        Output times (N,) and states (N, n_states)
    """
    solver = RK4Solver(dt)
    system.initialize()
    if x0 is None:
        x0 = system.state_vector_init()

    on_step = None
    if logger is not None:
        def on_step(k: int, t: float, x: Array) -> None:
            logger.log(system)

    try:
        return solver.integrate(system, x0, tstart, tstop, on_step)
    finally:
        if logger is not None:
            logger.flush()
