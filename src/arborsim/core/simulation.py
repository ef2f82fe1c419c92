"""
Simulation orchestrator for multibody systems.

Validates and initializes the system, drives the fixed-step integrator,
keeps results in memory and optionally writes them to an organized output
directory.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from arborsim.core.solver import RK4Solver
from arborsim.core.system import MultibodySystem
from arborsim.errors import SimulationError
from arborsim.logger import CATEGORIES, ResultLogger, result_headers, result_values
from arborsim.utils.validation import validate_name, validate_time_span, validate_timestep

# Default output directory
DEFAULT_OUTPUT_DIR = Path("output")

SOLVER_PRESETS = {
    "default": {"dt": 0.01},
    "fast": {"dt": 0.05},
    "accurate": {"dt": 0.001},
}


class SimOptions:
    """
    Time span and step size of a run.

    Parameters
    ----------
    tstart : float
        Start time [s]
    tstop : float
        Stop time [s]. Must not be before tstart.
    dt : float
        Fixed step [s]. Must be positive.
    name : str
        Simulation name, used for the output folder

    Raises
    ------
    ValueError
        If the time span or step is invalid
    """
    __slots__ = ("tstart", "tstop", "dt", "name")

    def __init__(self, tstart: float = 0.0, tstop: float = 10.0, dt: float = 0.01,
                 name: str = "simulation") -> None:
        validate_time_span(tstart, tstop)
        validate_timestep(dt)
        validate_name(name, "Simulation")
        self.tstart = float(tstart)
        self.tstop = float(tstop)
        self.dt = float(dt)
        self.name = name

    @classmethod
    def from_preset(cls, preset: str = "default", tstart: float = 0.0, tstop: float = 10.0,
                    name: str = "simulation", **overrides) -> SimOptions:
        """
        Options from a named preset, with keyword overrides.

        Presets: 'default' (dt=0.01), 'fast' (dt=0.05), 'accurate' (dt=0.001)
        """
        if preset not in SOLVER_PRESETS:
            raise ValueError(f"Unknown preset '{preset}'. Available: {list(SOLVER_PRESETS)}")
        params = dict(SOLVER_PRESETS[preset])
        params.update(overrides)
        return cls(tstart=tstart, tstop=tstop, name=name, **params)


class SimulationResult:
    """
    In-memory results of a run.

    Attributes
    ----------
    t : NDArray[np.float64]
        Output times (N,)
    states : NDArray[np.float64]
        Generalized state at each output time (N, n_states)
    columns : dict[str, list[str]]
        Column names per category (first is 't')
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.t = np.zeros(0, dtype=np.float64)
        self.states = np.zeros((0, 0), dtype=np.float64)
        self.columns: dict[str, list[str]] = {}
        self._rows: dict[str, list[list[float]]] = {}

    def record(self, system: MultibodySystem) -> None:
        if not self.columns:
            for category in CATEGORIES:
                self.columns[category] = result_headers(system, category)
                self._rows[category] = []
        for category in CATEGORIES:
            self._rows[category].append([system.t, *result_values(system, category)])

    def to_dataframe(self, category: str = "joints") -> pd.DataFrame:
        """
        Results of one category as a DataFrame indexed by row.

        Parameters
        ----------
        category : str
            'bodies', 'joints', 'sensors' or 'actuators'
        """
        if category not in CATEGORIES:
            raise ValueError(f"Unknown category '{category}'. Valid options: {CATEGORIES}")
        if category not in self.columns:
            raise RuntimeError("No results recorded yet.")
        return pd.DataFrame(self._rows[category], columns=self.columns[category])

    def joint_state(self, system: MultibodySystem, joint_name: str) -> NDArray[np.float64]:
        """State history of one joint (N, state_size)."""
        return self.states[:, system.joint_slice(joint_name)]


class Simulation:
    """
    Runs a :class:`MultibodySystem` over a fixed time span.

    Parameters
    ----------
    system : MultibodySystem
        Assembled system. Validated and initialized by :meth:`run`.
    options : SimOptions | None
        Time span and step. Defaults to ``SimOptions()``.
    output_dir : Path | str | None
        Base directory for outputs. Defaults to "./output".
        Final structure: output_dir/name_timestamp/logs/ and /plots/
    auto_timestamp : bool
        Append a timestamp to the output folder name
    auto_save_plots : bool
        Generate plots after the run when logging is enabled

    Examples
    --------
    >>> sim = Simulation(system, SimOptions(0.0, 10.0, 0.01, name="pendulum"))
    >>> sim.enable_logging()
    >>> result = sim.run()
    >>> result.to_dataframe("joints").head()
    """

    def __init__(
        self,
        system: MultibodySystem,
        options: SimOptions | None = None,
        output_dir: Path | str | None = None,
        auto_timestamp: bool = True,
        auto_save_plots: bool = False,
    ) -> None:
        self.system = system
        self.options = options if options is not None else SimOptions()
        self._output_dir = Path(output_dir) if output_dir else DEFAULT_OUTPUT_DIR
        self._auto_timestamp = auto_timestamp
        self._auto_save_plots = auto_save_plots
        self.output_path: Path | None = None
        self.logger: ResultLogger | None = None
        self.result: SimulationResult | None = None

    def enable_logging(self, name: str | None = None) -> Path:
        """
        Create the output directory structure and a CSV logger.

        Creates::

            output/name_timestamp/
                logs/    bodies.csv, joints.csv, sensors.csv, actuators.csv
                plots/

        Returns
        -------
        Path
            The created simulation output directory
        """
        if name is not None:
            validate_name(name, "Simulation")
            self.options.name = name

        if self._auto_timestamp:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            folder_name = f"{self.options.name}_{timestamp}"
        else:
            folder_name = self.options.name

        self.output_path = self._output_dir / folder_name
        logs_dir = self.output_path / "logs"
        plots_dir = self.output_path / "plots"
        logs_dir.mkdir(parents=True, exist_ok=True)
        plots_dir.mkdir(parents=True, exist_ok=True)

        self.logger = ResultLogger(logs_dir)

        print(f"[Simulation] Logging enabled: {self.output_path}")
        print(f"             Logs: {logs_dir}")
        print(f"             Plots: {plots_dir}")

        return self.output_path

    def disable_logging(self) -> None:
        if self.logger is not None:
            self.logger.close()
            self.logger = None
            print("[Simulation] Logging disabled")

    def run(self, x0: NDArray[np.float64] | None = None, log_interval: float = 1.0) -> SimulationResult:
        """
        Validate, initialize and integrate the system.

        Parameters
        ----------
        x0 : NDArray[np.float64] | None
            Initial state. Defaults to the state held by the joint models.
        log_interval : float
            Interval [s] for printing progress. Set <= 0 to disable.

        Returns
        -------
        SimulationResult

        Raises
        ------
        MultibodyError
            Assembly errors, before any integration
        SimulationError
            Numerical failure during integration. Times, states and records up
            to the failing step are kept in ``self.result`` and flushed to the
            log files.

        Notes
        -----
        Running again with logging enabled rewrites the log files from the
        start, so they only ever hold the latest run.
        """
        opts = self.options
        system = self.system
        system.initialize()
        if x0 is None:
            x0 = system.state_vector_init()

        if self.logger is not None and self.logger.started:
            print("[Simulation] Overwriting logs from the previous run")
            self.logger.reset()

        result = SimulationResult(opts.name)
        self.result = result
        solver = RK4Solver(opts.dt)
        last_print = [opts.tstart]

        def on_step(k: int, t: float, x: NDArray[np.float64]) -> None:
            result.record(system)
            if self.logger is not None:
                self.logger.log(system)
            if log_interval > 0 and (t - last_print[0]) >= log_interval:
                print(f"[Simulation] t={t:8.3f}s | step {k}")
                last_print[0] = t

        print(
            f"[Simulation] Starting '{opts.name}': {len(system.joints)} joints, "
            f"{len(system.bodies)} bodies, t=[{opts.tstart}, {opts.tstop}]s, dt={opts.dt}s"
        )
        try:
            times, states = solver.integrate(system, x0, opts.tstart, opts.tstop, on_step)
            result.t = times
            result.states = states
            print(f"[Simulation] Completed at t={opts.tstop:.6f}s ({len(times)} records)")
        except SimulationError as e:
            if e.times is not None:
                result.t = e.times
                result.states = e.states
            print(f"[Simulation] Failed at t={e.t:.6f}s ({len(result.t)} records kept)")
            raise
        finally:
            if self.logger is not None:
                self.logger.flush()
            if self._auto_save_plots and self.logger is not None:
                print("[Simulation] Auto-generating plots...")
                self.save_plots()

        return result

    def save_plots(self, joints: list[str] | None = None, bodies: list[str] | None = None,
                   show: bool = False) -> None:
        """
        Generate and save joint state and body trajectory plots from the logs.

        Raises
        ------
        RuntimeError
            If logging is not enabled or nothing was logged yet
        """
        if self.logger is None or self.output_path is None:
            raise RuntimeError(
                "Logging must be enabled to save plots. Call enable_logging() first."
            )

        import matplotlib.pyplot as plt

        from arborsim.visualization.plotting import plot_body_trajectory, plot_joint_states

        self.logger.flush()
        logs_dir = self.output_path / "logs"
        plots_dir = self.output_path / "plots"
        joints_csv = logs_dir / "joints.csv"
        bodies_csv = logs_dir / "bodies.csv"
        if not joints_csv.exists():
            raise RuntimeError(
                f"No log file found at {joints_csv}. Has the simulation been run yet?"
            )

        if joints is None:
            joints = [j.name for j in self.system.joints]
        if bodies is None:
            bodies = [b.name for b in self.system.bodies]

        for name in joints:
            fig = plot_joint_states(str(joints_csv), name,
                                    save_path=str(plots_dir / f"{name}_states.png"), show=show)
            plt.close(fig)
        for name in bodies:
            fig = plot_body_trajectory(str(bodies_csv), name,
                                       save_path=str(plots_dir / f"{name}_trajectory.png"), show=show)
            plt.close(fig)

        print(f"[Simulation] Plots saved to: {plots_dir}")


def simulate(
    system: MultibodySystem,
    tstart: float = 0.0,
    tstop: float = 10.0,
    dt: float = 0.01,
    name: str | None = None,
    output_dir: Path | str | None = None,
) -> SimulationResult:
    """
    Run a system with logging when ``name`` is given.

    Examples
    --------
    >>> result = simulate(system, 0.0, 5.0, 0.001)
    """
    options = SimOptions(tstart, tstop, dt, name or system.name)
    sim = Simulation(system, options, output_dir=output_dir)
    if name is not None:
        sim.enable_logging()
    try:
        return sim.run(log_interval=0.0)
    finally:
        sim.disable_logging()
