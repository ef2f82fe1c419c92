from .aba import articulated_body_algorithm
from .system import MultibodySystem
from .solver import RK4Solver, solve_fixed_rk4
from .simulation import SimOptions, Simulation, SimulationResult, simulate
