"""
ArborSim - Tree-structured multibody dynamics in reduced coordinates.

Core Components
---------------
MultibodySystem : Bodies, joints, sensors and actuators assembled into a kinematic tree
RK4Solver : Fixed-step fourth-order Runge-Kutta integrator
Simulation : Run orchestrator with CSV logging and plots

Joint Models
------------
Revolute : One rotational degree of freedom
Prismatic : One translational degree of freedom
Floating : Six degrees of freedom, quaternion attitude

Examples
--------
>>> from arborsim import MultibodySystem, Revolute, MassProperties, simulate
>>> system = MultibodySystem("pendulum")
>>> system.add_body("bob", MassProperties(1.0, [0, -1, 0]))
>>> system.add_joint("hinge", Revolute(angle=0.3))
>>> system.connect("base", "hinge")
>>> system.connect("hinge", "bob")
>>> system.set_gravity_constant([0, -9.81, 0])
>>> result = simulate(system, 0.0, 5.0, 0.001)
"""

__version__ = "0.1.0"

# Core simulation classes
from arborsim.core.simulation import SimOptions, Simulation, SimulationResult, simulate
from arborsim.core.solver import RK4Solver, solve_fixed_rk4
from arborsim.core.system import MultibodySystem

# Entities
from arborsim.dynamics.body import Base, Body
from arborsim.dynamics.joints import Floating, Joint, JointParameters, Prismatic, Revolute
from arborsim.dynamics.mass_properties import MassProperties

# Spatial algebra
from arborsim.dynamics.spatial import (
    Acceleration,
    Force,
    Momentum,
    SpatialInertia,
    SpatialTransform,
    Velocity,
)

# Forces
from arborsim.dynamics.forces import (
    BodyForce,
    CelestialGravity,
    ConstantGravity,
    NewtonianGravity,
    TwoBodyGravity,
)

# Sensors
from arborsim.dynamics.sensors import (
    GaussianNoise,
    Gps,
    Rate3Sensor,
    RateSensor,
    Sensor,
    StarTracker,
    UniformNoise,
)

# Actuators
from arborsim.dynamics.actuators import Actuator, ActuatorModel, ReactionWheel, Thruster

# Errors
from arborsim.errors import MultibodyError, NumericalError, SimulationError

# Logging
from arborsim.logger import ResultLogger

__all__ = [
    # Version
    "__version__",
    # Core
    "MultibodySystem",
    "RK4Solver",
    "solve_fixed_rk4",
    "Simulation",
    "SimOptions",
    "SimulationResult",
    "simulate",
    # Entities
    "Base",
    "Body",
    "Joint",
    "JointParameters",
    "Revolute",
    "Prismatic",
    "Floating",
    "MassProperties",
    # Spatial algebra
    "SpatialTransform",
    "SpatialInertia",
    "Velocity",
    "Acceleration",
    "Momentum",
    "Force",
    # Forces
    "ConstantGravity",
    "TwoBodyGravity",
    "NewtonianGravity",
    "CelestialGravity",
    "BodyForce",
    # Sensors
    "Sensor",
    "RateSensor",
    "Rate3Sensor",
    "StarTracker",
    "Gps",
    "GaussianNoise",
    "UniformNoise",
    # Actuators
    "Actuator",
    "ActuatorModel",
    "Thruster",
    "ReactionWheel",
    # Errors
    "MultibodyError",
    "NumericalError",
    "SimulationError",
    # Logging
    "ResultLogger",
]
