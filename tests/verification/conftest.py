"""
Verification Test Suite for ArborSim.

These tests compare simulation results against analytical solutions
to validate the dynamics implementation.

Test Categories:
- Pendulum: instantaneous angular acceleration, small-angle period
- Free body: offset center of mass under uniform gravity, torque-free spin
- Energy: conservation for conservative chains and rotated-mount trees
- Convergence: fourth-order global error of the RK4 driver

References:
- Featherstone, R. (2008). Rigid Body Dynamics Algorithms. Springer.
"""

import numpy as np
import pytest

from arborsim.core.solver import RK4Solver
from arborsim.core.system import MultibodySystem
from arborsim.dynamics.joints import JointParameters, Prismatic, Revolute
from arborsim.dynamics.mass_properties import MassProperties
from arborsim.dynamics.spatial import SpatialTransform


# -----------------------------------------------------------------------------
# Common Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def g():
    """Standard gravity magnitude."""
    return 9.81


@pytest.fixture
def make_double_pendulum():
    """Two links hinged about +Z, each with its mass a distance L below its hinge."""
    def _make(m1=1.0, m2=1.0, L1=1.0, L2=1.0, theta1=0.5, theta2=0.3, Ic=0.01, g=9.81):
        system = MultibodySystem("double_pendulum")
        system.add_body("link1", MassProperties(m1, [0.0, -L1, 0.0], Ic * np.eye(3)))
        system.add_body("link2", MassProperties(m2, [0.0, -L2, 0.0], Ic * np.eye(3)))
        system.add_joint("shoulder", Revolute(angle=theta1))
        system.add_joint("elbow", Revolute(angle=theta2))
        system.connect("base", "shoulder")
        system.connect("shoulder", "link1")
        system.connect("link1", "elbow", SpatialTransform.from_translation([0.0, -L1, 0.0]))
        system.connect("elbow", "link2")
        system.set_gravity_constant([0.0, -g, 0.0])
        return system
    return _make


@pytest.fixture
def make_oscillator():
    """Mass on a prismatic spring, no gravity: x(t) = x0 cos(sqrt(k/m) t)."""
    def _make(m=1.0, k=4.0, x0=0.5):
        system = MultibodySystem("oscillator")
        system.add_body("mass", MassProperties(m))
        system.add_joint("spring", Prismatic(position=x0,
                                             parameters=JointParameters(spring_constant=k)))
        system.connect("base", "spring")
        system.connect("spring", "mass")
        return system
    return _make


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------

def run_with_energy(system, tstop, dt):
    """Integrate and return output times, states and total energy per output."""
    system.initialize()
    energies = []
    times, states = RK4Solver(dt).integrate(
        system, system.state_vector_init(), 0.0, tstop,
        on_step=lambda k, t, x: energies.append(system.get_energy()["total"]),
    )
    return times, states, np.array(energies)


@pytest.fixture
def energy_history():
    """Fixture form of :func:`run_with_energy`."""
    return run_with_energy
