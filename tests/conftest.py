import os
import sys

import numpy as np
import pytest

# Get the path to the project root (one level up from 'tests')
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
src_path = os.path.join(project_root, 'src')

# Add 'src' to sys.path
sys.path.insert(0, src_path)

from arborsim.core.system import MultibodySystem  # noqa: E402
from arborsim.dynamics.joints import Floating, Revolute  # noqa: E402
from arborsim.dynamics.mass_properties import MassProperties  # noqa: E402


@pytest.fixture
def make_pendulum():
    """
    Factory for a planar pendulum: revolute hinge about +Z at the base, bob
    center of mass a distance L down the body -Y axis, gravity along -Y.
    """
    def _make(m=2.0, L=1.5, Ic=0.1, theta0=0.4, rate0=0.0, g=9.81, parameters=None):
        system = MultibodySystem("pendulum")
        system.add_body("bob", MassProperties(m, [0.0, -L, 0.0], Ic * np.eye(3)))
        system.add_joint("hinge", Revolute(angle=theta0, rate=rate0, parameters=parameters))
        system.connect("base", "hinge")
        system.connect("hinge", "bob")
        if g:
            system.set_gravity_constant([0.0, -g, 0.0])
        return system
    return _make


@pytest.fixture
def make_free_body():
    """Factory for a single body on a floating joint, no gravity by default."""
    def _make(mass_properties=None, **floating):
        system = MultibodySystem("free")
        system.add_body("sat", mass_properties)
        system.add_joint("float", Floating(**floating))
        system.connect("base", "float")
        system.connect("float", "sat")
        return system
    return _make
