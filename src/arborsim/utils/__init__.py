"""Utility functions for ArborSim simulations."""

from .io import load_simulation_history, save_simulation_history
from .validation import (
    validate_inertia_tensor,
    validate_name,
    validate_non_negative,
    validate_positive,
    validate_quaternion,
    validate_timestep,
)

__all__ = [
    "save_simulation_history",
    "load_simulation_history",
    "validate_positive",
    "validate_non_negative",
    "validate_name",
    "validate_quaternion",
    "validate_inertia_tensor",
    "validate_timestep",
]
