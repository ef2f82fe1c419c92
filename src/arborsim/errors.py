"""
Exception hierarchy for multibody assembly and simulation.

Assembly errors are raised by ``add_*``, ``connect`` and ``validate`` before
any integration happens. Numerical errors are raised while a simulation is
running and name the offending entity (and, once caught by the driver, the
step and time).
"""
from __future__ import annotations


class MultibodyError(Exception):
    """Base class for every error raised by arborsim."""


# -----------------------------------------------------------------------------
# Assembly / structural errors
# -----------------------------------------------------------------------------

class NameTakenError(MultibodyError):
    """An entity with this name already exists in the system."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Name '{name}' is already taken")


class InvalidConnectionError(MultibodyError):
    """Connection between two entities is not allowed or cannot be resolved."""

    def __init__(self, from_name: str, to_name: str, reason: str = "") -> None:
        self.from_name = from_name
        self.to_name = to_name
        msg = f"Invalid connection '{from_name}' -> '{to_name}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class BaseMissingOuterJointError(MultibodyError):
    """The base has no outer joint, so nothing can move."""

    def __init__(self, name: str = "base") -> None:
        self.name = name
        super().__init__(f"Base '{name}' has no outer joint")


class BodyMissingInnerJointError(MultibodyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Body '{name}' has no inner joint")


class JointMissingInnerBodyError(MultibodyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Joint '{name}' has no inner body or base")


class JointMissingOuterBodyError(MultibodyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Joint '{name}' has no outer body")


class SensorMissingBodyError(MultibodyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Sensor '{name}' is not mounted on a body")


class ActuatorMissingBodyError(MultibodyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Actuator '{name}' is not mounted on a body")


# -----------------------------------------------------------------------------
# Numerical errors
# -----------------------------------------------------------------------------

class NumericalError(MultibodyError):
    """Base class for failures of the numerical pipeline."""


class SingularTransformError(NumericalError):
    """A spatial transform is numerically malformed."""


class InvalidTransformError(SingularTransformError, ValueError):
    """The rotation part of a transform is not a proper rotation, or a value is not finite."""


class SingularInertiaError(NumericalError):
    """The articulated inertia projected onto a joint's motion subspace is singular."""

    def __init__(self, joint: str, detail: str = "") -> None:
        self.joint = joint
        msg = f"Singular articulated inertia at joint '{joint}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class SimulationError(MultibodyError):
    """
    A numerical failure stopped a running simulation.

    Parameters
    ----------
    step : int
        Index of the integration step being computed.
    t : float
        Simulation time at the start of that step [s].
    cause : MultibodyError
        The underlying error.
    times, states : numpy.ndarray | None
        Output times and states recorded before the failure, set by the
        integrator.
    """

    def __init__(self, step: int, t: float, cause: MultibodyError, times=None, states=None) -> None:
        self.step = step
        self.t = t
        self.cause = cause
        self.times = times
        self.states = states
        super().__init__(f"Simulation stopped at step {step} (t={t:.6f}s): {cause}")
