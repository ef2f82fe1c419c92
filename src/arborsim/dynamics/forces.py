"""
Gravity models and external body forces.

Gravity models return an acceleration in base coordinates for a position in
base coordinates. One model is selected per system and evaluated for every
body at its center of mass. Body force models follow the ``BodyLoad``
protocol and accumulate loads on the body in body coordinates.

Physical units:
- Gravitational parameter: cubic meters per second squared [m³/s²]
- Accelerations: meters per second squared [m/s²]
- Forces: Newtons [N]
- Torques: Newton-meters [N·m]
"""
from __future__ import annotations

import warnings
from typing import Callable, Protocol

import numpy as np
from numpy.typing import NDArray

from arborsim.dynamics.body import Body
from arborsim.errors import NumericalError
from arborsim.utils.validation import validate_positive, validate_vector3

# Gravity constants
EARTH_MU = 3.986004418e14  # Earth gravitational parameter [m³/s²]
STANDARD_GRAVITY = 9.80665  # [m/s²]
MIN_GRAVITY_RADIUS = 0.1  # Below this a point-mass field is suspicious [m]
EPSILON_DISTANCE = 1e-12


class GravityModel(Protocol):
    """Protocol for gravity fields evaluated at a base-frame position."""
    def acceleration(self, position: NDArray[np.float64], t: float) -> NDArray[np.float64]:
        """
        Gravitational acceleration at ``position``.

        Parameters
        ----------
        position : NDArray[np.float64]
            Evaluation point in base coordinates [m] (3,)
        t : float
            Simulation time [s]

        Returns
        -------
        NDArray[np.float64]
            Acceleration in base coordinates [m/s²] (3,)
        """
        ...


class ConstantGravity:
    """
    Uniform gravitational field.

    Parameters
    ----------
    g : NDArray[np.float64]
        Gravitational acceleration vector in base frame [m/s²] (3,)

    Examples
    --------
    >>> gravity = ConstantGravity([0.0, 0.0, -9.81])
    """
    def __init__(self, g: NDArray[np.float64]) -> None:
        self.g = validate_vector3(g, "Gravity vector")

    def acceleration(self, position: NDArray[np.float64], t: float = 0.0) -> NDArray[np.float64]:
        return self.g.copy()

    def potential(self, position: NDArray[np.float64]) -> float:
        """Potential per unit mass [J/kg]."""
        return -float(np.dot(self.g, position))


def _point_mass(mu: float, r: NDArray[np.float64]) -> NDArray[np.float64]:
    rn = np.linalg.norm(r)
    if rn < EPSILON_DISTANCE:
        raise NumericalError("Point-mass gravity evaluated at its singular center")
    if rn < MIN_GRAVITY_RADIUS:
        warnings.warn(
            f"Point-mass gravity evaluated {rn:.3e} m from its center.",
            RuntimeWarning,
            stacklevel=3,
        )
    return -mu * r / rn**3


class TwoBodyGravity:
    """
    Point-mass central body at the base origin: a = -mu r / |r|³.

    Parameters
    ----------
    mu : float
        Gravitational parameter of the central body [m³/s²]
    """
    def __init__(self, mu: float = EARTH_MU) -> None:
        validate_positive(mu, "mu")
        self.mu = float(mu)

    def acceleration(self, position: NDArray[np.float64], t: float = 0.0) -> NDArray[np.float64]:
        return _point_mass(self.mu, np.asarray(position, dtype=np.float64))

    def potential(self, position: NDArray[np.float64]) -> float:
        return -self.mu / float(np.linalg.norm(position))


class NewtonianGravity:
    """
    Superposition of fixed point masses.

    Parameters
    ----------
    sources : list[tuple[float, NDArray[np.float64]]]
        (mu, position) pairs; positions in base coordinates [m]
    """
    def __init__(self, sources: list[tuple[float, NDArray[np.float64]]]) -> None:
        if not sources:
            raise ValueError("NewtonianGravity needs at least one source")
        self.sources = []
        for mu, center in sources:
            validate_positive(mu, "mu")
            self.sources.append((float(mu), validate_vector3(center, "source position")))

    def acceleration(self, position: NDArray[np.float64], t: float = 0.0) -> NDArray[np.float64]:
        p = np.asarray(position, dtype=np.float64)
        a = np.zeros(3, dtype=np.float64)
        for mu, center in self.sources:
            a += _point_mass(mu, p - center)
        return a

    def potential(self, position: NDArray[np.float64]) -> float:
        p = np.asarray(position, dtype=np.float64)
        return -sum(mu / float(np.linalg.norm(p - c)) for mu, c in self.sources)


class CelestialGravity:
    """
    Gravity from an external ephemeris-driven model.

    The model is any callable ``model(position, epoch) -> (3,)``, for example
    a spherical-harmonic field combined with third-body terms. The epoch
    passed to it is ``epoch + t``.

    Parameters
    ----------
    model : Callable[[NDArray[np.float64], float], NDArray[np.float64]]
        Acceleration model in base coordinates
    epoch : float
        Epoch at simulation time zero [s]
    """
    def __init__(
        self,
        model: Callable[[NDArray[np.float64], float], NDArray[np.float64]],
        epoch: float = 0.0,
    ) -> None:
        if not callable(model):
            raise TypeError("Celestial gravity model must be callable")
        self.model = model
        self.epoch = float(epoch)

    def acceleration(self, position: NDArray[np.float64], t: float = 0.0) -> NDArray[np.float64]:
        a = np.asarray(self.model(np.asarray(position, dtype=np.float64), self.epoch + t),
                       dtype=np.float64)
        if a.shape != (3,):
            raise ValueError(f"Celestial gravity model must return shape (3,), got {a.shape}")
        return a


# =============================================================================
# Body loads
# =============================================================================

class BodyLoad(Protocol):
    """Protocol for external loads applied to a body."""
    def apply(self, body: Body, t: float) -> None:
        """Accumulate load on ``body`` via ``apply_force``/``apply_torque``."""
        ...


class BodyForce:
    """
    Force and torque fixed in the body frame.

    Parameters
    ----------
    force : NDArray[np.float64] | Callable[[float, Body], NDArray[np.float64]]
        Force in body frame [N] (3,), constant or a function of (t, body)
    torque : NDArray[np.float64] | None
        Pure torque in body frame [N·m] (3,)
    point : NDArray[np.float64] | None
        Force application point in body frame [m] (3,). Origin if None.

    Examples
    --------
    >>> # Thruster on the +X face pushing along -X
    >>> thrust = BodyForce([-10.0, 0.0, 0.0], point=[0.5, 0.0, 0.0])
    >>> body.add_force(thrust)
    """
    def __init__(
        self,
        force: NDArray[np.float64] | Callable[[float, Body], NDArray[np.float64]] | None = None,
        torque: NDArray[np.float64] | None = None,
        point: NDArray[np.float64] | None = None,
    ) -> None:
        if force is None or callable(force):
            self.force = force
        else:
            self.force = validate_vector3(force, "force")
        self.torque = None if torque is None else validate_vector3(torque, "torque")
        self.point = None if point is None else validate_vector3(point, "point")

    def apply(self, body: Body, t: float = 0.0) -> None:
        if self.force is not None:
            f = self.force(t, body) if callable(self.force) else self.force
            body.apply_force(f, self.point)
        if self.torque is not None:
            body.apply_torque(self.torque)


def apply_gravity(body: Body, gravity: GravityModel, t: float) -> None:
    """
    Apply gravity at the body's center of mass, in body coordinates.

    Notes
    -----
    Requires ``body.state`` position and attitude to be current.
    """
    com_base = body.com_position_base()
    g_base = gravity.acceleration(com_base, t)
    g_body = body.state.rotation_base().T @ g_base
    f = body.mass * g_body
    body.state.gravity_force = f
    body.apply_force(f, body.mass_properties.center_of_mass)
