"""
Base and rigid bodies of the kinematic tree.

Entities do not reference each other directly. Connectivity is stored as
integer handles into the owning system's ``bodies``/``joints``/``sensors``
lists, so reordering the lists only requires remapping handles.

All physical quantities use SI units:
- Position: meters [m]
- Velocity: meters per second [m/s]
- Angular velocity: radians per second [rad/s]
- Mass: kilograms [kg]
- Inertia: kilogram-meter-squared [kg·m²]
"""
from __future__ import annotations

import warnings

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation as ScR

from arborsim.dynamics.mass_properties import MassProperties
from arborsim.dynamics.spatial import (
    Acceleration,
    Force,
    SpatialInertia,
    Velocity,
)
from arborsim.utils.validation import validate_name

QUATERNION_EPSILON = 1e-12


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Return unit quaternion (float64).

    Parameters
    ----------
    q : NDArray[np.float64]
        Quaternion in scalar-last format [x, y, z, w].

    Returns
    -------
    NDArray[np.float64]
        Normalized unit quaternion. Returns [0, 0, 0, 1] if input norm is zero.
    """
    q = np.asarray(q, dtype=np.float64)
    n = np.linalg.norm(q)
    if n < QUATERNION_EPSILON:
        warnings.warn(
            "Zero-norm quaternion detected. Returning identity quaternion [0,0,0,1].",
            RuntimeWarning,
            stacklevel=2
        )
        return np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)
    return q / n


def quat_derivative(q: NDArray[np.float64], omega: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Quaternion rate from an angular velocity expressed in the rotated frame.

    Uses qdot = 0.5 * q ⊗ [ω, 0] (scalar-last convention), where ``q`` maps
    rotated-frame coordinates to reference-frame coordinates.

    Parameters
    ----------
    q : NDArray[np.float64]
        Unit quaternion [x, y, z, w] (4,)
    omega : NDArray[np.float64]
        Angular velocity in the rotated frame [rad/s] (3,)

    Returns
    -------
    NDArray[np.float64]
        Quaternion time derivative (4,)
    """
    qx, qy, qz, qw = q
    ox, oy, oz = omega
    return 0.5 * np.array([
        qw*ox + qy*oz - qz*oy,
        qw*oy - qx*oz + qz*ox,
        qw*oz + qx*oy - qy*ox,
        -qx*ox - qy*oy - qz*oz
    ], dtype=np.float64)


class Base:
    """
    Root of the kinematic tree. The base frame is inertial.

    Attributes
    ----------
    name : str
        Entity name, ``"base"`` by default
    outer_joints : list[int]
        Handles of joints whose inner connection is the base, in connection order
    gravity : GravityModel | None
        Gravity strategy evaluated for every body. None disables gravity.
    """
    __slots__ = ("name", "outer_joints", "gravity")

    def __init__(self, name: str = "base") -> None:
        validate_name(name, "Base")
        self.name = name
        self.outer_joints: list[int] = []
        self.gravity = None


class BodyState:
    """
    Per-evaluation cached state of a body.

    Attributes
    ----------
    position_base : NDArray[np.float64]
        Body origin in the base frame [m] (3,)
    attitude_base : NDArray[np.float64]
        Quaternion base_R_body, scalar-last (4,)
    velocity : Velocity
        Spatial velocity in body coordinates
    acceleration : Acceleration
        Spatial acceleration in body coordinates
    velocity_base : NDArray[np.float64]
        Body origin velocity in base coordinates [m/s] (3,)
    gravity_force : NDArray[np.float64]
        Gravity force in body coordinates [N] (3,)
    external_force : Force
        Total external spatial force about the body origin, body coordinates
    """
    __slots__ = (
        "position_base", "attitude_base",
        "velocity", "acceleration", "velocity_base",
        "gravity_force", "external_force",
    )

    def __init__(self) -> None:
        self.position_base = np.zeros(3, dtype=np.float64)
        self.attitude_base = np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)
        self.velocity = Velocity()
        self.acceleration = Acceleration()
        self.velocity_base = np.zeros(3, dtype=np.float64)
        self.gravity_force = np.zeros(3, dtype=np.float64)
        self.external_force = Force()

    @property
    def angular_rate(self) -> NDArray[np.float64]:
        return self.velocity.rotation

    def rotation_base(self) -> NDArray[np.float64]:
        """Rotation matrix R such that v_base = R @ v_body."""
        return ScR.from_quat(self.attitude_base).as_matrix()


class Body:
    """
    Rigid body in the kinematic tree.

    Parameters
    ----------
    name : str
        Unique identifier for the body
    mass_properties : MassProperties | None
        Mass, center of mass and central inertia in the body frame.
        Defaults to unit mass with identity inertia at the origin.

    Attributes
    ----------
    inner_joint : int | None
        Handle of the joint connecting this body toward the base
    outer_joints : list[int]
        Handles of joints connecting this body toward the leaves
    sensors : list[int]
        Handles of sensors mounted on this body
    actuators : list[int]
        Handles of actuators mounted on this body
    forces : list
        External force models with ``apply(body, t)``
    state : BodyState
        Cached kinematics and loads, refreshed every evaluation
    """
    __slots__ = (
        "name", "mass_properties",
        "inner_joint", "outer_joints", "sensors", "actuators",
        "forces", "state",
    )

    def __init__(self, name: str, mass_properties: MassProperties | None = None) -> None:
        validate_name(name, "Body")
        self.name = name
        self.mass_properties = mass_properties if mass_properties is not None else MassProperties()
        self.inner_joint: int | None = None
        self.outer_joints: list[int] = []
        self.sensors: list[int] = []
        self.actuators: list[int] = []
        self.forces: list = []
        self.state = BodyState()

    @property
    def mass(self) -> float:
        return self.mass_properties.mass

    def spatial_inertia(self) -> SpatialInertia:
        """Spatial inertia about the body origin in body coordinates."""
        return SpatialInertia.from_mass_properties(self.mass_properties)

    def add_force(self, force) -> None:
        """Attach a force model with ``apply(body, t)``."""
        self.forces.append(force)

    def clear_forces(self) -> None:
        """Reset external force accumulator to zero."""
        self.state.external_force = Force()
        self.state.gravity_force = np.zeros(3, dtype=np.float64)

    def apply_force(
        self,
        f: NDArray[np.float64],
        point_body: NDArray[np.float64] | None = None,
    ) -> None:
        """
        Apply a force given in body coordinates.

        Parameters
        ----------
        f : NDArray[np.float64]
            Force vector in body frame [N] (3,)
        point_body : NDArray[np.float64] | None
            Application point in body frame [m] (3,). The moment about the
            body origin is point x f. If None, the force acts at the origin.
        """
        f = np.asarray(f, dtype=np.float64)
        moment = np.zeros(3) if point_body is None else np.cross(point_body, f)
        self.state.external_force = self.state.external_force + Force(moment, f)

    def apply_torque(self, tau: NDArray[np.float64]) -> None:
        """Apply a pure torque in body coordinates [N·m] (3,)."""
        self.state.external_force = self.state.external_force + Force(tau, None)

    def com_position_base(self) -> NDArray[np.float64]:
        """Center of mass in the base frame [m] (3,)."""
        R = self.state.rotation_base()
        return self.state.position_base + R @ self.mass_properties.center_of_mass

    def kinetic_energy(self) -> float:
        """
        Kinetic energy [J] = 0.5 * v · (I v) with the spatial inertia about the
        body origin.
        """
        v = self.state.velocity
        return 0.5 * v.dot(self.spatial_inertia() * v)
