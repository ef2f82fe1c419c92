"""
Joint models connecting bodies in the kinematic tree.

Every joint has two frames:

- JIF, the joint inner frame, fixed to the inner body (or the base)
- JOF, the joint outer frame, fixed to the outer body

The joint state defines ``jof_from_jif``. The fixed transforms given to
``connect`` define ``jif_from_ib`` (inner body to JIF) and ``jof_from_ob``
(outer body to JOF). Articulated-body quantities for the joint are all
expressed in its JOF, where the motion subspace ``S`` is constant.

Supported models
----------------
Revolute   : 1 DOF, rotation about a fixed axis, state [angle, rate]
Prismatic  : 1 DOF, translation along a fixed axis, state [position, velocity]
Floating   : 6 DOF, state [q(4), r(3), w(3), v(3)]
"""
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation as ScR

from arborsim.dynamics.body import quat_derivative, quat_normalize
from arborsim.dynamics.spatial import (
    Acceleration,
    Force,
    MotionVector,
    SpatialInertia,
    SpatialTransform,
    Velocity,
)
from arborsim.utils.validation import (
    validate_name,
    validate_non_negative,
    validate_quaternion,
    validate_unit_axis,
    validate_vector3,
)

Z_AXIS = np.array([0.0, 0.0, 1.0], dtype=np.float64)
X_AXIS = np.array([1.0, 0.0, 0.0], dtype=np.float64)


class JointParameters:
    """
    Generalized force law for one joint axis.

    tau = constant_force + spring_constant * (equilibrium - q) - damping * qdot

    Parameters
    ----------
    constant_force : float
        Constant actuation [N·m] or [N]
    spring_constant : float
        Stiffness [N·m/rad] or [N/m]. Must be non-negative.
    damping : float
        Viscous damping [N·m·s/rad] or [N·s/m]. Must be non-negative.
    equilibrium : float
        Spring rest position [rad] or [m]
    """
    __slots__ = ("constant_force", "spring_constant", "damping", "equilibrium")

    def __init__(
        self,
        constant_force: float = 0.0,
        spring_constant: float = 0.0,
        damping: float = 0.0,
        equilibrium: float = 0.0,
    ) -> None:
        validate_non_negative(spring_constant, "spring_constant")
        validate_non_negative(damping, "damping")
        self.constant_force = float(constant_force)
        self.spring_constant = float(spring_constant)
        self.damping = float(damping)
        self.equilibrium = float(equilibrium)

    def force(self, position: float, velocity: float) -> float:
        return (self.constant_force
                + self.spring_constant * (self.equilibrium - position)
                - self.damping * velocity)

    def spring_energy(self, position: float) -> float:
        return 0.5 * self.spring_constant * (position - self.equilibrium) ** 2


class JointModel:
    """
    Interface shared by the joint models.

    Subclasses define ``ndof``, ``state_size`` and ``state_names`` and
    implement the methods below.
    """
    ndof: int = 0
    state_size: int = 0
    state_names: tuple[str, ...] = ()
    accel_names: tuple[str, ...] = ()

    def state_vector(self) -> NDArray[np.float64]:
        raise NotImplementedError

    def set_state(self, x: NDArray[np.float64]) -> None:
        raise NotImplementedError

    def transform(self) -> SpatialTransform:
        """jof_from_jif for the current state."""
        raise NotImplementedError

    def velocity(self) -> Velocity:
        """Joint velocity, JOF relative to JIF, in JOF coordinates."""
        raise NotImplementedError

    def subspace(self) -> NDArray[np.float64]:
        """Motion subspace S (6, ndof) in JOF coordinates."""
        raise NotImplementedError

    def force(self) -> NDArray[np.float64]:
        """Generalized joint force tau (ndof,)."""
        raise NotImplementedError

    def derivative(self, qdd: NDArray[np.float64]) -> NDArray[np.float64]:
        """State derivative (state_size,) given generalized acceleration."""
        raise NotImplementedError

    def normalize(self, x: NDArray[np.float64]) -> None:
        """Project a state slice back onto the valid manifold, in place."""

    def spring_energy(self) -> float:
        return 0.0


class Revolute(JointModel):
    """
    Single rotational degree of freedom.

    Parameters
    ----------
    angle : float
        Initial angle [rad]
    rate : float
        Initial angular rate [rad/s]
    axis : NDArray[np.float64] | None
        Rotation axis in the JIF (equal in the JOF). Defaults to +Z.
    parameters : JointParameters | None
        Spring, damping and constant torque
    """
    ndof = 1
    state_size = 2
    state_names = ("angle", "rate")
    accel_names = ("accel",)

    def __init__(
        self,
        angle: float = 0.0,
        rate: float = 0.0,
        axis: NDArray[np.float64] | None = None,
        parameters: JointParameters | None = None,
    ) -> None:
        self.axis = Z_AXIS.copy() if axis is None else validate_unit_axis(axis)
        self.parameters = parameters if parameters is not None else JointParameters()
        self.angle = float(angle)
        self.rate = float(rate)

    def state_vector(self) -> NDArray[np.float64]:
        return np.array([self.angle, self.rate], dtype=np.float64)

    def set_state(self, x: NDArray[np.float64]) -> None:
        self.angle = float(x[0])
        self.rate = float(x[1])

    def transform(self) -> SpatialTransform:
        # JOF axes are the JIF axes rotated by +angle, so coordinates use the transpose
        R = ScR.from_rotvec(self.axis * self.angle).as_matrix()
        return SpatialTransform(R.T)

    def velocity(self) -> Velocity:
        return Velocity(self.axis * self.rate, None)

    def subspace(self) -> NDArray[np.float64]:
        S = np.zeros((6, 1), dtype=np.float64)
        S[0:3, 0] = self.axis
        return S

    def force(self) -> NDArray[np.float64]:
        return np.array([self.parameters.force(self.angle, self.rate)], dtype=np.float64)

    def derivative(self, qdd: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.array([self.rate, qdd[0]], dtype=np.float64)

    def spring_energy(self) -> float:
        return self.parameters.spring_energy(self.angle)


class Prismatic(JointModel):
    """
    Single translational degree of freedom.

    Parameters
    ----------
    position : float
        Initial displacement of the JOF origin along the axis [m]
    velocity : float
        Initial rate [m/s]
    axis : NDArray[np.float64] | None
        Translation axis in the JIF. Defaults to +X.
    parameters : JointParameters | None
        Spring, damping and constant force
    """
    ndof = 1
    state_size = 2
    state_names = ("position", "velocity")
    accel_names = ("accel",)

    def __init__(
        self,
        position: float = 0.0,
        velocity: float = 0.0,
        axis: NDArray[np.float64] | None = None,
        parameters: JointParameters | None = None,
    ) -> None:
        self.axis = X_AXIS.copy() if axis is None else validate_unit_axis(axis)
        self.parameters = parameters if parameters is not None else JointParameters()
        self.position = float(position)
        self.rate = float(velocity)

    def state_vector(self) -> NDArray[np.float64]:
        return np.array([self.position, self.rate], dtype=np.float64)

    def set_state(self, x: NDArray[np.float64]) -> None:
        self.position = float(x[0])
        self.rate = float(x[1])

    def transform(self) -> SpatialTransform:
        return SpatialTransform(None, self.axis * self.position)

    def velocity(self) -> Velocity:
        return Velocity(None, self.axis * self.rate)

    def subspace(self) -> NDArray[np.float64]:
        S = np.zeros((6, 1), dtype=np.float64)
        S[3:6, 0] = self.axis
        return S

    def force(self) -> NDArray[np.float64]:
        return np.array([self.parameters.force(self.position, self.rate)], dtype=np.float64)

    def derivative(self, qdd: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.array([self.rate, qdd[0]], dtype=np.float64)

    def spring_energy(self) -> float:
        return self.parameters.spring_energy(self.position)


class Floating(JointModel):
    """
    Six degree of freedom joint.

    State layout::

        [qx, qy, qz, qw,   quaternion jif_R_jof (JOF axes in JIF)
         rx, ry, rz,       JOF origin in JIF [m]
         wx, wy, wz,       angular velocity in JOF [rad/s]
         vx, vy, vz]       JOF origin velocity in JOF [m/s]

    Parameters
    ----------
    attitude : NDArray[np.float64] | None
        Initial quaternion [x, y, z, w]. Normalized. Identity if None.
    position : NDArray[np.float64] | None
        Initial JOF origin in JIF [m]
    angular_rate : NDArray[np.float64] | None
        Initial angular velocity in JOF [rad/s]
    velocity : NDArray[np.float64] | None
        Initial translational velocity in JOF [m/s]
    parameters : list[JointParameters] | None
        Six per-axis force laws: three rotational (acting on the rotation
        vector) followed by three translational (acting on the position
        expressed in JOF).

    Notes
    -----
    S is the 6x6 identity, so the generalized acceleration is the spatial
    acceleration of the JOF relative to the JIF in JOF coordinates.
    """
    ndof = 6
    state_size = 13
    state_names = (
        "q_x", "q_y", "q_z", "q_w",
        "r_x", "r_y", "r_z",
        "w_x", "w_y", "w_z",
        "v_x", "v_y", "v_z",
    )
    accel_names = ("dw_x", "dw_y", "dw_z", "dv_x", "dv_y", "dv_z")

    def __init__(
        self,
        attitude: NDArray[np.float64] | None = None,
        position: NDArray[np.float64] | None = None,
        angular_rate: NDArray[np.float64] | None = None,
        velocity: NDArray[np.float64] | None = None,
        parameters: list[JointParameters] | None = None,
    ) -> None:
        if attitude is None:
            self.q = np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)
        else:
            validate_quaternion(np.asarray(attitude, dtype=np.float64))
            self.q = quat_normalize(attitude)
        self.r = np.zeros(3) if position is None else validate_vector3(position, "position")
        self.w = np.zeros(3) if angular_rate is None else validate_vector3(angular_rate, "angular_rate")
        self.v = np.zeros(3) if velocity is None else validate_vector3(velocity, "velocity")
        if parameters is None:
            parameters = [JointParameters() for _ in range(6)]
        if len(parameters) != 6:
            raise ValueError(f"Floating joint needs 6 JointParameters, got {len(parameters)}")
        self.parameters = list(parameters)

    def state_vector(self) -> NDArray[np.float64]:
        return np.concatenate([self.q, self.r, self.w, self.v])

    def set_state(self, x: NDArray[np.float64]) -> None:
        self.q = np.array(x[0:4], dtype=np.float64)
        self.r = np.array(x[4:7], dtype=np.float64)
        self.w = np.array(x[7:10], dtype=np.float64)
        self.v = np.array(x[10:13], dtype=np.float64)

    def rotation_jif_jof(self) -> NDArray[np.float64]:
        return ScR.from_quat(self.q).as_matrix()

    def transform(self) -> SpatialTransform:
        return SpatialTransform(self.rotation_jif_jof().T, self.r)

    def velocity(self) -> Velocity:
        return Velocity(self.w, self.v)

    def subspace(self) -> NDArray[np.float64]:
        return np.eye(6, dtype=np.float64)

    def _displacements(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        rotvec = ScR.from_quat(self.q).as_rotvec()
        r_jof = self.rotation_jif_jof().T @ self.r
        return rotvec, r_jof

    def force(self) -> NDArray[np.float64]:
        rotvec, r_jof = self._displacements()
        tau = np.zeros(6, dtype=np.float64)
        for i in range(3):
            tau[i] = self.parameters[i].force(rotvec[i], self.w[i])
            tau[3 + i] = self.parameters[3 + i].force(r_jof[i], self.v[i])
        return tau

    def derivative(self, qdd: NDArray[np.float64]) -> NDArray[np.float64]:
        dx = np.zeros(13, dtype=np.float64)
        dx[0:4] = quat_derivative(self.q, self.w)
        dx[4:7] = self.rotation_jif_jof() @ self.v
        dx[7:13] = qdd
        return dx

    def normalize(self, x: NDArray[np.float64]) -> None:
        x[0:4] = quat_normalize(x[0:4])

    def spring_energy(self) -> float:
        rotvec, r_jof = self._displacements()
        return sum(
            self.parameters[i].spring_energy(rotvec[i])
            + self.parameters[3 + i].spring_energy(r_jof[i])
            for i in range(3)
        )


# =============================================================================
# Joint entity
# =============================================================================

class Connection:
    """
    One side of a joint connection.

    ``body`` is a body handle, or None when the connection is to the base.
    ``transform`` is the fixed frame transform supplied to ``connect``.
    """
    __slots__ = ("body", "transform")

    def __init__(self, body: int | None, transform: SpatialTransform) -> None:
        self.body = body
        self.transform = transform


class JointTransforms:
    """
    Frame transform cache of a joint.

    Fixed at connection time: ``jif_from_ib``, ``jof_from_ob``, ``ob_from_jof``.
    Recomputed every evaluation: ``jof_from_jif``, ``jof_from_ij_jof`` (from the
    parent joint's JOF, or from the base), its inverse ``ij_jof_from_jof``,
    ``jof_from_base`` and ``ob_from_base``.
    """
    __slots__ = (
        "jif_from_ib", "jof_from_ob", "ob_from_jof",
        "jof_from_jif", "jof_from_ij_jof", "ij_jof_from_jof",
        "jof_from_base", "ob_from_base",
    )

    def __init__(self) -> None:
        identity = SpatialTransform.identity()
        self.jif_from_ib = identity
        self.jof_from_ob = identity
        self.ob_from_jof = identity
        self.jof_from_jif = identity
        self.jof_from_ij_jof = identity
        self.ij_jof_from_jof = identity
        self.jof_from_base = identity
        self.ob_from_base = identity

    def update(
        self,
        jof_from_jif: SpatialTransform,
        parent: JointTransforms | None,
    ) -> None:
        self.jof_from_jif = jof_from_jif
        jof_from_ib = jof_from_jif * self.jif_from_ib
        if parent is None:
            self.jof_from_ij_jof = jof_from_ib
            self.jof_from_base = jof_from_ib
        else:
            self.jof_from_ij_jof = jof_from_ib * parent.ob_from_jof
            self.jof_from_base = self.jof_from_ij_jof * parent.jof_from_base
        self.ij_jof_from_jof = self.jof_from_ij_jof.inv()
        self.ob_from_base = self.ob_from_jof * self.jof_from_base


class JointCache:
    """Articulated-body workspace, all quantities in JOF coordinates."""
    __slots__ = (
        "vj", "v", "c", "IA", "pA",
        "U", "D_inv", "u", "a", "qdd",
        "tau", "f_ext",
    )

    def __init__(self, ndof: int) -> None:
        self.vj = Velocity()
        self.v = Velocity()
        self.c = MotionVector()
        self.IA = SpatialInertia()
        self.pA = Force()
        self.U = np.zeros((6, ndof), dtype=np.float64)
        self.D_inv = np.zeros((ndof, ndof), dtype=np.float64)
        self.u = np.zeros(ndof, dtype=np.float64)
        self.a = Acceleration()
        self.qdd = np.zeros(ndof, dtype=np.float64)
        self.tau = np.zeros(ndof, dtype=np.float64)
        self.f_ext = Force()


class Joint:
    """
    Joint entity: a model plus its connections and caches.

    Parameters
    ----------
    name : str
        Unique identifier for the joint
    model : JointModel
        Revolute, Prismatic or Floating

    Attributes
    ----------
    inner : Connection | None
        Inner connection (base when ``inner.body`` is None)
    outer : Connection | None
        Outer connection to a body
    inner_joint : int | None
        Parent joint handle, recomputed by the topological reorder
    inertia : SpatialInertia
        Outer body inertia in JOF coordinates, computed at initialization
    """
    __slots__ = (
        "name", "model", "inner", "outer", "inner_joint",
        "transforms", "cache", "inertia",
    )

    def __init__(self, name: str, model: JointModel) -> None:
        validate_name(name, "Joint")
        if not isinstance(model, JointModel):
            raise TypeError(f"Joint model must be a JointModel, got {type(model).__name__}")
        self.name = name
        self.model = model
        self.inner: Connection | None = None
        self.outer: Connection | None = None
        self.inner_joint: int | None = None
        self.transforms = JointTransforms()
        self.cache = JointCache(model.ndof)
        self.inertia = SpatialInertia()

    @property
    def ndof(self) -> int:
        return self.model.ndof

    @property
    def state_size(self) -> int:
        return self.model.state_size

    def connect_inner(self, body: int | None, transform: SpatialTransform) -> None:
        self.inner = Connection(body, transform)
        self.transforms.jif_from_ib = transform

    def connect_outer(self, body: int, transform: SpatialTransform) -> None:
        self.outer = Connection(body, transform)
        self.transforms.jof_from_ob = transform
        self.transforms.ob_from_jof = transform.inv()

    def update_transforms(self, parent: Joint | None) -> None:
        """Refresh transforms, joint velocity and joint force from the model state."""
        self.transforms.update(
            self.model.transform(),
            None if parent is None else parent.transforms,
        )
        self.cache.vj = self.model.velocity()
        self.cache.tau = self.model.force()
