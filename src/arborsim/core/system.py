"""
Multibody system: assembly, validation and the dynamics function.

Entities live in lists on the system (``bodies``, ``joints``, ``sensors``,
``actuators``) and refer to each other by integer handles. The base is a
separate singleton. ``run(dx, x, t)`` is the right-hand side consumed by the
integrators in :mod:`arborsim.core.solver`.
"""
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation as ScR

from arborsim.core import aba
from arborsim.core.topology import permute
from arborsim.dynamics.actuators import Actuator, ActuatorModel
from arborsim.dynamics.body import Base, Body
from arborsim.dynamics.forces import (
    CelestialGravity,
    ConstantGravity,
    NewtonianGravity,
    TwoBodyGravity,
    apply_gravity,
)
from arborsim.dynamics.joints import Joint, JointModel
from arborsim.dynamics.mass_properties import MassProperties
from arborsim.dynamics.sensors import Sensor, SensorModel
from arborsim.dynamics.spatial import SpatialTransform
from arborsim.errors import (
    ActuatorMissingBodyError,
    BaseMissingOuterJointError,
    BodyMissingInnerJointError,
    InvalidConnectionError,
    JointMissingInnerBodyError,
    JointMissingOuterBodyError,
    NameTakenError,
    SensorMissingBodyError,
)


class MultibodySystem:
    """
    Tree of rigid bodies connected by joints to a fixed base.

    Parameters
    ----------
    name : str
        System name, used for output folders
    base_name : str
        Name of the base entity

    Attributes
    ----------
    base : Base
        Root of the tree
    bodies : list[Body]
        Bodies, in base-to-tip order after :meth:`initialize`
    joints : list[Joint]
        Joints, in base-to-tip order after :meth:`initialize`
    sensors : list[Sensor]
        Sensors, in insertion order
    actuators : list[Actuator]
        Actuators, in insertion order. Updated in this order every step.
    t : float
        Time of the last evaluation [s]

    Examples
    --------
    >>> sys = MultibodySystem("pendulum")
    >>> sys.add_body("link", MassProperties(1.0, [0.0, -1.0, 0.0], 0.01 * np.eye(3)))
    >>> sys.add_joint("hinge", Revolute(angle=0.3))
    >>> sys.connect("base", "hinge")
    >>> sys.connect("hinge", "link")
    >>> sys.set_gravity_constant([0.0, -9.81, 0.0])
    >>> sys.initialize()
    >>> x0 = sys.state_vector_init()
    """

    def __init__(self, name: str = "system", base_name: str = "base") -> None:
        self.name = name
        self.base = Base(base_name)
        self.bodies: list[Body] = []
        self.joints: list[Joint] = []
        self.sensors: list[Sensor] = []
        self.actuators: list[Actuator] = []
        self.t = 0.0
        self._initialized = False
        self._slices: list[slice] = []

    # --- Assembly ---

    def _check_name_taken(self, name: str) -> None:
        entities = (*self.bodies, *self.joints, *self.sensors, *self.actuators)
        if name == self.base.name or any(e.name == name for e in entities):
            raise NameTakenError(name)

    def _lookup(self, name: str) -> tuple[str, int | None]:
        if name == self.base.name:
            return "base", None
        for kind, entities in (
            ("body", self.bodies),
            ("joint", self.joints),
            ("sensor", self.sensors),
            ("actuator", self.actuators),
        ):
            for i, e in enumerate(entities):
                if e.name == name:
                    return kind, i
        return "missing", None

    def add_body(self, name: str, mass_properties: MassProperties | None = None) -> int:
        """
        Add a rigid body.

        Returns
        -------
        int
            Handle of the body (valid until :meth:`initialize` reorders)

        Raises
        ------
        NameTakenError
            If any entity already uses ``name``
        """
        self._check_name_taken(name)
        self.bodies.append(Body(name, mass_properties))
        self._initialized = False
        return len(self.bodies) - 1

    def add_joint(self, name: str, model: JointModel) -> int:
        """Add a joint with the given model. Raises NameTakenError on duplicates."""
        self._check_name_taken(name)
        self.joints.append(Joint(name, model))
        self._initialized = False
        return len(self.joints) - 1

    def add_sensor(self, name: str, model: SensorModel) -> int:
        """Add a sensor. It must be connected to a body before running."""
        self._check_name_taken(name)
        self.sensors.append(Sensor(name, model))
        return len(self.sensors) - 1

    def add_actuator(self, name: str, model: ActuatorModel) -> int:
        """Add an actuator. It must be connected to a body before running."""
        self._check_name_taken(name)
        self.actuators.append(Actuator(name, model))
        return len(self.actuators) - 1

    def add_body_force(self, body_name: str, force) -> None:
        """Attach an external load model (``apply(body, t)``) to a body."""
        kind, i = self._lookup(body_name)
        if kind != "body":
            raise ValueError(f"No body named '{body_name}'")
        self.bodies[i].add_force(force)

    def connect(
        self,
        from_name: str,
        to_name: str,
        transform: SpatialTransform | None = None,
    ) -> None:
        """
        Connect two entities.

        Valid pairs and the meaning of ``transform``:

        - base/body -> joint: ``jif_from_ib``, inner body frame to joint inner frame
        - joint -> body: ``jof_from_ob``, outer body frame to joint outer frame
        - sensor -> body: ``sensor_from_body``
        - actuator -> body: ``actuator_from_body``

        A missing transform means identity.

        Raises
        ------
        InvalidConnectionError
            For unknown names, any other pairing, or an already-used slot.
        """
        if transform is None:
            transform = SpatialTransform.identity()
        elif not isinstance(transform, SpatialTransform):
            raise TypeError(f"transform must be a SpatialTransform, got {type(transform).__name__}")

        from_kind, fi = self._lookup(from_name)
        to_kind, ti = self._lookup(to_name)
        if from_kind == "missing" or to_kind == "missing":
            unknown = from_name if from_kind == "missing" else to_name
            raise InvalidConnectionError(from_name, to_name, f"no entity named '{unknown}'")

        if from_kind in ("base", "body") and to_kind == "joint":
            joint = self.joints[ti]
            if joint.inner is not None:
                raise InvalidConnectionError(from_name, to_name, "joint already has an inner connection")
            joint.connect_inner(fi, transform)
            owner = self.base if from_kind == "base" else self.bodies[fi]
            owner.outer_joints.append(ti)
        elif from_kind == "joint" and to_kind == "body":
            joint, body = self.joints[fi], self.bodies[ti]
            if joint.outer is not None:
                raise InvalidConnectionError(from_name, to_name, "joint already has an outer body")
            if body.inner_joint is not None:
                raise InvalidConnectionError(from_name, to_name, "body already has an inner joint")
            joint.connect_outer(ti, transform)
            body.inner_joint = fi
        elif from_kind == "sensor" and to_kind == "body":
            sensor = self.sensors[fi]
            if sensor.body is not None:
                raise InvalidConnectionError(from_name, to_name, "sensor is already mounted")
            sensor.body = ti
            sensor.transform = transform
            self.bodies[ti].sensors.append(fi)
        elif from_kind == "actuator" and to_kind == "body":
            actuator = self.actuators[fi]
            if actuator.body is not None:
                raise InvalidConnectionError(from_name, to_name, "actuator is already mounted")
            actuator.body = ti
            actuator.transform = transform
            self.bodies[ti].actuators.append(fi)
        else:
            raise InvalidConnectionError(
                from_name, to_name, f"cannot connect {from_kind} to {to_kind}"
            )
        self._initialized = False

    def validate(self) -> None:
        """
        Check that the tree is fully connected.

        Raises
        ------
        BaseMissingOuterJointError
        BodyMissingInnerJointError
        JointMissingInnerBodyError
        JointMissingOuterBodyError
        SensorMissingBodyError
        ActuatorMissingBodyError
        """
        if not self.base.outer_joints:
            raise BaseMissingOuterJointError(self.base.name)
        for body in self.bodies:
            if body.inner_joint is None:
                raise BodyMissingInnerJointError(body.name)
        for joint in self.joints:
            if joint.inner is None:
                raise JointMissingInnerBodyError(joint.name)
            if joint.outer is None:
                raise JointMissingOuterBodyError(joint.name)
        for sensor in self.sensors:
            if sensor.body is None:
                raise SensorMissingBodyError(sensor.name)
        for actuator in self.actuators:
            if actuator.body is None:
                raise ActuatorMissingBodyError(actuator.name)

    def permute(self) -> None:
        """Reorder joints and bodies base to tip. See :mod:`arborsim.core.topology`."""
        permute(self)

    def initialize(self) -> None:
        """
        Validate, reorder, and cache constant per-joint quantities.

        Must be called after assembly and before the first :meth:`run`.
        Idempotent until the system is edited again.
        """
        if self._initialized:
            return
        self.validate()
        self.permute()

        self._slices = []
        offset = 0
        for joint in self.joints:
            self._slices.append(slice(offset, offset + joint.state_size))
            offset += joint.state_size

        for joint in self.joints:
            body = self.bodies[joint.outer.body]
            joint.inertia = joint.transforms.jof_from_ob * body.spatial_inertia()

        self._initialized = True
        self.update_kinematics(self.state_vector_init())

    # --- Gravity strategy ---

    def set_gravity_constant(self, g) -> None:
        self.base.gravity = ConstantGravity(g)

    def set_gravity_two_body(self, mu: float) -> None:
        self.base.gravity = TwoBodyGravity(mu)

    def set_gravity_newtonian(self, sources) -> None:
        self.base.gravity = NewtonianGravity(sources)

    def set_gravity_celestial(self, model, epoch: float = 0.0) -> None:
        self.base.gravity = CelestialGravity(model, epoch)

    def set_gravity(self, model) -> None:
        """Use any object with ``acceleration(position, t)``, e.g. an EGM96 field."""
        if not hasattr(model, "acceleration"):
            raise TypeError("Gravity model must provide acceleration(position, t)")
        self.base.gravity = model

    def clear_gravity(self) -> None:
        self.base.gravity = None

    # --- State vector ---

    @property
    def n_states(self) -> int:
        return sum(j.state_size for j in self.joints)

    def joint_slice(self, name: str) -> slice:
        """Slice of the state vector owned by joint ``name``."""
        self._require_initialized()
        kind, i = self._lookup(name)
        if kind != "joint":
            raise ValueError(f"No joint named '{name}'")
        return self._slices[i]

    def state_vector_init(self) -> NDArray[np.float64]:
        """Concatenated joint states in base-to-tip order."""
        self._require_initialized()
        if not self.joints:
            return np.zeros(0, dtype=np.float64)
        return np.concatenate([j.model.state_vector() for j in self.joints])

    def set_state(self, x: NDArray[np.float64]) -> None:
        x = np.asarray(x, dtype=np.float64)
        if x.shape != (self.n_states,):
            raise ValueError(f"State vector must have shape ({self.n_states},), got {x.shape}")
        for joint, sl in zip(self.joints, self._slices):
            joint.model.set_state(x[sl])

    def normalize_state(self, x: NDArray[np.float64]) -> None:
        """Renormalize quaternion parts in place."""
        for joint, sl in zip(self.joints, self._slices):
            joint.model.normalize(x[sl])

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("System is not initialized. Call initialize() first.")

    # --- Dynamics ---

    def update_joint_transforms(self) -> None:
        for joint in self.joints:
            parent = None if joint.inner_joint is None else self.joints[joint.inner_joint]
            joint.update_transforms(parent)

    def update_body_states(self) -> None:
        """Body position and attitude in the base frame."""
        for joint in self.joints:
            body = self.bodies[joint.outer.body]
            ob_from_base = joint.transforms.ob_from_base
            body.state.position_base = ob_from_base.translation.copy()
            body.state.attitude_base = ScR.from_matrix(ob_from_base.rotation.T).as_quat()

    def update_forces(self, t: float) -> None:
        """
        Gravity, external loads and held actuator loads, transformed into each
        body's inner JOF.
        """
        gravity = self.base.gravity
        for joint in self.joints:
            body = self.bodies[joint.outer.body]
            body.clear_forces()
            if gravity is not None:
                apply_gravity(body, gravity, t)
            for load in body.forces:
                load.apply(body, t)
            for a in body.actuators:
                body.state.external_force += self.actuators[a].force
            joint.cache.f_ext = joint.transforms.jof_from_ob * body.state.external_force

    def update_body_kinematics(self) -> None:
        """Body velocity and acceleration from the solved joint quantities."""
        for joint in self.joints:
            body = self.bodies[joint.outer.body]
            ob_from_jof = joint.transforms.ob_from_jof
            body.state.velocity = ob_from_jof * joint.cache.v
            body.state.acceleration = ob_from_jof * joint.cache.a
            body.state.velocity_base = body.state.rotation_base() @ body.state.velocity.translation

    def update_kinematics(self, x: NDArray[np.float64]) -> None:
        """Refresh positions and velocities for ``x`` without solving dynamics."""
        self._require_initialized()
        self.set_state(x)
        self.update_joint_transforms()
        self.update_body_states()
        for joint in self.joints:
            if joint.inner_joint is None:
                joint.cache.v = joint.cache.vj
            else:
                parent = self.joints[joint.inner_joint]
                joint.cache.v = joint.transforms.jof_from_ij_jof * parent.cache.v + joint.cache.vj
            body = self.bodies[joint.outer.body]
            body.state.velocity = joint.transforms.ob_from_jof * joint.cache.v
            body.state.velocity_base = body.state.rotation_base() @ body.state.velocity.translation

    def run(self, dx: NDArray[np.float64], x: NDArray[np.float64], t: float) -> None:
        """
        Evaluate the state derivative.

        Writes ``x`` into every joint, recomputes transforms, body states,
        forces and the articulated-body solution for time ``t``, then writes
        the derivative into ``dx``. Nothing from a previous call is reused.

        Parameters
        ----------
        dx : NDArray[np.float64]
            Output derivative (n_states,), overwritten
        x : NDArray[np.float64]
            Candidate state (n_states,)
        t : float
            Time [s]

        Raises
        ------
        SingularInertiaError, InvalidTransformError
            On a numerically malformed model
        """
        self._require_initialized()
        self.t = float(t)
        self.set_state(x)
        self.update_joint_transforms()
        self.update_body_states()
        self.update_forces(t)
        aba.articulated_body_algorithm(self.joints)
        self.update_body_kinematics()
        for joint, sl in zip(self.joints, self._slices):
            dx[sl] = joint.model.derivative(joint.cache.qdd)

    def derivative(self, x: NDArray[np.float64], t: float) -> NDArray[np.float64]:
        """Allocating wrapper around :meth:`run`."""
        dx = np.zeros_like(np.asarray(x, dtype=np.float64))
        self.run(dx, x, t)
        return dx

    def update_sensors(self) -> None:
        for sensor in self.sensors:
            sensor.update(self.bodies[sensor.body])

    def update_actuators(self, x: NDArray[np.float64], t: float) -> None:
        """
        Update every actuator for the step starting at ``(x, t)``.

        The resulting loads are held by :meth:`update_forces` until the next
        call, so every stage of a step sees the same actuator output.
        """
        if not self.actuators:
            return
        self.update_kinematics(x)
        for actuator in self.actuators:
            actuator.update(self.bodies[actuator.body], t)

    # --- Diagnostics ---

    def kinetic_energy(self) -> float:
        return sum(b.kinetic_energy() for b in self.bodies)

    def potential_energy(self) -> float:
        """
        Gravitational plus joint spring potential energy [J].

        Gravity contributes only when the model provides ``potential``.
        """
        pe = sum(j.model.spring_energy() for j in self.joints)
        gravity = self.base.gravity
        if gravity is not None and hasattr(gravity, "potential"):
            pe += sum(b.mass * gravity.potential(b.com_position_base()) for b in self.bodies)
        return pe

    def get_energy(self) -> dict[str, float]:
        """
        Energy of the last evaluated state.

        Returns
        -------
        dict[str, float]
            'kinetic', 'potential' and 'total' [J]
        """
        ke = self.kinetic_energy()
        pe = self.potential_energy()
        return {"kinetic": ke, "potential": pe, "total": ke + pe}

    def body(self, name: str) -> Body:
        kind, i = self._lookup(name)
        if kind != "body":
            raise KeyError(f"No body named '{name}'")
        return self.bodies[i]

    def joint(self, name: str) -> Joint:
        kind, i = self._lookup(name)
        if kind != "joint":
            raise KeyError(f"No joint named '{name}'")
        return self.joints[i]

    def sensor(self, name: str) -> Sensor:
        kind, i = self._lookup(name)
        if kind != "sensor":
            raise KeyError(f"No sensor named '{name}'")
        return self.sensors[i]
