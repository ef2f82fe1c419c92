"""
Actuator models mounted on bodies.

Actuators are updated once per integration step, at the start of the step,
and their output is held constant over that step. Each actuator owns an
``actuator_from_body`` transform set by ``connect(actuator, body, transform)``.
A command changed from an ``on_step`` callback takes effect at the next step.
"""
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation as ScR

from arborsim.dynamics.body import Body
from arborsim.dynamics.spatial import Force, SpatialTransform
from arborsim.utils.validation import validate_name, validate_non_negative, validate_positive


class ActuatorModel:
    """
    Interface for actuator models.

    ``update`` returns the load on the body as a Force in body coordinates,
    taken about the body origin.
    """
    result_names: tuple[str, ...] = ()

    def update(self, body: Body, actuator_from_body: SpatialTransform, t: float) -> Force:
        raise NotImplementedError

    def result_values(self) -> list[float]:
        raise NotImplementedError


class Thruster(ActuatorModel):
    """
    On/off thruster pushing along the actuator +X axis.

    The force acts at the actuator origin, so a mount away from the body
    origin also produces a torque.

    Parameters
    ----------
    force : float
        Thrust magnitude when firing [N]
    misalignment : NDArray[np.float64] | None
        Quaternion of a fixed thrust direction error, actuator frame
    """
    result_names = ("command", "thrust", "force_x", "force_y", "force_z")

    def __init__(self, force: float, misalignment: NDArray[np.float64] | None = None) -> None:
        validate_positive(force, "force")
        self.force = float(force)
        self.misalignment = None if misalignment is None else ScR.from_quat(misalignment)
        self.command = False
        self.thrust = 0.0
        self.force_body = np.zeros(3, dtype=np.float64)

    def fire(self) -> None:
        self.command = True

    def stop(self) -> None:
        self.command = False

    def update(self, body: Body, actuator_from_body: SpatialTransform, t: float) -> Force:
        self.thrust = self.force if self.command else 0.0
        direction = np.array([1.0, 0.0, 0.0])
        if self.misalignment is not None:
            direction = self.misalignment.apply(direction)
        self.force_body = actuator_from_body.rotation.T @ (self.thrust * direction)
        point = actuator_from_body.translation
        return Force(np.cross(point, self.force_body), self.force_body)

    def result_values(self) -> list[float]:
        return [float(self.command), self.thrust, *self.force_body]


class ReactionWheel(ActuatorModel):
    """
    Reaction wheel spinning about the actuator +Z axis.

    The net rotor torque (motor minus bearing friction) spins the rotor and
    the body receives the equal and opposite torque. Rotor speed is
    integrated here with the torque held over each step; the rotor is not a
    body in the tree, so its gyroscopic coupling is not modelled. Use a
    Revolute joint with a rotor body when that coupling matters.

    Parameters
    ----------
    inertia : float
        Rotor inertia about the spin axis [kg m^2]
    torque_max : float | None
        Limit on the motor torque magnitude [N m]
    torque_constant : float
        Motor torque per unit current [N m/A], used by ``set_current``
    knee_speed, max_speed : float | None
        Torque-speed curve [rad/s]. Full torque up to ``knee_speed``, falling
        linearly to zero at ``max_speed``. Both or neither must be given.
    viscous : float
        Viscous bearing friction [N m s/rad]
    coulomb : float
        Coulomb bearing friction [N m]
    speed : float
        Initial rotor speed [rad/s]
    """
    result_names = ("command", "torque", "speed", "momentum")

    def __init__(
        self,
        inertia: float,
        torque_max: float | None = None,
        torque_constant: float = 1.0,
        knee_speed: float | None = None,
        max_speed: float | None = None,
        viscous: float = 0.0,
        coulomb: float = 0.0,
        speed: float = 0.0,
    ) -> None:
        validate_positive(inertia, "inertia")
        if torque_max is not None:
            validate_positive(torque_max, "torque_max")
        validate_positive(torque_constant, "torque_constant")
        validate_non_negative(viscous, "viscous")
        validate_non_negative(coulomb, "coulomb")
        if (knee_speed is None) != (max_speed is None):
            raise ValueError("knee_speed and max_speed must be given together")
        if knee_speed is not None:
            validate_non_negative(knee_speed, "knee_speed")
            if max_speed <= knee_speed:
                raise ValueError(
                    f"max_speed ({max_speed}) must exceed knee_speed ({knee_speed})"
                )

        self.inertia = float(inertia)
        self.torque_max = None if torque_max is None else float(torque_max)
        self.torque_constant = float(torque_constant)
        self.knee_speed = None if knee_speed is None else float(knee_speed)
        self.max_speed = None if max_speed is None else float(max_speed)
        self.viscous = float(viscous)
        self.coulomb = float(coulomb)
        self.speed = float(speed)

        self.command = 0.0
        self.command_mode = "torque"
        self.torque = 0.0
        self._t_last: float | None = None

    @property
    def momentum(self) -> float:
        """Rotor angular momentum about the spin axis [N m s]."""
        return self.inertia * self.speed

    def set_torque(self, torque: float) -> None:
        self.command_mode = "torque"
        self.command = float(torque)

    def set_current(self, current: float) -> None:
        self.command_mode = "current"
        self.command = float(current)

    def motor_torque(self) -> float:
        """Motor torque for the current command after limits."""
        if self.command_mode == "current":
            tau = self.torque_constant * self.command
        else:
            tau = self.command
        if self.torque_max is not None:
            tau = float(np.clip(tau, -self.torque_max, self.torque_max))
        if self.knee_speed is not None:
            s = abs(self.speed)
            if s >= self.max_speed:
                tau = 0.0
            elif s > self.knee_speed:
                tau *= (self.max_speed - s) / (self.max_speed - self.knee_speed)
        return tau

    def friction_torque(self) -> float:
        return -self.viscous * self.speed - self.coulomb * float(np.sign(self.speed))

    def update(self, body: Body, actuator_from_body: SpatialTransform, t: float) -> Force:
        t = float(t)
        if self._t_last is not None and t > self._t_last:
            self.speed += self.torque / self.inertia * (t - self._t_last)
        self._t_last = t
        self.torque = self.motor_torque() + self.friction_torque()
        torque_body = actuator_from_body.rotation.T @ np.array([0.0, 0.0, -self.torque])
        return Force(torque_body, None)

    def result_values(self) -> list[float]:
        return [self.command, self.torque, self.speed, self.momentum]


class Actuator:
    """
    Actuator entity.

    Parameters
    ----------
    name : str
        Unique identifier for the actuator
    model : ActuatorModel
        Load model

    Attributes
    ----------
    force : Force
        Load held for the current step, body coordinates about the body origin
    """
    __slots__ = ("name", "model", "body", "transform", "force")

    def __init__(self, name: str, model: ActuatorModel) -> None:
        validate_name(name, "Actuator")
        if not isinstance(model, ActuatorModel):
            raise TypeError(
                f"Actuator model must be an ActuatorModel, got {type(model).__name__}"
            )
        self.name = name
        self.model = model
        self.body: int | None = None
        self.transform = SpatialTransform.identity()
        self.force = Force()

    def update(self, body: Body, t: float) -> None:
        self.force = self.model.update(body, self.transform, t)
