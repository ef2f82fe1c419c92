"""
Sensor models mounted on bodies.

Sensors are updated once per integration step, after the body states for
that step are known. Each sensor owns a ``sensor_from_body`` transform set by
``connect(sensor, body, transform)``.
"""
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation as ScR

from arborsim.dynamics.body import Body
from arborsim.dynamics.spatial import SpatialTransform
from arborsim.utils.validation import validate_name, validate_non_negative


class NoNoise:
    """Zero noise."""
    def sample(self) -> float:
        return 0.0


class GaussianNoise:
    """
    Gaussian white noise.

    Parameters
    ----------
    mean : float
        Distribution mean
    sigma : float
        Standard deviation. Must be non-negative.
    seed : int | None
        Seed for the generator. A fresh random seed is used if None.
    """
    def __init__(self, mean: float = 0.0, sigma: float = 1.0, seed: int | None = None) -> None:
        validate_non_negative(sigma, "sigma")
        self.mean = float(mean)
        self.sigma = float(sigma)
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def sample(self) -> float:
        return float(self._rng.normal(self.mean, self.sigma))


class UniformNoise:
    """Uniform noise on [low, high)."""
    def __init__(self, low: float = -1.0, high: float = 1.0, seed: int | None = None) -> None:
        if high < low:
            raise ValueError(f"high ({high}) must not be below low ({low})")
        self.low = float(low)
        self.high = float(high)
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def sample(self) -> float:
        return float(self._rng.uniform(self.low, self.high))


def _noise_triplet(noise) -> list:
    if noise is None:
        return [NoNoise(), NoNoise(), NoNoise()]
    if isinstance(noise, (list, tuple)):
        if len(noise) != 3:
            raise ValueError(f"Expected 3 noise models, got {len(noise)}")
        return list(noise)
    # Independent streams per axis
    seed = getattr(noise, "seed", None)
    out = []
    for k in range(3):
        s = None if seed is None else seed + k
        if isinstance(noise, GaussianNoise):
            out.append(GaussianNoise(noise.mean, noise.sigma, s))
        elif isinstance(noise, UniformNoise):
            out.append(UniformNoise(noise.low, noise.high, s))
        else:
            out.append(noise)
    return out


class SensorModel:
    """Interface for sensor models."""
    result_names: tuple[str, ...] = ()

    def update(self, body: Body, sensor_from_body: SpatialTransform) -> None:
        raise NotImplementedError

    def result_values(self) -> list[float]:
        raise NotImplementedError


class RateSensor(SensorModel):
    """
    Single-axis rate sensor measuring about the sensor +X axis.

    The transform should put the sensor X axis along the desired body axis.
    """
    result_names = ("value", "noise")

    def __init__(self, noise=None) -> None:
        self.noise_model = noise if noise is not None else NoNoise()
        self.value = 0.0
        self.noise = 0.0

    def update(self, body: Body, sensor_from_body: SpatialTransform) -> None:
        rate = sensor_from_body.rotation @ body.state.angular_rate
        self.noise = self.noise_model.sample()
        self.value = float(rate[0]) + self.noise

    def result_values(self) -> list[float]:
        return [self.value, self.noise]


class Rate3Sensor(SensorModel):
    """Three-axis rate gyro measuring body angular rate in the sensor frame."""
    result_names = ("value_x", "value_y", "value_z", "noise_x", "noise_y", "noise_z")

    def __init__(self, noise=None) -> None:
        self.noise_models = _noise_triplet(noise)
        self.value = np.zeros(3, dtype=np.float64)
        self.noise = np.zeros(3, dtype=np.float64)

    def update(self, body: Body, sensor_from_body: SpatialTransform) -> None:
        rate = sensor_from_body.rotation @ body.state.angular_rate
        self.noise = np.array([n.sample() for n in self.noise_models], dtype=np.float64)
        self.value = rate + self.noise

    def result_values(self) -> list[float]:
        return [*self.value, *self.noise]


class StarTracker(SensorModel):
    """
    Attitude sensor reporting the sensor frame attitude relative to the base.

    The measurement is the quaternion base_R_sensor (scalar-last), perturbed
    by a small rotation built from per-axis noise in radians.

    Parameters
    ----------
    noise : noise model | list | None
        Angular noise per sensor axis [rad]
    misalignment : NDArray[np.float64] | None
        Quaternion of an additional fixed mounting error, sensor frame
    """
    result_names = ("q_x", "q_y", "q_z", "q_w")

    def __init__(self, noise=None, misalignment: NDArray[np.float64] | None = None) -> None:
        self.noise_models = _noise_triplet(noise)
        self.misalignment = None if misalignment is None else ScR.from_quat(misalignment)
        self.measurement = np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)

    def update(self, body: Body, sensor_from_body: SpatialTransform) -> None:
        base_R_body = ScR.from_quat(body.state.attitude_base)
        body_R_sensor = ScR.from_matrix(sensor_from_body.rotation.T)
        rot = base_R_body * body_R_sensor
        if self.misalignment is not None:
            rot = rot * self.misalignment
        err = np.array([n.sample() for n in self.noise_models], dtype=np.float64)
        rot = rot * ScR.from_rotvec(err)
        q = rot.as_quat()
        # Keep a continuous sign for logging
        self.measurement = q if q[3] >= 0.0 else -q

    def result_values(self) -> list[float]:
        return list(self.measurement)


class Gps(SensorModel):
    """
    Position and velocity receiver.

    Reports the position and velocity of the sensor origin in the base frame,
    including the lever arm of the mount, with independent per-axis noise.

    Parameters
    ----------
    position_noise : noise model | list | None
        Position noise per base axis [m]
    velocity_noise : noise model | list | None
        Velocity noise per base axis [m/s]
    """
    result_names = (
        "position_x", "position_y", "position_z",
        "velocity_x", "velocity_y", "velocity_z",
    )

    def __init__(self, position_noise=None, velocity_noise=None) -> None:
        self.position_noise = _noise_triplet(position_noise)
        self.velocity_noise = _noise_triplet(velocity_noise)
        self.position = np.zeros(3, dtype=np.float64)
        self.velocity = np.zeros(3, dtype=np.float64)

    def update(self, body: Body, sensor_from_body: SpatialTransform) -> None:
        R = body.state.rotation_base()
        lever = sensor_from_body.translation
        position = body.state.position_base + R @ lever
        velocity = body.state.velocity_base + R @ np.cross(body.state.angular_rate, lever)
        self.position = position + np.array([n.sample() for n in self.position_noise])
        self.velocity = velocity + np.array([n.sample() for n in self.velocity_noise])

    def result_values(self) -> list[float]:
        return [*self.position, *self.velocity]


class Sensor:
    """
    Sensor entity.

    Parameters
    ----------
    name : str
        Unique identifier for the sensor
    model : SensorModel
        Measurement model
    """
    __slots__ = ("name", "model", "body", "transform")

    def __init__(self, name: str, model: SensorModel) -> None:
        validate_name(name, "Sensor")
        if not isinstance(model, SensorModel):
            raise TypeError(f"Sensor model must be a SensorModel, got {type(model).__name__}")
        self.name = name
        self.model = model
        self.body: int | None = None
        self.transform = SpatialTransform.identity()

    def update(self, body: Body) -> None:
        self.model.update(body, self.transform)
