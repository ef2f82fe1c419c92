from .spatial import (
    Acceleration,
    Force,
    Momentum,
    SpatialInertia,
    SpatialTransform,
    Velocity,
)
from .mass_properties import MassProperties
from .body import Base, Body
from .joints import Floating, Joint, JointParameters, Prismatic, Revolute
from .forces import BodyForce, CelestialGravity, ConstantGravity, NewtonianGravity, TwoBodyGravity
from .sensors import GaussianNoise, Gps, Rate3Sensor, RateSensor, Sensor, StarTracker, UniformNoise
from .actuators import Actuator, ActuatorModel, ReactionWheel, Thruster
