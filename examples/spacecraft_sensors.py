"""
Spacecraft with a reaction wheel in low Earth orbit.

Demonstrates:
- Floating joint for a free-flying bus
- Two-body gravity
- A motor-driven wheel on a revolute joint
- A reaction wheel actuator and a thruster mounted on the bus
- Gyro, star tracker and GPS sensors with noise
- Sensor plots from the CSV logs
"""
from pathlib import Path
import sys

import numpy as np

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from arborsim import (
    Floating,
    GaussianNoise,
    Gps,
    JointParameters,
    MassProperties,
    MultibodySystem,
    Rate3Sensor,
    ReactionWheel,
    Revolute,
    SimOptions,
    Simulation,
    StarTracker,
    Thruster,
)
from arborsim.utils.orientation import describe_attitude, frame, frame_from_euler
from arborsim.visualization import plot_sensor

MU_EARTH = 3.986004418e14  # m^3/s^2


def build_system() -> MultibodySystem:
    system = MultibodySystem("spacecraft")

    r0 = 7.0e6
    v0 = np.sqrt(MU_EARTH / r0)

    system.add_body("bus", MassProperties.from_principal(500.0, 120.0, 150.0, 100.0))
    system.add_body("wheel", MassProperties.from_principal(4.0, 0.025, 0.025, 0.04))

    system.add_joint("orbit", Floating(position=[r0, 0.0, 0.0], velocity=[0.0, v0, 0.0]))
    # Wheel motor spins the rotor up about the bus Z axis
    system.add_joint("wheel_axis", Revolute(parameters=JointParameters(constant_force=0.05)))

    system.connect("base", "orbit")
    system.connect("orbit", "bus")
    system.connect("bus", "wheel_axis", frame(translation=[0.0, 0.0, 0.4]))
    system.connect("wheel_axis", "wheel")

    system.add_sensor("gyro", Rate3Sensor(GaussianNoise(0.0, 1e-5, seed=42)))
    system.add_sensor("star_tracker", StarTracker(GaussianNoise(0.0, 2e-5, seed=7)))
    system.add_sensor("gps", Gps(GaussianNoise(0.0, 5.0, seed=3), GaussianNoise(0.0, 0.05, seed=4)))
    system.connect("gyro", "bus")
    system.connect("star_tracker", "bus", frame_from_euler(pitch=-90.0))
    system.connect("gps", "bus", frame(translation=[0.0, 0.0, 1.2]))

    # Roll wheel spins about the bus X axis
    roll_wheel = ReactionWheel(0.04, torque_max=0.1, knee_speed=400.0, max_speed=600.0, viscous=1e-5)
    roll_wheel.set_torque(0.02)
    system.add_actuator("roll_wheel", roll_wheel)
    system.connect("roll_wheel", "bus", frame_from_euler(pitch=90.0))

    # Along-track thruster, off the center of mass
    thruster = Thruster(0.5)
    thruster.fire()
    system.add_actuator("thruster", thruster)
    system.connect("thruster", "bus", frame_from_euler(yaw=90.0, translation=[0.0, 0.0, -0.8]))

    system.set_gravity_two_body(MU_EARTH)
    return system


def main():
    print("=" * 60)
    print("Spacecraft with Reaction Wheel")
    print("=" * 60)

    system = build_system()
    sim = Simulation(system, SimOptions(0.0, 300.0, 0.1, name="spacecraft"))
    output = sim.enable_logging()
    result = sim.run(log_interval=60.0)
    sim.disable_logging()

    final = result.joint_state(system, "orbit")[-1]
    print(f"\nFinal bus attitude: {describe_attitude(final[0:4])}")
    print(f"Final bus rate: {final[7:10]} rad/s")
    print(f"Orbit radius: {np.linalg.norm(final[4:7]) / 1e3:.3f} km")
    print(f"Wheel rate: {result.joint_state(system, 'wheel_axis')[-1, 1]:.2f} rad/s")
    print(f"Roll wheel speed: {system.actuator('roll_wheel').model.speed:.2f} rad/s")

    sensors_csv = output / "logs" / "sensors.csv"
    for name in ("gyro", "star_tracker", "gps"):
        plot_sensor(str(sensors_csv), name, save_path=str(output / "plots" / f"{name}.png"), show=False)

    print(f"\nOutput saved to: {output}")
    print("=" * 60)


if __name__ == "__main__":
    main()
