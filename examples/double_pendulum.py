"""
Double pendulum: two hinged links swinging under gravity.

Demonstrates:
- Building a chain with connect() and an offset joint frame
- Simulation with logging and automatic plot generation
- Energy diagnostics
"""
import time
from pathlib import Path
import sys

import numpy as np

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from arborsim import MassProperties, MultibodySystem, Revolute, SimOptions, Simulation
from arborsim.utils.orientation import frame


def build_system(L1: float = 1.0, L2: float = 0.8) -> MultibodySystem:
    system = MultibodySystem("double_pendulum")

    # Slender rods, center of mass halfway down each link
    m1, m2 = 1.0, 0.6
    system.add_body("upper", MassProperties(m1, [0.0, -L1 / 2, 0.0], m1 * L1**2 / 12 * np.eye(3)))
    system.add_body("lower", MassProperties(m2, [0.0, -L2 / 2, 0.0], m2 * L2**2 / 12 * np.eye(3)))

    system.add_joint("shoulder", Revolute(angle=np.deg2rad(120.0)))
    system.add_joint("elbow", Revolute(angle=np.deg2rad(-30.0)))

    system.connect("base", "shoulder")
    system.connect("shoulder", "upper")
    system.connect("upper", "elbow", frame(translation=[0.0, -L1, 0.0]))
    system.connect("elbow", "lower")

    system.set_gravity_constant([0.0, -9.81, 0.0])
    return system


def main():
    """Run double pendulum simulation."""
    print("=" * 60)
    print("Double Pendulum")
    print("=" * 60)

    system = build_system()
    sim = Simulation(system, SimOptions.from_preset("accurate", tstop=10.0, name="double_pendulum"),
                     auto_save_plots=True)
    sim.enable_logging()

    start = time.time()
    result = sim.run()
    elapsed = time.time() - start

    # Energy at the final state vs the initial state
    system.derivative(result.states[0], result.t[0])
    E0 = system.get_energy()["total"]
    system.derivative(result.states[-1], result.t[-1])
    E1 = system.get_energy()["total"]

    print(f"\nResults:")
    print(f"  Simulation time: {result.t[-1]:.3f} s")
    print(f"  Wall clock time: {elapsed:.3f} s")
    print(f"  Speed: {result.t[-1]/elapsed:.1f}x realtime")
    print(f"  Energy drift: {abs(E1 - E0) / abs(E0) * 100:.2e}%")

    df = result.to_dataframe("joints")
    print(f"\nElbow angle range: [{df['elbow.angle'].min():.3f}, {df['elbow.angle'].max():.3f}] rad")

    print(f"\nOutput saved to: {sim.output_path}")
    print("=" * 60)


if __name__ == "__main__":
    main()
