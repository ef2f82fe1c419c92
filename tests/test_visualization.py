"""
Tests for the visualization module.

Covers:
- Joint state, body trajectory, body rate and sensor plots
- Saving to disk
- Error handling for missing columns and malformed CSVs
"""
import pytest
import pandas as pd
import numpy as np

from arborsim.visualization import plotting
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for testing
import matplotlib.pyplot as plt
from matplotlib.figure import Figure


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def joints_csv(tmp_path):
    """Joint log with a revolute and a floating joint."""
    fn = tmp_path / "joints.csv"
    t = np.linspace(0, 5, 50)
    data = {
        "t": t,
        "hinge.angle": np.sin(t),
        "hinge.rate": np.cos(t),
        "hinge.accel": -np.sin(t),
    }
    for c in "xyzw":
        data[f"float.q_{c}"] = np.ones_like(t) * (1.0 if c == "w" else 0.0)
    for c in "xyz":
        data[f"float.r_{c}"] = t
        data[f"float.w_{c}"] = np.zeros_like(t)
        data[f"float.v_{c}"] = np.ones_like(t)
        data[f"float.dw_{c}"] = np.zeros_like(t)
        data[f"float.dv_{c}"] = np.zeros_like(t)
    pd.DataFrame(data).to_csv(fn, index=False)
    return fn


@pytest.fixture
def bodies_csv(tmp_path):
    fn = tmp_path / "bodies.csv"
    t = np.linspace(0, 5, 50)
    pd.DataFrame({
        "t": t,
        "bob.p_x": np.sin(t),
        "bob.p_y": -np.cos(t),
        "bob.p_z": np.zeros_like(t),
        "bob.w_x": np.zeros_like(t),
        "bob.w_y": np.zeros_like(t),
        "bob.w_z": np.cos(t),
    }).to_csv(fn, index=False)
    return fn


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


# =============================================================================
# Plots
# =============================================================================

def test_plot_joint_states(joints_csv, tmp_path):
    save = tmp_path / "plots" / "hinge.png"
    fig = plotting.plot_joint_states(str(joints_csv), "hinge", save_path=str(save), show=False)
    assert isinstance(fig, Figure)
    assert save.exists()
    labels = [line.get_label() for ax in fig.axes for line in ax.get_lines()]
    assert labels == ["angle", "rate", "accel"]


def test_plot_floating_joint_groups(joints_csv):
    fig = plotting.plot_joint_states(str(joints_csv), "float", show=False)
    position, rate, accel = fig.axes[:3]
    assert len(position.get_lines()) == 7
    assert len(rate.get_lines()) == 6
    assert len(accel.get_lines()) == 6


def test_plot_body_trajectory(bodies_csv, tmp_path):
    save = tmp_path / "traj.png"
    fig = plotting.plot_body_trajectory(str(bodies_csv), "bob", save_path=str(save), show=False)
    assert isinstance(fig, Figure)
    assert save.exists()


def test_plot_body_rates(bodies_csv):
    fig = plotting.plot_body_rates(str(bodies_csv), "bob", show=False)
    assert len(fig.axes[0].get_lines()) == 4
    fig = plotting.plot_body_rates(str(bodies_csv), "bob", show=False, magnitude=False)
    assert len(fig.axes[0].get_lines()) == 3


def test_plot_sensor(tmp_path):
    fn = tmp_path / "sensors.csv"
    t = np.linspace(0, 1, 10)
    pd.DataFrame({"t": t, "gyro.value": t, "gyro.noise": 0 * t}).to_csv(fn, index=False)
    fig = plotting.plot_sensor(str(fn), "gyro", show=False)
    assert len(fig.axes[0].get_lines()) == 2


# =============================================================================
# Errors
# =============================================================================

def test_missing_entity(joints_csv, bodies_csv):
    with pytest.raises(KeyError):
        plotting.plot_joint_states(str(joints_csv), "elbow", show=False)
    with pytest.raises(KeyError):
        plotting.plot_body_trajectory(str(bodies_csv), "cart", show=False)


def test_first_column_must_be_time(tmp_path):
    fn = tmp_path / "bad.csv"
    pd.DataFrame({"x": [1.0], "t": [0.0]}).to_csv(fn, index=False)
    with pytest.raises(ValueError, match="time"):
        plotting.plot_joint_states(str(fn), "x", show=False)


def test_single_row_log(tmp_path):
    fn = tmp_path / "joints.csv"
    pd.DataFrame({"t": [0.0], "hinge.angle": [0.1], "hinge.rate": [0.0]}).to_csv(fn, index=False)
    fig = plotting.plot_joint_states(str(fn), "hinge", show=False)
    assert isinstance(fig, Figure)
