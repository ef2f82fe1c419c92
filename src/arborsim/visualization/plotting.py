from __future__ import annotations
import os
import csv
from typing import Dict, Tuple, List, Iterable
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401  (registers 3D projection)

COLORS = ["#1a73e8", "#34a853", "#fbbc05", "#ea4335", "#9334e6", "#12b5cb"]


def _load_csv(filepath: str) -> Tuple[np.ndarray, Dict[str, np.ndarray], List[str]]:
    """
    Load a CSV produced by ResultLogger.

    Returns
    -------
    t : (N,) array
        Time vector.
    cols : dict[str, np.ndarray]
        Mapping column_name -> (N,) array.
    headers : list[str]
        Column headers in order (first one should be 't').
    """
    with open(filepath, "r", newline="") as f:
        reader = csv.reader(f)
        headers = next(reader)
    if headers[0] != "t":
        raise ValueError("First column must be time 't'.")
    data = np.loadtxt(filepath, delimiter=",", skiprows=1, dtype=float, ndmin=2)
    cols: Dict[str, np.ndarray] = {}
    for j, name in enumerate(headers):
        cols[name] = data[:, j]
    return cols["t"], cols, headers


def _get_components(cols: Dict[str, np.ndarray], names: Iterable[str]) -> List[np.ndarray]:
    out = []
    for name in names:
        if name not in cols:
            raise KeyError(f"Column '{name}' not found in CSV.")
        out.append(cols[name])
    return out


def _entity_columns(headers: List[str], prefix: str) -> List[str]:
    cols = [h for h in headers if h.startswith(f"{prefix}.")]
    if not cols:
        raise KeyError(f"No columns for '{prefix}' found in CSV.")
    return cols


def _finish(fig: Figure, save_path: str | None, show: bool) -> Figure:
    fig.tight_layout()
    if save_path:
        os.makedirs(os.path.dirname(save_path) or ".", exist_ok=True)
        fig.savefig(save_path, dpi=180, bbox_inches="tight")
    if show:
        plt.show()
    return fig


def plot_joint_states(
    csv_path: str,
    joint_name: str,
    save_path: str | None = None,
    show: bool = True,
) -> Figure:
    """
    Plot every logged state and acceleration column of one joint.

    Position-like states go in the top panel, rates in the middle panel and
    generalized accelerations in the bottom panel.

    Parameters
    ----------
    csv_path : str
        Path to joints.csv.
    joint_name : str
        The name used when adding the joint (e.g., 'hinge').
    save_path : str | None
        If given, save the figure to this path (png/svg).
    show : bool
        Whether to call plt.show().

    Returns
    -------
    fig : Figure
    """
    t, cols, headers = _load_csv(csv_path)
    names = _entity_columns(headers, joint_name)
    short = [n.split(".", 1)[1] for n in names]

    rate_keys = ("rate", "velocity", "w_", "v_")
    accel_keys = ("accel", "dw_", "dv_")
    groups = {"position": [], "rate": [], "acceleration": []}
    for full, s in zip(names, short):
        if s.startswith(accel_keys):
            groups["acceleration"].append((full, s))
        elif s.startswith(rate_keys):
            groups["rate"].append((full, s))
        else:
            groups["position"].append((full, s))

    fig, axes = plt.subplots(3, 1, figsize=(10, 8), sharex=True)
    for ax, (title, items) in zip(axes, groups.items()):
        for k, (full, s) in enumerate(items):
            ax.plot(t, cols[full], label=s, color=COLORS[k % len(COLORS)])
        ax.set_ylabel(title)
        ax.grid(True, alpha=0.3)
        if items:
            ax.legend(loc="best")
    axes[0].set_title(f"Joint states — {joint_name}")
    axes[-1].set_xlabel("t [s]")
    return _finish(fig, save_path, show)


def plot_body_trajectory(
    csv_path: str,
    body_name: str,
    save_path: str | None = None,
    show: bool = True,
) -> Figure:
    """
    Plot the 3D path of a body origin in the base frame and its components.

    Parameters
    ----------
    csv_path : str
        Path to bodies.csv.
    body_name : str
    save_path : str | None
    show : bool

    Returns
    -------
    fig : Figure
    """
    t, cols, _ = _load_csv(csv_path)
    px, py, pz = _get_components(cols, [f"{body_name}.p_{c}" for c in "xyz"])

    fig = plt.figure(figsize=(10, 6))
    gs = fig.add_gridspec(2, 2, height_ratios=[2.0, 1.0])
    ax3d = fig.add_subplot(gs[0, :], projection="3d")
    axp = fig.add_subplot(gs[1, :])

    ax3d.plot(px, py, pz, lw=2.0, color=COLORS[0])
    ax3d.scatter(px[0], py[0], pz[0], color=COLORS[1], s=40, label="start")
    ax3d.scatter(px[-1], py[-1], pz[-1], color=COLORS[3], s=40, label="end")
    ax3d.set_xlabel("x [m]"); ax3d.set_ylabel("y [m]"); ax3d.set_zlabel("z [m]")
    ax3d.set_title(f"Trajectory in base frame — {body_name}")
    ax3d.legend(loc="best")

    for k, (c, p) in enumerate(zip("xyz", (px, py, pz))):
        axp.plot(t, p, label=f"p_{c}", color=COLORS[k])
    axp.set_xlabel("t [s]"); axp.set_ylabel("position [m]")
    axp.grid(True, alpha=0.3)
    axp.legend(loc="best")

    return _finish(fig, save_path, show)


def plot_body_rates(
    csv_path: str,
    body_name: str,
    save_path: str | None = None,
    show: bool = True,
    magnitude: bool = True,
) -> Figure:
    """
    Plot body-frame angular rate components and magnitude.

    Returns
    -------
    fig : Figure
    """
    t, cols, _ = _load_csv(csv_path)
    W = np.column_stack(_get_components(cols, [f"{body_name}.w_{c}" for c in "xyz"]))

    fig, ax = plt.subplots(1, 1, figsize=(10, 4))
    for k, c in enumerate("xyz"):
        ax.plot(t, W[:, k], label=f"w_{c}", color=COLORS[k])
    if magnitude:
        ax.plot(t, np.linalg.norm(W, axis=1), label="|w|", color=COLORS[3], lw=2.0, alpha=0.8)
    ax.set_xlabel("t [s]"); ax.set_ylabel("angular rate [rad/s]")
    ax.grid(True, alpha=0.3)
    ax.legend(loc="best")
    ax.set_title(f"Body rates — {body_name}")
    return _finish(fig, save_path, show)


def plot_sensor(
    csv_path: str,
    sensor_name: str,
    save_path: str | None = None,
    show: bool = True,
) -> Figure:
    """Plot every logged column of one sensor against time."""
    t, cols, headers = _load_csv(csv_path)
    names = _entity_columns(headers, sensor_name)

    fig, ax = plt.subplots(1, 1, figsize=(10, 4))
    for k, full in enumerate(names):
        ax.plot(t, cols[full], label=full.split(".", 1)[1], color=COLORS[k % len(COLORS)])
    ax.set_xlabel("t [s]")
    ax.grid(True, alpha=0.3)
    ax.legend(loc="best")
    ax.set_title(f"Sensor — {sensor_name}")
    return _finish(fig, save_path, show)
