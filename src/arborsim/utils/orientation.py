"""
Frame transform builders for connecting bodies, joints and sensors.

``connect`` expects a :class:`SpatialTransform` that maps parent-frame
coordinates to child-frame coordinates. These helpers let the child frame be
described the intuitive way instead: where its origin sits in the parent
frame and how its axes are rotated relative to the parent's.

Examples
--------
>>> from arborsim.utils.orientation import frame, frame_from_euler

# Joint frame 1 m down the inner body's -Y axis
>>> T = frame(translation=[0, -1, 0])

# Sensor yawed 90° on its body
>>> T = frame_from_euler(yaw=90)
"""
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation as R

from arborsim.dynamics.spatial import SpatialTransform


# =============================================================================
# Identity quaternion (no rotation)
# =============================================================================

IDENTITY: NDArray[np.float64] = np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)
"""Identity quaternion [0, 0, 0, 1] representing no rotation."""


def frame(
    translation: tuple[float, float, float] | list[float] | NDArray | None = None,
    attitude: NDArray[np.float64] | None = None,
) -> SpatialTransform:
    """
    Transform to a child frame located and rotated inside a parent frame.

    Parameters
    ----------
    translation : array-like | None
        Child origin in parent coordinates [m]
    attitude : NDArray[np.float64] | None
        Quaternion parent_R_child [x, y, z, w] (child axes in parent)

    Returns
    -------
    SpatialTransform
        child_from_parent
    """
    if attitude is None:
        return SpatialTransform(None, translation)
    return SpatialTransform.from_quat(attitude, translation)


# =============================================================================
# Euler Angles (Roll, Pitch, Yaw)
# =============================================================================

def frame_from_euler(
    roll: float = 0.0,
    pitch: float = 0.0,
    yaw: float = 0.0,
    translation: tuple[float, float, float] | list[float] | NDArray | None = None,
    degrees: bool = True,
    order: str = "xyz",
) -> SpatialTransform:
    """
    Child frame rotated by Euler angles relative to the parent.

    Parameters
    ----------
    roll, pitch, yaw : float
        Rotations about X, Y and Z [degrees or radians]
    translation : array-like | None
        Child origin in parent coordinates [m]
    degrees : bool
        If True (default), angles are in degrees.
    order : str
        Euler sequence. Default "xyz" (extrinsic).
    """
    rot = R.from_euler(order, [roll, pitch, yaw], degrees=degrees)
    return frame(translation, rot.as_quat())


# =============================================================================
# Axis-Angle Rotation
# =============================================================================

def frame_from_axis_angle(
    axis: tuple[float, float, float] | list[float] | NDArray,
    angle: float,
    translation: tuple[float, float, float] | list[float] | NDArray | None = None,
    degrees: bool = True,
) -> SpatialTransform:
    """
    Child frame rotated by ``angle`` about ``axis`` (parent coordinates).

    Examples
    --------
    >>> # Joint frame whose Z axis points along the parent's +X
    >>> T = frame_from_axis_angle([0, 1, 0], 90)
    """
    axis = np.asarray(axis, dtype=np.float64)
    n = np.linalg.norm(axis)
    if n < 1e-12:
        raise ValueError("Rotation axis must be non-zero")
    if degrees:
        angle = np.deg2rad(angle)
    rot = R.from_rotvec(axis / n * angle)
    return frame(translation, rot.as_quat())


# =============================================================================
# Axis alignment
# =============================================================================

def frame_aligned_axes(
    child_axis: str,
    parent_direction: tuple[float, float, float] | list[float] | NDArray,
    translation: tuple[float, float, float] | list[float] | NDArray | None = None,
) -> SpatialTransform:
    """
    Child frame whose ``child_axis`` points along ``parent_direction``.

    Uses the minimum rotation. Handy for mounting single-axis sensors, which
    measure about their X axis.

    Parameters
    ----------
    child_axis : str
        'x', 'y' or 'z', optionally signed ('-x')
    parent_direction : array-like
        Target direction in parent coordinates. Normalized.
    """
    axis = child_axis.lower().strip()
    sign = 1.0
    if axis.startswith('-'):
        sign = -1.0
        axis = axis[1:]
    elif axis.startswith('+'):
        axis = axis[1:]

    axis_map = {'x': 0, 'y': 1, 'z': 2}
    if axis not in axis_map:
        raise ValueError(f"child_axis must be 'x', 'y', or 'z', got '{child_axis}'")

    target = np.asarray(parent_direction, dtype=np.float64)
    n = np.linalg.norm(target)
    if n < 1e-12:
        raise ValueError("parent_direction must be non-zero")
    target = sign * target / n

    body_vec = np.zeros(3)
    body_vec[axis_map[axis]] = 1.0

    # Rotation taking the child axis (as a parent vector) onto target
    rot, _ = R.align_vectors([target], [body_vec])
    return frame(translation, rot.as_quat())


# =============================================================================
# Conversion utilities
# =============================================================================

def quaternion_to_euler(
    q: NDArray[np.float64],
    order: str = "xyz",
    degrees: bool = True
) -> tuple[float, float, float]:
    """
    Convert quaternion to Euler angles for inspection.

    Parameters
    ----------
    q : NDArray[np.float64]
        Quaternion [x, y, z, w]
    order : str
        Euler sequence, default "xyz"
    degrees : bool
        If True, return degrees. Otherwise radians.
    """
    angles = R.from_quat(q).as_euler(order, degrees=degrees)
    return tuple(float(a) for a in angles)


def describe_attitude(q: NDArray[np.float64]) -> str:
    """
    Human-readable attitude, e.g. for a body's ``state.attitude_base``.

    Examples
    --------
    >>> describe_attitude([0, 0, 0.7071068, 0.7071068])
    'Roll: 0.0°, Pitch: 0.0°, Yaw: 90.0°'
    """
    roll, pitch, yaw = quaternion_to_euler(q, degrees=True)
    return f"Roll: {roll:.1f}°, Pitch: {pitch:.1f}°, Yaw: {yaw:.1f}°"
