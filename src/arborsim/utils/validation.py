"""
Validation utilities for physical parameters and model inputs.

Invalid values raise ``ValueError``. Values that are usable but suspicious
issue a ``RuntimeWarning`` so a long parameter study is not interrupted.
"""
from __future__ import annotations

import warnings

import numpy as np
from numpy.typing import NDArray


def validate_positive(value: float, name: str, strict: bool = True) -> None:
    """
    Validate that a scalar value is positive.

    Parameters
    ----------
    value : float
        Value to validate
    name : str
        Parameter name for error messages
    strict : bool
        If True, raise ValueError. If False, issue warning.

    Raises
    ------
    ValueError
        If strict=True and value <= 0
    """
    if not np.isfinite(value) or value <= 0:
        msg = f"{name} must be positive, got {value}"
        if strict:
            raise ValueError(msg)
        warnings.warn(msg, RuntimeWarning, stacklevel=2)


def validate_non_negative(value: float, name: str) -> None:
    """Validate that a value is non-negative."""
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def validate_name(name: str, kind: str = "Entity") -> None:
    """Entity names are used as lookup keys and CSV column prefixes."""
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"{kind} name must be a non-empty string, got {name!r}")
    if "," in name:
        raise ValueError(f"{kind} name must not contain ',', got {name!r}")


def validate_vector3(v, name: str) -> NDArray[np.float64]:
    """
    Return ``v`` as a finite float64 array of shape (3,).

    Raises
    ------
    ValueError
        If the shape is wrong or any entry is not finite.
    """
    out = np.asarray(v, dtype=np.float64)
    if out.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {out.shape}")
    if not np.all(np.isfinite(out)):
        raise ValueError(f"{name} must be finite, got {out}")
    return out.copy()


def validate_unit_axis(axis, name: str = "axis") -> NDArray[np.float64]:
    """Return the normalized joint axis, rejecting zero vectors."""
    a = validate_vector3(axis, name)
    n = np.linalg.norm(a)
    if n < 1e-12:
        raise ValueError(f"{name} must be non-zero, got {a}")
    if abs(n - 1.0) > 1e-9:
        warnings.warn(
            f"{name} is not unit length (|a| = {n:.6f}); normalizing.",
            RuntimeWarning,
            stacklevel=3,
        )
    return a / n


def validate_quaternion(q: NDArray[np.float64], tol: float = 1e-6) -> None:
    """
    Validate that array is a unit quaternion.

    Parameters
    ----------
    q : NDArray[np.float64]
        Quaternion [x, y, z, w]
    tol : float
        Tolerance for unit norm check

    Raises
    ------
    ValueError
        If quaternion shape is invalid or the norm is zero
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"Quaternion must have shape (4,), got {q.shape}")

    norm = np.linalg.norm(q)
    if norm < 1e-12:
        raise ValueError("Quaternion must have non-zero norm")
    if abs(norm - 1.0) > tol:
        warnings.warn(
            f"Quaternion not normalized: |q| = {norm:.6f}. "
            "It will be normalized before use.",
            RuntimeWarning,
            stacklevel=2
        )


def validate_inertia_tensor(I: NDArray[np.float64]) -> None:
    """
    Validate inertia tensor is 3x3 and positive definite.

    Parameters
    ----------
    I : NDArray[np.float64]
        Inertia tensor about the center of mass (3, 3)

    Raises
    ------
    ValueError
        If shape is wrong or matrix is not positive definite
    """
    I = np.asarray(I, dtype=np.float64)
    if I.shape != (3, 3):
        raise ValueError(f"Inertia tensor must be 3x3, got shape {I.shape}")

    if not np.allclose(I, I.T):
        warnings.warn(
            "Inertia tensor is not symmetric. Using (I + I^T)/2.",
            RuntimeWarning,
            stacklevel=2
        )

    eigenvalues = np.linalg.eigvalsh(0.5 * (I + I.T))
    if np.any(eigenvalues <= 0):
        raise ValueError(
            f"Inertia tensor must be positive definite. "
            f"Got eigenvalues: {eigenvalues}"
        )


def validate_timestep(dt: float, max_dt: float = 1.0) -> None:
    """
    Validate timestep is positive and reasonable.

    Parameters
    ----------
    dt : float
        Time step [s]
    max_dt : float
        Maximum reasonable timestep [s]

    Raises
    ------
    ValueError
        If timestep is invalid
    """
    if not np.isfinite(dt) or dt <= 0:
        raise ValueError(f"Timestep must be positive, got {dt}")
    if dt > max_dt:
        warnings.warn(
            f"Large timestep {dt}s may cause instability. "
            f"Consider using dt < {max_dt}s.",
            RuntimeWarning,
            stacklevel=2
        )


def validate_time_span(tstart: float, tstop: float) -> None:
    """Integration interval must be finite and non-decreasing."""
    if not (np.isfinite(tstart) and np.isfinite(tstop)):
        raise ValueError(f"Time span must be finite, got [{tstart}, {tstop}]")
    if tstop < tstart:
        raise ValueError(f"tstop ({tstop}) must not be before tstart ({tstart})")
