"""
Spatial (6-D) vector algebra.

Spatial vectors stack a rotational part and a translational part:
``[rotation(3), translation(3)]``. Motion vectors (velocity, acceleration)
and force vectors (force, momentum) are dual to each other and transform
differently under a change of frame, so they are kept as distinct types.

Frame convention
----------------
A ``SpatialTransform`` named ``b_from_a`` re-expresses quantities given in
frame A in frame B:

- ``rotation`` is the 3x3 matrix taking A coordinates to B coordinates
- ``translation`` is the position of the B origin expressed in A

With ``E = rotation`` and ``r = translation``:

    motion matrix  X  = [[E, 0], [-E [r]x, E]]
    force matrix   X* = [[E, -E [r]x], [0, E]] = X^-T

References
----------
.. [1] Featherstone, R. (2008). Rigid Body Dynamics Algorithms. Springer.
"""
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from arborsim.errors import InvalidTransformError

# Tolerance on R R^T = I and det(R) = 1
ROTATION_ATOL = 1e-9


def skew(v: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Skew-symmetric matrix [v]x such that [v]x @ w = v x w.

    Parameters
    ----------
    v : NDArray[np.float64]
        Vector (3,)

    Returns
    -------
    NDArray[np.float64]
        Matrix (3, 3)
    """
    vx, vy, vz = v
    return np.array([
        [0.0, -vz, vy],
        [vz, 0.0, -vx],
        [-vy, vx, 0.0],
    ], dtype=np.float64)


def unskew(m: NDArray[np.float64]) -> NDArray[np.float64]:
    """Inverse of :func:`skew`. Uses the antisymmetric part of ``m``."""
    m = np.asarray(m, dtype=np.float64)
    return 0.5 * np.array([
        m[2, 1] - m[1, 2],
        m[0, 2] - m[2, 0],
        m[1, 0] - m[0, 1],
    ], dtype=np.float64)


def _vec3(v, name: str) -> NDArray[np.float64]:
    if v is None:
        return np.zeros(3, dtype=np.float64)
    out = np.asarray(v, dtype=np.float64).reshape(-1)
    if out.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {np.shape(v)}")
    return out.copy()


# =============================================================================
# Spatial vectors
# =============================================================================

class SpatialVector:
    """
    Six-component vector ``[rotation(3), translation(3)]``.

    Not used directly in the dynamics; use :class:`MotionVector` or
    :class:`ForceVector` so the frame-change rule is unambiguous.
    """
    __slots__ = ("rotation", "translation")

    def __init__(self, rotation=None, translation=None) -> None:
        self.rotation = _vec3(rotation, "rotation")
        self.translation = _vec3(translation, "translation")

    @classmethod
    def zeros(cls):
        return cls()

    @classmethod
    def from_array(cls, a):
        a = np.asarray(a, dtype=np.float64).reshape(-1)
        if a.shape != (6,):
            raise ValueError(f"Spatial vector must have shape (6,), got {a.shape}")
        return cls(a[:3], a[3:])

    def to_array(self) -> NDArray[np.float64]:
        return np.concatenate([self.rotation, self.translation])

    def _family(self) -> type:
        for family in (MotionVector, ForceVector):
            if isinstance(self, family):
                return family
        return SpatialVector

    def _check_same_family(self, other, op: str) -> None:
        if not isinstance(other, SpatialVector):
            raise TypeError(f"Cannot {op} {type(self).__name__} and {type(other).__name__}")
        if self._family() is not other._family():
            raise TypeError(
                f"Cannot {op} {type(self).__name__} and {type(other).__name__}: "
                "motion and force vectors live in dual spaces"
            )

    def __add__(self, other):
        self._check_same_family(other, "add")
        return type(self)(self.rotation + other.rotation, self.translation + other.translation)

    def __sub__(self, other):
        self._check_same_family(other, "subtract")
        return type(self)(self.rotation - other.rotation, self.translation - other.translation)

    def __neg__(self):
        return type(self)(-self.rotation, -self.translation)

    def __mul__(self, scalar):
        if isinstance(scalar, SpatialVector):
            return NotImplemented
        s = float(scalar)
        return type(self)(s * self.rotation, s * self.translation)

    __rmul__ = __mul__

    def allclose(self, other, atol: float = 1e-9) -> bool:
        return bool(np.allclose(self.to_array(), other.to_array(), atol=atol))

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(rotation={self.rotation.tolist()}, "
                f"translation={self.translation.tolist()})")


class MotionVector(SpatialVector):
    """Spatial motion vector ``[angular, linear]``."""
    __slots__ = ()

    def dot(self, f: ForceVector) -> float:
        """Scalar product with a force vector (power)."""
        if not isinstance(f, ForceVector):
            raise TypeError("Motion vectors can only be dotted with force vectors")
        return float(self.rotation @ f.rotation + self.translation @ f.translation)


class ForceVector(SpatialVector):
    """Spatial force vector ``[moment, force]``."""
    __slots__ = ()

    def dot(self, v: MotionVector) -> float:
        if not isinstance(v, MotionVector):
            raise TypeError("Force vectors can only be dotted with motion vectors")
        return v.dot(self)


class Velocity(MotionVector):
    __slots__ = ()


class Acceleration(MotionVector):
    __slots__ = ()


class Momentum(ForceVector):
    __slots__ = ()


class Force(ForceVector):
    __slots__ = ()


def cross_motion(v1: MotionVector, v2: MotionVector) -> MotionVector:
    """
    Spatial cross product of two motion vectors, ``v1 x_m v2``.

    rotation = w1 x w2, translation = w1 x t2 + t1 x w2.
    """
    if not isinstance(v1, MotionVector) or not isinstance(v2, MotionVector):
        raise TypeError("cross_motion expects two motion vectors")
    w1, t1 = v1.rotation, v1.translation
    w2, t2 = v2.rotation, v2.translation
    return MotionVector(np.cross(w1, w2), np.cross(w1, t2) + np.cross(t1, w2))


def cross_force(v: MotionVector, f: ForceVector) -> ForceVector:
    """
    Spatial cross product of a motion vector with a force vector, ``v x_f f``.

    rotation = w x n + t x f, translation = w x f.
    """
    if not isinstance(v, MotionVector) or not isinstance(f, ForceVector):
        raise TypeError("cross_force expects a motion vector and a force vector")
    w, t = v.rotation, v.translation
    n, fl = f.rotation, f.translation
    return ForceVector(np.cross(w, n) + np.cross(t, fl), np.cross(w, fl))


# =============================================================================
# Spatial inertia
# =============================================================================

class SpatialInertia:
    """
    6x6 rigid-body inertia expressed at a frame origin.

    Structure for mass ``m``, center of mass ``c`` and inertia about the
    center of mass ``Ic``::

        [[Ic + m [c]x [c]x^T,  m [c]x],
         [m [c]x^T,            m 1  ]]
    """
    __slots__ = ("matrix",)

    def __init__(self, matrix: NDArray[np.float64] | None = None) -> None:
        if matrix is None:
            self.matrix = np.zeros((6, 6), dtype=np.float64)
        else:
            m = np.asarray(matrix, dtype=np.float64)
            if m.shape != (6, 6):
                raise ValueError(f"Spatial inertia must be 6x6, got shape {m.shape}")
            self.matrix = m.copy()

    @classmethod
    def from_mass_properties(cls, mp) -> SpatialInertia:
        m = mp.mass
        cx = skew(mp.center_of_mass)
        M = np.zeros((6, 6), dtype=np.float64)
        M[0:3, 0:3] = mp.inertia + m * cx @ cx.T
        M[0:3, 3:6] = m * cx
        M[3:6, 0:3] = m * cx.T
        M[3:6, 3:6] = m * np.eye(3)
        return cls(M)

    def to_mass_properties(self):
        """
        Recover mass, center of mass and central inertia.

        Raises
        ------
        ValueError
            If the mass entry is not positive.
        """
        from arborsim.dynamics.mass_properties import MassProperties

        M = self.matrix
        mass = float(M[5, 5])
        if mass <= 0.0:
            raise ValueError(f"Spatial inertia has non-positive mass {mass}")
        com = unskew(M[0:3, 3:6]) / mass
        cx = skew(com)
        inertia = M[0:3, 0:3] - mass * cx @ cx.T
        return MassProperties(mass, com, 0.5 * (inertia + inertia.T))

    def __add__(self, other: SpatialInertia) -> SpatialInertia:
        if not isinstance(other, SpatialInertia):
            return NotImplemented
        return SpatialInertia(self.matrix + other.matrix)

    def __sub__(self, other: SpatialInertia) -> SpatialInertia:
        if not isinstance(other, SpatialInertia):
            return NotImplemented
        return SpatialInertia(self.matrix - other.matrix)

    def __mul__(self, v):
        """Inertia times motion gives force (velocity gives momentum)."""
        if not isinstance(v, MotionVector):
            if isinstance(v, SpatialVector):
                raise TypeError("Spatial inertia maps motion vectors, not force vectors")
            return NotImplemented
        out = self.matrix @ v.to_array()
        cls = Momentum if isinstance(v, Velocity) else ForceVector
        return cls.from_array(out)

    def __repr__(self) -> str:
        return f"SpatialInertia(\n{self.matrix}\n)"


# =============================================================================
# Spatial transforms
# =============================================================================

class SpatialTransform:
    """
    Rigid frame transform ``b_from_a``.

    Parameters
    ----------
    rotation : NDArray[np.float64] | None
        3x3 matrix taking A coordinates to B coordinates. Identity if None.
    translation : NDArray[np.float64] | None
        Position of the B origin expressed in A [m]. Zero if None.

    Notes
    -----
    ``X2 * X1`` composes ``c_from_b * b_from_a -> c_from_a``. Applied to a
    :class:`MotionVector`, :class:`ForceVector` or :class:`SpatialInertia`
    the matching transform rule is used.

    Examples
    --------
    >>> t = SpatialTransform(translation=[0.0, 0.0, 1.0])
    >>> (t * t.inv()).is_identity()
    True
    """
    __slots__ = ("rotation", "translation")

    def __init__(self, rotation=None, translation=None) -> None:
        if rotation is None:
            self.rotation = np.eye(3, dtype=np.float64)
        else:
            rot = np.asarray(rotation, dtype=np.float64)
            if rot.shape != (3, 3):
                raise ValueError(f"Rotation must be 3x3, got shape {rot.shape}")
            if not np.all(np.isfinite(rot)):
                raise InvalidTransformError("Rotation contains non-finite values")
            if not (np.allclose(rot @ rot.T, np.eye(3), atol=ROTATION_ATOL)
                    and abs(np.linalg.det(rot) - 1.0) <= ROTATION_ATOL):
                raise InvalidTransformError(
                    f"Rotation must be orthonormal with determinant +1, got det={np.linalg.det(rot):.6g}"
                )
            self.rotation = rot.copy()
        self.translation = _vec3(translation, "translation")
        if not np.all(np.isfinite(self.translation)):
            raise InvalidTransformError("Translation contains non-finite values")

    @classmethod
    def identity(cls) -> SpatialTransform:
        return cls()

    @classmethod
    def from_translation(cls, translation) -> SpatialTransform:
        return cls(None, translation)

    @classmethod
    def from_quat(cls, q, translation=None) -> SpatialTransform:
        """
        Build from a scalar-last quaternion ``a_R_b`` (B axes in A).

        The stored rotation is its transpose, so the result maps A
        coordinates to B coordinates.
        """
        from scipy.spatial.transform import Rotation as ScR

        return cls(ScR.from_quat(q).as_matrix().T, translation)

    def motion_matrix(self) -> NDArray[np.float64]:
        E, rx = self.rotation, skew(self.translation)
        X = np.zeros((6, 6), dtype=np.float64)
        X[0:3, 0:3] = E
        X[3:6, 0:3] = -E @ rx
        X[3:6, 3:6] = E
        return X

    def force_matrix(self) -> NDArray[np.float64]:
        E, rx = self.rotation, skew(self.translation)
        X = np.zeros((6, 6), dtype=np.float64)
        X[0:3, 0:3] = E
        X[0:3, 3:6] = -E @ rx
        X[3:6, 3:6] = E
        return X

    def inv(self) -> SpatialTransform:
        """Inverse transform ``a_from_b``."""
        return SpatialTransform(self.rotation.T, -self.rotation @ self.translation)

    def transform_motion(self, v: MotionVector) -> MotionVector:
        E, r = self.rotation, self.translation
        w = E @ v.rotation
        t = E @ (v.translation - np.cross(r, v.rotation))
        return type(v)(w, t)

    def transform_force(self, f: ForceVector) -> ForceVector:
        E, r = self.rotation, self.translation
        n = E @ (f.rotation - np.cross(r, f.translation))
        fl = E @ f.translation
        return type(f)(n, fl)

    def transform_inertia(self, inertia: SpatialInertia) -> SpatialInertia:
        """
        Congruence transform ``X* I X^-1``.

        ``X^-1`` is the motion matrix of :meth:`inv`, exact for a rigid
        transform.
        """
        return SpatialInertia(self.force_matrix() @ inertia.matrix @ self.inv().motion_matrix())

    def __mul__(self, other):
        if isinstance(other, SpatialTransform):
            return SpatialTransform(
                self.rotation @ other.rotation,
                other.translation + other.rotation.T @ self.translation,
            )
        if isinstance(other, MotionVector):
            return self.transform_motion(other)
        if isinstance(other, ForceVector):
            return self.transform_force(other)
        if isinstance(other, SpatialInertia):
            return self.transform_inertia(other)
        return NotImplemented

    def is_identity(self, atol: float = 1e-9) -> bool:
        return bool(
            np.allclose(self.rotation, np.eye(3), atol=atol)
            and np.allclose(self.translation, 0.0, atol=atol)
        )

    def __repr__(self) -> str:
        return (f"SpatialTransform(rotation={self.rotation.tolist()}, "
                f"translation={self.translation.tolist()})")
