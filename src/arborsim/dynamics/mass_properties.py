"""
Rigid body mass properties.

All quantities are expressed in the body frame. The inertia tensor is taken
about the center of mass, not about the body origin.
"""
from __future__ import annotations

import warnings

import numpy as np
from numpy.typing import NDArray

from arborsim.utils.validation import (
    validate_inertia_tensor,
    validate_positive,
    validate_vector3,
)

MIN_MASS = 1e-10  # Below this the articulated inertia becomes ill-conditioned


class MassProperties:
    """
    Mass, center of mass and central inertia of a rigid body.

    Parameters
    ----------
    mass : float
        Body mass [kg]. Must be positive.
    center_of_mass : NDArray[np.float64] | None
        Center of mass in the body frame [m] (3,). Defaults to the origin.
    inertia : NDArray[np.float64] | None
        3x3 inertia tensor about the center of mass [kg·m²]. Defaults to
        identity.

    Raises
    ------
    ValueError
        If mass is not positive or inertia is not positive definite.
    """
    __slots__ = ("mass", "center_of_mass", "inertia")

    def __init__(
        self,
        mass: float = 1.0,
        center_of_mass: NDArray[np.float64] | None = None,
        inertia: NDArray[np.float64] | None = None,
    ) -> None:
        validate_positive(mass, "mass")
        if mass < MIN_MASS:
            warnings.warn(
                f"Very small mass ({mass} kg) detected. Consider using a larger value.",
                RuntimeWarning, stacklevel=2
            )
        self.mass = float(mass)
        self.center_of_mass = (np.zeros(3, dtype=np.float64) if center_of_mass is None
                               else validate_vector3(center_of_mass, "center_of_mass"))
        I = np.eye(3, dtype=np.float64) if inertia is None else np.asarray(inertia, dtype=np.float64)
        validate_inertia_tensor(I)
        self.inertia = 0.5 * (I + I.T)

    @classmethod
    def from_principal(
        cls,
        mass: float,
        ixx: float,
        iyy: float,
        izz: float,
        ixy: float = 0.0,
        ixz: float = 0.0,
        iyz: float = 0.0,
        center_of_mass: NDArray[np.float64] | None = None,
    ) -> MassProperties:
        """Build from the six independent inertia components."""
        I = np.array([
            [ixx, ixy, ixz],
            [ixy, iyy, iyz],
            [ixz, iyz, izz],
        ], dtype=np.float64)
        return cls(mass, center_of_mass, I)

    def inertia_about_origin(self) -> NDArray[np.float64]:
        """Inertia about the body origin (parallel axis theorem)."""
        c = self.center_of_mass
        return self.inertia + self.mass * (np.dot(c, c) * np.eye(3) - np.outer(c, c))

    def allclose(self, other: MassProperties, atol: float = 1e-9) -> bool:
        return (
            abs(self.mass - other.mass) <= atol
            and np.allclose(self.center_of_mass, other.center_of_mass, atol=atol)
            and np.allclose(self.inertia, other.inertia, atol=atol)
        )

    def __repr__(self) -> str:
        return (f"MassProperties(mass={self.mass}, "
                f"center_of_mass={self.center_of_mass.tolist()}, "
                f"inertia={self.inertia.tolist()})")
