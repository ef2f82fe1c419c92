"""
Articulated Body Algorithm.

Three sweeps over the base-to-tip ordered joints. Everything for joint i is
expressed in its joint outer frame (JOF), where the motion subspace S is
constant:

1. forward:  v = X v_parent + vj, c = v x vj, IA = I, pA = v x* (I v) - f_ext
2. reverse:  U = IA S, D = S^T U, u = tau - S^T pA, then hand the reduced
             inertia and bias force to the parent
3. forward:  a' = X a_parent + c, qdd = D^-1 (u - U^T a'), a = a' + S qdd

X is ``jof_from_ij_jof``. The base is fixed, so its velocity and acceleration
are zero. Gravity enters through the external force.

References
----------
.. [1] Featherstone, R. (2008). Rigid Body Dynamics Algorithms, ch. 7.
"""
from __future__ import annotations

import numpy as np

from arborsim.dynamics.joints import Joint
from arborsim.dynamics.spatial import (
    Acceleration,
    Force,
    SpatialInertia,
    cross_force,
    cross_motion,
)
from arborsim.errors import SingularInertiaError

SINGULAR_RCOND = 1e-12


def _invert_joint_inertia(joint: Joint, D: np.ndarray) -> np.ndarray:
    try:
        s = np.linalg.svd(D, compute_uv=False)
        if s[-1] <= SINGULAR_RCOND * max(s[0], 1.0):
            raise np.linalg.LinAlgError(f"condition number {s[0] / max(s[-1], 1e-300):.3e}")
        return np.linalg.inv(D)
    except np.linalg.LinAlgError as e:
        raise SingularInertiaError(joint.name, str(e)) from e


def first_pass(joints: list[Joint]) -> None:
    """Velocities, bias accelerations and rigid-body bias forces, base to tip."""
    for joint in joints:
        cache = joint.cache
        vj = cache.vj
        if joint.inner_joint is None:
            v = vj
        else:
            parent = joints[joint.inner_joint]
            v = joint.transforms.jof_from_ij_jof * parent.cache.v + vj
        cache.v = v
        cache.c = cross_motion(v, vj)
        cache.IA = SpatialInertia(joint.inertia.matrix)
        cache.pA = Force.from_array(
            cross_force(v, joint.inertia * v).to_array() - cache.f_ext.to_array()
        )


def second_pass(joints: list[Joint]) -> None:
    """
    Articulated inertias and bias forces, tip to base.

    Raises
    ------
    SingularInertiaError
        If a joint's projected inertia ``S^T IA S`` cannot be inverted.
    """
    for joint in reversed(joints):
        cache = joint.cache
        S = joint.model.subspace()
        IA = cache.IA.matrix
        pA = cache.pA.to_array()

        U = IA @ S
        D = S.T @ U
        D_inv = _invert_joint_inertia(joint, D)
        u = cache.tau - S.T @ pA

        cache.U = U
        cache.D_inv = D_inv
        cache.u = u

        if joint.inner_joint is None:
            continue

        UD = U @ D_inv
        Ia = IA - UD @ U.T
        pa = pA + Ia @ cache.c.to_array() + UD @ u

        parent = joints[joint.inner_joint]
        X = joint.transforms.ij_jof_from_jof
        parent.cache.IA = parent.cache.IA + X * SpatialInertia(Ia)
        parent.cache.pA = parent.cache.pA + X * Force.from_array(pa)


def third_pass(joints: list[Joint]) -> None:
    """Generalized and spatial accelerations, base to tip."""
    for joint in joints:
        cache = joint.cache
        if joint.inner_joint is None:
            a_prime = Acceleration.from_array(cache.c.to_array())
        else:
            parent = joints[joint.inner_joint]
            a_prime = joint.transforms.jof_from_ij_jof * parent.cache.a + cache.c

        a = a_prime.to_array()
        qdd = cache.D_inv @ (cache.u - cache.U.T @ a)
        cache.qdd = qdd
        cache.a = Acceleration.from_array(a + joint.model.subspace() @ qdd)


def articulated_body_algorithm(joints: list[Joint]) -> None:
    """Run all three passes. Joints must already be in base-to-tip order."""
    first_pass(joints)
    second_pass(joints)
    third_pass(joints)
