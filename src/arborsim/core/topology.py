"""
Base-to-tip ordering of the kinematic tree.

After :func:`permute`, joint ``i`` always comes after its parent joint and
before any of its children, so the articulated-body passes are plain
forward and reverse sweeps over ``system.joints``.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from arborsim.errors import InvalidConnectionError

if TYPE_CHECKING:
    from arborsim.core.system import MultibodySystem


def traversal_order(system: MultibodySystem) -> tuple[list[int], list[int]]:
    """
    Depth-first traversal from the base with an explicit stack.

    Joints are visited in the order they were connected to their inner
    body; each joint's outer body is emitted right after the joint.

    Returns
    -------
    tuple[list[int], list[int]]
        Current joint handles and body handles in traversal order
    """
    joint_order: list[int] = []
    body_order: list[int] = []
    seen: set[int] = set()

    stack = list(reversed(system.base.outer_joints))
    while stack:
        j = stack.pop()
        if j in seen:
            joint = system.joints[j]
            raise InvalidConnectionError(joint.name, system.base.name, "closed kinematic loop")
        seen.add(j)
        joint_order.append(j)

        outer = system.joints[j].outer
        if outer is None:
            continue
        body_order.append(outer.body)
        stack.extend(reversed(system.bodies[outer.body].outer_joints))

    return joint_order, body_order


def permute(system: MultibodySystem) -> None:
    """
    Reorder ``system.joints`` and ``system.bodies`` in place to traversal order.

    Every stored handle is remapped and each joint's ``inner_joint`` (parent)
    is recomputed.

    Raises
    ------
    InvalidConnectionError
        If a joint or body is not reachable from the base.
    """
    joint_order, body_order = traversal_order(system)

    if len(joint_order) != len(system.joints):
        missing = sorted(set(range(len(system.joints))) - set(joint_order))
        name = system.joints[missing[0]].name
        raise InvalidConnectionError(name, system.base.name, "joint is not reachable from the base")
    if len(body_order) != len(system.bodies):
        missing = sorted(set(range(len(system.bodies))) - set(body_order))
        name = system.bodies[missing[0]].name
        raise InvalidConnectionError(system.base.name, name, "body is not reachable from the base")

    new_joint = {old: new for new, old in enumerate(joint_order)}
    new_body = {old: new for new, old in enumerate(body_order)}

    system.joints[:] = [system.joints[old] for old in joint_order]
    system.bodies[:] = [system.bodies[old] for old in body_order]

    system.base.outer_joints = [new_joint[j] for j in system.base.outer_joints]
    for body in system.bodies:
        if body.inner_joint is not None:
            body.inner_joint = new_joint[body.inner_joint]
        body.outer_joints = [new_joint[j] for j in body.outer_joints]
    for joint in system.joints:
        if joint.inner is not None and joint.inner.body is not None:
            joint.inner.body = new_body[joint.inner.body]
        if joint.outer is not None:
            joint.outer.body = new_body[joint.outer.body]
    for sensor in system.sensors:
        if sensor.body is not None:
            sensor.body = new_body[sensor.body]
    for actuator in system.actuators:
        if actuator.body is not None:
            actuator.body = new_body[actuator.body]

    for i, joint in enumerate(system.joints):
        if joint.inner.body is None:
            joint.inner_joint = None
        else:
            joint.inner_joint = system.bodies[joint.inner.body].inner_joint
            if joint.inner_joint >= i:
                raise InvalidConnectionError(joint.name, system.base.name, "parent joint out of order")
