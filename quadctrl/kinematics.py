"""Leg kinematics of the quadruped.

Legs are ordered front-right, rear-right, front-left, rear-left; each row of a
joint array holds the abduction, hip and knee angles of one leg.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from .params import RobotParameters

# Lateral sign of the abduction offset: right legs point to -y, left legs to +y.
_SIDE = np.array([-1.0, -1.0, 1.0, 1.0])


def _as_legs(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.shape != (4, 3):
        raise ValueError(f"{name} must have shape (4, 3), got {arr.shape}")
    return arr


def hip_positions(
    params: RobotParameters, com_offset: Sequence[float] = (0.0, 0.0, 0.0)
) -> np.ndarray:
    """Hip positions in the body frame, one row per leg."""
    ox, oy, oz = (float(c) for c in np.asarray(com_offset, dtype=float).reshape(3))
    half_l = params.body_length / 2.0
    half_w = params.body_width / 2.0
    return np.array(
        [
            [half_l + ox, -half_w + oy, oz],
            [-half_l + ox, -half_w + oy, oz],
            [half_l + ox, half_w + oy, oz],
            [-half_l + ox, half_w + oy, oz],
        ]
    )


def toe_positions(q, params: RobotParameters) -> np.ndarray:
    """Toe positions relative to each hip, expressed in the body frame."""
    q = _as_legs(q, "q")
    q0, q1, q2 = q.T
    t, c, a = params.thigh_length, params.calf_length, params.abd_offset
    reach = t * np.cos(q1) + c * np.cos(q1 + q2)
    x = t * np.sin(q1) + c * np.sin(q1 + q2)
    y = reach * np.sin(q0) + _SIDE * a * np.cos(q0)
    z = -reach * np.cos(q0) + _SIDE * a * np.sin(q0)
    return np.column_stack([x, y, z])


def leg_jacobians(q, params: RobotParameters) -> np.ndarray:
    """Jacobian of each toe position with respect to its joint angles, shape (4, 3, 3)."""
    q = _as_legs(q, "q")
    t, c, a = params.thigh_length, params.calf_length, params.abd_offset
    result = np.zeros((4, 3, 3))
    for leg, ((q0, q1, q2), side) in enumerate(zip(q, _SIDE)):
        s0, c0 = math.sin(q0), math.cos(q0)
        reach = t * math.cos(q1) + c * math.cos(q1 + q2)
        height = t * math.sin(q1) + c * math.sin(q1 + q2)
        c12, s12 = math.cos(q1 + q2), math.sin(q1 + q2)
        result[leg] = [
            [0.0, reach, c * c12],
            [reach * c0 - side * a * s0, -height * s0, -c * s12 * s0],
            [reach * s0 + side * a * c0, height * c0, c * s12 * c0],
        ]
    return result


def leg_jacobian_derivatives(q, dq, params: RobotParameters) -> np.ndarray:
    """Time derivative of each leg Jacobian for joint velocities ``dq``, shape (4, 3, 3)."""
    q = _as_legs(q, "q")
    dq = _as_legs(dq, "dq")
    t, c, a = params.thigh_length, params.calf_length, params.abd_offset
    result = np.zeros((4, 3, 3))
    for leg, ((q0, q1, q2), (d0, d1, d2), side) in enumerate(zip(q, dq, _SIDE)):
        s0, c0 = math.sin(q0), math.cos(q0)
        s1, c1 = math.sin(q1), math.cos(q1)
        s12, c12 = math.sin(q1 + q2), math.cos(q1 + q2)
        d12 = d1 + d2
        reach = t * c1 + c * c12
        height = t * s1 + c * s12
        d_reach = -(t * s1 * d1 + c * s12 * d12)
        d_height = t * c1 * d1 + c * c12 * d12
        result[leg] = [
            [0.0, d_reach, -c * s12 * d12],
            [
                c0 * d_reach - s0 * d0 * reach - side * a * c0 * d0,
                -s0 * d_height - d0 * c0 * height,
                -c * c12 * s0 * d12 - d0 * c * s12 * c0,
            ],
            [
                s0 * d_reach + c0 * d0 * reach - side * a * s0 * d0,
                c0 * d_height - d0 * s0 * height,
                c * c12 * c0 * d12 - d0 * c * s12 * s0,
            ],
        ]
    return result


def inverse_kinematics(p, params: RobotParameters) -> np.ndarray:
    """Joint angles that place each toe at ``p`` (hip frame, body axes).

    Raises ValueError when a target lies outside the leg's workspace.
    """
    p = _as_legs(p, "p")
    t, c, a = params.thigh_length, params.calf_length, params.abd_offset
    q = np.zeros((4, 3))
    for leg, ((px, py, pz), side) in enumerate(zip(p, _SIDE)):
        try:
            length = math.sqrt(py**2 + pz**2)
            plane = math.sqrt(length**2 - a**2)
            reach = math.sqrt(plane**2 + px**2)
            alpha = math.acos(a / length)
            beta = math.asin(pz / length)
            if side < 0:
                q0 = -alpha - beta if py < 0 else math.pi - (alpha - beta)
            else:
                q0 = alpha + beta if py > 0 else -(math.pi - (alpha - beta))
            q1 = -(
                math.acos((t**2 + reach**2 - c**2) / (2 * t * reach))
                - math.atan(px / plane)
            )
            q2 = -(math.acos((t**2 + c**2 - reach**2) / (2 * t * c)) - math.pi)
        except (ValueError, ZeroDivisionError) as exc:
            raise ValueError(f"toe target of leg {leg} is out of reach") from exc
        q[leg] = (q0, q1, q2)
    return q


def hip_to_toe_rotations(q) -> np.ndarray:
    """Rotation from each toe frame to the hip frame, shape (4, 3, 3)."""
    q = _as_legs(q, "q")
    result = np.zeros((4, 3, 3))
    for leg, (q0, q1, q2) in enumerate(q):
        theta = -q2 - q1
        ct, st = math.cos(theta), math.sin(theta)
        c0, s0 = math.cos(q0), math.sin(q0)
        result[leg] = [
            [ct, 0.0, st],
            [st * s0, c0, -ct * s0],
            [-c0 * st, s0, ct * c0],
        ]
    return result


def slope_angles(toe_pos_wb) -> tuple[float, float]:
    """Ground (pitch, roll) from a plane fitted through the four toe positions."""
    toes = _as_legs(toe_pos_wb, "toe_pos_wb")
    x, y, z = toes.T
    m = np.array(
        [
            [x @ x, x @ y, x.sum()],
            [x @ y, y @ y, y.sum()],
            [x.sum(), y.sum(), 4.0],
        ]
    )
    b = np.array([x @ z, y @ z, z.sum()])
    coeffs = np.linalg.solve(m, b)
    if coeffs[2] == 0.0:
        raise ValueError("fitted ground plane passes through the body origin")
    normal = np.array([coeffs[0] / coeffs[2], coeffs[1] / coeffs[2], -1.0 / coeffs[2]])
    up = np.array([0.0, 0.0, 1.0])
    n_pitch = np.array([normal[0], 0.0, normal[2]])
    n_roll = np.array([0.0, normal[1], normal[2]])
    pitch = math.acos(float(np.clip(up @ n_pitch / np.linalg.norm(n_pitch), -1.0, 1.0)))
    roll = math.acos(float(np.clip(up @ n_roll / np.linalg.norm(n_roll), -1.0, 1.0)))
    z1, z2, z3, z4 = z
    sign_pitch = -1.0 if z1 - z2 + z3 - z4 > 0 else 1.0
    sign_roll = -1.0 if z1 + z2 - z3 - z4 > 0 else 1.0
    return sign_pitch * pitch, sign_roll * roll