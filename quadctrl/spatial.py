"""Rotations, skew matrices and quaternions."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np


def cross_product(v: Sequence[float]) -> np.ndarray:
    """Skew-symmetric matrix ``S`` such that ``S @ w == cross(v, w)``."""
    x, y, z = (float(c) for c in np.asarray(v, dtype=float).reshape(3))
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def _rot_x(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


def _rot_y(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def yaw_rotation(yaw: float) -> np.ndarray:
    """Rotation about the world z axis."""
    c, s = math.cos(yaw), math.sin(yaw)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def _angles(angles: Sequence[float]) -> tuple[float, float, float]:
    roll, pitch, yaw = (float(a) for a in np.asarray(angles, dtype=float).reshape(3))
    return roll, pitch, yaw


def rotation_zyx(angles: Sequence[float]) -> np.ndarray:
    """Body-to-world rotation from (roll, pitch, yaw), applied in ZYX order."""
    roll, pitch, yaw = _angles(angles)
    return yaw_rotation(yaw) @ _rot_y(pitch) @ _rot_x(roll)


def rotation_zyx_no_yaw(angles: Sequence[float]) -> np.ndarray:
    """Same as :func:`rotation_zyx` with the yaw angle ignored."""
    roll, pitch, _ = _angles(angles)
    return _rot_y(pitch) @ _rot_x(roll)


def euler_to_quaternion(angles: Sequence[float]) -> np.ndarray:
    """Unit quaternion (x, y, z, w) for (roll, pitch, yaw) in ZYX order."""
    roll, pitch, yaw = _angles(angles)
    cr, sr = math.cos(roll / 2), math.sin(roll / 2)
    cp, sp = math.cos(pitch / 2), math.sin(pitch / 2)
    cy, sy = math.cos(yaw / 2), math.sin(yaw / 2)
    w = cr * cp * cy + sr * sp * sy
    x = sr * cp * cy - cr * sp * sy
    y = cr * sp * cy + sr * cp * sy
    z = cr * cp * sy - sr * sp * cy
    return np.array([x, y, z, w])