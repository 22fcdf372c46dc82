"""Joint torque computation for the legs and the mounted arm."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

_BODY_TORQUE_LIMIT = 200.0
_ARM_SHOULDER_LIMIT = 60.0
_ARM_JOINT_LIMIT = 30.0
_ARM_SHOULDER_INDEX = 1
_ARM_JOINTS = 6
_ARM_COLUMNS = slice(18, 24)


def _legs(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.shape != (4, 3):
        raise ValueError(f"{name} must have shape (4, 3), got {arr.shape}")
    return arr


def _arm(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size != _ARM_JOINTS:
        raise ValueError(f"{name} must hold {_ARM_JOINTS} entries, got {arr.size}")
    return arr


def _rotation(values) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.shape != (3, 3):
        raise ValueError(f"rotation must have shape (3, 3), got {arr.shape}")
    return arr


class RobotDynamics:
    """Leg joint torques from contact forces (static mapping) plus joint PD feedback.

    Leg arrays have one row per leg in the order front-right, rear-right,
    front-left, rear-left.
    """

    def __init__(self) -> None:
        self.k_p_joint = np.zeros((3, 3))
        self.k_v_joint = np.zeros((3, 3))
        self.body_joint_feedback_torque = np.zeros((4, 3))
        self.body_joint_feedforward_torque = np.zeros((4, 3))
        self.body_joint_torque = np.zeros((4, 3))
        self.torque_limit_max = np.full((4, 3), _BODY_TORQUE_LIMIT)
        self.torque_limit_min = np.full((4, 3), -_BODY_TORQUE_LIMIT)

    def compute_joint_pd_torque(self, q, dq, q_d, dq_d) -> np.ndarray:
        """PD feedback torque driving the joints towards ``q_d`` and ``dq_d``."""
        q, dq = _legs(q, "q"), _legs(dq, "dq")
        q_d, dq_d = _legs(q_d, "q_d"), _legs(dq_d, "dq_d")
        self.body_joint_feedback_torque = (q_d - q) @ self.k_p_joint + (dq_d - dq) @ self.k_v_joint
        return self.body_joint_feedback_torque.copy()

    def compute_feedforward_torque(self, leg_forces, rotation, jacobians: Sequence) -> np.ndarray:
        """Torque that produces the world-frame ``leg_forces`` through each leg Jacobian."""
        forces = _legs(leg_forces, "leg_forces")
        rot = _rotation(rotation)
        jac = np.asarray(jacobians, dtype=float)
        if jac.shape != (4, 3, 3):
            raise ValueError(f"jacobians must have shape (4, 3, 3), got {jac.shape}")
        self.body_joint_feedforward_torque = np.stack(
            [-(force @ rot @ j) for force, j in zip(forces, jac)]
        )
        return self.body_joint_feedforward_torque.copy()

    def compute_joint_torque(
        self, leg_forces, rotation, jacobians, q, dq, q_d, dq_d
    ) -> np.ndarray:
        """Total leg joint torque: feedforward plus PD feedback."""
        feedback = self.compute_joint_pd_torque(q, dq, q_d, dq_d)
        feedforward = self.compute_feedforward_torque(leg_forces, rotation, jacobians)
        self.body_joint_torque = feedforward + feedback
        return self.body_joint_torque.copy()

    def limit_torque(self, torque) -> np.ndarray:
        """Clip each joint torque to the configured limits."""
        torque = _legs(torque, "torque")
        return np.minimum(np.maximum(torque, self.torque_limit_min), self.torque_limit_max)


class ArmDynamics(RobotDynamics):
    """Leg dynamics extended with torques for a six-joint arm."""

    def __init__(self) -> None:
        super().__init__()
        self.k_p_armjoint = np.zeros(_ARM_JOINTS)
        self.k_v_armjoint = np.zeros(_ARM_JOINTS)
        self.arm_joint_feedback_torque = np.zeros(_ARM_JOINTS)
        self.arm_joint_torque = np.zeros(_ARM_JOINTS)

    def compute_arm_pd_torque(self, q, dq, q_d, dq_d) -> np.ndarray:
        """PD feedback torque for the arm joints."""
        q, dq = _arm(q, "q"), _arm(dq, "dq")
        q_d, dq_d = _arm(q_d, "q_d"), _arm(dq_d, "dq_d")
        self.arm_joint_feedback_torque = (
            self.k_p_armjoint * (q_d - q) + self.k_v_armjoint * (dq_d - dq)
        )
        return self.arm_joint_feedback_torque.copy()

    def compute_arm_torque(self, c_arm, j_object, rotation, arm_gen_f) -> np.ndarray:
        """Arm torque compensating ``c_arm`` and exerting the wrench ``arm_gen_f``.

        ``j_object`` is the 6x24 end-effector Jacobian; its arm columns map the
        wrench, whose angular part is first rotated by ``rotation``. The arm
        feedback torque is added and the result clamped.
        """
        c_arm = _arm(c_arm, "c_arm")
        wrench = _arm(arm_gen_f, "arm_gen_f")
        rot = _rotation(rotation)
        jac = np.asarray(j_object, dtype=float)
        if jac.shape != (6, 24):
            raise ValueError(f"j_object must have shape (6, 24), got {jac.shape}")
        transform = np.zeros((6, 6))
        transform[0:3, 0:3] = np.eye(3)
        transform[3:6, 3:6] = rot
        feedforward = c_arm - jac[:, _ARM_COLUMNS].T @ transform @ wrench
        self.arm_joint_torque = self.clamp_arm_torque(
            feedforward + self.arm_joint_feedback_torque
        )
        return self.arm_joint_torque.copy()

    def clamp_arm_torque(self, torque) -> np.ndarray:
        """Limit the shoulder joint to 60 and the other arm joints to 30 in magnitude."""
        torque = _arm(torque, "torque")
        limits = np.full(_ARM_JOINTS, _ARM_JOINT_LIMIT)
        limits[_ARM_SHOULDER_INDEX] = _ARM_SHOULDER_LIMIT
        return np.where(np.abs(torque) > limits, np.sign(torque) * limits, torque)