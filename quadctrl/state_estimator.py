"""Body state estimation for the quadruped: contacts, kinematics and a Kalman filter."""

from __future__ import annotations

import numpy as np

from .kinematics import (
    hip_positions,
    hip_to_toe_rotations,
    leg_jacobian_derivatives,
    leg_jacobians,
    toe_positions,
)
from .params import RobotParameters
from .spatial import (
    cross_product,
    euler_to_quaternion,
    rotation_zyx,
    rotation_zyx_no_yaw,
    yaw_rotation,
)

_INITIAL_HEIGHT = 0.145
_WORLD_GRAVITY = 9.8
_CONTACT_FORCE = 50.0
_RISING_FORCE = 30.0
_RISING_STEP = 10.0
_RISING_COUNT = 2
_DEFAULT_FORCE_ESTIMATE = 200.0


def _leg_phase(leg_phase) -> np.ndarray:
    phase = np.asarray(leg_phase, dtype=int).reshape(-1)
    if phase.size != 4:
        raise ValueError(f"leg_phase must hold four entries, got {phase.size}")
    return phase


class StateEstimator:
    """Estimates body position, velocity, orientation and foot contacts.

    Leg arrays have one row per leg in the order front-right, rear-right,
    front-left, rear-left.
    """

    def __init__(self, dt: float = 0.001) -> None:
        self.dt = dt
        self.cycle = 0

        # Sensor readings
        self.body_joint_angle = np.zeros((4, 3))
        self.body_joint_vel = np.zeros((4, 3))
        self.init_body_joint_angle = np.zeros((4, 3))
        self.init_read_joint = True
        self.body_com_acc = np.zeros(3)
        self.body_com_angular_vel = np.zeros(3)
        self.real_leg_contact_forces = np.zeros((4, 3))

        # Body state
        self.body_com_angle = np.zeros(3)
        self.last_body_com_angle = np.zeros(3)
        self.body_com_vel = np.zeros(3)
        self.body_com_pos = np.array([0.0, 0.0, _INITIAL_HEIGHT])
        self.body_com_angular_vel_w = np.zeros(3)
        self.body_com_offset = np.zeros(3)
        self.body_com_vel_from_toe = np.zeros(3)
        self.body_com_quaternion = euler_to_quaternion(self.body_com_angle)
        self.ground_pitch = 0.0
        self.ground_roll = 0.0

        # Carried object state
        self.object_com_angle = np.zeros(3)
        self.object_com_pos = np.zeros(3)
        self.object_com_pos_wrt_b = np.zeros(3)
        self.object_com_angular_vel = np.zeros(3)
        self.object_com_vel = np.zeros(3)
        self.object_com_quaternion = euler_to_quaternion(self.object_com_angle)
        self.arm2body_g_forces = np.zeros(6)

        # Rotations and kinematics
        self.rotation_matrix = np.eye(3)
        self.rotation_matrix1 = np.eye(3)
        self.rz = np.eye(3)
        self.inertia_w = np.eye(3)
        self.base_mat = np.zeros((4, 3))
        self.toe_pos_bh = np.zeros((4, 3))
        self.toe_pos_wh = np.zeros((4, 3))
        self.toe_pos_wb = np.zeros((4, 3))
        self.toe_vel_bh = np.zeros((4, 3))
        self.toe_vel_wh = np.zeros((4, 3))
        self.toe_vel_wb = np.zeros((4, 3))
        self.jacobian = np.zeros((4, 3, 3))
        self.djacobian = np.zeros((4, 3, 3))

        # Contact detection
        self.leg_force_estimate_method = 0
        self.leg_force_z_w_estimate = np.full(4, _DEFAULT_FORCE_ESTIMATE)
        self.real_leg_contact_forces_w = np.zeros((4, 3))
        self.last_real_leg_contact_forces = np.zeros((4, 3))
        self.force_count = [0, 0, 0, 0]
        self.leg_contact_state = np.zeros(4, dtype=int)
        self.last_leg_contact_state = np.zeros(4, dtype=int)

        # Kalman filter: state is (position, velocity, angle), input is (acc, omega)
        eye3 = np.eye(3)
        self.A = np.eye(9)
        self.A[0:3, 3:6] = dt * eye3
        self.B = np.zeros((9, 6))
        self.B[0:3, 0:3] = 0.5 * dt * dt * eye3
        self.B[3:6, 0:3] = dt * eye3
        self.B[6:9, 3:6] = dt * eye3
        self.H = np.eye(9)
        self.P = np.eye(9)
        self.P_pre = np.eye(9)
        self.Q = 0.0001 * np.eye(9)
        self.Q[0, 0] = 0.1
        self.Q[5, 5] = 0.001
        self.R = 0.5 * np.eye(9)
        self.R[5, 5] = 0.1
        self.K = np.zeros((9, 9))
        self.x_last = np.zeros(9)
        self.x_last[2] = _INITIAL_HEIGHT
        self.x_k = np.zeros(9)

        # Controller state vectors
        self.vmc_state = np.zeros(13)
        self.mpc_state = np.zeros(13)
        self.nmpc_state = np.zeros(13)
        self.nmpc_drbm_state = np.zeros(25)

    def state_calc(self, leg_phase, params: RobotParameters) -> None:
        """Run one full estimation cycle for the given leg phase."""
        phase = _leg_phase(leg_phase)
        self.collision_check()
        self.rotation_matrix = rotation_zyx(self.body_com_angle)
        self.rotation_matrix1 = rotation_zyx_no_yaw(self.body_com_angle)
        self._calc_toe_positions(params)
        self.jacobian = leg_jacobians(self.body_joint_angle, params)
        self.djacobian = leg_jacobian_derivatives(
            self.body_joint_angle, self.body_joint_vel, params
        )
        self.calc_toe_velocities()
        self.convert_to_world_frame(params)
        self.kalman_filter(phase)
        self.other_estimation()

        body = np.concatenate(
            [
                self.body_com_angle,
                self.body_com_pos,
                self.body_com_angular_vel_w,
                self.body_com_vel,
                [params.grav],
            ]
        )
        self.vmc_state = body.copy()
        self.mpc_state = body.copy()
        self.nmpc_state = body.copy()
        self.nmpc_drbm_state = np.concatenate(
            [
                self.rz @ self.body_com_angle,
                self.body_com_pos,
                self.body_com_angular_vel_w,
                self.body_com_vel,
                [params.grav],
                self.object_com_angle,
                self.object_com_pos,
                self.object_com_angular_vel,
                self.object_com_vel,
            ]
        )

    def collision_check(self) -> np.ndarray:
        """Update ``leg_contact_state`` from the measured or estimated contact forces."""
        if self.leg_force_estimate_method == 0:
            rotations = hip_to_toe_rotations(self.body_joint_angle)
            for leg in range(4):
                self.real_leg_contact_forces_w[leg] = (
                    self.rotation_matrix @ rotations[leg] @ self.real_leg_contact_forces[leg]
                )
        elif self.leg_force_estimate_method == 1:
            self.real_leg_contact_forces_w[:, 2] = self.leg_force_z_w_estimate

        for leg in range(4):
            fz = self.real_leg_contact_forces_w[leg, 2]
            rising = abs(fz - self.last_real_leg_contact_forces[leg, 2]) > _RISING_STEP
            if abs(fz) > _RISING_FORCE and rising:
                self.force_count[leg] += 1
            if abs(fz) > _CONTACT_FORCE or self.force_count[leg] >= _RISING_COUNT:
                self.leg_contact_state[leg] = 1
                self.force_count[leg] = 0
            else:
                self.leg_contact_state[leg] = 0

        self.last_real_leg_contact_forces = self.real_leg_contact_forces_w.copy()
        return self.leg_contact_state.copy()

    def _calc_toe_positions(self, params: RobotParameters) -> None:
        self.rz = yaw_rotation(self.body_com_angle[2])
        self.toe_pos_bh = toe_positions(self.body_joint_angle, params)
        self.base_mat = hip_positions(params, self.body_com_offset)
        rot_t = self.rotation_matrix.T
        self.toe_pos_wh = self.toe_pos_bh @ rot_t
        self.toe_pos_wb = (self.toe_pos_bh + self.base_mat) @ rot_t

    def calc_toe_velocities(self) -> None:
        """Compute toe velocities relative to the hips and to the body centre."""
        rot = self.rotation_matrix
        self.body_com_angular_vel_w = rot @ self.body_com_angular_vel
        omega = cross_product(self.body_com_angular_vel_w)
        self.toe_vel_bh = np.einsum("lij,lj->li", self.jacobian, self.body_joint_vel)
        linear = self.toe_vel_bh @ rot.T
        self.toe_vel_wh = linear + (self.toe_pos_bh @ rot.T) @ omega.T
        self.toe_vel_wb = linear + ((self.toe_pos_bh + self.base_mat) @ rot.T) @ omega.T

    def convert_to_world_frame(self, params: RobotParameters) -> None:
        """Express the IMU acceleration and the body inertia in the world frame."""
        rot = self.rotation_matrix
        self.body_com_acc = rot @ self.body_com_acc
        self.body_com_acc[2] -= _WORLD_GRAVITY
        self.inertia_w = rot @ params.inertia @ rot.T

    def kalman_filter(self, leg_phase) -> None:
        """Fuse IMU and leg odometry into body position, velocity and angle."""
        phase = _leg_phase(leg_phase)
        contact = phase == 1
        n_contact = int(contact.sum())
        if n_contact == 0:
            self.body_com_vel_from_toe = self.body_com_vel.copy()
        else:
            self.body_com_vel_from_toe = -self.toe_vel_wb[contact].sum(axis=0) / n_contact

        u = np.concatenate([self.body_com_acc, self.rz.T @ self.body_com_angular_vel_w])
        z = np.concatenate(
            [
                self.x_last[0:3] + self.body_com_vel_from_toe * self.dt,
                self.body_com_vel_from_toe,
                self.body_com_angle,
            ]
        )

        x_pre = self.A @ self.x_last + self.B @ u
        self.P_pre = self.A @ self.P @ self.A.T + self.Q
        innovation_cov = self.H @ self.P_pre @ self.H.T + self.R
        self.K = self.P_pre @ self.H.T @ np.linalg.inv(innovation_cov)
        self.x_k = x_pre + self.K @ (z - self.H @ x_pre)
        self.P = (np.eye(9) - self.K @ self.H) @ self.P_pre

        self.body_com_pos = self.x_k[0:3].copy()
        self.body_com_vel = self.x_k[3:6].copy()
        self.body_com_angle = self.x_k[6:9].copy()

        if n_contact == 0:
            self.body_com_pos[2] = 0.0
        else:
            self.body_com_pos[2] = -self.toe_pos_wb[contact, 2].sum() / n_contact

        self.x_last = self.x_k.copy()
        self.last_body_com_angle = self.body_com_angle.copy()

    def other_estimation(self) -> None:
        """Update the body and object orientation quaternions."""
        self.body_com_quaternion = euler_to_quaternion(self.body_com_angle)
        self.object_com_quaternion = euler_to_quaternion(self.object_com_angle)