import numpy as np
import pytest

from quadctrl.dynamics import ArmDynamics, RobotDynamics


def _rot_z(angle):
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def test_pd_torque_with_identity_gains_is_error_sum():
    dyn = RobotDynamics()
    dyn.k_p_joint = np.eye(3)
    dyn.k_v_joint = np.eye(3)
    rng = np.random.default_rng(0)
    q, dq, q_d, dq_d = (rng.normal(size=(4, 3)) for _ in range(4))
    result = dyn.compute_joint_pd_torque(q, dq, q_d, dq_d)
    np.testing.assert_allclose(result, (q_d - q) + (dq_d - dq))


def test_pd_torque_zero_when_on_target():
    dyn = RobotDynamics()
    dyn.k_p_joint = np.diag([5.0, 6.0, 7.0])
    dyn.k_v_joint = np.diag([1.0, 2.0, 3.0])
    q = np.full((4, 3), 0.3)
    dq = np.full((4, 3), -0.1)
    np.testing.assert_allclose(dyn.compute_joint_pd_torque(q, dq, q, dq), np.zeros((4, 3)))


def test_feedforward_identity_is_negated_forces():
    dyn = RobotDynamics()
    forces = np.arange(12, dtype=float).reshape(4, 3)
    jac = np.stack([np.eye(3)] * 4)
    result = dyn.compute_feedforward_torque(forces, np.eye(3), jac)
    np.testing.assert_allclose(result, -forces)


def test_feedforward_is_linear_in_forces():
    dyn = RobotDynamics()
    rng = np.random.default_rng(1)
    rot = _rot_z(0.4)
    jac = rng.normal(size=(4, 3, 3))
    f1, f2 = rng.normal(size=(4, 3)), rng.normal(size=(4, 3))
    t1 = dyn.compute_feedforward_torque(f1, rot, jac)
    t2 = dyn.compute_feedforward_torque(f2, rot, jac)
    t12 = dyn.compute_feedforward_torque(f1 + f2, rot, jac)
    np.testing.assert_allclose(t12, t1 + t2)


def test_joint_torque_is_sum_of_parts():
    dyn = RobotDynamics()
    dyn.k_p_joint = np.diag([10.0, 20.0, 30.0])
    dyn.k_v_joint = np.diag([0.5, 0.5, 0.5])
    rng = np.random.default_rng(2)
    forces = rng.normal(size=(4, 3))
    jac = rng.normal(size=(4, 3, 3))
    rot = _rot_z(1.1)
    q, dq, q_d, dq_d = (rng.normal(size=(4, 3)) for _ in range(4))
    total = dyn.compute_joint_torque(forces, rot, jac, q, dq, q_d, dq_d)
    ff = dyn.compute_feedforward_torque(forces, rot, jac)
    fb = dyn.compute_joint_pd_torque(q, dq, q_d, dq_d)
    np.testing.assert_allclose(total, ff + fb)


def test_limit_torque_clips_to_200():
    dyn = RobotDynamics()
    torque = np.zeros((4, 3))
    torque[0, 0] = 500.0
    torque[1, 2] = -350.0
    torque[2, 1] = 12.5
    limited = dyn.limit_torque(torque)
    assert limited[0, 0] == 200.0
    assert limited[1, 2] == -200.0
    assert limited[2, 1] == 12.5


def test_wrong_shapes_raise():
    dyn = RobotDynamics()
    with pytest.raises(ValueError):
        dyn.limit_torque(np.zeros((3, 3)))
    with pytest.raises(ValueError):
        dyn.compute_feedforward_torque(np.zeros((4, 3)), np.eye(3), np.zeros((3, 3, 3)))


def test_arm_clamp_limits():
    arm = ArmDynamics()
    torque = np.array([45.0, -80.0, -31.0, 10.0, 100.0, -5.0])
    clamped = arm.clamp_arm_torque(torque)
    np.testing.assert_allclose(clamped, [30.0, -60.0, -30.0, 10.0, 30.0, -5.0])


def test_arm_clamp_keeps_shoulder_within_60():
    arm = ArmDynamics()
    torque = np.array([0.0, 50.0, 0.0, 0.0, 0.0, 0.0])
    np.testing.assert_allclose(arm.clamp_arm_torque(torque), torque)


def test_arm_pd_torque_uses_diagonal_gains():
    arm = ArmDynamics()
    arm.k_p_armjoint = np.arange(1.0, 7.0)
    arm.k_v_armjoint = np.ones(6)
    q = np.zeros(6)
    q_d = np.ones(6)
    dq = np.zeros(6)
    result = arm.compute_arm_pd_torque(q, dq, q_d, dq)
    np.testing.assert_allclose(result, arm.k_p_armjoint)


def test_arm_torque_without_wrench_is_compensation():
    arm = ArmDynamics()
    c_arm = np.array([1.0, -2.0, 3.0, -4.0, 5.0, -6.0])
    rng = np.random.default_rng(3)
    jac = rng.normal(size=(6, 24))
    result = arm.compute_arm_torque(c_arm, jac, _rot_z(0.3), np.zeros(6))
    np.testing.assert_allclose(result, c_arm)


def test_arm_torque_maps_wrench_through_jacobian():
    arm = ArmDynamics()
    jac = np.zeros((6, 24))
    jac[:, 18:24] = np.eye(6)
    wrench = np.array([1.0, 2.0, 3.0, 0.0, 0.0, 0.0])
    result = arm.compute_arm_torque(np.zeros(6), jac, _rot_z(0.7), wrench)
    np.testing.assert_allclose(result, -wrench)


def test_arm_torque_rejects_bad_jacobian():
    arm = ArmDynamics()
    with pytest.raises(ValueError):
        arm.compute_arm_torque(np.zeros(6), np.zeros((6, 18)), np.eye(3), np.zeros(6))