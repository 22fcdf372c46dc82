import numpy as np
import pytest

from quadctrl.mpc import STATE_DIM, MpcSolver
from quadctrl.params import RobotParameters

TOES = np.array(
    [
        [0.2, -0.1, -0.3],
        [-0.2, -0.1, -0.3],
        [0.2, 0.1, -0.3],
        [-0.2, 0.1, -0.3],
    ]
)
PARAMS = RobotParameters(mass=10.0, grav=-9.81)
INERTIA = 0.1 * np.eye(3)


def _rest_state():
    x0 = np.zeros(STATE_DIM)
    x0[5] = 0.3
    x0[12] = PARAMS.grav
    return x0


def test_continuous_system_structure():
    mpc = MpcSolver()
    rz = np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
    ac, bc = mpc.define_continuous_system(PARAMS, rz, [1, 0, 1, 1], TOES, INERTIA)
    assert np.array_equal(ac[0:3, 6:9], rz.T)
    assert np.array_equal(ac[3:6, 9:12], np.eye(3))
    assert ac[11, 12] == 1.0
    assert bc.shape == (STATE_DIM, 9)
    assert mpc.contact_num == 3
    assert np.allclose(bc[9:12, 0:3], np.eye(3) / PARAMS.mass)


def test_euler_discretisation():
    mpc = MpcSolver(discrete_switch=2)
    ac, bc = mpc.define_continuous_system(PARAMS, np.eye(3), [1, 1, 1, 1], TOES, INERTIA)
    ad, bd = mpc.discretize(ac, bc, 0.01)
    assert np.allclose(ad, np.eye(STATE_DIM) + 0.01 * ac)
    assert np.allclose(bd, 0.01 * bc)


def test_exponential_close_to_euler_for_small_step():
    ac_bc = MpcSolver().define_continuous_system(PARAMS, np.eye(3), [1, 1, 1, 1], TOES, INERTIA)
    ad_exp, bd_exp = MpcSolver(discrete_switch=1).discretize(*ac_bc, 1e-4)
    ad_eul, bd_eul = MpcSolver(discrete_switch=2).discretize(*ac_bc, 1e-4)
    assert np.allclose(ad_exp, ad_eul, atol=1e-6)
    assert np.allclose(bd_exp, bd_eul, atol=1e-6)


def test_unknown_discretisation_raises():
    mpc = MpcSolver(discrete_switch=7)
    with pytest.raises(ValueError):
        mpc.discretize(np.zeros((STATE_DIM, STATE_DIM)), np.zeros((STATE_DIM, 3)), 0.01)


def test_prediction_matrices():
    mpc = MpcSolver(horizon=4)
    ac, bc = mpc.define_continuous_system(PARAMS, np.eye(3), [1, 1, 0, 0], TOES, INERTIA)
    ad, bd = mpc.discretize(ac, bc, 0.02)
    a_qp, b_qp = mpc.compute_qp_form(ad, bd)
    n_in = bd.shape[1]
    assert np.allclose(a_qp[3 * STATE_DIM:], np.linalg.matrix_power(ad, 4))
    assert np.allclose(b_qp[STATE_DIM:2 * STATE_DIM, 0:n_in], ad @ bd)
    assert np.allclose(b_qp[0:STATE_DIM, n_in:], 0.0)


def test_gradient_vanishes_on_free_trajectory():
    mpc = MpcSolver(horizon=3)
    ac, bc = mpc.define_continuous_system(PARAMS, np.eye(3), [1, 1, 1, 1], TOES, INERTIA)
    a_qp, b_qp = mpc.compute_qp_form(*mpc.discretize(ac, bc, 0.02))
    x0 = _rest_state()
    h, g = mpc.standardize(a_qp, b_qp, x0, a_qp @ x0)
    assert np.allclose(g, 0.0)
    assert np.allclose(h, h.T)
    assert np.all(np.linalg.eigvalsh(h) > 0.0)


def test_constraint_layout():
    mpc = MpcSolver(horizon=2)
    mpc.define_continuous_system(PARAMS, np.eye(3), [1, 0, 0, 1], TOES, INERTIA)
    c, d = mpc.define_constraints(0.4, 150.0, 5.0)
    assert c.shape == (24, 12)
    assert d[0] == 150.0 and d[1] == -5.0
    assert np.allclose(d[6:8], [150.0, -5.0])


def test_step_holds_body_against_gravity():
    mpc = MpcSolver()
    x0 = _rest_state()
    x_d = np.tile(x0, mpc.horizon)
    forces = mpc.step(PARAMS, np.eye(3), [1, 1, 1, 1], TOES, INERTIA, x0, x_d)
    assert forces[:, 2].sum() == pytest.approx(-PARAMS.mass * PARAMS.grav, rel=1e-2)
    assert np.all(forces[:, 2] >= mpc.f_min - 1e-6)
    assert np.all(forces[:, 2] <= mpc.f_max + 1e-6)


def test_step_leaves_swing_legs_unloaded():
    mpc = MpcSolver()
    x0 = _rest_state()
    forces = mpc.step(PARAMS, np.eye(3), [1, 0, 0, 1], TOES, INERTIA, x0, np.tile(x0, mpc.horizon))
    assert np.array_equal(forces[1], np.zeros(3))
    assert np.array_equal(forces[2], np.zeros(3))


def test_no_contact_keeps_previous_forces():
    mpc = MpcSolver()
    x0 = _rest_state()
    forces = mpc.step(PARAMS, np.eye(3), [0, 0, 0, 0], TOES, INERTIA, x0, np.tile(x0, mpc.horizon))
    assert np.array_equal(forces, np.zeros((4, 3)))


def test_wrong_reference_length_raises():
    mpc = MpcSolver()
    with pytest.raises(ValueError):
        mpc.step(PARAMS, np.eye(3), [1, 1, 1, 1], TOES, INERTIA, _rest_state(), np.zeros(5))