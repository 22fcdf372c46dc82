"""Convex model-predictive control of the body using a single rigid-body model."""

from __future__ import annotations

import numpy as np
from scipy.linalg import expm

from .params import RobotParameters
from .qp import solve_qp
from .spatial import cross_product

STATE_DIM = 13


class MpcSolver:
    """Linear MPC over a horizon; states are (angle, position, omega, velocity, gravity)."""

    def __init__(
        self,
        horizon: int = 10,
        dt: float = 0.025,
        discrete_switch: int = 1,
        friction_coeff: float = 0.4,
        f_min: float = 0.0,
        f_max: float = 200.0,
        weight_f: float = 1e-6,
    ) -> None:
        if horizon < 1:
            raise ValueError("horizon must be at least 1")
        self.horizon = horizon
        self.dt = dt
        self.discrete_switch = discrete_switch
        self.friction_coeff = friction_coeff
        self.f_min = f_min
        self.f_max = f_max
        self.weight_f = weight_f
        self.q_qp_sub = np.ones(STATE_DIM)
        self.r_qp_sub = np.ones(3)
        self.contact_num = 0
        self.leg_forces = np.zeros((4, 3))

    def define_continuous_system(self, params: RobotParameters, rz, leg_phase, toe_pos_wb, inertia_w):
        """Return the continuous-time matrices ``(ac, bc)`` for the stance legs."""
        phase = np.asarray(leg_phase, dtype=int).ravel()
        toes = np.asarray(toe_pos_wb, dtype=float)
        if phase.size != 4 or toes.shape != (4, 3):
            raise ValueError("expected 4 leg phases and (4, 3) toe positions")
        ac = np.zeros((STATE_DIM, STATE_DIM))
        ac[0:3, 6:9] = np.asarray(rz, dtype=float).T
        ac[3:6, 9:12] = np.eye(3)
        ac[11, 12] = 1.0

        stance = np.flatnonzero(phase == 1)
        self.contact_num = stance.size
        bc = np.zeros((STATE_DIM, 3 * self.contact_num))
        inertia_inv = np.linalg.inv(np.asarray(inertia_w, dtype=float))
        for slot, leg in enumerate(stance):
            cols = slice(3 * slot, 3 * slot + 3)
            bc[6:9, cols] = inertia_inv @ cross_product(toes[leg])
            bc[9:12, cols] = np.eye(3) / params.mass
        return ac, bc

    def discretize(self, ac, bc, dt):
        """Discretise with the matrix exponential (switch 1) or forward Euler (switch 2)."""
        ac = np.asarray(ac, dtype=float)
        bc = np.asarray(bc, dtype=float)
        n_in = bc.shape[1]
        if self.discrete_switch == 1:
            m = np.zeros((STATE_DIM + n_in, STATE_DIM + n_in))
            m[:STATE_DIM, :STATE_DIM] = ac * dt
            m[:STATE_DIM, STATE_DIM:] = bc * dt
            m_exp = expm(m)
            return m_exp[:STATE_DIM, :STATE_DIM], m_exp[:STATE_DIM, STATE_DIM:]
        if self.discrete_switch == 2:
            return np.eye(STATE_DIM) + ac * dt, bc * dt
        raise ValueError(f"unknown discretisation switch {self.discrete_switch}")

    def compute_qp_form(self, ad, bd):
        """Stack the prediction matrices ``(a_qp, b_qp)`` over the horizon."""
        ad = np.asarray(ad, dtype=float)
        bd = np.asarray(bd, dtype=float)
        h = self.horizon
        n_in = bd.shape[1]
        powers = [ad]
        for _ in range(1, h):
            powers.append(powers[-1] @ ad)
        a_qp = np.vstack(powers)
        b_qp = np.zeros((STATE_DIM * h, n_in * h))
        for i in range(h):
            rows = slice(i * STATE_DIM, (i + 1) * STATE_DIM)
            for j in range(i + 1):
                cols = slice(j * n_in, (j + 1) * n_in)
                b_qp[rows, cols] = bd if i == j else powers[i - j - 1] @ bd
        return a_qp, b_qp

    def standardize(self, a_qp, b_qp, x0, x_d):
        """Return the QP Hessian and gradient ``(h, g)`` for tracking ``x_d`` from ``x0``."""
        a_qp = np.asarray(a_qp, dtype=float)
        b_qp = np.asarray(b_qp, dtype=float)
        x0 = np.asarray(x0, dtype=float).ravel()
        x_d = np.asarray(x_d, dtype=float).ravel()
        if x0.size != STATE_DIM or x_d.size != STATE_DIM * self.horizon:
            raise ValueError("state or reference trajectory has the wrong length")
        q_qp = np.kron(np.eye(self.horizon), np.diag(self.q_qp_sub))
        n_blocks = b_qp.shape[1] // 3
        r_qp = np.kron(np.eye(n_blocks), self.weight_f * np.diag(self.r_qp_sub))
        h = b_qp.T @ q_qp @ b_qp + r_qp
        g = b_qp.T @ q_qp @ (a_qp @ x0 - x_d)
        return h, g

    def define_constraints(self, u, fmax, fmin):
        """Friction-pyramid and normal-force constraints ``(c, d)`` with ``c f <= d``."""
        c1 = np.array(
            [
                [0.0, 0.0, 1.0],
                [0.0, 0.0, -1.0],
                [1.0, 0.0, -u],
                [0.0, 1.0, -u],
                [-1.0, 0.0, -u],
                [0.0, -1.0, -u],
            ]
        )
        d1 = np.array([fmax, -fmin, 0.0, 0.0, 0.0, 0.0])
        n_blocks = self.contact_num * self.horizon
        return np.kron(np.eye(n_blocks), c1), np.tile(d1, n_blocks)

    def solve(self, h, g, c, d, leg_phase) -> np.ndarray:
        """Solve the QP and store the first step's forces in ``leg_forces``.

        With no stance leg the previous forces are kept.
        """
        phase = np.asarray(leg_phase, dtype=int).ravel()
        stance = np.flatnonzero(phase == 1)
        if stance.size == 0:
            return self.leg_forces.copy()
        x = solve_qp(h, g, c, d)
        self.leg_forces = np.zeros((4, 3))
        self.leg_forces[stance] = x[: 3 * stance.size].reshape(stance.size, 3)
        return self.leg_forces.copy()

    def step(self, params: RobotParameters, rz, leg_phase, toe_pos_wb, inertia_w, x0, x_d) -> np.ndarray:
        """Run one complete MPC iteration and return the (4, 3) leg forces."""
        ac, bc = self.define_continuous_system(params, rz, leg_phase, toe_pos_wb, inertia_w)
        ad, bd = self.discretize(ac, bc, self.dt)
        a_qp, b_qp = self.compute_qp_form(ad, bd)
        h, g = self.standardize(a_qp, b_qp, x0, x_d)
        c, d = self.define_constraints(self.friction_coeff, self.f_max, self.f_min)
        return self.solve(h, g, c, d, leg_phase)