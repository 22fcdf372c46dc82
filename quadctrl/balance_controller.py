"""Virtual model controller distributing a body wrench over the stance legs."""

from __future__ import annotations

import math

import numpy as np

from .params import RobotParameters
from .qp import solve_qp
from .spatial import cross_product


class BalanceController:
    """Finds stance-leg contact forces that produce a desired body wrench.

    The forces minimise the weighted wrench error plus ``alpha_w`` times their
    squared size, within friction pyramids and normal-force bounds.
    """

    def __init__(
        self,
        alpha_w: float = 1e-3,
        f_min: float = 0.0,
        f_max: float = 200.0,
        friction: float = 0.5,
    ) -> None:
        self.alpha_w = alpha_w
        self.f_min = f_min
        self.f_max = f_max
        self.u = friction
        self.s_track = np.eye(6)
        self.body_gravity = np.zeros(6)
        self.contact_leg_forces = np.zeros((4, 3))

    def _leg_constraints(self) -> np.ndarray:
        c = 0.5 * math.sqrt(2.0) * self.u
        return np.array(
            [
                [0.0, 0.0, 1.0],
                [0.0, 0.0, -1.0],
                [1.0, 0.0, -c],
                [-1.0, 0.0, -c],
                [0.0, 1.0, -c],
                [0.0, -1.0, -c],
            ]
        )

    def compute_contact_forces(
        self, params: RobotParameters, leg_phase, toe_pos_wb, gen_vf_d
    ) -> np.ndarray:
        """Return the (4, 3) contact forces; swing legs get zero force."""
        phase = np.asarray(leg_phase, dtype=int).ravel()
        toes = np.asarray(toe_pos_wb, dtype=float)
        wrench = np.asarray(gen_vf_d, dtype=float).ravel()
        if phase.size != 4 or toes.shape != (4, 3) or wrench.size != 6:
            raise ValueError("expected 4 leg phases, (4, 3) toe positions and a 6-vector wrench")

        stance = np.flatnonzero(phase == 1)
        k = stance.size
        self.contact_leg_forces = np.zeros((4, 3))
        if k == 0:
            return self.contact_leg_forces.copy()

        a = np.zeros((6, 3 * k))
        a_ieq = np.zeros((6 * k, 3 * k))
        b_ieq = np.zeros(6 * k)
        sub = self._leg_constraints()
        for slot, leg in enumerate(stance):
            cols = slice(3 * slot, 3 * slot + 3)
            a[0:3, cols] = np.eye(3)
            a[3:6, cols] = cross_product(toes[leg])
            a_ieq[6 * slot: 6 * slot + 6, cols] = sub
            b_ieq[6 * slot] = self.f_max
            b_ieq[6 * slot + 1] = -self.f_min

        self.body_gravity = np.zeros(6)
        self.body_gravity[2] = params.mass * params.grav
        b = wrench - self.body_gravity
        h = a.T @ self.s_track @ a + self.alpha_w * np.eye(3 * k)
        g = -a.T @ self.s_track.T @ b

        forces = solve_qp(h, g, a_ieq, b_ieq)
        self.contact_leg_forces[stance] = forces.reshape(k, 3)
        return self.contact_leg_forces.copy()