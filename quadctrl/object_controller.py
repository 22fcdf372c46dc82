"""PD force controller for an object carried by the robot."""

from __future__ import annotations

import numpy as np

from .spatial import cross_product

_STATE_LEN = 25


class ObjectController:
    """Computes the wrench on a carried object and its effect on the body."""

    def __init__(self) -> None:
        self.k_p = np.zeros((3, 3))
        self.k_v = np.zeros((3, 3))
        self.k_theta = np.zeros((3, 3))
        self.k_w = np.zeros((3, 3))
        self.object_mass = 0.0
        self.gravity = np.array([0.0, 0.0, -9.8])
        self.object_forces = np.zeros(6)
        self.object_to_body_forces = np.zeros(6)

    def compute_object_forces(self, state, state_d, object_to_body_pos):
        """Return ``(object_forces, object_to_body_forces)`` for the given states.

        The states hold the object's angle, position, angular velocity and
        velocity at indices 13, 16, 19 and 22.
        """
        state = np.asarray(state, dtype=float).ravel()
        state_d = np.asarray(state_d, dtype=float).ravel()
        if state.size < _STATE_LEN or state_d.size < _STATE_LEN:
            raise ValueError(f"states must hold at least {_STATE_LEN} entries")
        error = state - state_d
        force = (
            self.k_p @ error[16:19]
            + self.k_v @ error[22:25]
            + self.object_mass * self.gravity
        )
        torque = self.k_theta @ error[13:16] + self.k_w @ error[19:22]
        self.object_forces = np.concatenate([force, torque])
        self.object_to_body_forces = np.concatenate(
            [force, torque + cross_product(object_to_body_pos) @ force]
        )
        return self.object_forces.copy(), self.object_to_body_forces.copy()