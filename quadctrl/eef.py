"""Vertical contact force estimation from external joint torques."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

_NEGATIVE_LIMIT = -20.0
_NEGATIVE_SCALE = 0.001


def estimate_contact_forces_z(tor, jacobians: Sequence) -> np.ndarray:
    """Estimate the vertical contact force of each leg.

    ``tor`` is the 18-element generalized external torque and ``jacobians``
    holds four 6x18 foot Jacobians. Strongly negative estimates (at or below
    -20) are not trusted and are scaled down.
    """
    tor = np.asarray(tor, dtype=float).ravel()
    if tor.size < 18:
        raise ValueError("tor must hold at least 18 entries")
    if len(jacobians) != 4:
        raise ValueError("expected four foot Jacobians")
    forces_z = np.zeros(4)
    for leg, jf in enumerate(jacobians):
        jf = np.asarray(jf, dtype=float)
        cols = slice(6 + 3 * leg, 9 + 3 * leg)
        jt = jf[0:3, cols].T
        force = np.linalg.solve(jt, tor[cols])
        fz = force[2]
        if fz <= _NEGATIVE_LIMIT:
            fz *= _NEGATIVE_SCALE
        forces_z[leg] = fz
    return forces_z