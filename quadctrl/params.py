"""Physical parameters of the quadruped."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np


def _identity3() -> np.ndarray:
    return np.eye(3)


@dataclass
class RobotParameters:
    """Mass, geometry and inertia of the robot body and legs."""

    mass: float = 0.0
    body_mass: float = 0.0
    body_length: float = 0.0
    body_width: float = 0.0
    abd_offset: float = 0.0
    thigh_length: float = 0.0
    calf_length: float = 0.0
    friction_coeff: float = 0.0
    grav: float = 0.0
    inertia: np.ndarray = field(default_factory=_identity3)

    @classmethod
    def from_config(cls, physical_paras: Mapping[str, Any]) -> "RobotParameters":
        """Build parameters from a ``physical_paras`` configuration section."""
        inertia = np.eye(3)
        coeffs = physical_paras["Inertia_coeff"]
        for axis in range(3):
            inertia[axis, axis] = float(coeffs[axis])
        return cls(
            mass=float(physical_paras["Robot_mass"]),
            body_mass=float(physical_paras["BodyMass"]),
            body_length=float(physical_paras["BodyLength"]),
            body_width=float(physical_paras["BodyWidth"]),
            abd_offset=float(physical_paras["Abd_offset"]),
            thigh_length=float(physical_paras["Thigh_Length"]),
            calf_length=float(physical_paras["Calf_Length"]),
            friction_coeff=float(physical_paras["friction_coeff"]),
            grav=float(physical_paras["grav"]),
            inertia=inertia,
        )