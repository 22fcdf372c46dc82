# quadctrl

Control building blocks for a quadruped robot with twelve leg joints and an
optional six-joint arm, written around NumPy and SciPy.

Legs are ordered front-right, rear-right, front-left, rear-left. Per-leg data
is a 4×3 array with one row per leg; a joint row holds the abduction, hip and
knee angles.

## Modules

- `quadctrl.params.RobotParameters` – dataclass of physical parameters (mass,
  body length and width, abduction offset, thigh and calf lengths, friction,
  gravity, 3×3 inertia). `RobotParameters.from_config(section)` builds one
  from a mapping with the keys `Robot_mass`, `BodyMass`, `BodyLength`,
  `BodyWidth`, `Abd_offset`, `Thigh_Length`, `Calf_Length`, `friction_coeff`,
  `grav` and `Inertia_coeff`.
- `quadctrl.spatial` – `cross_product` (skew-symmetric matrix),
  `rotation_zyx`, `rotation_zyx_no_yaw`, `yaw_rotation` and
  `euler_to_quaternion` (returns x, y, z, w).
- `quadctrl.kinematics` – `toe_positions`, `inverse_kinematics` (raises
  `ValueError` for unreachable targets), `leg_jacobians`,
  `leg_jacobian_derivatives`, `hip_positions`, `hip_to_toe_rotations` and
  `slope_angles`, which fits a ground plane through the four toes and returns
  (pitch, roll).
- `quadctrl.state_estimator.StateEstimator` – contact detection from measured
  or estimated foot forces (`collision_check`), toe velocities, world-frame
  conversion and a nine-state Kalman filter fusing IMU and leg odometry.
  `state_calc(leg_phase, params)` runs one full cycle and fills the state
  vectors `vmc_state`, `mpc_state`, `nmpc_state` and `nmpc_drbm_state`.
- `quadctrl.qp` – `solve_qp(h, g, a_ieq, b_ieq, a_eq, b_eq)` for dense convex
  QPs (raises `QpError` when constraints cannot be met), plus `Task` and
  `HoQp` for hierarchical, prioritised QPs where each level is solved in the
  null space of the levels above.
- `quadctrl.balance_controller.BalanceController` – stance-leg contact forces
  that realise a desired body wrench within friction pyramids and
  normal-force bounds.
- `quadctrl.mpc.MpcSolver` – linear convex MPC over a horizon on a
  single-rigid-body model; `step(...)` runs one iteration (continuous model,
  matrix-exponential or Euler discretisation, prediction matrices, cost,
  constraints, solve) and returns the 4×3 leg forces of the first step. With
  no stance leg the previous forces are kept.
- `quadctrl.dynamics` – `RobotDynamics` (joint PD feedback plus Jacobian
  feedforward torque, `limit_torque` clipping to ±200) and `ArmDynamics`
  (arm PD torque, arm torque from an end-effector wrench, clamping to 60 for
  the shoulder joint and 30 for the others).
- `quadctrl.object_controller.ObjectController` – PD wrench on a carried
  object and the resulting wrench on the body.
- `quadctrl.eef.estimate_contact_forces_z` – vertical foot forces recovered
  from an 18-element external joint torque and four 6×18 foot Jacobians.
- `quadctrl.save_log.SaveLog` – per-cycle recorder (`append`, `end_cycle`,
  `record`) that keeps the latest `max_runs` cycles and writes them with
  `write_csv(path)`; a directory path gets a file named by the current time.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import numpy as np

from quadctrl.params import RobotParameters
from quadctrl.kinematics import inverse_kinematics, toe_positions

params = RobotParameters(
    mass=15.0,
    body_length=0.39,
    body_width=0.09,
    abd_offset=0.095,
    thigh_length=0.213,
    calf_length=0.213,
    friction_coeff=0.4,
    grav=9.81,
)
q = np.tile([0.0, 0.8, -1.5], (4, 1))
toes = toe_positions(q, params)          # toe positions relative to the hips
q_back = inverse_kinematics(toes, params)
```

## What the package does not do

It contains no gait scheduler: leg phases (which legs are in stance) must be
supplied by the caller. It has no interface to a simulator or robot for
reading joints, IMU and force sensors or sending joint commands, no
rigid-body dynamics model loaded from a robot description, and no program or
command that runs a control loop; the modules are library pieces to be
driven from your own code.