"""Quadruped robot control: kinematics, state estimation, contact-force optimisation, MPC and joint torques."""

__version__ = "0.1.0"