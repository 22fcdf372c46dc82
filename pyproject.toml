[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "quadctrl"
version = "0.1.0"
description = "Control building blocks for quadruped robots: state estimation, contact-force optimisation, convex MPC and joint torque computation."
requires-python = ">=3.10"
keywords = ["robotics", "quadruped", "legged-locomotion", "mpc", "kalman-filter", "quadratic-programming"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["quadctrl"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
