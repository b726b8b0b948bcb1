[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "evgaze"
version = "0.1.0"
description = "Gaze, vergence and saccade control logic for event-driven stereo vision heads"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "event-driven",
    "neuromorphic",
    "vergence",
    "gaze",
    "gabor",
    "saccade",
    "robotics",
]
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
    "Topic :: Scientific/Engineering :: Human Machine Interfaces",
    "Topic :: Scientific/Engineering :: Image Processing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["evgaze"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
