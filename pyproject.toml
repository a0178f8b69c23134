[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "slamkit"
version = "0.1.0"
description = "Visual SLAM building blocks: Lie groups, cameras, triangulation, curve fitting, pose graphs, depth filtering and point clouds"
requires-python = ">=3.10"
keywords = [
    "slam",
    "visual-odometry",
    "lie-groups",
    "se3",
    "so3",
    "pose-graph",
    "triangulation",
    "point-cloud",
    "computer-vision",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
    "Topic :: Scientific/Engineering :: Image Processing",
    "Topic :: Scientific/Engineering :: Mathematics",
]
dependencies = [
    "numpy>=1.23",
    "scipy>=1.9",
    "pyyaml>=6.0",
    "pillow>=9.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
slamkit-curve-fit = "slamkit.curve_fitting:main"
slamkit-pose-graph = "slamkit.pose_graph:main"
slamkit-dense-mapping = "slamkit.dense_mapping:main"
slamkit-trajectory-error = "slamkit.trajectory:main"

[tool.hatch.build.targets.wheel]
packages = ["slamkit"]

[tool.hatch.build.targets.sdist]
include = ["slamkit", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
