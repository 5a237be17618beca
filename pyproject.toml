[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sailrouting"
version = "0.1.0"
description = "Building blocks for sailing routes: rhumb-line geometry, boat polars, manoeuvre penalties, land masks and race courses."
requires-python = ">=3.10"
dependencies = []
keywords = ["sailing", "routing", "polar", "navigation", "rhumb line", "vmg"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sailrouting"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
