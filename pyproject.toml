[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "stablefluids"
version = "0.1.0"
description = "Interactive two-dimensional stable fluids simulation with smoke injection, stirring and adjustable viscosity"
requires-python = ">=3.10"
keywords = ["fluid", "simulation", "stable fluids", "navier-stokes", "sparse matrix", "biconjugate gradient"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Physics",
]
dependencies = [
    "numpy",
    "pygame",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
stablefluids = "stablefluids.app:main"

[tool.hatch.build.targets.wheel]
packages = ["stablefluids"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
