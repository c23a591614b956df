"""Two-dimensional stable fluids simulation: sparse solver, fluid grid and an interactive pygame viewer."""

__version__ = "0.1.0"