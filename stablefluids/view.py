"""Interaction state for the fluid window: mouse injection, key commands, display options."""

from __future__ import annotations

from enum import Enum

import numpy as np

from .solver import FluidSolver

_DENSITY_INJECTION = 50.0
_STIR_STRENGTH = 50.0
_VISCOSITY_FACTOR = 1.2
_MIN_VISCOSITY = 1e-6


class Key(Enum):
    """Keyboard commands, valued by the key they are bound to."""

    STEP = "A"
    TOGGLE_ANIMATION = "Z"
    RESET = "R"
    TOGGLE_DENSITY = "D"
    TOGGLE_VELOCITY = "V"
    TOGGLE_GRID = "G"
    VISCOSITY_UP = "+"
    VISCOSITY_DOWN = "-"


class FluidView:
    """Maps window coordinates and user input onto a fluid solver."""

    def __init__(self, solver: FluidSolver | None = None, window_size: int = 600) -> None:
        self.solver = solver if solver is not None else FluidSolver()
        if window_size < self.solver.n:
            raise ValueError(
                f"window of {window_size} pixels cannot show {self.solver.n} cells per side"
            )
        self.window_size = window_size
        self.dx = window_size // self.solver.n
        self.show_density = True
        self.show_velocity = False
        self.show_grid = False
        self.animating = False
        self.left_button = False
        self.right_button = False
        self.current_point = (0, 0)
        self.old_point = (0, 0)

    def find_cell_index(self, x: int, y: int) -> int:
        """Flat index of the grid cell under pixel (x, y), clamped to the fluid region."""
        x = min(max(int(x), 0), self.window_size - 1)
        y = min(max(int(y), 0), self.window_size - 1)
        return self.solver.index(x // self.dx, y // self.dx)

    def tick(self) -> None:
        """One animation step: inject smoke under a held left button, then advance."""
        if self.left_button:
            index = self.find_cell_index(*self.current_point)
            self.solver.density_source[index] = _DENSITY_INJECTION * self.solver.h
        self.solver.update()

    def left_down(self, x: int, y: int) -> None:
        self.left_button = True
        self.current_point = self.old_point = (x, y)

    def left_up(self) -> None:
        self.left_button = False

    def right_down(self, x: int, y: int) -> None:
        self.right_button = True
        self.current_point = self.old_point = (x, y)

    def right_up(self) -> None:
        self.right_button = False

    def mouse_move(self, x: int, y: int) -> None:
        """Track a drag; with the right button held, stir the fluid along it."""
        if self.left_button or self.right_button:
            self.old_point = self.current_point
            self.current_point = (x, y)
        if self.right_button:
            index = self.find_cell_index(*self.old_point)
            self.solver.velocity_source[index] = np.array(
                [
                    self.current_point[0] - self.old_point[0],
                    self.current_point[1] - self.old_point[1],
                ],
                dtype=float,
            ) * _STIR_STRENGTH

    def key_down(self, key: Key) -> None:
        """Carry out a keyboard command."""
        solver = self.solver
        if key is Key.STEP:
            solver.update()
        elif key is Key.TOGGLE_ANIMATION:
            self.animating = not self.animating
        elif key is Key.RESET:
            solver.reset()
        elif key is Key.TOGGLE_DENSITY:
            self.show_density = not self.show_density
        elif key is Key.TOGGLE_VELOCITY:
            self.show_velocity = not self.show_velocity
        elif key is Key.TOGGLE_GRID:
            self.show_grid = not self.show_grid
        elif key is Key.VISCOSITY_UP:
            solver.viscosity_coef *= _VISCOSITY_FACTOR
            solver.setup_velocity_diffusion_matrix(solver.viscosity_coef)
        elif key is Key.VISCOSITY_DOWN:
            solver.viscosity_coef /= _VISCOSITY_FACTOR
            if solver.viscosity_coef < _MIN_VISCOSITY:
                solver.viscosity_coef = 0.0
            solver.setup_velocity_diffusion_matrix(solver.viscosity_coef)
        else:
            raise ValueError(f"unknown key command {key!r}")

    def cell_shade(self, i: int, j: int) -> int:
        """Grey level 0..255 of cell (i, j): white for no smoke, black for density 1."""
        value = self.solver.density[self.solver.index(i, j)]
        if not np.isfinite(value):
            return 0
        return min(max(int((1 - value) * 255), 0), 255)

    def status_lines(self) -> list[str]:
        """Text of the side panel: grid size, viscosity and the key guide."""
        return [
            f"n = {self.solver.n}",
            f"Viscosity = {self.solver.viscosity_coef:.4f}",
            "User Interface Guide:",
            "Z : Start Animation",
            "Left button: inject smoke",
            "Right button: stir fluid",
            "R : Reset",
            "V : Show/Hide Velocity",
            "D : Show/Hide Density",
            "G : Show/Hide Gridlines",
            "A : One more time step",
            "+/= : Increase Viscosity",
            "-/_ : Decrease Viscosity",
        ]