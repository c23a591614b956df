"""Grid-based smoke solver in the style of stable fluids."""

from __future__ import annotations

import numpy as np

from .sparse import SparseMatrix

_DEFAULT_N = 60
_DEFAULT_H = 0.1
_DEFAULT_VISCOSITY = 0.1
_DIFFUSION_RATE = 0.3
_BUOYANCY = 0.1
_SOLVE_TOL = 1e-8
_DIFFUSION_ITERATIONS = 30
_PRESSURE_ITERATIONS = 10


class FluidSolver:
    """Density and velocity on an n-by-n grid, cell (i, j) stored at i + j * n.

    Scalar fields are flat arrays of length ``size``; velocity fields have
    shape ``(size, 2)`` holding the x and y components.
    """

    def __init__(self, n: int = _DEFAULT_N, h: float = _DEFAULT_H) -> None:
        if n < 3:
            raise ValueError(f"grid needs at least 3 points per side, got {n}")
        self.n = n
        self.size = n * n
        self.h = h
        self.viscosity_coef = _DEFAULT_VISCOSITY

        self.density = np.zeros(self.size)
        self.density_source = np.zeros(self.size)
        self.pressure = np.zeros(self.size)
        self.divergence = np.zeros(self.size)
        self.velocity = np.zeros((self.size, 2))
        self.velocity_source = np.zeros((self.size, 2))
        self.advected_velocity = np.zeros((self.size, 2))

        grid = np.zeros((n, n), dtype=bool)
        grid[0, :] = grid[-1, :] = grid[:, 0] = grid[:, -1] = True
        self._boundary = grid.ravel()

        jj, ii = np.meshgrid(np.arange(1, n - 1), np.arange(1, n - 1), indexing="ij")
        self._interior_i = ii.astype(float)
        self._interior_j = jj.astype(float)
        self._interior_index = ii + jj * n

        self.laplacian = SparseMatrix(self.size, self.size)
        self.diffusion = SparseMatrix(self.size, self.size)
        self.velocity_diffusion = SparseMatrix(self.size, self.size)
        self._build_laplacian()
        self._build_diffusion(_DIFFUSION_RATE * h)
        self.setup_velocity_diffusion_matrix(self.viscosity_coef)
        self.reset()

    # -- set-up ------------------------------------------------------------

    def _neighbours(self, i: int, j: int) -> list[int]:
        """Indices of the neighbours of (i, j) that lie strictly inside the grid."""
        n, index = self.n, self.index(i, j)
        found = []
        if i - 1 > 0:
            found.append(index - 1)
        if i + 1 < n - 1:
            found.append(index + 1)
        if j - 1 > 0:
            found.append(index - n)
        if j + 1 < n - 1:
            found.append(index + n)
        return found

    def _is_interior(self, i: int, j: int) -> bool:
        return 0 < i < self.n - 1 and 0 < j < self.n - 1

    def _build_laplacian(self) -> None:
        for j in range(self.n):
            for i in range(self.n):
                index = self.index(i, j)
                if self._is_interior(i, j):
                    for other in self._neighbours(i, j):
                        self.laplacian.set_value(index, other, -1.0)
                    self.laplacian.set_value(index, index, 4.0)
                else:
                    self.laplacian.set_value(index, index, 1.0)

    def _build_diffusion(self, coef: float) -> None:
        for j in range(self.n):
            for i in range(self.n):
                index = self.index(i, j)
                neighbours = self._neighbours(i, j)
                for other in neighbours:
                    self.diffusion.set_value(index, other, -1.0 * coef)
                self.diffusion.set_value(index, index, 1.0 + len(neighbours) * coef)

    def setup_velocity_diffusion_matrix(self, viscosity: float) -> None:
        """Rebuild the implicit viscosity matrix I + viscosity * h * L."""
        matrix = self.velocity_diffusion
        matrix.set_dimensions(self.size)
        coef = viscosity * self.h
        if coef <= 0:
            for index in range(self.size):
                matrix.set_value(index, index, 1.0)
            return
        for j in range(self.n):
            for i in range(self.n):
                index = self.index(i, j)
                if self._is_interior(i, j):
                    neighbours = self._neighbours(i, j)
                    for other in neighbours:
                        matrix.set_value(index, other, -coef)
                    matrix.set_value(index, index, 1.0 + len(neighbours) * coef)
                else:
                    matrix.set_value(index, index, 1.0)

    # -- state ---------------------------------------------------------------

    def index(self, i: int, j: int) -> int:
        """Flat index of grid cell (i, j)."""
        return i + j * self.n

    def reset(self) -> None:
        """Zero every field and restore the default viscosity."""
        self.density = np.zeros(self.size)
        self.density_source = np.zeros(self.size)
        self.velocity = np.zeros((self.size, 2))
        self.divergence = np.zeros(self.size)
        self.pressure = np.zeros(self.size)
        self.velocity_source = np.zeros((self.size, 2))
        self.viscosity_coef = _DEFAULT_VISCOSITY

    def clean_density_source(self) -> None:
        self.density_source = np.zeros(self.size)

    def clean_velocity_source(self) -> None:
        self.velocity_source = np.zeros((self.size, 2))

    # -- time stepping -------------------------------------------------------

    def update(self) -> None:
        """Advance density, then velocity, by one time step."""
        self.update_density()
        self.update_velocity()

    def update_density(self) -> None:
        self.density = self.density + self.density_source
        self.density_source, _ = self.diffusion.solve(
            self.density_source, self.density, _SOLVE_TOL, _DIFFUSION_ITERATIONS
        )
        self.density_advection()
        self.clean_density_source()

    def update_velocity(self) -> None:
        self.velocity_advection()
        self.velocity = self.advected_velocity + self.velocity_source

        interior = self._interior_index.ravel()
        buoyant = interior[self.density[interior] > 0]
        self.velocity[buoyant, 1] += -_BUOYANCY * self.density[buoyant]

        if self.viscosity_coef > 0:
            components = []
            for axis in (0, 1):
                column = self.velocity[:, axis]
                solved, _ = self.velocity_diffusion.solve(
                    column, column, _SOLVE_TOL, _DIFFUSION_ITERATIONS
                )
                components.append(solved)
            self.velocity = np.column_stack(components)

        self.projection()
        self.clean_velocity_source()

    def projection(self) -> None:
        """Make the velocity field (approximately) divergence free."""
        n = self.n
        self.velocity = np.ascontiguousarray(self.velocity, dtype=float)
        self.velocity[self._boundary] = 0.0
        vg = self.velocity.reshape(n, n, 2)

        self.divergence = np.ascontiguousarray(self.divergence, dtype=float)
        dg = self.divergence.reshape(n, n)
        dg[1:-1, 1:-1] = 0.5 * (
            vg[1:-1, 2:, 0] - vg[1:-1, :-2, 0] + vg[2:, 1:-1, 1] - vg[:-2, 1:-1, 1]
        )

        self.pressure, _ = self.laplacian.solve(
            self.pressure, self.divergence, _SOLVE_TOL, _PRESSURE_ITERATIONS
        )
        pg = self.pressure.reshape(n, n)
        vg[1:-1, 1:-1, 0] += 0.5 * (pg[1:-1, 2:] - pg[1:-1, :-2])
        vg[1:-1, 1:-1, 1] += 0.5 * (pg[2:, 1:-1] - pg[:-2, 1:-1])

    def _backtrace(self):
        """Departure points of interior cells: corner indices and weights."""
        n = self.n
        vel = self.velocity[self._interior_index]
        x = np.clip(self._interior_i + vel[..., 0] * (-self.h), 0.5, n - 1.5)
        y = np.clip(self._interior_j + vel[..., 1] * (-self.h), 0.5, n - 1.5)
        i0 = x.astype(int)
        j0 = y.astype(int)
        s = x - i0
        t = y - j0
        corners = (
            i0 + j0 * n,
            i0 + (j0 + 1) * n,
            i0 + 1 + j0 * n,
            i0 + 1 + (j0 + 1) * n,
        )
        weights = ((1 - s) * (1 - t), (1 - s) * t, s * (1 - t), s * t)
        return corners, weights

    def density_advection(self) -> None:
        """Carry density_source along the velocity field into density."""
        self.density = np.array(self.density, dtype=float)
        self.density[self._boundary] = 0.0
        corners, weights = self._backtrace()
        source = self.density_source
        result = sum(w * source[c] for w, c in zip(weights, corners))
        self.density[self._interior_index] = result

    def velocity_advection(self) -> None:
        """Carry the velocity field along itself into advected_velocity."""
        advected = np.zeros((self.size, 2))
        corners, weights = self._backtrace()
        velocity = self.velocity
        result = sum(velocity[c] * w[..., None] for w, c in zip(weights, corners))
        advected[self._interior_index] = result
        self.advected_velocity = advected