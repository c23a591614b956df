import numpy as np
import pytest

from stablefluids.solver import FluidSolver


@pytest.fixture
def solver():
    return FluidSolver(8, 0.1)


def grid(values, n):
    return np.asarray(values).reshape(n, n)


def test_defaults_follow_source():
    s = FluidSolver()
    assert s.n == 60
    assert s.size == 3600
    assert s.h == pytest.approx(0.1)
    assert s.viscosity_coef == pytest.approx(0.1)
    assert s.density.shape == (3600,)
    assert s.velocity.shape == (3600, 2)


def test_too_small_grid_rejected():
    with pytest.raises(ValueError):
        FluidSolver(2, 0.1)


def test_index_layout(solver):
    assert solver.index(1, 0) == 1
    assert solver.index(0, 1) == solver.n
    assert solver.index(solver.n - 1, solver.n - 1) == solver.size - 1


def test_laplacian_structure(solver):
    lap = solver.laplacian
    corner = solver.index(0, 0)
    assert lap.get_value(corner, corner) == 1.0
    assert not lap.has_element(corner, corner + 1)
    inner = solver.index(1, 1)
    assert lap.get_value(inner, inner) == 4.0
    assert not lap.has_element(inner, inner - 1)
    assert lap.get_value(inner, inner + 1) == -1.0
    assert lap.get_value(inner, inner + solver.n) == -1.0


def test_diffusion_rows_sum_to_one(solver):
    sums = solver.diffusion.mult_vec(np.ones(solver.size))
    assert np.allclose(sums, 1.0)


def test_velocity_diffusion_identity_without_viscosity(solver):
    solver.setup_velocity_diffusion_matrix(0.0)
    entries = list(solver.velocity_diffusion.entries())
    assert len(entries) == solver.size
    assert all(i == j and v == 1.0 for i, j, v in entries)


def test_velocity_diffusion_with_viscosity(solver):
    solver.setup_velocity_diffusion_matrix(0.5)
    m = solver.velocity_diffusion
    sums = m.mult_vec(np.ones(solver.size))
    assert np.allclose(sums, 1.0)
    edge = solver.index(0, 3)
    assert m.get_value(edge, edge) == 1.0
    assert not m.has_element(edge, edge + 1)
    inner = solver.index(3, 3)
    assert m.get_value(inner, inner) > 1.0


def test_reset_clears_fields_and_viscosity(solver):
    solver.density[5] = 1.0
    solver.velocity[5] = (1.0, 2.0)
    solver.density_source[7] = 3.0
    solver.velocity_source[7] = (1.0, 1.0)
    solver.pressure[2] = 4.0
    solver.viscosity_coef = 2.0
    solver.reset()
    assert not solver.density.any()
    assert not solver.velocity.any()
    assert not solver.density_source.any()
    assert not solver.velocity_source.any()
    assert not solver.pressure.any()
    assert solver.viscosity_coef == pytest.approx(0.1)


def test_clean_sources(solver):
    solver.density_source[10] = 1.0
    solver.velocity_source[10] = (2.0, 3.0)
    solver.clean_density_source()
    solver.clean_velocity_source()
    assert not solver.density_source.any()
    assert not solver.velocity_source.any()


def test_density_advection_without_velocity_copies_interior(solver):
    rng = np.random.default_rng(1)
    solver.density_source = rng.random(solver.size)
    solver.density_advection()
    n = solver.n
    d = grid(solver.density, n)
    src = grid(solver.density_source, n)
    assert np.allclose(d[1:-1, 1:-1], src[1:-1, 1:-1])
    assert not d[0].any() and not d[-1].any()
    assert not d[:, 0].any() and not d[:, -1].any()


def test_velocity_advection_of_uniform_field(solver):
    solver.velocity[:] = (0.3, -0.2)
    solver.velocity_advection()
    n = solver.n
    adv = solver.advected_velocity.reshape(n, n, 2)
    assert np.allclose(adv[1:-1, 1:-1], (0.3, -0.2))
    assert not adv[0].any() and not adv[:, -1].any()


def test_projection_zeroes_boundary_and_records_divergence(solver):
    n = solver.n
    for j in range(n):
        for i in range(n):
            solver.velocity[solver.index(i, j)] = (0.1 * i, 0.0)
    solver.projection()
    vg = solver.velocity.reshape(n, n, 2)
    assert not vg[0].any() and not vg[-1].any()
    assert not vg[:, 0].any() and not vg[:, -1].any()
    dg = grid(solver.divergence, n)
    assert np.allclose(dg[1:-1, 1 : n - 2], 0.1)


def test_update_of_empty_state_stays_empty(solver):
    solver.update()
    assert not solver.density.any()
    assert not np.abs(solver.velocity).max() > 0


def test_update_density_symmetric_spread():
    s = FluidSolver(9, 0.1)
    centre = s.index(4, 4)
    s.density_source[centre] = 5.0
    s.update_density()
    d = grid(s.density, 9)
    assert np.allclose(d, d.T)
    assert d.argmax() == centre
    assert 0 < d.max() < 5.0
    assert not s.density_source.any()


def test_update_with_density_source(solver):
    centre = solver.index(4, 4)
    solver.density_source[centre] = 5.0
    solver.update()
    n = solver.n
    d = grid(solver.density, n)
    assert d.sum() > 0
    assert not d[0].any() and not d[-1].any()
    assert not solver.density_source.any()
    vg = solver.velocity.reshape(n, n, 2)
    assert np.abs(vg).max() > 0
    assert not vg[0].any() and not vg[:, 0].any()


def test_update_with_velocity_source(solver):
    solver.velocity_source[solver.index(3, 3)] = (5.0, 0.0)
    solver.update()
    assert np.abs(solver.velocity).max() > 0
    assert not solver.velocity_source.any()
    assert not solver.density.any()


def test_buoyancy_pushes_upward_without_viscosity(solver):
    solver.setup_velocity_diffusion_matrix(0.0)
    solver.viscosity_coef = 0.0
    cell = solver.index(4, 4)
    solver.density[cell] = 2.0
    solver.update_velocity()
    # upward is negative y; projection spreads it but the cell keeps moving up
    assert solver.velocity[cell, 1] < 0