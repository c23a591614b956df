# stablefluids

A small interactive 2D fluid simulation built on the stable fluids method.
Smoke is injected with the mouse, stirred into motion, advected along the
velocity field, diffused implicitly and pushed towards a divergence-free
velocity by a pressure projection. Buoyancy acts on cells that hold smoke,
and the viscosity can be changed while the simulation runs.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running the simulation

```
stablefluids
```

This opens a pygame window with the fluid region on the left and a panel
on the right that shows the grid size, the current viscosity and the
controls. Two options change the set-up:

| Option   | Default | Meaning                        |
|----------|---------|--------------------------------|
| `--grid` | 60      | grid points per side           |
| `--size` | 600     | size of the fluid region in px |

The fluid region must be at least as many pixels wide as there are grid
points per side, and the grid needs at least 3 points per side; otherwise
the command stops with an error message.

### Controls

| Input        | Action                       |
|--------------|------------------------------|
| Z            | Start / stop the animation   |
| Left button  | Inject smoke                 |
| Right button | Stir the fluid               |
| R            | Reset                        |
| V            | Show / hide velocity vectors |
| D            | Show / hide density          |
| G            | Show / hide grid lines       |
| A            | Advance one time step        |
| + / =        | Increase viscosity           |
| - / _        | Decrease viscosity           |

While the animation runs, the simulation advances one step every 25 ms.

## Using the library

The solver and the sparse linear algebra it relies on work without the
window.

```python
from stablefluids.solver import FluidSolver

solver = FluidSolver()
centre = solver.index(solver.n // 2, solver.n // 2)
solver.density_source[centre] = 50.0 * solver.h
solver.update()
print(solver.density[centre])
```

`FluidSolver(n=60, h=0.1)` keeps density and pressure as flat numpy arrays
of length `n * n` and velocity as an array of shape `(n * n, 2)`; cell
`(i, j)` lives at `solver.index(i, j) == i + j * n`. `update()` advances the
density and then the velocity by one step, `reset()` clears every field and
restores the default viscosity of 0.1, and
`setup_velocity_diffusion_matrix(viscosity)` rebuilds the viscosity matrix
after `viscosity_coef` has been changed.

`stablefluids.sparse.SparseMatrix` is a sparse matrix kept as lists of
elements per row and per column. It offers element access (`set_value`,
`modify_value`, `add_value`, `accumulate`, `delete_element`, `get_value`),
matrix-vector products (`mult_vec`, `mult_trans_vec`), matrix products
(`matmul`, `trans_mat_mat`, `trans_mat_mat_exact`), `add_matrix`,
`scale_row`, a plain-text "i j value" format (`write_to` / `read_from`),
Mathematica-style text (`to_mathematica`, `to_mathematica_entries`,
`vector_to_mathematica`) and a diagonally preconditioned biconjugate
gradient solver: `solve(x, b, tol, iter_max)` returns the solution and the
number of iterations, leaving `x` untouched.

`stablefluids.view.FluidView` holds the interaction state of the window:
mouse buttons, display toggles, key commands (`Key`), the mapping from
window pixels to grid cells (`find_cell_index`) and the panel text
(`status_lines`), so the simulation can also be driven from code:

```python
from stablefluids.view import FluidView, Key

view = FluidView()
view.left_down(300, 300)
view.tick()                  # inject smoke under the cursor and step
view.key_down(Key.VISCOSITY_UP)
```

## What it does not do

The simulation state lives only in memory: there is no way to save or load
a run, and no export of frames or images. The pygame window is the only
display.