"""Sparse matrices kept as linked rows and columns, with a preconditioned BiCG solver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import IO, Iterable, Iterator

import numpy as np

TOL = 0.00005
ZERO_TOL = 1e-12
_TRANS_DROP_TOL = 0.0001


@dataclass(eq=False)
class _Element:
    i: int
    j: int
    value: float


class SparseMatrix:
    """A sparse matrix whose rows and columns list their non-zero elements.

    New elements go to the front of their row and column, so iteration sees
    the most recently inserted element first.  Setting an element that is
    already present inserts a second one; lookups see the newest and products
    sum all of them.
    """

    def __init__(self, rows: int, cols: int | None = None) -> None:
        self.set_dimensions(rows, cols)

    # -- structure ---------------------------------------------------------

    def set_dimensions(self, rows: int, cols: int | None = None) -> None:
        """Clear the matrix and give it a new shape (square when cols is omitted)."""
        if cols is None:
            cols = rows
        if rows < 0 or cols < 0:
            raise ValueError(f"invalid matrix shape {rows}x{cols}")
        self.rows = rows
        self.cols = cols
        self._row_lists: list[list[_Element]] = [[] for _ in range(rows)]
        self._col_lists: list[list[_Element]] = [[] for _ in range(cols)]
        self._diagonal = np.zeros(rows)
        self._cache: tuple[np.ndarray, np.ndarray, np.ndarray] | None = None

    def _check(self, i: int, j: int) -> None:
        if not (0 <= i < self.rows and 0 <= j < self.cols):
            raise IndexError(f"element ({i}, {j}) outside {self.rows}x{self.cols} matrix")

    def _row(self, i: int) -> Iterator[_Element]:
        return reversed(self._row_lists[i])

    def _col(self, j: int) -> Iterator[_Element]:
        return reversed(self._col_lists[j])

    def _link(self, element: _Element) -> None:
        self._row_lists[element.i].append(element)
        self._col_lists[element.j].append(element)
        self._cache = None

    def _find(self, i: int, j: int) -> _Element | None:
        return next((e for e in self._row(i) if e.j == j), None)

    def _value(self, i: int, j: int) -> float:
        element = self._find(i, j)
        return 0.0 if element is None else element.value

    def _adopt(self, other: SparseMatrix) -> None:
        self.rows = other.rows
        self.cols = other.cols
        self._row_lists = other._row_lists
        self._col_lists = other._col_lists
        self._diagonal = other._diagonal
        self._cache = None

    # -- element access ----------------------------------------------------

    def set_value(self, i: int, j: int, value: float) -> None:
        """Insert an element; values smaller than ZERO_TOL are ignored."""
        self._check(i, j)
        if abs(value) < ZERO_TOL:
            return
        self._link(_Element(i, j, float(value)))
        if i == j:
            self._diagonal[i] = value

    def set_values(self, entries: Iterable[tuple[int, int, float]]) -> None:
        """Insert every (i, j, value) triple in turn."""
        for i, j, value in entries:
            self.set_value(i, j, value)

    def modify_value(self, i: int, j: int, value: float) -> None:
        """Overwrite an existing element, or insert it when absent."""
        self._check(i, j)
        element = self._find(i, j)
        if element is None:
            self.set_value(i, j, value)
        else:
            element.value = float(value)
            self._cache = None

    def delete_element(self, i: int, j: int) -> None:
        """Remove element (i, j); raise KeyError when it is absent."""
        self._check(i, j)
        element = self._find(i, j)
        if element is None:
            raise KeyError((i, j))
        in_column = next((e for e in self._col(j) if e.i == i), None)
        if in_column is None:
            raise KeyError((i, j))
        self._row_lists[i].remove(element)
        self._col_lists[j].remove(in_column)
        if i == j:
            self._diagonal[i] = 0.0
        self._cache = None

    def add_value(self, i: int, j: int, value: float) -> None:
        """Add to an element, dropping it when the sum becomes negligible."""
        self._check(i, j)
        element = self._find(i, j)
        if element is None:
            if abs(value) > ZERO_TOL:
                self.set_value(i, j, value)
            return
        element.value += value
        self._cache = None
        if abs(element.value) < ZERO_TOL:
            self.delete_element(i, j)

    def accumulate(self, i: int, j: int, value: float) -> None:
        """Add to an element, keeping it even when the sum is zero."""
        self._check(i, j)
        element = self._find(i, j)
        if element is None:
            self.set_value(i, j, value)
        else:
            element.value += value
            self._cache = None

    def set_row(self, i: int, entries: Iterable[tuple[int, float]]) -> None:
        """Replace row i with (column, value) pairs, given in iteration order."""
        self._check(i, 0 if self.cols else -1)
        for old in self._row_lists[i]:
            self._col_lists[old.j].remove(old)
        elements = []
        for j, value in entries:
            self._check(i, j)
            elements.append(_Element(i, j, float(value)))
        self._row_lists[i] = elements[::-1]
        for element in elements:
            self._col_lists[element.j].append(element)
            if element.j == i:
                self._diagonal[i] = element.value
        self._cache = None

    def get_value(self, i: int, j: int) -> float:
        """Value of element (i, j), or 0.0 when it is absent."""
        self._check(i, j)
        return self._value(i, j)

    def has_element(self, i: int, j: int) -> bool:
        """Whether element (i, j) is stored."""
        self._check(i, j)
        return self._find(i, j) is not None

    def diagonal_element(self, i: int) -> float:
        """The stored diagonal entry of row i, used for preconditioning."""
        if not 0 <= i < self.rows:
            raise IndexError(f"row {i} outside {self.rows}-row matrix")
        return float(self._diagonal[i])

    def entries(self) -> Iterator[tuple[int, int, float]]:
        """Yield (i, j, value) row by row, newest element first within a row."""
        for i in range(self.rows):
            for element in self._row(i):
                yield element.i, element.j, element.value

    # -- text forms --------------------------------------------------------

    def to_mathematica(self) -> str:
        """The full matrix as a Mathematica list of lists."""
        rows = (
            "\n{" + ", ".join(f"{self._value(i, j):f}" for j in range(self.cols)) + "}"
            for i in range(self.rows)
        )
        return "m = {" + ",".join(rows) + "}\n\n"

    def to_mathematica_entries(self) -> str:
        """Stored elements only, each tagged with its row and column."""
        parts = [f"This is a {self.rows} by {self.cols} matrix.\n", "m = {"]
        for i in range(self.rows):
            present: dict[int, float] = {}
            for element in self._row(i):
                present.setdefault(element.j, element.value)
            parts.append("\n{")
            for j in sorted(present):
                parts.append(f"{i},{j} {present[j]:e}")
                if j != self.cols - 1:
                    parts.append(", ")
            parts.append("}")
            if i != self.rows - 1:
                parts.append(",")
        parts.append("}\n\n")
        return "".join(parts)

    def write_to(self, fp: IO[str]) -> None:
        """Write one "i j value" line per stored element."""
        for i, j, value in self.entries():
            fp.write(f"{i} {j} {value:f}\n")

    def read_from(self, fp: IO[str]) -> None:
        """Read "i j value" triples until the end of the stream and insert them."""
        tokens = fp.read().split()
        if len(tokens) % 3:
            raise ValueError("incomplete 'i j value' triple at end of input")
        for i, j, value in zip(*[iter(tokens)] * 3):
            self.set_value(int(i), int(j), float(value))

    # -- arithmetic --------------------------------------------------------

    def _arrays(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        if self._cache is None:
            triples = list(self.entries())
            self._cache = (
                np.array([t[0] for t in triples], dtype=np.intp),
                np.array([t[1] for t in triples], dtype=np.intp),
                np.array([t[2] for t in triples], dtype=float),
            )
        return self._cache

    def mult_vec(self, src) -> np.ndarray:
        """Return A @ src."""
        src = np.asarray(src, dtype=float)
        if src.shape != (self.cols,):
            raise ValueError(f"vector of length {self.cols} expected, got shape {src.shape}")
        rows, cols, values = self._arrays()
        return np.bincount(rows, weights=values * src[cols], minlength=self.rows)

    def mult_trans_vec(self, src) -> np.ndarray:
        """Return A.T @ src."""
        src = np.asarray(src, dtype=float)
        if src.shape != (self.rows,):
            raise ValueError(f"vector of length {self.rows} expected, got shape {src.shape}")
        rows, cols, values = self._arrays()
        return np.bincount(cols, weights=values * src[rows], minlength=self.cols)

    def matmul(self, other: SparseMatrix) -> SparseMatrix:
        """Return the product self @ other as a new matrix."""
        if self.cols != other.rows:
            raise ValueError(
                f"cannot multiply {self.rows}x{self.cols} by {other.rows}x{other.cols}"
            )
        result = SparseMatrix(self.rows, other.cols)
        for i in range(self.rows):
            for element in self._row(i):
                for factor in other._row(element.j):
                    result.add_value(i, factor.j, element.value * factor.value)
        for i in range(result.rows):
            result._diagonal[i] = result._value(i, i)
        return result

    def trans_mat_mat(self) -> None:
        """Replace the matrix by A.T @ A, dropping entries at or below 1e-4."""
        result = SparseMatrix(self.cols, self.cols)
        for j in range(self.cols):
            column = list(self._col(j))
            if not column:
                continue
            col_vec = np.zeros(self.rows)
            for element in column:
                col_vec[element.i] = element.value
            product = self.mult_trans_vec(col_vec)
            for i, value in enumerate(product):
                if abs(value) > _TRANS_DROP_TOL:
                    result.set_value(i, j, value)
        self._adopt(result)

    def trans_mat_mat_exact(self) -> None:
        """Replace the matrix by A.T @ A, keeping every non-negligible entry."""
        result = SparseMatrix(self.cols, self.cols)
        for j in range(self.cols):
            for left in self._col(j):
                for right in self._row(left.i):
                    result.add_value(left.j, right.j, left.value * right.value)
        self._adopt(result)

    def add_matrix(self, other: SparseMatrix) -> None:
        """Add another matrix of the same shape in place."""
        if (self.rows, self.cols) != (other.rows, other.cols):
            raise ValueError(
                f"cannot add {other.rows}x{other.cols} to {self.rows}x{self.cols}"
            )
        for i in range(self.rows):
            for source in list(other._row(i)):
                element = self._find(source.i, source.j)
                if element is None:
                    self._link(_Element(source.i, source.j, source.value))
                else:
                    element.value += source.value
        self._diagonal = self._diagonal + other._diagonal
        self._cache = None

    def scale_row(self, i: int, factor: float) -> None:
        """Multiply every element of row i by factor."""
        if not 0 <= i < self.rows:
            raise IndexError(f"row {i} outside {self.rows}-row matrix")
        for element in self._row_lists[i]:
            element.value *= factor
        self._diagonal[i] *= factor
        self._cache = None

    def solve(self, x, b, tol: float, iter_max: int) -> tuple[np.ndarray, int]:
        """Solve A x = b by Jacobi-preconditioned biconjugate gradients.

        x is the initial guess and is left untouched.  Returns the solution
        and the number of iterations performed.
        """
        if self.rows != self.cols:
            raise ValueError("solve needs a square matrix")
        x = np.array(x, dtype=float)
        b = np.array(b, dtype=float)
        if x.shape != (self.rows,) or b.shape != (self.rows,):
            raise ValueError(f"vectors of length {self.rows} expected")
        diag = self._diagonal.copy()
        iterations = 0
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            r = b - self.mult_vec(x)
            rb = r.copy()
            z = r / diag
            zb = z.copy()
            p = z.copy()
            pb = z.copy()
            mag_r = np.dot(rb, z)
            residual0 = np.sum(b * b / (diag * diag))
            mag_residual = residual0 * 100
            while mag_residual > tol and iterations < iter_max:
                iterations += 1
                ap = self.mult_vec(p)
                atpb = self.mult_trans_vec(pb)
                mag_pbap = np.dot(pb, ap)
                alpha = np.float64(1.0) if mag_r == 0 and mag_pbap == 0 else mag_r / mag_pbap
                mag_r_old = mag_r
                x += alpha * p
                r -= alpha * ap
                rb -= alpha * atpb
                z = r / diag
                zb = rb / diag
                mag_r = np.dot(rb, z)
                beta = np.float64(1.0) if mag_r == 0 and mag_r_old == 0 else mag_r / mag_r_old
                p = z + beta * p
                pb = zb + beta * pb
                mag_residual = np.dot(z, z)
        return x, iterations


def vector_to_mathematica(values: Iterable[float]) -> str:
    """A vector as a Mathematica list."""
    return "v = {" + ", ".join(f"{value:f}" for value in values) + "}\n\n"