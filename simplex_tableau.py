from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from lp_problem import CanonicalForm, ContractViolation, Problem, canonicalize

logger = logging.getLogger(__name__)


class PivotError(ContractViolation):
    pass


def _frozen(values) -> np.ndarray:
    arr = np.array(values, dtype=float, copy=True)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True)
class TableauSnapshot:
    """Read-only copy of a tableau taken after a pivot or a cut."""

    phase: str
    step: int
    objective_row: np.ndarray
    objective_value: float
    basis: Tuple[int, ...]
    basic_costs: np.ndarray
    rhs: np.ndarray
    body: np.ndarray
    costs: np.ndarray
    num_structural: int
    pivot: Optional[Tuple[int, int]] = None
    note: str = ""

    @property
    def num_rows(self) -> int:
        return len(self.rhs)

    @property
    def num_columns(self) -> int:
        return len(self.objective_row)

    def column_labels(self) -> List[str]:
        n = self.num_structural
        return [f"x{j + 1}" if j < n else f"s{j - n + 1}" for j in range(self.num_columns)]


class Tableau:
    """Simplex tableau of a maximisation problem with rows in `<=` form.

    ``objective_row`` holds the reduced costs (z_j - c_j); the tableau is
    optimal for the primal once every entry is non-negative and feasible once
    every ``rhs`` entry is non-negative.
    """

    def __init__(
        self,
        body: np.ndarray,
        rhs: np.ndarray,
        costs: np.ndarray,
        basis: List[int],
        basic_costs: np.ndarray,
        objective_row: np.ndarray,
        objective_value: float,
        num_structural: int,
        num_constraints: Optional[int] = None,
    ):
        self.body = body
        self.rhs = rhs
        self.costs = costs
        self.basis = basis
        self.basic_costs = basic_costs
        self.objective_row = objective_row
        self.objective_value = objective_value
        self.num_structural = num_structural
        # user constraints, before equality splitting and cuts
        self.num_constraints = len(rhs) if num_constraints is None else num_constraints
        self._check_shape()

    @classmethod
    def from_arrays(
        cls,
        body: Sequence[Sequence[float]],
        rhs: Sequence[float],
        costs: Sequence[float],
        basis: Sequence[int],
        num_structural: Optional[int] = None,
    ) -> "Tableau":
        """Build a tableau from raw state, deriving the objective row."""
        body_arr = np.array(body, dtype=float)
        rhs_arr = np.array(rhs, dtype=float)
        costs_arr = np.array(costs, dtype=float)
        if body_arr.ndim != 2 or costs_arr.shape != (body_arr.shape[1],):
            raise ContractViolation("body must be rows x len(costs).")
        basic_costs = costs_arr[list(basis)]
        objective_row = basic_costs @ body_arr - costs_arr
        objective_value = float(basic_costs @ rhs_arr)
        if num_structural is None:
            num_structural = body_arr.shape[1] - body_arr.shape[0]
        return cls(
            body_arr,
            rhs_arr,
            costs_arr,
            list(basis),
            basic_costs,
            objective_row,
            objective_value,
            num_structural,
        )

    @classmethod
    def from_canonical(cls, form: CanonicalForm) -> "Tableau":
        m, n = form.A.shape
        body = np.hstack([form.A, np.eye(m, dtype=float)])
        costs = np.concatenate([form.costs, np.zeros(m, dtype=float)])
        return cls(
            body,
            form.b.astype(float),
            costs,
            [n + i for i in range(m)],
            np.zeros(m, dtype=float),
            -costs,
            0.0,
            n,
            len(set(form.row_origin)),
        )

    @classmethod
    def from_problem(cls, problem: Problem) -> "Tableau":
        return cls.from_canonical(canonicalize(problem))

    @property
    def num_rows(self) -> int:
        return len(self.rhs)

    @property
    def num_columns(self) -> int:
        return len(self.objective_row)

    def _check_shape(self) -> None:
        m = len(self.rhs)
        width = len(self.objective_row)
        if self.body.shape != (m, width):
            raise ContractViolation(
                f"body has shape {self.body.shape}, expected {(m, width)}."
            )
        if len(self.basis) != m or len(self.basic_costs) != m:
            raise ContractViolation("basis and basic costs must have one entry per row.")
        if len(self.costs) != width:
            raise ContractViolation("costs must have one entry per column.")

    def is_primal_feasible(self, tol: float) -> bool:
        return bool(np.all(self.rhs >= -tol))

    def is_dual_feasible(self, tol: float) -> bool:
        return bool(np.all(self.objective_row >= -tol))

    def pivot(self, row: int, column: int, tol: float = 0.0) -> None:
        """Exchange the basic variable of ``row`` for ``column``."""
        if not (0 <= row < self.num_rows and 0 <= column < self.num_columns):
            raise PivotError(f"pivot ({row}, {column}) is outside the tableau.")
        pivot = self.body[row, column]
        if abs(pivot) <= tol:
            raise PivotError(f"zero pivot element at ({row}, {column}).")

        self.body[row] = self.body[row] / pivot
        self.rhs[row] = self.rhs[row] / pivot

        for i in range(self.num_rows):
            if i == row:
                continue
            factor = self.body[i, column]
            if factor == 0:
                continue
            self.body[i] = self.body[i] - factor * self.body[row]
            self.rhs[i] = self.rhs[i] - factor * self.rhs[row]

        factor = self.objective_row[column]
        self.objective_row = self.objective_row - factor * self.body[row]
        self.objective_value = float(self.objective_value - factor * self.rhs[row])

        self.basis[row] = column
        self.basic_costs[row] = self.costs[column]
        logger.debug(
            "pivot on (%d, %d), element %.6g, objective %.6g",
            row,
            column,
            pivot,
            self.objective_value,
        )

    def append_row(self, coefficients: Sequence[float], rhs: float) -> int:
        """Add a `<=` row with its own slack column, basic in that row.

        Returns the index of the new slack column.
        """
        coefficients = np.asarray(coefficients, dtype=float)
        if coefficients.shape != (self.num_columns,):
            raise ContractViolation(
                f"new row has {coefficients.size} coefficients, "
                f"expected {self.num_columns}."
            )
        new_column = self.num_columns
        self.body = np.vstack(
            [
                np.hstack([self.body, np.zeros((self.num_rows, 1))]),
                np.append(coefficients, 1.0),
            ]
        )
        self.rhs = np.append(self.rhs, float(rhs))
        self.costs = np.append(self.costs, 0.0)
        self.objective_row = np.append(self.objective_row, 0.0)
        self.basis.append(new_column)
        self.basic_costs = np.append(self.basic_costs, 0.0)
        self._check_shape()
        return new_column

    def values(self) -> np.ndarray:
        """Value of every column variable in the current basic solution."""
        full = np.zeros(self.num_columns, dtype=float)
        for row_index, var_index in enumerate(self.basis):
            full[var_index] = self.rhs[row_index]
        return full

    def solution(self) -> List[float]:
        return self.values()[: self.num_structural].tolist()

    def snapshot(
        self,
        phase: str,
        step: int,
        pivot: Optional[Tuple[int, int]] = None,
        note: str = "",
    ) -> TableauSnapshot:
        return TableauSnapshot(
            phase=phase,
            step=step,
            objective_row=_frozen(self.objective_row),
            objective_value=float(self.objective_value),
            basis=tuple(int(b) for b in self.basis),
            basic_costs=_frozen(self.basic_costs),
            rhs=_frozen(self.rhs),
            body=_frozen(self.body),
            costs=_frozen(self.costs),
            num_structural=self.num_structural,
            pivot=pivot,
            note=note,
        )
