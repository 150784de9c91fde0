"""Gomory's cutting-plane method for (mixed) integer programs.

The relaxation is solved first; then, while some integer variable is basic
at a fractional value, a cut is derived from its row, appended to the
tableau, and the dual simplex restores feasibility.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Collection, Iterable, Optional, Tuple

import numpy as np

from lp_problem import ContractViolation, Sense
from simplex_solver import (
    SimplexResult,
    SolverSteps,
    Status,
    dual_simplex,
    make_result,
    primal_simplex,
)
from simplex_tableau import Tableau
from solver_options import DEFAULT_OPTIONS, SolverOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GomoryCut:
    """A cut in tableau `<=` form: ``coefficients . x + s = rhs``."""

    coefficients: Tuple[float, ...]
    rhs: float
    source_row: int
    slack_column: Optional[int] = None

    def describe(self, labels: Iterable[str], tol: float = 1e-9) -> str:
        terms = []
        for coef, label in zip(self.coefficients, labels):
            if abs(coef) <= tol:
                continue
            sign = "- " if coef < 0 else ("+ " if terms else "")
            terms.append(f"{sign}{abs(coef):.4g}{label}")
        return f"{' '.join(terms) or '0'} <= {self.rhs:.4g}"


def fractional_part(value: float, tol: float) -> float:
    if abs(value - round(value)) <= tol:
        return 0.0
    return value - math.floor(value)


def select_fractional_row(
    tableau: Tableau, integer_columns: Collection[int], tol: float
) -> Optional[int]:
    """Row of the integer basic variable with the largest fractional value."""
    best_row = None
    best_fraction = 0.0
    for row, column in enumerate(tableau.basis):
        if column not in integer_columns:
            continue
        fraction = fractional_part(tableau.rhs[row], tol)
        if tol < fraction < 1 - tol and fraction > best_fraction:
            best_row, best_fraction = row, fraction
    return best_row


def generate_cut(
    tableau: Tableau, row: int, integer_columns: Collection[int], tol: float
) -> GomoryCut:
    beta = fractional_part(tableau.rhs[row], tol)
    if not tol < beta < 1 - tol:
        raise ContractViolation(f"row {row} has an integral right-hand side.")
    scale = beta / (1 - beta)

    coefficients = np.zeros(tableau.num_columns, dtype=float)
    for j, entry in enumerate(tableau.body[row]):
        if j in integer_columns:
            alpha = fractional_part(entry, tol)
            gamma = alpha if alpha <= beta else scale * (1 - alpha)
        elif entry >= 0:
            gamma = entry
        else:
            gamma = scale * abs(entry)
        coefficients[j] = -gamma

    return GomoryCut(tuple(coefficients.tolist()), -beta, row)


def _solve_relaxation(
    tableau: Tableau, options: SolverOptions, sense: Sense
) -> SolverSteps:
    tol = options.tolerance
    if tableau.is_primal_feasible(tol):
        return (yield from primal_simplex(tableau, options, sense))
    if tableau.is_dual_feasible(tol):
        return (yield from dual_simplex(tableau, options, sense))
    yield tableau.snapshot("primal", 0, note="initial tableau")
    return make_result(
        tableau,
        Status.NO_INTEGER_SOLUTION,
        0,
        sense,
        "the starting tableau is neither primal nor dual feasible.",
    )


def _driver_result(tableau, status, cuts, sense, message) -> SimplexResult:
    result = make_result(tableau, status, len(cuts), sense, message)
    result.cuts = list(cuts)
    return result


def _stopped_pass(tableau, finished, cuts, sense, what) -> SimplexResult:
    """Result for a simplex pass that ended without an optimum."""
    if finished.status is Status.ITERATION_LIMIT:
        logger.warning("%s stopped at the pivot limit", what)
        return _driver_result(
            tableau,
            Status.ITERATION_LIMIT,
            cuts,
            sense,
            f"{what} stopped early: {finished.message}",
        )
    logger.info("%s ended with %s", what, finished.status.value)
    return _driver_result(
        tableau,
        Status.NO_INTEGER_SOLUTION,
        cuts,
        sense,
        f"{what} has no optimum: {finished.message or finished.status.value}",
    )


def gomory(
    tableau: Tableau,
    integer_variables: Iterable[int],
    options: SolverOptions = DEFAULT_OPTIONS,
    sense: Sense = Sense.MAXIMIZE,
) -> SolverSteps:
    tol = options.tolerance
    integer_columns = frozenset(int(j) for j in integer_variables)
    cuts = []

    relaxation = yield from _solve_relaxation(tableau, options, sense)
    if relaxation.status is not Status.OPTIMAL:
        return _stopped_pass(tableau, relaxation, cuts, sense, "the linear relaxation")

    while True:
        row = select_fractional_row(tableau, integer_columns, tol)
        if row is None:
            logger.info("integer optimum found after %d cuts", len(cuts))
            return _driver_result(
                tableau,
                Status.INTEGER_OPTIMAL,
                cuts,
                sense,
                f"integer optimum found after {len(cuts)} cuts.",
            )

        if len(cuts) >= options.max_cuts:
            logger.warning("gomory stopped after %d cuts", len(cuts))
            return _driver_result(
                tableau,
                Status.ITERATION_LIMIT,
                cuts,
                sense,
                f"reached the limit of {options.max_cuts} cuts.",
            )

        cut = generate_cut(tableau, row, integer_columns, tol)
        slack = tableau.append_row(cut.coefficients, cut.rhs)
        cut = replace(cut, slack_column=slack)
        cuts.append(cut)
        logger.debug(
            "cut %d from row %d (basic column %d), rhs %.6g",
            len(cuts),
            row,
            tableau.basis[row],
            cut.rhs,
        )
        repaired = yield from dual_simplex(
            tableau,
            options,
            sense,
            phase="cut",
            initial_note=f"cut {len(cuts)} derived from row {row + 1}",
        )
        if repaired.status is not Status.OPTIMAL:
            return _stopped_pass(
                tableau, repaired, cuts, sense, f"the dual simplex after cut {len(cuts)}"
            )
