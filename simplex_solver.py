from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Generator, Iterator, List, Optional, Sequence

import numpy as np

from lp_problem import Problem, Sense, SimplexError, canonicalize
from simplex_tableau import Tableau, TableauSnapshot
from solver_options import DEFAULT_OPTIONS, SolverOptions

if TYPE_CHECKING:
    from gomory_cuts import GomoryCut

logger = logging.getLogger(__name__)


class Status(str, Enum):
    OPTIMAL = "optimal"
    UNBOUNDED = "unbounded"
    NO_FEASIBLE_SOLUTION = "no_feasible_solution"
    INPUT_NOT_DUAL_FEASIBLE = "input_not_dual_feasible"
    INPUT_NOT_PRIMAL_FEASIBLE = "input_not_primal_feasible"
    ITERATION_LIMIT = "iteration_limit"
    INTEGER_OPTIMAL = "integer_optimal"
    NO_INTEGER_SOLUTION = "no_integer_solution"


# statuses whose final tableau holds a meaningful (possibly partial) solution
_REPORTS_SOLUTION = {Status.OPTIMAL, Status.ITERATION_LIMIT, Status.INTEGER_OPTIMAL}


@dataclass
class SimplexResult:
    """Container for solver outcomes."""

    status: Status
    optimal_value: float | None
    solution: List[float] | None
    iterations: int
    basis: List[int]
    tableau: TableauSnapshot
    num_variables: int
    num_constraints: int
    message: str = ""
    cuts: List["GomoryCut"] = field(default_factory=list)


SolverSteps = Generator[TableauSnapshot, None, SimplexResult]


def reported_value(value: float, sense: Sense) -> float:
    """Undo the objective flip applied to minimisation problems."""
    return -value if sense is Sense.MINIMIZE else value


def make_result(
    tableau: Tableau,
    status: Status,
    iterations: int,
    sense: Sense,
    message: str = "",
) -> SimplexResult:
    has_solution = status in _REPORTS_SOLUTION
    return SimplexResult(
        status=status,
        optimal_value=(
            reported_value(tableau.objective_value, sense) if has_solution else None
        ),
        solution=tableau.solution() if has_solution else None,
        iterations=iterations,
        basis=list(tableau.basis),
        tableau=tableau.snapshot("final", iterations),
        num_variables=tableau.num_structural,
        num_constraints=tableau.num_constraints,
        message=message,
    )


class SolverRun:
    """Lazy stream of tableau snapshots ending in a :class:`SimplexResult`.

    Iterating yields one snapshot per pivot (plus initial states). The
    stream is single-use: iterating again resumes where the previous loop
    stopped. ``result`` is set once the stream is exhausted.
    """

    def __init__(self, steps: SolverSteps):
        self.result: Optional[SimplexResult] = None
        self._driver = self._drive(steps)

    def _drive(self, steps: SolverSteps) -> Iterator[TableauSnapshot]:
        self.result = yield from steps

    def __iter__(self) -> Iterator[TableauSnapshot]:
        return self._driver

    def finish(self) -> SimplexResult:
        for _ in self._driver:
            pass
        return self.result


def primal_entering_column(tableau: Tableau, tol: float) -> Optional[int]:
    """Dantzig's rule: most negative reduced cost, lowest index on ties."""
    reduced_costs = tableau.objective_row
    candidates = np.where(reduced_costs < -tol)[0]
    if candidates.size == 0:
        return None
    return int(candidates[np.argmin(reduced_costs[candidates])])


def primal_leaving_row(tableau: Tableau, column: int, tol: float) -> Optional[int]:
    """Minimum-ratio test over rows with a positive entry in ``column``."""
    entries = tableau.body[:, column]
    rows = np.where(entries > tol)[0]
    if rows.size == 0:
        return None
    ratios = tableau.rhs[rows] / entries[rows]
    return int(rows[np.argmin(ratios)])


def dual_leaving_row(tableau: Tableau, tol: float) -> Optional[int]:
    rows = np.where(tableau.rhs < -tol)[0]
    if rows.size == 0:
        return None
    return int(rows[np.argmin(tableau.rhs[rows])])


def dual_entering_column(tableau: Tableau, row: int, tol: float) -> Optional[int]:
    """Dual ratio test: min |reduced cost / entry| over negative entries."""
    entries = tableau.body[row]
    columns = np.where(entries < -tol)[0]
    if columns.size == 0:
        return None
    ratios = np.abs(tableau.objective_row[columns] / entries[columns])
    return int(columns[np.argmin(ratios)])


def primal_simplex(
    tableau: Tableau,
    options: SolverOptions = DEFAULT_OPTIONS,
    sense: Sense = Sense.MAXIMIZE,
    phase: str = "primal",
    initial_note: str = "initial tableau",
) -> SolverSteps:
    tol = options.tolerance
    yield tableau.snapshot(phase, 0, note=initial_note)

    if not tableau.is_primal_feasible(tol):
        logger.info("primal simplex refused: negative right-hand side")
        return make_result(
            tableau,
            Status.INPUT_NOT_PRIMAL_FEASIBLE,
            0,
            sense,
            "the starting basis is infeasible (negative right-hand side); "
            "use the dual simplex method instead.",
        )

    iterations = 0
    while True:
        entering = primal_entering_column(tableau, tol)
        if entering is None:
            logger.info("primal simplex optimal after %d pivots", iterations)
            return make_result(tableau, Status.OPTIMAL, iterations, sense)

        leaving = primal_leaving_row(tableau, entering, tol)
        if leaving is None:
            logger.info("primal simplex: column %d is unbounded", entering)
            return make_result(
                tableau,
                Status.UNBOUNDED,
                iterations,
                sense,
                f"column {entering + 1} can increase without limit.",
            )

        if iterations >= options.max_iterations:
            logger.warning("primal simplex stopped after %d pivots", iterations)
            return make_result(
                tableau,
                Status.ITERATION_LIMIT,
                iterations,
                sense,
                f"no optimum after {iterations} pivots.",
            )

        tableau.pivot(leaving, entering, tol)
        iterations += 1
        yield tableau.snapshot(
            phase,
            iterations,
            pivot=(leaving, entering),
            note=f"column {entering + 1} enters, row {leaving + 1} leaves",
        )


def dual_simplex(
    tableau: Tableau,
    options: SolverOptions = DEFAULT_OPTIONS,
    sense: Sense = Sense.MAXIMIZE,
    phase: str = "dual",
    initial_note: str = "initial tableau",
) -> SolverSteps:
    tol = options.tolerance
    yield tableau.snapshot(phase, 0, note=initial_note)

    if not tableau.is_dual_feasible(tol):
        logger.info("dual simplex refused: negative reduced cost")
        return make_result(
            tableau,
            Status.INPUT_NOT_DUAL_FEASIBLE,
            0,
            sense,
            "the starting tableau is not dual feasible (some reduced costs are "
            "negative); use the primal simplex method instead.",
        )

    iterations = 0
    while True:
        leaving = dual_leaving_row(tableau, tol)
        if leaving is None:
            logger.info("dual simplex optimal after %d pivots", iterations)
            return make_result(tableau, Status.OPTIMAL, iterations, sense)

        entering = dual_entering_column(tableau, leaving, tol)
        if entering is None:
            logger.info("dual simplex: row %d has no negative entry", leaving)
            return make_result(
                tableau,
                Status.NO_FEASIBLE_SOLUTION,
                iterations,
                sense,
                f"row {leaving + 1} cannot be made feasible; the problem has "
                "no feasible solution.",
            )

        if iterations >= options.max_iterations:
            logger.warning("dual simplex stopped after %d pivots", iterations)
            return make_result(
                tableau,
                Status.ITERATION_LIMIT,
                iterations,
                sense,
                f"no feasible basis after {iterations} pivots.",
            )

        tableau.pivot(leaving, entering, tol)
        iterations += 1
        yield tableau.snapshot(
            phase,
            iterations,
            pivot=(leaving, entering),
            note=f"row {leaving + 1} leaves, column {entering + 1} enters",
        )


METHODS = ("primal", "dual", "gomory")


def solve(
    problem: Problem,
    method: str = "primal",
    integer_variables: Sequence[int] | None = None,
    options: SolverOptions | None = None,
) -> SolverRun:
    """Start solving ``problem``; iterate the returned run to see each pivot.

    ``integer_variables`` are 0-based decision variable indices and only
    apply to ``method="gomory"``, where they default to every variable.
    """
    if options is None:
        options = DEFAULT_OPTIONS
    tableau = Tableau.from_canonical(canonicalize(problem))

    if method == "primal":
        return SolverRun(primal_simplex(tableau, options, problem.sense))
    if method == "dual":
        return SolverRun(dual_simplex(tableau, options, problem.sense))
    if method == "gomory":
        from gomory_cuts import gomory

        if integer_variables is None:
            integer_variables = range(problem.num_variables)
        for idx in integer_variables:
            if not 0 <= idx < problem.num_variables:
                raise SimplexError(f"integer variable index {idx} is out of range.")
        return SolverRun(gomory(tableau, integer_variables, options, problem.sense))
    raise SimplexError(f"unknown method '{method}'; expected one of {', '.join(METHODS)}.")
