import numpy as np
import pytest

from lp_problem import Problem, SimplexError
from simplex_solver import (
    SolverRun,
    Status,
    dual_entering_column,
    dual_leaving_row,
    dual_simplex,
    primal_entering_column,
    primal_leaving_row,
    primal_simplex,
    solve,
)
from simplex_tableau import Tableau
from solver_options import SolverOptions

TOL = 1e-9


def test_primal_reaches_known_optimum(production_problem):
    run = solve(production_problem, "primal")
    snapshots = list(run)
    result = run.result

    assert result.status is Status.OPTIMAL
    assert result.solution == pytest.approx([2, 6])
    assert result.optimal_value == pytest.approx(36)
    assert result.iterations == 2
    assert len(snapshots) == 3
    assert snapshots[1].pivot == (1, 1)
    assert snapshots[2].pivot == (2, 0)


def test_primal_keeps_rhs_feasible():
    problem = Problem.from_lists(
        [2, 3, 4],
        [[3, 2, 1], [2, 5, 3], [1, 1, 1]],
        [10, 15, 6],
    )
    run = solve(problem, "primal")
    for snapshot in run:
        assert np.all(snapshot.rhs >= -TOL)
    assert run.result.status is Status.OPTIMAL


def test_primal_objective_is_non_decreasing(production_problem):
    values = [s.objective_value for s in solve(production_problem, "primal")]
    assert values == pytest.approx([0, 30, 36])
    assert all(a <= b for a, b in zip(values, values[1:]))


def test_primal_detects_unbounded():
    problem = Problem.from_lists([1, 1], [[1, -1]], [1])
    result = solve(problem, "primal").finish()
    assert result.status is Status.UNBOUNDED
    assert result.solution is None
    assert result.optimal_value is None


def test_primal_refuses_negative_rhs(diet_problem):
    run = solve(diet_problem, "primal")
    snapshots = list(run)
    assert run.result.status is Status.INPUT_NOT_PRIMAL_FEASIBLE
    assert len(snapshots) == 1


def test_primal_selection_rules(production_problem):
    tableau = Tableau.from_problem(production_problem)
    assert primal_entering_column(tableau, TOL) == 1
    assert primal_leaving_row(tableau, 1, TOL) == 1
    assert primal_leaving_row(tableau, 0, TOL) == 0


def test_entering_tie_goes_to_first_column(integer_problem):
    tableau = Tableau.from_problem(integer_problem)
    assert primal_entering_column(tableau, TOL) == 0


def test_iteration_cap_stops_cycling(beale_problem):
    run = solve(beale_problem, "primal", options=SolverOptions(max_iterations=30))
    snapshots = list(run)

    assert run.result.status is Status.ITERATION_LIMIT
    assert run.result.iterations == 30
    assert len(snapshots) == 31
    # the degenerate pivots return to the slack basis after six steps
    assert snapshots[6].basis == snapshots[0].basis
    assert run.result.solution is not None


def test_dual_repairs_negative_rhs(repair_tableau):
    run = SolverRun(dual_simplex(repair_tableau))
    snapshots = list(run)

    assert run.result.status is Status.OPTIMAL
    assert run.result.iterations == 1
    assert snapshots[1].pivot == (0, 0)
    assert np.all(snapshots[1].rhs >= 0)
    np.testing.assert_allclose(snapshots[1].rhs, [1, 1])


def test_dual_reports_infeasible_row():
    tableau = Tableau.from_arrays(
        body=[[1, 1, 1, 0], [1, 1, 0, 1]],
        rhs=[-1, 2],
        costs=[-1, -2, 0, 0],
        basis=[2, 3],
    )
    result = SolverRun(dual_simplex(tableau)).finish()
    assert result.status is Status.NO_FEASIBLE_SOLUTION
    assert result.solution is None


def test_dual_solves_minimization(diet_problem):
    run = solve(diet_problem, "dual")
    snapshots = list(run)
    result = run.result

    assert result.status is Status.OPTIMAL
    assert result.solution == pytest.approx([1, 1])
    assert result.optimal_value == pytest.approx(5)
    for snapshot in snapshots:
        assert np.all(snapshot.objective_row >= -TOL)
    values = [s.objective_value for s in snapshots]
    assert values == pytest.approx([0, -4.5, -5])
    assert all(a >= b for a, b in zip(values, values[1:]))


def test_dual_iteration_cap(diet_problem):
    run = solve(diet_problem, "dual", options=SolverOptions(max_iterations=1))
    snapshots = list(run)
    result = run.result

    assert result.status is Status.ITERATION_LIMIT
    assert result.iterations == 1
    assert len(snapshots) == 2
    assert result.solution == pytest.approx([0, 1.5])
    assert result.optimal_value == pytest.approx(4.5)
    assert snapshots[-1].rhs.min() < 0


def test_dual_selection_rules(diet_problem):
    tableau = Tableau.from_problem(diet_problem)
    row = dual_leaving_row(tableau, TOL)
    assert row == 1
    assert dual_entering_column(tableau, row, TOL) == 1


def test_dual_refuses_negative_reduced_costs(production_problem):
    run = solve(production_problem, "dual")
    assert len(list(run)) == 1
    assert run.result.status is Status.INPUT_NOT_DUAL_FEASIBLE
    assert run.result.optimal_value is None


def test_equality_constraint_with_dual():
    problem = Problem.from_lists([2, 1], [[1, 1]], [2], ["="], "min")
    result = solve(problem, "dual").finish()
    assert result.status is Status.OPTIMAL
    assert result.solution == pytest.approx([0, 2])
    assert result.optimal_value == pytest.approx(2)
    assert result.num_constraints == 1
    assert result.tableau.num_rows == 2


def test_run_is_single_use(production_problem):
    run = solve(production_problem, "primal")
    first = next(iter(run))
    assert first.step == 0
    assert run.result is None

    result = run.finish()
    assert result.status is Status.OPTIMAL
    assert list(run) == []
    assert run.result is result


def test_primal_generator_can_be_driven_directly(production_problem):
    tableau = Tableau.from_problem(production_problem)
    steps = list(primal_simplex(tableau))
    assert [s.step for s in steps] == [0, 1, 2]
    assert tableau.objective_value == pytest.approx(36)


def test_unknown_method(production_problem):
    with pytest.raises(SimplexError):
        solve(production_problem, "interior-point")


def test_invalid_options():
    with pytest.raises(SimplexError):
        SolverOptions(tolerance=0)
    with pytest.raises(SimplexError):
        SolverOptions(max_iterations=0)
