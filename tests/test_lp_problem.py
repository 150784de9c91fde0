import numpy as np
import pytest

from lp_problem import (
    Constraint,
    ConstraintSign,
    ContractViolation,
    Problem,
    Sense,
    canonicalize,
    negate_constraint,
)
from simplex_tableau import Tableau


def test_counts(production_problem):
    assert production_problem.num_variables == 2
    assert production_problem.num_constraints == 3
    assert production_problem.sense is Sense.MAXIMIZE


def test_malformed_problem_is_contract_violation():
    with pytest.raises(ContractViolation):
        Problem((1.0, 2.0), (Constraint((1.0,), 3.0),))
    with pytest.raises(ContractViolation):
        Problem((1.0,), ())


@pytest.mark.parametrize("sign", [ConstraintSign.LE, ConstraintSign.GE, ConstraintSign.EQ])
def test_negating_twice_restores_constraint(sign):
    original = Constraint((2.5, -1.0, 0.0), -7.25, sign)
    assert negate_constraint(negate_constraint(original)) == original


def test_negate_flips_sign():
    flipped = negate_constraint(Constraint((1.0, -2.0), 3.0, ConstraintSign.GE))
    assert flipped == Constraint((-1.0, 2.0), -3.0, ConstraintSign.LE)


def test_minimize_negates_costs_and_ge_rows(diet_problem):
    form = canonicalize(diet_problem)
    np.testing.assert_array_equal(form.costs, [-2, -3])
    np.testing.assert_array_equal(form.A, [[-1, -1], [-1, -2]])
    np.testing.assert_array_equal(form.b, [-2, -3])
    assert form.row_origin == (0, 1)


def test_equality_expands_to_two_rows():
    problem = Problem.from_lists([1, 1], [[1, 2], [1, 0]], [4, 3], ["=", "<="])
    form = canonicalize(problem)
    np.testing.assert_array_equal(form.A, [[1, 2], [-1, -2], [1, 0]])
    np.testing.assert_array_equal(form.b, [4, -4, 3])
    assert form.row_origin == (0, 0, 1)


def test_initial_tableau_uses_slack_basis(production_problem):
    tableau = Tableau.from_problem(production_problem)
    assert tableau.basis == [2, 3, 4]
    np.testing.assert_array_equal(tableau.basic_costs, [0, 0, 0])
    np.testing.assert_array_equal(tableau.objective_row, [-3, -5, 0, 0, 0])
    np.testing.assert_array_equal(tableau.body[:, 2:], np.eye(3))
    np.testing.assert_array_equal(tableau.rhs, [4, 12, 18])
    assert tableau.objective_value == 0
