import pytest

from lp_problem import Problem
from simplex_tableau import Tableau


@pytest.fixture
def production_problem():
    # maximize 3x1 + 5x2, optimum (2, 6) with value 36
    return Problem.from_lists(
        [3, 5],
        [[1, 0], [0, 2], [3, 2]],
        [4, 12, 18],
    )


@pytest.fixture
def diet_problem():
    # minimize 2x1 + 3x2 with >= rows, optimum (1, 1) with value 5
    return Problem.from_lists(
        [2, 3],
        [[1, 1], [1, 2]],
        [2, 3],
        [">=", ">="],
        "min",
    )


@pytest.fixture
def integer_problem():
    # maximize x1 + x2, 2x1 + x2 <= 7, x1 + 2x2 <= 8
    return Problem.from_lists([1, 1], [[2, 1], [1, 2]], [7, 8])


@pytest.fixture
def fractional_problem():
    # maximize x2; relaxation optimum (1, 1.5), integer optimum (1, 1)
    return Problem.from_lists([0, 1], [[3, 2], [-3, 2]], [6, 0])


@pytest.fixture
def beale_problem():
    # Beale's example: cycles under Dantzig's rule with first-row ties
    return Problem.from_lists(
        [0.75, -20, 0.5, -6],
        [[0.25, -8, -1, 9], [0.5, -12, -0.5, 3], [0, 0, 1, 0]],
        [0, 0, 1],
    )


@pytest.fixture
def repair_tableau():
    # dual feasible, row 1 infeasible with a negative entry to pivot on
    return Tableau.from_arrays(
        body=[[-1, 1, 1, 0], [1, 1, 0, 1]],
        rhs=[-1, 2],
        costs=[-1, -2, 0, 0],
        basis=[2, 3],
    )
