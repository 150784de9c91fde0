from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

import numpy as np


class SimplexError(Exception):
    """Invalid problem input supplied by the user."""


class ContractViolation(RuntimeError):
    """Internal fault: the engine was driven outside its preconditions."""


class ConstraintSign(str, Enum):
    LE = "<="
    GE = ">="
    EQ = "="


class Sense(str, Enum):
    MAXIMIZE = "max"
    MINIMIZE = "min"


@dataclass(frozen=True)
class Constraint:
    coefficients: Tuple[float, ...]
    rhs: float
    sign: ConstraintSign = ConstraintSign.LE


@dataclass(frozen=True)
class Problem:
    """An LP instance as entered by the user."""

    objective: Tuple[float, ...]
    constraints: Tuple[Constraint, ...]
    sense: Sense = Sense.MAXIMIZE

    def __post_init__(self) -> None:
        if not self.objective:
            raise ContractViolation("problem must have at least one variable.")
        if not self.constraints:
            raise ContractViolation("problem must have at least one constraint.")
        for idx, constraint in enumerate(self.constraints):
            if len(constraint.coefficients) != len(self.objective):
                raise ContractViolation(
                    f"constraint {idx + 1} has {len(constraint.coefficients)} "
                    f"coefficients, expected {len(self.objective)}."
                )

    @property
    def num_variables(self) -> int:
        return len(self.objective)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    @classmethod
    def from_lists(
        cls,
        c: Sequence[float],
        A: Sequence[Sequence[float]],
        b: Sequence[float],
        signs: Sequence[str] | None = None,
        sense: str = "max",
    ) -> "Problem":
        if signs is None:
            signs = [ConstraintSign.LE] * len(A)
        if len(signs) != len(A) or len(b) != len(A):
            raise ContractViolation("A, b and signs must have the same length.")
        constraints = tuple(
            Constraint(tuple(float(v) for v in row), float(rhs), ConstraintSign(sign))
            for row, rhs, sign in zip(A, b, signs)
        )
        return cls(tuple(float(v) for v in c), constraints, Sense(sense))


def negate_constraint(constraint: Constraint) -> Constraint:
    """Flip a constraint to the opposite inequality (`>=` <-> `<=`)."""
    flipped = {
        ConstraintSign.LE: ConstraintSign.GE,
        ConstraintSign.GE: ConstraintSign.LE,
        ConstraintSign.EQ: ConstraintSign.EQ,
    }[constraint.sign]
    return Constraint(
        tuple(-v for v in constraint.coefficients), -constraint.rhs, flipped
    )


@dataclass(frozen=True)
class CanonicalForm:
    """Maximisation problem with every row in `<=` form.

    ``row_origin[i]`` is the index of the user constraint that produced
    canonical row ``i``; an equality yields two rows.
    """

    costs: np.ndarray
    A: np.ndarray
    b: np.ndarray
    row_origin: Tuple[int, ...]
    sense: Sense


def canonicalize(problem: Problem) -> CanonicalForm:
    costs = np.asarray(problem.objective, dtype=float)
    if problem.sense is Sense.MINIMIZE:
        costs = -costs

    rows: List[Tuple[float, ...]] = []
    rhs: List[float] = []
    origin: List[int] = []
    for idx, constraint in enumerate(problem.constraints):
        if constraint.sign is ConstraintSign.GE:
            parts = [negate_constraint(constraint)]
        elif constraint.sign is ConstraintSign.EQ:
            parts = [
                Constraint(constraint.coefficients, constraint.rhs, ConstraintSign.LE),
                negate_constraint(
                    Constraint(constraint.coefficients, constraint.rhs, ConstraintSign.GE)
                ),
            ]
        else:
            parts = [constraint]
        for part in parts:
            rows.append(part.coefficients)
            rhs.append(part.rhs)
            origin.append(idx)

    return CanonicalForm(
        costs=costs,
        A=np.asarray(rows, dtype=float),
        b=np.asarray(rhs, dtype=float),
        row_origin=tuple(origin),
        sense=problem.sense,
    )
