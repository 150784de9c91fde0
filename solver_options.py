from __future__ import annotations

from dataclasses import dataclass

from lp_problem import SimplexError


@dataclass(frozen=True)
class SolverOptions:
    """Tunable limits shared by every solver run.

    ``max_iterations`` caps the pivots of a single primal or dual pass and
    ``max_cuts`` caps the Gomory cut rounds. Together they are the only
    guard against cycling on degenerate problems.
    """

    tolerance: float = 1e-9
    max_iterations: int = 50
    max_cuts: int = 25

    def __post_init__(self) -> None:
        if self.tolerance <= 0:
            raise SimplexError("tolerance must be positive.")
        if self.max_iterations < 1:
            raise SimplexError("max_iterations must be at least 1.")
        if self.max_cuts < 0:
            raise SimplexError("max_cuts must not be negative.")


DEFAULT_OPTIONS = SolverOptions()
