from __future__ import annotations

import csv
import io
import json
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from lp_problem import ConstraintSign, Problem, Sense, SimplexError

_JSON_KEYS = {"c", "A", "b", "signs", "sense", "integer"}
_SIGN_ALIASES = {
    "<=": ConstraintSign.LE,
    "≤": ConstraintSign.LE,
    "le": ConstraintSign.LE,
    ">=": ConstraintSign.GE,
    "≥": ConstraintSign.GE,
    "ge": ConstraintSign.GE,
    "=": ConstraintSign.EQ,
    "==": ConstraintSign.EQ,
    "eq": ConstraintSign.EQ,
}


@dataclass(frozen=True)
class ProblemSpec:
    """A validated problem plus the 0-based indices of integer variables."""

    problem: Problem
    integer_variables: Tuple[int, ...] = ()


def _as_float(value, what: str) -> float:
    if isinstance(value, bool):
        raise SimplexError(f"{what} must be numeric.")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise SimplexError(f"{what} must be numeric, got {value!r}.") from exc
    if not math.isfinite(number):
        raise SimplexError(f"{what} must be a finite number, got {value!r}.")
    return number


def parse_sign(value) -> ConstraintSign:
    key = str(value).strip().lower()
    if key not in _SIGN_ALIASES:
        raise SimplexError(f"unknown constraint sign {value!r}; use <=, >= or =.")
    return _SIGN_ALIASES[key]


def parse_sense(value) -> Sense:
    key = str(value).strip().lower()
    if key in ("max", "maximize", "maximise"):
        return Sense.MAXIMIZE
    if key in ("min", "minimize", "minimise"):
        return Sense.MINIMIZE
    raise SimplexError(f"objective sense must be 'max' or 'min', got {value!r}.")


def build_problem(
    c: Sequence,
    A: Sequence[Sequence],
    b: Sequence,
    signs: Sequence | None = None,
    sense="max",
) -> Problem:
    """Coerce and cross-check raw input, then build a :class:`Problem`."""
    if not isinstance(c, (list, tuple)) or not c:
        raise SimplexError("objective vector c must be a non-empty list.")
    if not isinstance(A, (list, tuple)) or not A:
        raise SimplexError("constraint matrix A must contain at least one row.")
    if not isinstance(b, (list, tuple)):
        raise SimplexError("constraint vector b must be a list.")

    c_vals = [_as_float(v, f"c[{j + 1}]") for j, v in enumerate(c)]
    n = len(c_vals)

    rows: List[List[float]] = []
    for i, row in enumerate(A):
        if not isinstance(row, (list, tuple)):
            raise SimplexError(f"row {i + 1} of A must be a list.")
        if len(row) != n:
            raise SimplexError(
                "length of c does not match number of columns in A "
                f"({n} vs {len(row)} in row {i + 1})."
            )
        rows.append([_as_float(v, f"A[{i + 1},{j + 1}]") for j, v in enumerate(row)])

    if len(b) != len(rows):
        raise SimplexError(
            "length of b does not match number of rows in A "
            f"({len(b)} vs {len(rows)})."
        )
    b_vals = [_as_float(v, f"b[{i + 1}]") for i, v in enumerate(b)]

    if signs is None:
        sign_vals = [ConstraintSign.LE] * len(rows)
    else:
        if not isinstance(signs, (list, tuple)) or len(signs) != len(rows):
            raise SimplexError("signs must list one sign per constraint.")
        sign_vals = [parse_sign(s) for s in signs]

    return Problem.from_lists(c_vals, rows, b_vals, sign_vals, parse_sense(sense).value)


def parse_integer_variables(values, num_variables: int) -> Tuple[int, ...]:
    """Convert 1-based variable numbers to sorted 0-based indices."""
    if not isinstance(values, (list, tuple)):
        raise SimplexError("integer must be a list of variable numbers.")
    indices = set()
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise SimplexError(f"integer variable {value!r} must be a whole number.")
        if not 1 <= value <= num_variables:
            raise SimplexError(
                f"integer variable {value} is out of range 1..{num_variables}."
            )
        indices.add(value - 1)
    return tuple(sorted(indices))


def parse_json_payload(payload: str) -> ProblemSpec:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise SimplexError(f"invalid json: {exc}") from exc

    if not isinstance(data, dict):
        raise SimplexError("json root must be an object containing c, A, b.")
    missing = [key for key in ("c", "A", "b") if key not in data]
    if missing:
        raise SimplexError(f"json missing keys: {', '.join(missing)}.")
    unknown = sorted(set(data) - _JSON_KEYS)
    if unknown:
        raise SimplexError(f"json has unknown keys: {', '.join(unknown)}.")

    problem = build_problem(
        data["c"], data["A"], data["b"], data.get("signs"), data.get("sense", "max")
    )
    integer = parse_integer_variables(data.get("integer", []), problem.num_variables)
    return ProblemSpec(problem, integer)


def parse_csv_payload(payload: str) -> ProblemSpec:
    """Parse ``type,x1..xn,sign,b`` rows into a problem.

    The objective row's ``sign`` cell holds ``max`` or ``min``; an optional
    ``integer`` row marks integer variables with 1 in their column.
    """
    reader = csv.DictReader(io.StringIO(payload))
    if reader.fieldnames is None:
        raise SimplexError("csv must include a header row.")

    fieldnames_lower = [field.strip().lower() for field in reader.fieldnames]
    if "type" not in fieldnames_lower or "b" not in fieldnames_lower:
        raise SimplexError("csv must include columns named 'type' and 'b'.")

    def _field(name: str):
        if name not in fieldnames_lower:
            return None
        return reader.fieldnames[fieldnames_lower.index(name)]

    type_field = _field("type")
    b_field = _field("b")
    sign_field = _field("sign")
    coefficient_headers = [
        field
        for field, lower in zip(reader.fieldnames, fieldnames_lower)
        if lower not in ("type", "b", "sign")
    ]
    if not coefficient_headers:
        raise SimplexError("csv must include at least one decision variable column.")

    objective_rows = []
    constraints = []
    integer_rows = []

    for raw_row in reader:
        row_type = (raw_row.get(type_field) or "").strip().lower()
        if row_type == "objective":
            objective_rows.append(raw_row)
        elif row_type == "constraint":
            constraints.append(raw_row)
        elif row_type == "integer":
            integer_rows.append(raw_row)
        else:
            raise SimplexError(
                "csv 'type' column must be 'objective', 'constraint' or 'integer'."
            )

    if len(objective_rows) != 1:
        raise SimplexError("csv must contain exactly one objective row.")
    if not constraints:
        raise SimplexError("csv must include at least one constraint row.")
    if len(integer_rows) > 1:
        raise SimplexError("csv may contain at most one integer row.")

    def _cell(row, header) -> str:
        return (row.get(header) or "").strip()

    def _coefficients(row):
        return [_cell(row, header) or 0.0 for header in coefficient_headers]

    c = _coefficients(objective_rows[0])
    sense = (_cell(objective_rows[0], sign_field) if sign_field else "") or "max"
    A = [_coefficients(row) for row in constraints]
    b = []
    signs = []
    for row in constraints:
        value = _cell(row, b_field)
        if value == "":
            raise SimplexError("constraint rows must include a value for b.")
        b.append(value)
        signs.append((_cell(row, sign_field) if sign_field else "") or "<=")

    problem = build_problem(c, A, b, signs, sense)
    integer: Tuple[int, ...] = ()
    if integer_rows:
        flags = [_as_float(v, "integer flag") for v in _coefficients(integer_rows[0])]
        integer = tuple(j for j, flag in enumerate(flags) if flag)
    return ProblemSpec(problem, integer)
