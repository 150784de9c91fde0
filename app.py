import json
import logging
from typing import List, Sequence

import streamlit as st

from lp_problem import ContractViolation, Problem, SimplexError
from problem_loader import (
    ProblemSpec,
    build_problem,
    parse_csv_payload,
    parse_json_payload,
)
from simplex_solver import SimplexResult, Status, solve
from simplex_tableau import TableauSnapshot


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

st.set_page_config(page_title="simplex solver", layout="wide")
st.title("simplex, dual simplex and gomory solver")

METHOD_LABELS = {
    "primal": "simplex method",
    "dual": "dual simplex method",
    "gomory": "gomory cutting planes",
}


def _display_tableau(snapshot: TableauSnapshot) -> None:
    column_labels = snapshot.column_labels()

    rows = []
    for idx, row in enumerate(snapshot.body):
        basic = snapshot.basis[idx]
        entry = {
            "basis": column_labels[basic],
            "cb": round(float(snapshot.basic_costs[idx]), 6),
            "P0": round(float(snapshot.rhs[idx]), 6),
        }
        for col_idx, label in enumerate(column_labels):
            entry[label] = round(float(row[col_idx]), 6)
        rows.append(entry)

    objective_row = {"basis": "Q", "cb": "", "P0": round(snapshot.objective_value, 6)}
    for col_idx, label in enumerate(column_labels):
        objective_row[label] = round(float(snapshot.objective_row[col_idx]), 6)
    rows.append(objective_row)

    st.table(rows)


def _display_steps(snapshots: Sequence[TableauSnapshot]) -> None:
    st.markdown("#### tableaux")
    for number, snapshot in enumerate(snapshots, start=1):
        title = f"T-{number} ({snapshot.phase}, step {snapshot.step})"
        with st.expander(title, expanded=number == len(snapshots)):
            if snapshot.note:
                st.caption(snapshot.note)
            if snapshot.pivot is not None:
                row, column = snapshot.pivot
                st.caption(f"pivot element at row {row + 1}, column {column + 1}")
            _display_tableau(snapshot)


def _display_result(result: SimplexResult, problem: Problem) -> None:
    goal = problem.sense.value
    if result.status in (Status.OPTIMAL, Status.INTEGER_OPTIMAL):
        st.success(
            f"{result.status.value.replace('_', ' ')} solution found in "
            f"{result.iterations} iterations. "
            f"objective ({goal}) value: {round(result.optimal_value, 6)}"
        )
        st.write("decision variables:", [round(x, 6) for x in result.solution or []])
    elif result.status == Status.ITERATION_LIMIT:
        st.warning(f"iteration limit reached: {result.message}")
        st.write("current solution:", [round(x, 6) for x in result.solution or []])
        st.write("current objective value:", round(result.optimal_value, 6))
    elif result.status == Status.UNBOUNDED:
        st.error(f"the lp is unbounded. {result.message}")
    elif result.status == Status.NO_FEASIBLE_SOLUTION:
        st.error(f"the lp has no feasible solution. {result.message}")
    else:
        st.error(f"solver status: {result.status.value}. {result.message}")

    for idx, cut in enumerate(result.cuts, start=1):
        st.caption(f"cut {idx}: {cut.describe(result.tableau.column_labels())}")
    st.caption(f"final basis: {[result.tableau.column_labels()[b] for b in result.basis]}")


def _run_solver(spec: ProblemSpec, method: str) -> None:
    integer_variables = spec.integer_variables or None
    try:
        run = solve(spec.problem, method, integer_variables)
        snapshots = list(run)
    except SimplexError as exc:
        st.error(f"input error: {exc}")
        return
    except ContractViolation as exc:
        st.error(f"internal solver error: {exc}")
        return

    _display_result(run.result, spec.problem)
    _display_steps(snapshots)


def _method_select(key: str) -> str:
    return st.selectbox(
        "method",
        list(METHOD_LABELS),
        format_func=METHOD_LABELS.get,
        key=key,
    )


def _manual_tab():
    st.subheader("manual input")
    n_vars = st.number_input("number of decision variables", min_value=1, value=2, step=1)
    n_cons = st.number_input("number of constraints", min_value=1, value=2, step=1)

    with st.form("manual_form"):
        sense = st.radio("objective", ["max", "min"], horizontal=True)
        method = _method_select("manual_method")

        st.markdown("##### objective function coefficients")
        c_values: List[float] = []
        cols = st.columns(int(n_vars))
        for j in range(int(n_vars)):
            value = cols[j].number_input(
                f"c{j + 1}",
                value=0.0,
                step=1.0,
                key=f"c_{j}",
            )
            c_values.append(float(value))

        st.markdown("##### constraint matrix (A), sign and RHS (b)")
        A_values: List[List[float]] = []
        signs: List[str] = []
        b_values: List[float] = []
        for i in range(int(n_cons)):
            cols = st.columns(int(n_vars) + 2)
            row: List[float] = []
            for j in range(int(n_vars)):
                value = cols[j].number_input(
                    f"a[{i + 1},{j + 1}]",
                    value=0.0,
                    step=1.0,
                    key=f"a_{i}_{j}",
                )
                row.append(float(value))
            sign = cols[-2].selectbox(f"sign {i + 1}", ["<=", ">=", "="], key=f"sign_{i}")
            b_val = cols[-1].number_input(
                f"b{i + 1}",
                value=0.0,
                step=1.0,
                key=f"b_{i}",
            )
            A_values.append(row)
            signs.append(sign)
            b_values.append(float(b_val))

        integer_labels = st.multiselect(
            "integer variables (gomory only; empty means all)",
            [f"x{j + 1}" for j in range(int(n_vars))],
        )

        submitted = st.form_submit_button("solve")

    if submitted:
        try:
            problem = build_problem(c_values, A_values, b_values, signs, sense)
        except SimplexError as exc:
            st.error(f"input error: {exc}")
            return
        integer = tuple(int(label[1:]) - 1 for label in integer_labels)
        _run_solver(ProblemSpec(problem, integer), method)


EXAMPLE_PROBLEM = {
    "c": [1, 1],
    "A": [[2, 1], [1, 2]],
    "b": [7, 8],
    "signs": ["<=", "<="],
    "sense": "max",
    "integer": [1, 2],
}


def _set_csv_state(problem=None, filename: str = "") -> None:
    st.session_state["csv_problem"] = problem
    st.session_state["csv_filename"] = filename


def _load_upload(uploaded) -> None:
    payload = uploaded.getvalue().decode("utf-8")
    if uploaded.name.lower().endswith(".json"):
        st.session_state["json_editor"] = payload
        _set_csv_state()
        st.success(f"loaded json file '{uploaded.name}' into the editor.")
        return
    try:
        _set_csv_state(parse_csv_payload(payload), uploaded.name)
    except SimplexError as exc:
        _set_csv_state()
        st.error(f"file error: {exc}")
    else:
        st.success(f"parsed csv file '{uploaded.name}'.")


def _editor_problem(content: str):
    """Parse the json editor, reporting its state below it."""
    if not content.strip():
        st.info("provide json above or use the file uploader.")
        return None
    try:
        spec = parse_json_payload(content)
    except SimplexError as exc:
        st.error(f"json error: {exc}")
        return None
    st.success("json input is valid.")
    return spec


def _file_upload_tab():
    st.subheader("upload json or csv")
    if "json_editor" not in st.session_state:
        st.session_state["json_editor"] = json.dumps(EXAMPLE_PROBLEM)

    uploaded = st.file_uploader(
        "upload file", type=["json", "csv"], accept_multiple_files=False
    )
    if uploaded:
        _load_upload(uploaded)
    else:
        _set_csv_state()

    st.caption(
        f"json example: `{json.dumps(EXAMPLE_PROBLEM)}`. "
        "csv header example: `type,x1,x2,sign,b`, plus an optional `integer` row."
    )
    json_problem = _editor_problem(
        st.text_area(
            "json problem definition",
            key="json_editor",
            placeholder="paste or edit json for the lp here...",
            height=260,
        )
    )

    if st.session_state["csv_filename"]:
        st.caption(f"active csv file: {st.session_state['csv_filename']}")

    method = _method_select("file_method")
    if st.button("solve problem", use_container_width=True):
        problem = st.session_state["csv_problem"] or json_problem
        if problem:
            _run_solver(problem, method)
        else:
            st.error("provide a valid json problem or upload a csv file before solving.")


tab_manual, tab_file = st.tabs(["manual input", "file upload"])
with tab_manual:
    _manual_tab()
with tab_file:
    _file_upload_tab()
