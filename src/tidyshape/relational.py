# -------------------------------------
# Relational operators
# -------------------------------------
"""
Row and column transformations on dict-based tables.

Every function takes a table in any orientation and returns a new
column-oriented table; the input is never modified.

Predicates and expressions are either Python callables receiving the row as
a {column: value} dict, or expression strings evaluated with simpleeval with
the row's columns in scope:

    table_filter(t, "no_membrs > 3", lambda r: r["village"] != "God")
    table_mutate(t, "people_per_room", "no_membrs / rooms")
"""
from __future__ import annotations

import ast
from typing import Any, Callable

from simpleeval import DEFAULT_OPERATORS, EvalWithCompoundTypes, NameNotDefined

from .aggregate import table_group_by, table_summarize
from .errors import TableError, TypeMismatch, UnknownColumn
from .table import (
    _carry_groups,
    _column_table,
    _resolve_column_index,
    _take_rows,
    expand_columns,
    is_missing,
    table_nrows,
    table_to_columns,
    table_validate,
)


# ============================================================
# Expression evaluation
# ============================================================

ALLOWED_OPS = dict(DEFAULT_OPERATORS)

FUNCS: dict[str, Callable] = {
    "is_missing": is_missing,
    "abs": abs,
    "round": round,
    "len": len,
    "min": min,
    "max": max,
    "str": str,
    "int": int,
    "float": float,
    "lower": lambda s: s.lower(),
    "upper": lambda s: s.upper(),
}


class _TrackedRow(dict):
    """Row mapping that records which columns an expression read."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.read: set[str] = set()

    def __getitem__(self, key):
        value = super().__getitem__(key)
        self.read.add(key)
        return value

    def get(self, key, default=None):
        if key in self:
            return self[key]
        return default

    def read_missing(self) -> bool:
        return any(is_missing(dict.__getitem__(self, k)) for k in self.read)


RowFunc = Callable[[dict[str, Any]], Any]


def _row_evaluator(table: dict[str, Any], expr: str | RowFunc) -> Callable[[_TrackedRow], Any]:
    """
    Compile an expression string or callable into a function of a tracked row.

    Raises:
        TableError: If expr is neither a string nor callable
    """
    if isinstance(expr, str):
        se = EvalWithCompoundTypes(names={}, functions=FUNCS, operators=ALLOWED_OPS)
        parsed = se.parse(expr)

        def evaluate(row: _TrackedRow) -> Any:
            se.names = row
            try:
                return se.eval(expr, previously_parsed=parsed)
            except NameNotDefined as e:
                raise UnknownColumn(
                    f"Column '{e.name}' not found in table columns: {table['columns']}"
                ) from e

        return evaluate

    if callable(expr):
        def call(row: _TrackedRow) -> Any:
            try:
                return expr(row)
            except KeyError as e:
                key = e.args[0] if e.args else None
                if key in row:
                    raise
                raise UnknownColumn(
                    f"Column '{key}' not found in table columns: {table['columns']}"
                ) from e

        return call

    raise TableError(f"Expected an expression string or callable, got {type(expr).__name__}")


def _tests_missing(expr: str | RowFunc) -> bool:
    """True if expr is an expression that checks for missing values itself."""
    if not isinstance(expr, str):
        return False
    try:
        tree = ast.parse(expr.strip(), mode="eval")
    except SyntaxError:
        return False
    for node in ast.walk(tree):
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and node.func.id == "is_missing":
            return True
        if isinstance(node, ast.Compare) and any(isinstance(op, (ast.Is, ast.IsNot)) for op in node.ops):
            return True
    return False


def _eval_rows(table: dict[str, Any], expr: str | RowFunc, missing_false: bool = False) -> list[Any]:
    """
    Evaluate expr for every row.

    A TypeError raised while the row has a missing value among the columns the
    expression read gives a missing result; any other TypeError is a
    TypeMismatch. With missing_false, every row that read a missing value
    gives False, whatever expr returned.
    """
    t = table_to_columns(table)
    evaluate = _row_evaluator(t, expr)
    columns = t["columns"]
    out = []
    for i in range(table_nrows(t)):
        row = _TrackedRow((name, col[i]) for name, col in zip(columns, t["rows"]))
        try:
            value = evaluate(row)
        except TypeError as e:
            if not row.read_missing():
                raise TypeMismatch(f"Cannot evaluate {expr!r} on row {i}: {e}") from e
            value = None
        if missing_false and row.read_missing():
            value = False
        out.append(value)
    return out


# ============================================================
# Column operators
# ============================================================

def table_select(table: dict[str, Any], columns: str | list[str]) -> dict[str, Any]:
    """
    Select and reorder columns.

    Args:
        table: Input table
        columns: Column names in desired order, or an inclusive range
            "first:last", or a list mixing both

    Returns:
        New table with only the requested columns. The grouping tag is kept
        only if every grouping column is selected.

    Raises:
        UnknownColumn: If a column name is not found
    """
    t = table_to_columns(table)
    names = expand_columns(t, columns)
    cols = [t["rows"][t["columns"].index(name)][:] for name in names]
    return _carry_groups(table, _column_table(names, cols))


def table_drop(table: dict[str, Any], columns: str | list[str]) -> dict[str, Any]:
    """Remove columns (names or ranges). Unknown names raise UnknownColumn."""
    t = table_to_columns(table)
    drop_set = set(expand_columns(t, columns))
    keep = [i for i, name in enumerate(t["columns"]) if name not in drop_set]
    out = _column_table([t["columns"][i] for i in keep], [t["rows"][i][:] for i in keep])
    return _carry_groups(table, out)


def table_rename(table: dict[str, Any], mapping: dict[str, str]) -> dict[str, Any]:
    """
    Rename columns.

    Args:
        table: Input table
        mapping: {new name: old name}

    Raises:
        UnknownColumn: If an old name is not a column
        TableError: If renaming produces duplicate names
    """
    t = table_to_columns(table)
    old_to_new = {}
    for new, old in mapping.items():
        _resolve_column_index(t, old)
        old_to_new[old] = new
    columns = [old_to_new.get(name, name) for name in t["columns"]]
    out = _column_table(columns, [col[:] for col in t["rows"]])
    table_validate(out)
    groups = table.get("groups")
    if groups:
        out["groups"] = [old_to_new.get(name, name) for name in groups]
        out["group_sort"] = bool(table.get("group_sort", False))
    return out


def table_mutate(
    table: dict[str, Any],
    name: str,
    value: Any,
    literal: bool = False,
) -> dict[str, Any]:
    """
    Add a computed column, or replace an existing one in place.

    Args:
        table: Input table
        name: Name of the new (or replaced) column
        value: A callable row -> value, an expression string, or a scalar
            which is broadcast to every row
        literal: If True, value is broadcast as is, even when it is text or
            callable. Without it a text constant must be quoted: "'Mozambique'"

    Returns:
        New table with the column appended (or replaced at its position)

    Missing values propagate: a row whose computation fails with a type
    error because an operand it read is missing gets a missing result.

    Raises:
        UnknownColumn: If the expression reads a column that does not exist
        TypeMismatch: If the computation fails on non-missing values
    """
    t = table_to_columns(table)
    n_rows = table_nrows(t)
    if not literal and (isinstance(value, str) or callable(value)):
        new_col = _eval_rows(t, value)
    else:
        new_col = [value] * n_rows

    columns = t["columns"][:]
    cols = [col[:] for col in t["rows"]]
    if name in columns:
        idx = columns.index(name)
        cols[idx] = new_col
    else:
        columns.append(name)
        cols.append(new_col)
    return _carry_groups(table, _column_table(columns, cols))


# ============================================================
# Row operators
# ============================================================

def table_filter(table: dict[str, Any], *predicates: str | RowFunc) -> dict[str, Any]:
    """
    Keep rows where every predicate is true.

    Args:
        table: Input table
        *predicates: Callables row -> bool or expression strings, combined
            with logical AND

    Returns:
        New table with matching rows in their original order

    A row where any value a predicate read is missing is false for that
    predicate, so "no_membrs != 3" and "not memb_assoc" drop missing rows.
    Expressions that test missingness themselves (is_missing(x), x is None)
    are evaluated as written. Callables cannot opt out; use is_missing in an
    expression to select missing rows.

    Raises:
        UnknownColumn: If a predicate reads a column that does not exist
        TypeMismatch: If a predicate fails on non-missing values
    """
    t = table_to_columns(table)
    keep = [True] * table_nrows(t)
    for predicate in predicates:
        results = _eval_rows(t, predicate, missing_false=not _tests_missing(predicate))
        for i, result in enumerate(results):
            if result is None or not result:
                keep[i] = False
    return _take_rows(table, [i for i, k in enumerate(keep) if k])


def table_arrange(
    table: dict[str, Any],
    column: str,
    direction: str = "ascending",
) -> dict[str, Any]:
    """
    Reorder rows by a column (stable sort).

    Args:
        table: Input table
        column: Sort column
        direction: "ascending" or "descending"

    Returns:
        New table with rows reordered. Rows with equal keys keep their input
        order; missing values go last in either direction.

    Raises:
        UnknownColumn: If column is not found
        TypeMismatch: If the column holds values that cannot be compared
    """
    if direction not in ("ascending", "descending"):
        raise TableError(f"direction must be 'ascending' or 'descending', got {direction!r}")
    t = table_to_columns(table)
    values = t["rows"][_resolve_column_index(t, column)]
    present = [i for i, v in enumerate(values) if not is_missing(v)]
    missing = [i for i, v in enumerate(values) if is_missing(v)]
    try:
        order = sorted(present, key=values.__getitem__, reverse=direction == "descending")
    except TypeError as e:
        raise TypeMismatch(f"Column '{column}' holds values that cannot be ordered: {e}") from e
    return _take_rows(table, order + missing)


def table_distinct(table: dict[str, Any], columns: str | list[str] | None = None) -> dict[str, Any]:
    """
    Keep the first occurrence of each distinct row.

    With columns, rows are compared on those columns only and the result
    holds just those columns.
    """
    t = table if columns is None else table_select(table, columns)
    t = table_to_columns(t)
    seen = set()
    keep = []
    for i in range(table_nrows(t)):
        key = tuple(col[i] for col in t["rows"])
        if key not in seen:
            seen.add(key)
            keep.append(i)
    return _take_rows(t, keep)


def table_head(table: dict[str, Any], n: int = 10) -> dict[str, Any]:
    """Return the first n rows of a table."""
    t = table_to_columns(table)
    return _carry_groups(table, _column_table(t["columns"], [col[:n] for col in t["rows"]]))


def table_drop_missing(table: dict[str, Any], columns: str | list[str] | None = None) -> dict[str, Any]:
    """Remove rows with a missing value in any of columns (default: every column)."""
    t = table_to_columns(table)
    names = t["columns"] if columns is None else expand_columns(t, columns)
    checked = [t["rows"][t["columns"].index(name)] for name in names]
    keep = [
        i for i in range(table_nrows(t))
        if not any(is_missing(col[i]) for col in checked)
    ]
    return _take_rows(table, keep)


def table_bind_rows(*tables: dict[str, Any]) -> dict[str, Any]:
    """
    Concatenate rows from tables with the same columns.

    Raises:
        TableError: If tables have different columns
    """
    if not tables:
        return _column_table([], [])

    columns = tables[0]["columns"]
    for i, tbl in enumerate(tables[1:], start=2):
        if tbl["columns"] != columns:
            raise TableError(f"Table {i} columns {tbl['columns']} != first table columns {columns}")

    out_cols = [[] for _ in columns]
    for tbl in tables:
        tbl_cols = table_to_columns(tbl)
        for i, col in enumerate(tbl_cols["rows"]):
            out_cols[i].extend(col)
    return _column_table(columns, out_cols)


def table_count(
    table: dict[str, Any],
    columns: str | list[str],
    sort: bool = False,
    name: str = "n",
) -> dict[str, Any]:
    """
    Count rows per distinct combination of columns.

    Args:
        table: Input table
        columns: Columns whose value combinations are counted
        sort: If True, order by count descending (ties keep first-occurrence order)
        name: Name of the count column

    Returns:
        Table with the columns followed by an integer count column, one row
        per combination in first-occurrence order
    """
    grouped = table_group_by(table, columns)
    counted = table_summarize(grouped, {name: ("count", None)})
    if sort:
        counted = table_arrange(counted, name, "descending")
    return counted
