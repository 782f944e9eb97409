# -------------------------------------
# Table - dict-based columnar tables
# -------------------------------------
"""
Table representation and helpers shared by every operator.

Tables are plain dicts with 'columns', 'rows' and 'orientation' keys:
    Column-oriented: {"orientation": "column", "columns": ["a", "b"], "rows": [[a_vals], [b_vals]]}
    Row-oriented:    {"orientation": "row", "columns": ["a", "b"], "rows": [[a0, b0], [a1, b1], ...]}
    Arrow-oriented:  {"orientation": "arrow", "columns": ["a", "b"], "rows": [pa.Array, pa.Array]}

A dict without an 'orientation' key is row-oriented. Operators accept any
orientation and return column-oriented tables built from fresh lists, so an
input table is never modified.

A grouped table carries two extra keys:
    "groups":     list of grouping column names
    "group_sort": True if groups are visited in sorted key order

Missing values are represented by None.

This module provides:
- Orientation conversion: to_columns, to_rows, to_arrow, from_arrow
- Construction and validation: table_new, table_validate
- Column access and typing: table_column, column_type, table_types
- Display: format_table, print_table
"""
from __future__ import annotations

from typing import Any, Iterator, Literal

import pyarrow as pa

from .errors import TableError, UnknownColumn


MISSING = None


def is_missing(value: Any) -> bool:
    """True if value is the missing-value marker."""
    return value is None


# -------------------------------------
# Orientation helpers
# -------------------------------------

def _is_column_oriented(table: dict[str, Any]) -> bool:
    return table.get("orientation") == "column"


def _is_arrow(table: dict[str, Any]) -> bool:
    return table.get("orientation") == "arrow"


def _transpose_rows_to_cols(rows: list[list], n_cols: int) -> list[list]:
    """
    Transpose row-oriented data to column-oriented without zip(*rows) splat.

    Args:
        rows: List of row lists
        n_cols: Number of columns

    Returns:
        List of column lists
    """
    cols = [[] for _ in range(n_cols)]
    for row in rows:
        for i, val in enumerate(row):
            cols[i].append(val)
    return cols


def _transpose_cols_to_rows(cols: list[list]) -> list[list]:
    if not cols or not cols[0]:
        return []
    n_rows = len(cols[0])
    return [[col[i] for col in cols] for i in range(n_rows)]


def table_orientation(table: dict[str, Any]) -> Literal["row", "column", "arrow"]:
    """
    Get the orientation of a table.

    Args:
        table: Table dict

    Returns:
        One of "row", "column", or "arrow"
    """
    orientation = table.get("orientation", "row")
    if orientation not in ("row", "column", "arrow"):
        raise TableError(f"Unsupported orientation: {orientation}")
    return orientation


def table_nrows(table: dict[str, Any]) -> int:
    """Number of data rows in a table (any orientation)."""
    if table_orientation(table) == "row":
        return len(table["rows"])
    if not table["rows"]:
        return 0
    return len(table["rows"][0])


def table_validate(table: dict[str, Any]) -> None:
    """
    Validate table structure.

    Checks:
    - Required keys: columns, rows
    - Orientation is valid: row, column, arrow
    - Column names are unique
    - All columns have equal length
    - Grouping columns, if any, exist

    Args:
        table: Table dict to validate

    Raises:
        TableError: If table structure is invalid
    """
    for key in ("columns", "rows"):
        if key not in table:
            raise TableError(f"Table missing required key: '{key}'")

    orientation = table_orientation(table)
    columns = table["columns"]
    rows = table["rows"]

    seen = set()
    for name in columns:
        if name in seen:
            raise TableError(f"Duplicate column name: '{name}'")
        seen.add(name)

    if orientation == "row":
        n_cols = len(columns)
        for i, row in enumerate(rows):
            if len(row) != n_cols:
                raise TableError(f"Row {i} has {len(row)} values, expected {n_cols} columns")
    else:
        if len(rows) != len(columns):
            raise TableError(
                f"Number of data columns ({len(rows)}) does not match "
                f"column names ({len(columns)})"
            )
        if rows:
            first_len = len(rows[0])
            for i, col in enumerate(rows[1:], start=1):
                if len(col) != first_len:
                    raise TableError(
                        f"Column {i} ({columns[i]}) has {len(col)} values, "
                        f"expected {first_len}"
                    )

    for name in table.get("groups", []):
        if name not in seen:
            raise UnknownColumn(f"Grouping column '{name}' not found in table columns: {columns}")


def table_to_columns(table: dict[str, Any]) -> dict[str, Any]:
    """
    Convert any table to column-oriented (Python lists).

    Grouping keys are carried over. The returned lists may be shared with
    the input when it is already column-oriented; operators copy before
    writing.
    """
    orientation = table_orientation(table)
    if orientation == "column":
        return table

    if orientation == "arrow":
        cols = [col.to_pylist() for col in table["rows"]]
    else:
        cols = _transpose_rows_to_cols(table["rows"], len(table["columns"]))
    out = {"orientation": "column", "columns": table["columns"][:], "rows": cols}
    return _carry_groups(table, out)


def table_to_rows(table: dict[str, Any]) -> dict[str, Any]:
    """Convert any table to row-oriented (Python lists)."""
    orientation = table_orientation(table)
    if orientation == "row":
        return table

    if orientation == "arrow":
        cols = [col.to_pylist() for col in table["rows"]]
    else:
        cols = table["rows"]
    out = {"orientation": "row", "columns": table["columns"][:], "rows": _transpose_cols_to_rows(cols)}
    return _carry_groups(table, out)


def table_to_arrow(table: dict[str, Any]) -> dict[str, Any]:
    """
    Convert any table to arrow-oriented (PyArrow arrays).

    Raises:
        pyarrow.ArrowInvalid / pyarrow.ArrowTypeError: If a column holds
            values of incompatible Python types
    """
    if _is_arrow(table):
        return table
    col_table = table_to_columns(table)
    out = {
        "orientation": "arrow",
        "columns": col_table["columns"][:],
        "rows": [pa.array(col) for col in col_table["rows"]],
    }
    return _carry_groups(table, out)


def table_from_arrow(arrow_table: pa.Table) -> dict[str, Any]:
    """Build a column-oriented table from a pyarrow.Table."""
    columns = list(arrow_table.column_names)
    cols = [arrow_table.column(i).to_pylist() for i in range(arrow_table.num_columns)]
    return {"orientation": "column", "columns": columns, "rows": cols}


def table_new(data: dict[str, list[Any]]) -> dict[str, Any]:
    """
    Build a column-oriented table from a mapping of column name to values.

    Example:
        table_new({"village": ["A", "A", "B"], "no_membrs": [3, 5, 2]})

    Raises:
        TableError: If the columns have different lengths
    """
    table = {
        "orientation": "column",
        "columns": list(data.keys()),
        "rows": [list(values) for values in data.values()],
    }
    table_validate(table)
    return table


def table_to_dict(table: dict[str, Any]) -> dict[str, list[Any]]:
    """Return {column name: list of values} for any table."""
    t = table_to_columns(table)
    return {name: col[:] for name, col in zip(t["columns"], t["rows"])}


# -------------------------------------
# Internal construction helpers
# -------------------------------------

def _column_table(columns: list[str], cols: list[list]) -> dict[str, Any]:
    return {"orientation": "column", "columns": list(columns), "rows": cols}


def _carry_groups(source: dict[str, Any], out: dict[str, Any]) -> dict[str, Any]:
    """Copy the grouping tag from source onto out if out still has every grouping column."""
    groups = source.get("groups")
    if groups and all(name in out["columns"] for name in groups):
        out["groups"] = list(groups)
        out["group_sort"] = bool(source.get("group_sort", False))
    return out


def _take_rows(table: dict[str, Any], indices: list[int]) -> dict[str, Any]:
    """New column table holding the given row indices, in the given order."""
    t = table_to_columns(table)
    cols = [[col[i] for i in indices] for col in t["rows"]]
    return _carry_groups(table, _column_table(t["columns"], cols))


def table_iter_rows(table: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Yield each row as a {column name: value} dict."""
    t = table_to_columns(table)
    columns = t["columns"]
    for i in range(table_nrows(t)):
        yield {name: col[i] for name, col in zip(columns, t["rows"])}


# -------------------------------------
# Column access
# -------------------------------------

def _resolve_column_index(table: dict[str, Any], column: str | int) -> int:
    """Convert column name or index to index, with validation.

    Raises:
        UnknownColumn: If column not found or index out of range
    """
    if isinstance(column, int) and not isinstance(column, bool):
        if column < 0 or column >= len(table["columns"]):
            raise UnknownColumn(f"Column index {column} out of range")
        return column
    try:
        return table["columns"].index(column)
    except ValueError:
        raise UnknownColumn(f"Column '{column}' not found in table columns: {table['columns']}")


def expand_columns(table: dict[str, Any], columns: str | list[str]) -> list[str]:
    """
    Expand a column selection into a list of column names.

    A selection is a column name, an inclusive positional range "first:last",
    or a list mixing both. A range may run backwards ("d:b" gives d, c, b).
    A name that exists in the table is never treated as a range.

    Raises:
        UnknownColumn: If a name or range endpoint is not a column
        TableError: If the expansion names a column twice
    """
    names = table["columns"]
    if isinstance(columns, str):
        columns = [columns]

    out: list[str] = []
    for item in columns:
        if isinstance(item, str) and item not in names and ":" in item:
            first, last = (part.strip() for part in item.split(":", 1))
            i = _resolve_column_index(table, first)
            j = _resolve_column_index(table, last)
            step = 1 if i <= j else -1
            out.extend(names[k] for k in range(i, j + step, step))
        else:
            out.append(names[_resolve_column_index(table, item)])

    if len(set(out)) != len(out):
        raise TableError(f"Column selection names a column more than once: {out}")
    return out


def table_column(table: dict[str, Any], colname: str | int) -> list[Any]:
    """Extract a copy of a single column as a Python list.

    Raises:
        UnknownColumn: If column name not found
    """
    t = table_to_columns(table)
    idx = _resolve_column_index(t, colname)
    return t["rows"][idx][:]


# -------------------------------------
# Column typing
# -------------------------------------

ColumnType = Literal["numeric", "text", "boolean", "missing", "mixed"]


def value_type(value: Any) -> str:
    """Classify a single value: numeric, text, boolean, missing or other."""
    if value is None:
        return "missing"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "numeric"
    if isinstance(value, str):
        return "text"
    return "other"


def column_type(values: list[Any]) -> ColumnType:
    """
    Classify a column by its non-missing values.

    Returns:
        "numeric", "text" or "boolean" when every non-missing value has that
        type, "missing" when there are no non-missing values, else "mixed"
    """
    kinds = {value_type(v) for v in values}
    kinds.discard("missing")
    if not kinds:
        return "missing"
    if len(kinds) == 1:
        kind = kinds.pop()
        return kind if kind != "other" else "mixed"
    return "mixed"


def table_types(table: dict[str, Any]) -> dict[str, ColumnType]:
    """Return {column name: column type} for every column."""
    t = table_to_columns(table)
    return {name: column_type(col) for name, col in zip(t["columns"], t["rows"])}


# -------------------------------------
# Display
# -------------------------------------

def _format_value(v: Any) -> str:
    """Format a value for table output.

    Floats are formatted to 3 significant figures, missing values as NA.
    """
    if v is None:
        return "NA"
    if isinstance(v, float):
        if v == 0:
            return "0"
        return f"{v:.3g}"
    return str(v)


MAX_FORMAT_ROWS = 100_000


def format_table(table: dict[str, Any]) -> str:
    """Format a table as a tab-separated string with header.

    Raises:
        TableError: If table has more than MAX_FORMAT_ROWS rows
    """
    tbl = table_to_rows(table)
    n_rows = len(tbl["rows"])
    if n_rows > MAX_FORMAT_ROWS:
        raise TableError(f"Table has {n_rows:,} rows, exceeds limit of {MAX_FORMAT_ROWS:,}")

    lines = ["\t".join(str(c) for c in tbl["columns"])]
    for row in tbl["rows"]:
        lines.append("\t".join(_format_value(v) for v in row))
    return "\n".join(lines)


def print_table(table: dict[str, Any]) -> None:
    """Print a table with header and rows to stdout."""
    print(format_table(table))
