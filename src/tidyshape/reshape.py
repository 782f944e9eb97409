# -------------------------------------
# Reshape - long <-> wide
# -------------------------------------
"""
Reshaping operators for dict-based tables.

- table_pivot_wider: spread one column's values into new columns
- table_pivot_longer: gather columns into name/value pairs
- table_separate_rows: split a delimited text column into one row per token
- table_replace_missing: fill missing values in a column

Long format has one row per observation; wide format has one row per unit
with one variable's values spread across several columns.
"""
from __future__ import annotations

import itertools
from typing import Any

from .errors import DuplicateKeyValue, TableError, TypeMismatch
from .table import (
    _carry_groups,
    _column_table,
    _resolve_column_index,
    expand_columns,
    is_missing,
    table_nrows,
    table_to_columns,
)


def _wide_name(value: Any, prefix: str) -> str:
    return prefix + ("NA" if is_missing(value) else str(value))


def table_pivot_wider(
    table: dict[str, Any],
    names_from: str,
    values_from: str,
    values_fill: Any = None,
    names_prefix: str = "",
) -> dict[str, Any]:
    """
    Spread a long table into a wide one.

    Every column other than names_from and values_from is part of the row
    identity key; rows sharing a key merge into one output row. Each distinct
    names_from value becomes a column holding the matching values_from cell.

    Args:
        table: Input table
        names_from: Column whose values name the new columns
        values_from: Column whose values fill the new columns
        values_fill: Value for cells no input row provides (default: missing)
        names_prefix: Prefix for the new column names

    Returns:
        Table with the identity columns (input order) followed by the new
        columns (first-occurrence order of names_from values), one row per
        identity key in first-occurrence order. A missing names_from value
        produces a column named "NA".

    Raises:
        UnknownColumn: If names_from or values_from is not found
        DuplicateKeyValue: If two rows share the identity key and names_from value
        TableError: If a new column name collides with an identity column
    """
    t = table_to_columns(table)
    names_idx = _resolve_column_index(t, names_from)
    values_idx = _resolve_column_index(t, values_from)
    if names_idx == values_idx:
        raise TableError("names_from and values_from must be different columns")

    id_idx = [i for i in range(len(t["columns"])) if i not in (names_idx, values_idx)]
    id_names = [t["columns"][i] for i in id_idx]
    names_col = t["rows"][names_idx]
    values_col = t["rows"][values_idx]
    n_rows = table_nrows(t)

    # names_from value -> output column name
    wide_names: dict[Any, str] = {}
    for value in names_col:
        if value not in wide_names:
            wide_names[value] = _wide_name(value, names_prefix)
    new_names = list(wide_names.values())
    if len(set(new_names)) != len(new_names):
        raise TableError(f"names_from values give duplicate column names: {new_names}")
    clash = set(new_names) & set(id_names)
    if clash:
        raise TableError(f"New column names {sorted(clash)} collide with identity columns")

    key_rows: dict[tuple, int] = {}
    keys: list[tuple] = []
    cells: list[dict[str, Any]] = []
    for i in range(n_rows):
        key = tuple(t["rows"][j][i] for j in id_idx)
        r = key_rows.get(key)
        if r is None:
            r = key_rows[key] = len(keys)
            keys.append(key)
            cells.append({})
        wide = wide_names[names_col[i]]
        if wide in cells[r]:
            identity = dict(zip(id_names, key))
            raise DuplicateKeyValue(
                f"Rows {identity} have more than one value for "
                f"{names_from}={names_col[i]!r}"
            )
        cells[r][wide] = values_col[i]

    out_cols = [[key[k] for key in keys] for k in range(len(id_idx))]
    for wide in new_names:
        out_cols.append([row.get(wide, values_fill) for row in cells])
    return _carry_groups(table, _column_table(id_names + new_names, out_cols))


def table_pivot_longer(
    table: dict[str, Any],
    cols: str | list[str],
    names_to: str = "name",
    values_to: str = "value",
    values_drop_na: bool = False,
) -> dict[str, Any]:
    """
    Gather columns into name/value rows.

    Args:
        table: Input table
        cols: Columns to gather (names or a "first:last" range)
        names_to: Name of the column receiving the gathered column names
        values_to: Name of the column receiving the cell values
        values_drop_na: If True, skip cells whose value is missing

    Returns:
        Table with the remaining columns followed by names_to and values_to.
        Each input row yields one row per gathered column, in cols order.

    Raises:
        UnknownColumn: If a column in cols is not found
        TableError: If cols is empty or an output name clashes
    """
    t = table_to_columns(table)
    gathered = expand_columns(t, cols)
    if not gathered:
        raise TableError("pivot_longer needs at least one column to gather")
    keep = [name for name in t["columns"] if name not in gathered]
    if names_to == values_to:
        raise TableError("names_to and values_to must differ")
    for name in (names_to, values_to):
        if name in keep:
            raise TableError(f"Output column '{name}' collides with an existing column")

    keep_cols = [t["rows"][t["columns"].index(name)] for name in keep]
    gathered_cols = [t["rows"][t["columns"].index(name)] for name in gathered]
    out_keep = [[] for _ in keep]
    out_names: list[str] = []
    out_values: list[Any] = []

    for i in range(table_nrows(t)):
        for name, col in zip(gathered, gathered_cols):
            value = col[i]
            if values_drop_na and is_missing(value):
                continue
            for k, kcol in enumerate(keep_cols):
                out_keep[k].append(kcol[i])
            out_names.append(name)
            out_values.append(value)

    out = _column_table(keep + [names_to, values_to], out_keep + [out_names, out_values])
    return _carry_groups(table, out)


def table_separate_rows(
    table: dict[str, Any],
    column: str,
    separator: str,
) -> dict[str, Any]:
    """
    Split a text column on separator and emit one row per token.

    Other columns are repeated for each token. A missing value yields one
    row with the cell still missing; the text "NA" is an ordinary token.

    Raises:
        UnknownColumn: If column is not found
        TypeMismatch: If a non-missing value is not text
        TableError: If separator is empty
    """
    if not separator:
        raise TableError("separator must be a non-empty string")
    t = table_to_columns(table)
    col_idx = _resolve_column_index(t, column)
    n_cols = len(t["columns"])
    target_col = t["rows"][col_idx]

    out_cols = [[] for _ in range(n_cols)]
    for row_idx, cell in enumerate(target_col):
        if is_missing(cell):
            tokens = [None]
        elif isinstance(cell, str):
            tokens = cell.split(separator)
        else:
            raise TypeMismatch(
                f"separate_rows needs text in column '{column}', got {type(cell).__name__} at row {row_idx}"
            )

        k = len(tokens)
        for col_i in range(n_cols):
            if col_i == col_idx:
                out_cols[col_i].extend(tokens)
            else:
                out_cols[col_i].extend(itertools.repeat(t["rows"][col_i][row_idx], k))

    return _carry_groups(table, _column_table(t["columns"], out_cols))


def table_replace_missing(
    table: dict[str, Any],
    column: str,
    replacement: Any,
) -> dict[str, Any]:
    """
    Replace missing values in one column.

    Raises:
        UnknownColumn: If column is not found
    """
    t = table_to_columns(table)
    col_idx = _resolve_column_index(t, column)
    new_cols = [col[:] for col in t["rows"]]
    new_cols[col_idx] = [replacement if is_missing(v) else v for v in new_cols[col_idx]]
    return _carry_groups(table, _column_table(t["columns"], new_cols))
