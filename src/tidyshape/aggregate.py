# -------------------------------------
# Grouped aggregation (split-apply-combine)
# -------------------------------------
"""
group_by / summarize / ungroup over dict-based tables.

A grouped table is an ordinary table dict carrying a "groups" key (the
grouping column names) and a "group_sort" flag. Grouping never changes the
rows; summarize consumes the tag and returns one row per group.

    g = table_group_by(t, "village")
    table_summarize(g, {"mean_no_membrs": ("mean", "no_membrs"), "n": ("count", None)})

Aggregates refuse missing values unless asked to drop them:

    table_summarize(g, {"mean_rooms": agg("mean", "rooms", na_rm=True)})
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import numpy as np

from .errors import EmptyGroup, TableError, TypeMismatch, UndefinedAggregate
from .table import (
    _column_table,
    _resolve_column_index,
    column_type,
    expand_columns,
    is_missing,
    table_nrows,
    table_to_columns,
)


# -------------------------------------
# Aggregate functions
# -------------------------------------

def _require_numeric(name: str, values: list[Any]) -> None:
    kind = column_type(values)
    if kind not in ("numeric", "boolean", "missing"):
        raise TypeMismatch(f"Aggregate '{name}' needs numeric values, got {kind} column")


def _require_nonempty(name: str, values: list[Any]) -> None:
    if not values:
        raise EmptyGroup(f"Aggregate '{name}' has no values to reduce")


def _agg_count(values: list[Any]) -> int:
    return len(values)


def _agg_n_distinct(values: list[Any]) -> int:
    return len(set(values))


def _agg_first(values: list[Any]) -> Any:
    _require_nonempty("first", values)
    return values[0]


def _agg_last(values: list[Any]) -> Any:
    _require_nonempty("last", values)
    return values[-1]


def _agg_sum(values: list[Any]) -> int | float:
    _require_numeric("sum", values)
    if not values:
        return 0
    return np.sum(np.asarray(values)).item()


def _agg_mean(values: list[Any]) -> float:
    _require_numeric("mean", values)
    _require_nonempty("mean", values)
    return float(np.mean(np.asarray(values, dtype=float)))


def _agg_median(values: list[Any]) -> float:
    _require_numeric("median", values)
    _require_nonempty("median", values)
    return float(np.median(np.asarray(values, dtype=float)))


def _agg_var(values: list[Any]) -> float | None:
    _require_numeric("var", values)
    _require_nonempty("var", values)
    if len(values) < 2:
        return None
    return float(np.var(np.asarray(values, dtype=float), ddof=1))


def _agg_sd(values: list[Any]) -> float | None:
    _require_numeric("sd", values)
    _require_nonempty("sd", values)
    if len(values) < 2:
        return None
    return float(np.std(np.asarray(values, dtype=float), ddof=1))


def _agg_extreme(name: str, pick: Callable) -> Callable[[list[Any]], Any]:
    def reduce(values: list[Any]) -> Any:
        kind = column_type(values)
        if kind == "mixed":
            raise TypeMismatch(f"Aggregate '{name}' cannot compare values of mixed types")
        _require_nonempty(name, values)
        return pick(values)
    return reduce


@dataclass(frozen=True)
class AggregateFunction:
    """A named reduction and whether missing values make it undefined."""
    name: str
    func: Callable[[list[Any]], Any]
    rejects_missing: bool = True


AGGREGATES: dict[str, AggregateFunction] = {
    "count": AggregateFunction("count", _agg_count, rejects_missing=False),
    "n": AggregateFunction("n", _agg_count, rejects_missing=False),
    "n_distinct": AggregateFunction("n_distinct", _agg_n_distinct, rejects_missing=False),
    "first": AggregateFunction("first", _agg_first, rejects_missing=False),
    "last": AggregateFunction("last", _agg_last, rejects_missing=False),
    "sum": AggregateFunction("sum", _agg_sum),
    "mean": AggregateFunction("mean", _agg_mean),
    "median": AggregateFunction("median", _agg_median),
    "var": AggregateFunction("var", _agg_var),
    "sd": AggregateFunction("sd", _agg_sd),
    "min": AggregateFunction("min", _agg_extreme("min", min)),
    "max": AggregateFunction("max", _agg_extreme("max", max)),
}


@dataclass(frozen=True)
class Aggregation:
    """One summarize output: apply func to column, optionally dropping missing values."""
    func: str | Callable[[list[Any]], Any]
    column: str | None = None
    na_rm: bool = False


def agg(func: str | Callable[[list[Any]], Any], column: str | None = None, na_rm: bool = False) -> Aggregation:
    """Build an Aggregation, e.g. agg("mean", "no_membrs", na_rm=True)."""
    return Aggregation(func, column, na_rm)


def _as_aggregation(name: str, spec: Any) -> Aggregation:
    if isinstance(spec, Aggregation):
        return spec
    if isinstance(spec, str):
        return Aggregation(spec)
    if isinstance(spec, tuple) and 1 <= len(spec) <= 3:
        return Aggregation(*spec)
    raise TableError(
        f"Aggregation for '{name}' must be (func, column[, na_rm]) or agg(...), got {spec!r}"
    )


def _apply_aggregation(out_name: str, aggregation: Aggregation, values: list[Any]) -> Any:
    """Reduce one group's values according to the aggregation's missing-value policy."""
    func = aggregation.func
    if aggregation.column is None:
        return AGGREGATES[func].func(values)
    if callable(func):
        if aggregation.na_rm:
            values = [v for v in values if not is_missing(v)]
        return func(values)

    if func not in AGGREGATES:
        raise TableError(f"Unknown aggregate '{func}'. Supported: {list(AGGREGATES.keys())}")
    spec = AGGREGATES[func]
    if spec.rejects_missing:
        if aggregation.na_rm:
            values = [v for v in values if not is_missing(v)]
        elif any(is_missing(v) for v in values):
            raise UndefinedAggregate(
                f"Aggregate '{func}' for '{out_name}' over column '{aggregation.column}' "
                f"met missing values; filter them out or pass na_rm=True"
            )
    elif aggregation.na_rm:
        values = [v for v in values if not is_missing(v)]
    return spec.func(values)


# -------------------------------------
# Grouping
# -------------------------------------

def table_group_by(
    table: dict[str, Any],
    columns: str | list[str],
    sort: bool = False,
) -> dict[str, Any]:
    """
    Tag a table with a grouping over columns.

    Args:
        table: Input table
        columns: Grouping column names (or a range)
        sort: If True, groups are visited in ascending key order instead of
            first-occurrence order

    Returns:
        Grouped table with the same rows, in the same order

    Raises:
        UnknownColumn: If a grouping column is not found
    """
    t = table_to_columns(table)
    names = expand_columns(t, columns)
    out = _column_table(t["columns"], [col[:] for col in t["rows"]])
    out["groups"] = names
    out["group_sort"] = sort
    return out


def table_ungroup(table: dict[str, Any]) -> dict[str, Any]:
    """Drop the grouping tag; the data is unchanged."""
    t = table_to_columns(table)
    return _column_table(t["columns"], [col[:] for col in t["rows"]])


def is_grouped(table: dict[str, Any]) -> bool:
    return bool(table.get("groups"))


def _sort_key(key: tuple) -> tuple:
    # missing values sort after everything else
    return tuple((is_missing(v), v if not is_missing(v) else 0) for v in key)


def table_groups(table: dict[str, Any]) -> list[tuple[tuple, list[int]]]:
    """
    Partition the table's row indices by its grouping.

    Returns:
        List of (key tuple, row indices) in group order. An ungrouped table
        is a single group with key ().

    Raises:
        UnknownColumn: If a grouping column is not in the table
        TypeMismatch: If sorted grouping meets keys that cannot be compared
    """
    t = table_to_columns(table)
    n_rows = table_nrows(t)
    names = table.get("groups") or []
    if not names:
        return [((), list(range(n_rows)))]

    key_cols = [t["rows"][_resolve_column_index(t, name)] for name in names]
    groups: dict[tuple, list[int]] = {}
    for i in range(n_rows):
        key = tuple(col[i] for col in key_cols)
        groups.setdefault(key, []).append(i)

    out = list(groups.items())
    if table.get("group_sort"):
        try:
            out.sort(key=lambda item: _sort_key(item[0]))
        except TypeError as e:
            raise TypeMismatch(f"Grouping keys {names} cannot be ordered: {e}") from e
    return out


# -------------------------------------
# Summarize
# -------------------------------------

def table_summarize(
    table: dict[str, Any],
    aggregations: dict[str, Any],
) -> dict[str, Any]:
    """
    Reduce each group to one row.

    Args:
        table: Grouped (or ungrouped) table
        aggregations: Mapping of output column name to (func, column),
            (func, column, na_rm) or agg(func, column, na_rm). func is a
            registered aggregate name (see AGGREGATES) or a callable taking
            the group's list of values. column may be None for "count".

    Returns:
        Ungrouped table with the grouping columns followed by one column per
        aggregation, one row per group in group order. A grouped table with
        no rows yields a table with the same columns and no rows.

    Raises:
        UnknownColumn: If a source column is not found
        UndefinedAggregate: If an aggregate meets missing values without na_rm
        TypeMismatch: If an aggregate does not accept the column's type
        EmptyGroup: If an aggregate that needs values gets none
        TableError: If an output name collides with a grouping column
    """
    t = table_to_columns(table)
    group_names = list(table.get("groups") or [])
    specs = {name: _as_aggregation(name, spec) for name, spec in aggregations.items()}

    for out_name in specs:
        if out_name in group_names:
            raise TableError(f"Summary column '{out_name}' collides with grouping column")

    sources: dict[str, list[Any] | None] = {}
    for out_name, spec in specs.items():
        if isinstance(spec.func, str) and spec.func not in AGGREGATES:
            raise TableError(f"Unknown aggregate '{spec.func}'. Supported: {list(AGGREGATES.keys())}")
        if spec.column is None:
            if spec.func not in ("count", "n"):
                raise TableError(f"Aggregation '{out_name}' needs a source column")
            sources[out_name] = None
        else:
            sources[out_name] = t["rows"][_resolve_column_index(t, spec.column)]

    groups = table_groups(table)
    key_out: list[list[Any]] = [[] for _ in group_names]
    agg_out: dict[str, list[Any]] = {name: [] for name in specs}

    for key, indices in groups:
        for i, value in enumerate(key):
            key_out[i].append(value)
        for out_name, spec in specs.items():
            source = sources[out_name]
            values = [None] * len(indices) if source is None else [source[i] for i in indices]
            agg_out[out_name].append(_apply_aggregation(out_name, spec, values))

    columns = group_names + list(specs)
    return _column_table(columns, key_out + [agg_out[name] for name in specs])
