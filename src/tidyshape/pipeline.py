#!/usr/bin/env python
# pipeline.py - chain parser and runner for table operators

"""
Run table operators from a compact chain string.

    select:village:no_membrs:items_owned,separate_rows:items_owned:;,count:items_owned:sort

A chain is a comma-separated list of steps; each step is an operator name
followed by colon-separated arguments. Commas and colons inside (), [], {}
or quotes do not split. An argument in square brackets, e.g. [a:c], is an
inclusive column range.

Operators and their arguments:
    select:COL...               drop:COL...            rename:NEW=OLD...
    filter:EXPR...              mutate:NAME=EXPR...    arrange:COL[:desc]
    count:COL...[:sort]         distinct[:COL...]      head[:N]
    drop_missing[:COL...]       group_by:COL...        ungroup
    summarize:NAME=FUNC(COL[,na_rm])...
    pivot_wider:NAMES_FROM:VALUES_FROM[:FILL]
    pivot_longer:NAMES_TO:VALUES_TO:COL...
    separate_rows:COL:SEP       replace_missing:COL:VALUE

Scalar arguments (FILL, VALUE) are Python literals, true/false, or NA for
missing; anything else is text.
"""

from __future__ import annotations

import ast
import logging
import re
from typing import Any, Callable

from .aggregate import agg, table_group_by, table_summarize, table_ungroup
from .errors import PipelineError
from .relational import (
    table_arrange,
    table_count,
    table_distinct,
    table_drop,
    table_drop_missing,
    table_filter,
    table_head,
    table_mutate,
    table_rename,
    table_select,
)
from .reshape import (
    table_pivot_longer,
    table_pivot_wider,
    table_replace_missing,
    table_separate_rows,
)

__all__ = [
    "split_top_level",
    "parse_pipeline",
    "run_pipeline",
    "OPERATORS",
]

logger = logging.getLogger(__name__)


# ============================================================
# Tokenizing
# ============================================================

def split_top_level(s: str, sep: str) -> list[str]:
    """
    Split string on separator, but only at top level (outside brackets and quotes).

    Handles (), [], {} nesting and '...' / "..." quoting.
    """
    out, buf, depth = [], [], 0
    quote = None
    opens = "([{"
    closes = ")]}"
    for ch in s:
        if quote:
            if ch == quote:
                quote = None
            buf.append(ch)
            continue
        if ch in "'\"":
            quote = ch
        elif ch in opens:
            depth += 1
        elif ch in closes:
            if depth > 0:
                depth -= 1
        if ch == sep and depth == 0:
            out.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    if quote:
        raise PipelineError(f"Unterminated quote in {s!r}")
    if buf:
        out.append("".join(buf).strip())
    return [x for x in out if x != ""]


def _unquote(tok: str) -> str:
    t = tok.strip()
    if len(t) >= 2 and t[0] == t[-1] and t[0] in "'\"":
        return t[1:-1]
    return t


def _parse_column(tok: str) -> str:
    """Column argument: [a:b] becomes the range 'a:b', quotes are removed."""
    t = tok.strip()
    if t.startswith("[") and t.endswith("]"):
        return t[1:-1].strip()
    return _unquote(t)


def _parse_scalar(tok: str) -> Any:
    """
    Parse a scalar argument.

    Supports NA (missing), true/false, Python literals, and bare text.
    """
    t = tok.strip()
    if t == "NA":
        return None
    if t.lower() in ("true", "false"):
        return t.lower() == "true"
    try:
        return ast.literal_eval(t)
    except (ValueError, SyntaxError):
        return t


_assign_re = re.compile(r"^\s*([A-Za-z_][\w.]*)\s*=(?!=)(.*)$", re.DOTALL)
_call_re = re.compile(r"^\s*(\w+)\s*\((.*)\)\s*$", re.DOTALL)


def _split_assign(tok: str) -> tuple[str, str]:
    m = _assign_re.match(tok)
    if not m:
        raise PipelineError(f"Expected NAME=VALUE, got {tok!r}")
    return m.group(1), m.group(2).strip()


# ============================================================
# Step handlers
# ============================================================

def _need(op: str, args: list[str], low: int, high: int | None = None) -> None:
    if len(args) < low or (high is not None and len(args) > high):
        want = f"{low}" if high == low else f"{low}..{high if high is not None else ''}"
        raise PipelineError(f"'{op}' takes {want} arguments, got {len(args)}: {args}")


def _columns(args: list[str]) -> list[str]:
    return [_parse_column(a) for a in args]


def _op_select(table, args):
    _need("select", args, 1)
    return table_select(table, _columns(args))


def _op_drop(table, args):
    _need("drop", args, 1)
    return table_drop(table, _columns(args))


def _op_rename(table, args):
    _need("rename", args, 1)
    mapping = {}
    for a in args:
        new, old = _split_assign(a)
        mapping[new] = _unquote(old)
    return table_rename(table, mapping)


def _op_filter(table, args):
    _need("filter", args, 1)
    return table_filter(table, *args)


def _op_mutate(table, args):
    _need("mutate", args, 1)
    for a in args:
        name, expr = _split_assign(a)
        table = table_mutate(table, name, expr)
    return table


def _op_arrange(table, args):
    _need("arrange", args, 1, 2)
    direction = "ascending"
    if len(args) == 2:
        flag = args[1].lower()
        if flag in ("desc", "descending"):
            direction = "descending"
        elif flag not in ("asc", "ascending"):
            raise PipelineError(f"arrange direction must be asc or desc, got {args[1]!r}")
    return table_arrange(table, _parse_column(args[0]), direction)


def _op_count(table, args):
    sort = bool(args) and args[-1].lower() == "sort"
    cols = args[:-1] if sort else args
    _need("count", cols, 1)
    return table_count(table, _columns(cols), sort=sort)


def _op_distinct(table, args):
    return table_distinct(table, _columns(args) if args else None)


def _op_head(table, args):
    _need("head", args, 0, 1)
    n = 10
    if args:
        try:
            n = int(args[0])
        except ValueError:
            raise PipelineError(f"head needs an integer, got {args[0]!r}")
    return table_head(table, n)


def _op_drop_missing(table, args):
    return table_drop_missing(table, _columns(args) if args else None)


def _op_group_by(table, args):
    _need("group_by", args, 1)
    return table_group_by(table, _columns(args))


def _op_ungroup(table, args):
    _need("ungroup", args, 0, 0)
    return table_ungroup(table)


def _op_summarize(table, args):
    _need("summarize", args, 1)
    aggregations = {}
    for a in args:
        name, call = _split_assign(a)
        m = _call_re.match(call)
        if not m:
            raise PipelineError(f"Expected FUNC(COL), got {call!r}")
        func, inner = m.group(1), m.group(2)
        parts = [p.strip() for p in split_top_level(inner, ",")]
        na_rm = False
        if parts and parts[-1] in ("na_rm", "na_rm=True", "na_rm=true"):
            na_rm = True
            parts = parts[:-1]
        if len(parts) > 1:
            raise PipelineError(f"Aggregate call takes one column, got {parts}")
        column = _parse_column(parts[0]) if parts else None
        aggregations[name] = agg(func, column, na_rm=na_rm)
    return table_summarize(table, aggregations)


def _op_pivot_wider(table, args):
    _need("pivot_wider", args, 2, 3)
    fill = _parse_scalar(args[2]) if len(args) == 3 else None
    return table_pivot_wider(table, _parse_column(args[0]), _parse_column(args[1]), values_fill=fill)


def _op_pivot_longer(table, args):
    _need("pivot_longer", args, 3)
    return table_pivot_longer(
        table,
        _columns(args[2:]),
        names_to=_unquote(args[0]),
        values_to=_unquote(args[1]),
    )


def _op_separate_rows(table, args):
    _need("separate_rows", args, 2, 2)
    return table_separate_rows(table, _parse_column(args[0]), _unquote(args[1]))


def _op_replace_missing(table, args):
    _need("replace_missing", args, 2, 2)
    return table_replace_missing(table, _parse_column(args[0]), _parse_scalar(args[1]))


OPERATORS: dict[str, Callable[[dict[str, Any], list[str]], dict[str, Any]]] = {
    "select": _op_select,
    "drop": _op_drop,
    "rename": _op_rename,
    "filter": _op_filter,
    "mutate": _op_mutate,
    "arrange": _op_arrange,
    "count": _op_count,
    "distinct": _op_distinct,
    "head": _op_head,
    "drop_missing": _op_drop_missing,
    "group_by": _op_group_by,
    "ungroup": _op_ungroup,
    "summarize": _op_summarize,
    "summarise": _op_summarize,
    "pivot_wider": _op_pivot_wider,
    "pivot_longer": _op_pivot_longer,
    "separate_rows": _op_separate_rows,
    "replace_missing": _op_replace_missing,
}


# ============================================================
# Chain parsing
# ============================================================

def parse_pipeline(chain: str) -> list[tuple[str, list[str]]]:
    """
    Parse a chain into a list of (operator, raw args) steps.

    Args:
        chain: Chain string like "group_by:village,summarize:n=count()"

    Returns:
        List of (name, args), in chain order

    Raises:
        PipelineError: If a step names an unknown operator
    """
    steps = []
    if not chain.strip():
        return steps
    for item in split_top_level(chain, ","):
        parts = split_top_level(item, ":")
        if not parts:
            continue
        name = parts[0].strip().lower()
        if name not in OPERATORS:
            raise PipelineError(f"Unknown operator '{name}'. Supported: {sorted(OPERATORS)}")
        steps.append((name, parts[1:]))
    return steps


def run_pipeline(table: dict[str, Any], chain: str) -> dict[str, Any]:
    """Apply every step of chain to table, in order, and return the result."""
    for name, args in parse_pipeline(chain):
        logger.debug("step %s %s", name, args)
        table = OPERATORS[name](table, args)
    return table
