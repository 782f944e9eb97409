# -------------------------------------
# CSV input/output
# -------------------------------------
"""
Read and write dict-based tables as CSV through pyarrow.csv.

Reading infers numeric, text and boolean columns with pyarrow (unless
overridden in ReadOptions.column_types) and turns the missing-value token
and empty fields into None. Writing emits a header row, one line per row,
and missing values as empty fields.
"""
import logging
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.csv as pacsv

from .config import ReadOptions, WriteOptions
from .table import table_from_arrow, table_to_columns

logger = logging.getLogger(__name__)

_ARROW_TYPES = {
    "numeric": pa.float64(),
    "integer": pa.int64(),
    "text": pa.string(),
    "boolean": pa.bool_(),
}


def read_csv(
    path: str | Path,
    options: ReadOptions | None = None,
    **overrides: Any,
) -> dict[str, Any]:
    """
    Read a CSV file into a column-oriented table.

    Args:
        path: Path to the CSV file
        options: Read options (defaults: missing token "NA", comma delimiter)
        **overrides: ReadOptions fields to override, e.g. missing_value_token="NULL"

    Returns:
        Column-oriented table

    Raises:
        FileNotFoundError: If the file doesn't exist
        pyarrow.ArrowInvalid: If the file cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    options = (options or ReadOptions()).with_overrides(**overrides)

    null_values = [options.missing_value_token]
    if "" not in null_values:
        null_values.append("")
    convert = pacsv.ConvertOptions(
        column_types={name: _ARROW_TYPES[t] for name, t in options.column_types.items()},
        null_values=null_values,
        true_values=list(options.true_values),
        false_values=list(options.false_values),
        strings_can_be_null=True,
        quoted_strings_can_be_null=True,
    )
    parse = pacsv.ParseOptions(delimiter=options.delimiter)

    arrow_table = pacsv.read_csv(str(path), parse_options=parse, convert_options=convert)
    logger.info("read %s: %d rows, %d columns", path, arrow_table.num_rows, arrow_table.num_columns)
    return table_from_arrow(arrow_table)


def _arrow_column(values: list[Any]) -> pa.Array:
    """Convert a Python column to arrow; columns of mixed types become text."""
    try:
        arr = pa.array(values)
    except (pa.ArrowInvalid, pa.ArrowTypeError):
        return pa.array([None if v is None else str(v) for v in values], type=pa.string())
    if pa.types.is_null(arr.type):
        return pa.array(values, type=pa.string())
    return arr


def write_csv(
    table: dict[str, Any],
    path: str | Path,
    options: WriteOptions | None = None,
) -> None:
    """
    Write a table to a CSV file.

    Args:
        table: Table in any orientation
        path: Output path (overwritten if it exists)
        options: Write options (defaults: comma delimiter, header row)
    """
    options = options or WriteOptions()
    t = table_to_columns(table)
    arrays = [_arrow_column(col) for col in t["rows"]]
    arrow_table = pa.Table.from_arrays(arrays, names=list(t["columns"]))
    write_options = pacsv.WriteOptions(
        include_header=options.include_header,
        delimiter=options.delimiter,
        quoting_style="needed",
    )
    pacsv.write_csv(arrow_table, str(path), write_options=write_options)
    logger.info("wrote %s: %d rows, %d columns", path, arrow_table.num_rows, arrow_table.num_columns)
