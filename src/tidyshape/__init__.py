# -------------------------------------
# tidyshape - reshape and summarize survey tables
# -------------------------------------
"""
Dict-based table operators for reshaping and aggregating tabular data.

This package provides:
- Table representation and conversion (table)
- Relational operators: select, filter, mutate, arrange, count, ... (relational)
- Grouped aggregation: group_by, summarize, ungroup (aggregate)
- Reshaping: pivot_wider, pivot_longer, separate_rows, replace_missing (reshape)
- CSV input/output and YAML options (csvio, config)
- Chain-string pipelines (pipeline)

Imports are lazy so that running submodules as scripts does not warn.
Use: from tidyshape import table_new, table_pivot_wider, etc.
"""

__all__ = [
    # table
    "table_new",
    "table_validate",
    "table_nrows",
    "table_column",
    "table_to_columns",
    "table_to_rows",
    "table_to_arrow",
    "table_to_dict",
    "table_from_arrow",
    "table_iter_rows",
    "table_types",
    "column_type",
    "is_missing",
    "format_table",
    "print_table",
    # relational
    "table_select",
    "table_drop",
    "table_rename",
    "table_filter",
    "table_mutate",
    "table_arrange",
    "table_count",
    "table_distinct",
    "table_head",
    "table_drop_missing",
    "table_bind_rows",
    # aggregate
    "table_group_by",
    "table_groups",
    "table_summarize",
    "table_ungroup",
    "agg",
    "AGGREGATES",
    # reshape
    "table_pivot_wider",
    "table_pivot_longer",
    "table_separate_rows",
    "table_replace_missing",
    # csv and config
    "read_csv",
    "write_csv",
    "ReadOptions",
    "WriteOptions",
    "load_config",
    # pipeline
    "parse_pipeline",
    "run_pipeline",
    # errors
    "TableError",
    "UnknownColumn",
    "TypeMismatch",
    "UndefinedAggregate",
    "DuplicateKeyValue",
    "EmptyGroup",
    "PipelineError",
]

_MODULES = {
    ".table": [
        "table_new", "table_validate", "table_nrows", "table_column",
        "table_to_columns", "table_to_rows", "table_to_arrow", "table_to_dict",
        "table_from_arrow", "table_iter_rows", "table_types", "column_type",
        "is_missing", "format_table", "print_table",
    ],
    ".relational": [
        "table_select", "table_drop", "table_rename", "table_filter",
        "table_mutate", "table_arrange", "table_count", "table_distinct",
        "table_head", "table_drop_missing", "table_bind_rows",
    ],
    ".aggregate": [
        "table_group_by", "table_groups", "table_summarize", "table_ungroup",
        "agg", "AGGREGATES",
    ],
    ".reshape": [
        "table_pivot_wider", "table_pivot_longer", "table_separate_rows",
        "table_replace_missing",
    ],
    ".csvio": ["read_csv", "write_csv"],
    ".config": ["ReadOptions", "WriteOptions", "load_config"],
    ".pipeline": ["parse_pipeline", "run_pipeline"],
    ".errors": [
        "TableError", "UnknownColumn", "TypeMismatch", "UndefinedAggregate",
        "DuplicateKeyValue", "EmptyGroup", "PipelineError",
    ],
}

# Lazy import mapping: attribute -> (module, name)
_LAZY_IMPORTS = {
    name: (module, name) for module, names in _MODULES.items() for name in names
}


def __getattr__(name: str):
    if name in _LAZY_IMPORTS:
        module_name, attr_name = _LAZY_IMPORTS[name]
        from importlib import import_module
        module = import_module(module_name, __package__)
        return getattr(module, attr_name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
