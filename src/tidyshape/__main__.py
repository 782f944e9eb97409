# -------------------------------------
# tidyshape CLI entry point
# -------------------------------------
"""
CLI entry point.

Usage:
    python -m tidyshape data/interviews.csv --steps "group_by:village,summarize:n=count()"
    python -m tidyshape data/interviews.csv --na NULL --steps "..." --output out.csv
"""
import argparse
import logging
import signal

import yaml

from .config import Config, load_config
from .csvio import read_csv, write_csv
from .pipeline import run_pipeline
from .relational import table_head
from .table import print_table, table_types


def _main() -> int:
    p = argparse.ArgumentParser(
        description="Reshape and summarize a CSV table with a chain of operators.",
    )
    p.add_argument("path", help="Path to the input CSV file")
    p.add_argument("--steps", "-s", metavar="CHAIN", default="", help="Operator chain, e.g. 'select:a:b,count:a:sort'")
    p.add_argument("--config", "-c", metavar="YAML", help="YAML file with read/write options")
    p.add_argument("--na", metavar="TOKEN", help="Token read as a missing value (default NA)")
    p.add_argument("--output", "-o", metavar="CSV", help="Write the result to this CSV file instead of printing")
    p.add_argument("--head", type=int, metavar="N", help="Print only the first N rows")
    p.add_argument("--types", action="store_true", help="Print column types of the result instead of its rows")
    p.add_argument("--verbose", "-v", action="store_true", help="Log each step")
    args = p.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config) if args.config else Config()
        table = read_csv(args.path, config.read, missing_value_token=args.na)
        table = run_pipeline(table, args.steps)
        if args.output:
            write_csv(table, args.output, config.write)
        elif args.types:
            for name, kind in table_types(table).items():
                print(f"{name}\t{kind}")
        else:
            if args.head is not None:
                table = table_head(table, args.head)
            print_table(table)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        return 1

    return 0


def main() -> int:
    """Console entry point: restore default SIGPIPE handling, then run the CLI."""
    signal.signal(signal.SIGPIPE, signal.SIG_DFL)
    return _main()


if __name__ == "__main__":
    raise SystemExit(main())
