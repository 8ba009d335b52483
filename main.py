"""
main.py
-------
Command-line entry point: run one SQL statement and print its result.

Usage:
    python main.py --mode all "SELECT * FROM users WHERE id = %(id)s" --param id=3

Responsibilities:
    - Initialize the default connection registry.
    - Execute the statement in the requested result shape.
    - Close every session on the way out.
"""

import argparse
import json
import sys
from typing import Optional

from config import DATABASE_URL, DB_PASS, DB_USER
from dbquery.connection import close_registry, init_registry
from dbquery.errors import DBConnectionError
from dbquery.query import QueryExecutor
from dbquery.results import QueryResult
from utils.logger import get_logger

logger = get_logger(__name__)

MODES = ("all", "row", "column", "scalar", "execute")


def parse_params(pairs: list[str]) -> dict[str, str]:
    """
    Turn ``name=value`` strings into a parameter mapping.

    Raises:
        ValueError: If an item has no '='.
    """
    params = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ValueError(f"Parameter must look like name=value, got {pair!r}")
        params[name] = value
    return params


def run_statement(executor: QueryExecutor, mode: str, sql: str, params: Optional[dict]) -> QueryResult:
    """Dispatch ``sql`` to the executor method matching ``mode``."""
    methods = {
        "all": executor.query_all,
        "row": executor.query_row,
        "column": executor.query_column,
        "scalar": executor.query_scalar,
        "execute": executor.execute,
    }
    return methods[mode](sql, params or None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run one SQL statement and print its result.")
    parser.add_argument("sql", help="SQL text with %%(name)s placeholders")
    parser.add_argument("--dsn", default=DATABASE_URL, help="libpq DSN or URI (default: DATABASE_URL)")
    parser.add_argument("--user", default=DB_USER)
    parser.add_argument("--password", default=DB_PASS)
    parser.add_argument("--mode", choices=MODES, default="all")
    parser.add_argument("--param", action="append", default=[], metavar="NAME=VALUE")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, run the statement and return the exit code."""
    args = build_parser().parse_args(argv)
    try:
        params = parse_params(args.param)
    except ValueError as e:
        logger.error(str(e))
        return 2

    registry = init_registry()
    try:
        handle = registry.connect(args.dsn, args.user, args.password)
        executor = QueryExecutor(handle)
        result = run_statement(executor, args.mode, args.sql, params)
    except DBConnectionError as e:
        logger.error(f"Connection failed: {e}")
        return 2
    finally:
        close_registry()

    if not result.ok:
        print(result)
        return 1

    print(json.dumps(result.data, indent=2, default=str))
    logger.info(f"Query time: {executor.get_last_query_time():.4f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
