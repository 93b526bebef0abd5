import argparse
import logging
import os
import sys

from litereader.consts import LOG_LEVEL_ENV_VAR
from litereader.database import Database
from litereader.errors import LiteReaderError
from litereader.queries import Query, format_rows

from typing import List, Optional

logger = logging.getLogger("litereader")


def run_command(database: Database, command: str) -> str:
    if command == ".dbinfo":
        return "\n".join(
            [
                f"database page size: {database.page_size}",
                f"number of tables: {database.page_count}",
            ]
        )
    elif command == ".tables":
        return " ".join(database.get_table_names())
    else:
        query = Query.parse_query(command)
        return format_rows(query.execute(database))


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING")
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="litereader", description="Read an SQLite database file without SQLite"
    )
    parser.add_argument("db_path", help="Path to database file")
    parser.add_argument(
        "command", help=".dbinfo, .tables or a SELECT query on a single-page table"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log every page and cell read"
    )
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    try:
        with Database.open(args.db_path) as database:
            output = run_command(database, args.command)
    except (LiteReaderError, OSError) as e:
        logger.debug("Command %r failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if output:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
