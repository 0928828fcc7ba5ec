"""
Main entry point for flatdb

Usage:
    python -m flatdb.main <table-dir> <sql>
    python -m flatdb.main <table-dir> --file <query.sql>

Example:
    python -m flatdb.main ./tables "SELECT name FROM users WHERE age > 26" > out.csv
"""

import argparse
import csv
import sys

from . import config
from .errors import DatabaseError
from .executor import QueryExecutor, ResultSet
from .logger import configure_logging, get_logger
from .parser import parse_sql
from .storage import CsvStorage

logger = get_logger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='flatdb',
        description='flatdb - SQL queries over a directory of CSV tables',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Query a table, results go to stdout as CSV
  flatdb ./tables "SELECT * FROM users ORDER BY age DESC"

  # Modify a table in place
  flatdb ./tables "UPDATE users SET age = 31 WHERE id = 1"

  # Read the statement from a file
  flatdb ./tables --file query.sql
        """
    )

    parser.add_argument(
        'data_dir',
        metavar='TABLE_DIR',
        help='Directory holding one <table>.csv file per table'
    )

    parser.add_argument(
        'sql',
        nargs='?',
        metavar='SQL',
        help='SQL statement to execute'
    )

    parser.add_argument(
        '--file', '-f',
        metavar='FILE',
        help='Read the SQL statement from a file'
    )

    parser.add_argument(
        '--delimiter', '-d',
        default=config.FIELD_DELIMITER,
        help=f"Field delimiter of the table files (default: '{config.FIELD_DELIMITER}')"
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        default=config.DEBUG,
        help='Enable debug logging'
    )

    return parser


def main(argv=None) -> int:
    """Main entry point"""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if (args.sql is None) == (args.file is None):
        parser.error('give exactly one of SQL or --file')

    configure_logging(debug=args.debug)

    try:
        sql = args.sql if args.file is None else read_sql_file(args.file)
        storage = CsvStorage(args.data_dir, delimiter=args.delimiter)
        return execute_sql(QueryExecutor(storage), sql, delimiter=args.delimiter)
    except DatabaseError as e:
        logger.debug("Statement failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def read_sql_file(filename: str) -> str:
    """Read a statement from a file"""
    try:
        with open(filename, 'r', encoding=config.FILE_ENCODING) as f:
            return f.read()
    except OSError as e:
        raise DatabaseError(f"Could not read SQL file '{filename}': {e}") from e
    except UnicodeDecodeError as e:
        raise DatabaseError(f"SQL file '{filename}' is not valid {config.FILE_ENCODING} text: {e}") from e


def execute_sql(executor: QueryExecutor, sql: str, out=None, delimiter: str = config.FIELD_DELIMITER) -> int:
    """Execute single SQL command and write its result"""
    out = out if out is not None else sys.stdout
    if not sql.strip():
        raise DatabaseError("Query is empty")

    command = parse_sql(sql)
    result = executor.execute(command)

    if isinstance(result, ResultSet):
        write_result(result, out, delimiter)
    else:
        print(result, file=out)
    return 0


def write_result(result: ResultSet, out, delimiter: str = config.FIELD_DELIMITER):
    """Write header and rows as delimited text"""
    writer = csv.writer(out, delimiter=delimiter, lineterminator='\n')
    writer.writerow(result.columns)
    writer.writerows(result.rows)


if __name__ == '__main__':
    sys.exit(main())
