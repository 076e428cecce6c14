"""
=============================================================================
HTTPTOOLBOX CLI ENTRY POINT
=============================================================================

A few of the helpers are handy outside a request handler too: checking a
.sql file before deploying it, making a slug for a fixture, or a token for
a test environment.

=============================================================================
USAGE
=============================================================================

    # Slug from free text
    python -m httptoolbox slugify "Hello, World!"          → hello-world

    # Random identifier (default length 25)
    python -m httptoolbox random-string 12

    # Show the query table a .sql file produces, as JSON
    python -m httptoolbox load-sql queries/users.sql
    python -m httptoolbox load-sql queries/users.sql --strict

    # More output
    python -m httptoolbox --log-level DEBUG load-sql queries/users.sql

Installed with pip, the same commands are available as `httptoolbox ...`.
Failures print "Error: <message>" to stderr and exit with status 1.

=============================================================================
"""

import argparse
import logging
import sys

from pydantic_core import to_json

from . import __version__
from .errors import ToolboxError
from .sql_queries import load_sql_queries
from .text import random_string, slugify


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httptoolbox",
        description="Request/response helpers for HTTP services",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  httptoolbox slugify "Now is the time!"     # now-is-the-time
  httptoolbox random-string 32               # 32 random characters
  httptoolbox load-sql queries.sql --strict  # named queries as JSON
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # GLOBAL ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"httptoolbox {__version__}"
    )

    # ─────────────────────────────────────────────────────────────────────
    # COMMANDS
    # ─────────────────────────────────────────────────────────────────────

    commands = parser.add_subparsers(dest="command", required=True)

    slug = commands.add_parser("slugify", help="Turn text into a URL slug")
    slug.add_argument("text")

    rand = commands.add_parser("random-string", help="Print a random string")
    rand.add_argument("length", nargs="?", type=int, default=25,
                      help="Number of characters (default: 25)")

    sql = commands.add_parser("load-sql", help="Print the named queries of a .sql file as JSON")
    sql.add_argument("file")
    sql.add_argument("--strict", action="store_true",
                     help="Fail on a query that is never terminated with ';'")

    return parser


def run(args: argparse.Namespace) -> str:
    if args.command == "slugify":
        return slugify(args.text)
    if args.command == "random-string":
        return random_string(args.length)
    if args.command == "load-sql":
        queries = load_sql_queries(args.file, strict=args.strict)
        return to_json(queries, indent=2).decode("utf-8")
    raise ValueError(f"unknown command {args.command!r}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )

    try:
        print(run(args))
    except (ToolboxError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
