"""
=============================================================================
SQL QUERY FILES
=============================================================================

Keeps SQL out of Python source: queries live in a .sql file, each under
a "-- NAME" header, and are loaded once at startup into a dict.

    ┌──────────────────────────────────────┐
    │ -- USER_BY_ID                        │      {
    │ SELECT id, name                      │        "USER_BY_ID":
    │     FROM users                       │  ──►     "SELECT id, name FROM users WHERE id=$1;",
    │     WHERE id=$1;                     │        "DELETE_USER":
    │                                      │          "DELETE FROM users WHERE id=$1;",
    │ -- DELETE_USER                       │      }
    │ DELETE FROM users WHERE id=$1;       │
    └──────────────────────────────────────┘

=============================================================================
PARSING RULES
=============================================================================

Lines are stripped of surrounding whitespace, then:

    SEEKING
        "-- NAME"                      → start a block called NAME
        "SELECT ..." etc. with no NAME → recognized, but nothing to store
        anything else                  → skipped

    ACCUMULATING (a NAME is open)
        blank line                     → skipped
        any other line                 → appended
        line ending in ";"             → block is stored, back to SEEKING

A block still open at end of file is dropped, or raises UnterminatedQuery
with strict=True. A NAME defined twice keeps its last definition.

=============================================================================
"""

import os
import logging
from typing import Dict, Iterable, List, Optional

from .errors import FilesystemError, UnterminatedQuery


logger = logging.getLogger(__name__)


KEY_PREFIX = "-- "
SQL_VERBS = ("SELECT", "INSERT", "UPDATE", "DELETE")
TERMINATOR = ";"


def _extract_key(line: str) -> Optional[str]:
    if line.startswith(KEY_PREFIX):
        # "-- NAME -- note" → "NAME "
        return line.split(KEY_PREFIX)[1] or None
    return None


def parse_sql_queries(lines: Iterable[str], strict: bool = False) -> Dict[str, str]:
    """
    Build the query table from an iterable of lines (a file object works).

    Args:
        lines: Text lines, with or without trailing newlines.
        strict: Raise UnterminatedQuery instead of dropping a block that
                never reaches a ";".

    Returns:
        Mapping of query name to its statement, source lines joined by a
        single space, including the trailing ";".
    """
    queries: Dict[str, str] = {}
    key: Optional[str] = None
    buffer: List[str] = []

    for raw in lines:
        line = raw.strip()

        if key is None:
            if line.startswith(KEY_PREFIX):
                key = _extract_key(line)
            # a bare verb line has no name, so there is nowhere to store it
            continue

        if not line:
            continue

        buffer.append(line)
        if line.endswith(TERMINATOR):
            if key in queries:
                logger.debug("Query %r redefined, keeping the later one", key)
            queries[key] = " ".join(buffer)
            key, buffer = None, []

    if key is not None:
        if strict:
            raise UnterminatedQuery(key)
        logger.debug("Dropping unterminated query %r at end of input", key)

    return queries


def load_sql_queries(path: str | os.PathLike, strict: bool = False) -> Dict[str, str]:
    """
    Load named queries from a .sql file.

    Example:
        QUERIES = load_sql_queries("queries/users.sql")
        cursor.execute(QUERIES["USER_BY_ID"], (user_id,))

    Raises:
        FilesystemError: the file is missing or unreadable.
        UnterminatedQuery: strict mode and a block was left open.
    """
    try:
        with open(path, encoding="utf-8") as f:
            queries = parse_sql_queries(f, strict=strict)
    except (OSError, UnicodeDecodeError) as e:
        raise FilesystemError(f"error reading file {os.fspath(path)!r}: {e}") from e

    logger.debug("Loaded %d queries from %s", len(queries), os.fspath(path))
    return queries
