"""Utility functions for qapisql.

Identifier quoting lives here and only here, so switching the SQL dialect
(backtick vs. double-quote) is a single substitution point.
"""

from typing import List, Optional

from .constants import IN_SEPARATORS, NULL_SENTINELS, Operation
from .settings import settings

_QUOTES = {
    "mysql": "`",
    "ansi": '"',
}


# ===========================================================================
# Identifier quoting
# ===========================================================================


def quote_identifier(name: str, dialect: Optional[str] = None) -> str:
    """Quote a table or column identifier for the configured dialect.

    Embedded quote characters are doubled.
    """
    q = _QUOTES[dialect or settings.SQL_DIALECT]
    return f"{q}{name.replace(q, q + q)}{q}"


def column(table: str, name: str, dialect: Optional[str] = None) -> str:
    """Return a fully qualified `table`.`column` reference."""
    return f"{quote_identifier(table, dialect)}.{quote_identifier(name, dialect)}"


def quote_literal(value: str) -> str:
    """Quote a string literal with single quotes."""
    return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"


# ===========================================================================
# JSON paths
# ===========================================================================


def language_path(lang: str) -> str:
    """JSON path selecting one language key, e.g. `$."en-US"`."""
    return '$."' + lang.replace('"', '\\"') + '"'


def json_key_path(key: str) -> str:
    """JSON path selecting a (possibly dotted) key, e.g. `$.a.b`."""
    return "$." + key


# ===========================================================================
# Filter value helpers
# ===========================================================================


def is_null(value: str) -> bool:
    """Whether a filter value is one of the NULL sentinels."""
    return value in NULL_SENTINELS


def split_in_values(value: str, operation: Operation) -> List[str]:
    """Split an IN/IN_ALT value on its element separator."""
    return value.split(IN_SEPARATORS[operation])


def join_conditions(conditions: List[str], connector: str) -> str:
    """Join predicates with AND/OR, skipping empty ones."""
    return f" {connector} ".join(c for c in conditions if c)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so `value` only matches itself (backslash escape)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
