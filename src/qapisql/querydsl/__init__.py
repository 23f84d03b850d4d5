"""Query DSL module.

Parses the request mini-language (filters, sorts, paging) into a `QuerySpec`.
SQL fragments are produced by the `compilers` subpackage.
"""

from .parser import parse_filter, parse_filters, parse_query, parse_sort, parse_sorts

__all__ = (
    "parse_filter",
    "parse_filters",
    "parse_query",
    "parse_sort",
    "parse_sorts",
)
