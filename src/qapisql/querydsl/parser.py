"""Request mini-language parser.

Filters are written `<path><operator><value>` with the operators
`= != < <= > >= ~= |= *=`, comma-joined in the `_filter` parameter. Sorts
are written `[-+ ]<path>`, comma-joined in `_sort`.

Example:
    >>> parse_query({"_filter": "Age>=18,Name~=%an%", "_sort": "-Age", "_limit": "10"})
    QuerySpec(q='', filters=(...), sorts=(...), fields=(), preloads=(), offset=-1, limit=10)
"""

from typing import List, Mapping, Optional

from pydantic import ValidationError

from qapisql.constants import OPERATOR_CHARS, OPERATOR_MAP, Direction
from qapisql.exceptions import InvalidFilterError, InvalidSortError, QueryParseError, UnsupportedOperatorError
from qapisql.schema import Filter, QuerySpec, Sort

__all__ = (
    "parse_filter",
    "parse_filters",
    "parse_sort",
    "parse_sorts",
    "parse_query",
)


def _scan_operator(param: str) -> str:
    """Return the first run of operator characters, at most two long."""
    op = ""
    for ch in param:
        if ch in OPERATOR_CHARS:
            op += ch
            if len(op) == 2:
                break
        elif len(op) == 1:
            break
    return op


def parse_filter(param: str) -> Filter:
    """Parse one filter expression such as `Profile.Age>=18`.

    Raises:
        InvalidFilterError: If the expression is too short, or its name or value is empty or malformed
        UnsupportedOperatorError: If no known operator is found
    """
    param = param.strip()
    if len(param) < 3:
        raise InvalidFilterError("filter param can't be shorter than 3", param=param)
    op = _scan_operator(param)
    operation = OPERATOR_MAP.get(op)
    if operation is None:
        raise UnsupportedOperatorError("invalid operation", param=param, operator=op)
    name, _, value = param.partition(op)
    name, value = name.strip(), value.strip()
    if not name or not value:
        raise InvalidFilterError("filter name or value is missing", param=param)
    try:
        return Filter(name=name, operation=operation, value=value)
    except ValidationError as e:
        raise InvalidFilterError("invalid filter", param=param, error=e.errors()[0]["msg"]) from e


def parse_filters(param: str) -> List[Filter]:
    """Parse a comma-joined list of filter expressions."""
    return [parse_filter(part) for part in param.split(",") if part.strip()]


def parse_sort(param: str) -> Sort:
    """Parse one sort clause: `-Name` is descending, `+Name`, ` Name` and `Name` ascending.

    Raises:
        InvalidSortError: If no field name remains
    """
    param = param.rstrip()
    direction = Direction.ASC
    if param[:1] == "-":
        direction = Direction.DESC
        param = param[1:]
    elif param[:1] in ("+", " "):
        param = param[1:]
    name = param.strip()
    if not name:
        raise InvalidSortError("sort param needs a field name", param=param)
    return Sort(name=name, direction=direction)


def parse_sorts(param: str) -> List[Sort]:
    return [parse_sort(part) for part in param.split(",") if part.strip()]


def _split_list(value: Optional[str]) -> tuple:
    if not value:
        return ()
    return tuple(v.strip() for v in value.split(",") if v.strip())


def _parse_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_query(params: Mapping[str, str]) -> QuerySpec:
    """Build a `QuerySpec` from request parameters.

    Reads `_q`, `_fields`, `_preloads`, `_offset`, `_limit`, `_sort` and
    `_filter`. Missing or non-integer paging values become -1.

    Raises:
        QueryParseError: If none of the parameters is present, or a filter or sort is malformed
    """
    q = params.get("_q") or ""
    fields = _split_list(params.get("_fields"))
    preloads = _split_list(params.get("_preloads"))
    offset = _parse_int(params.get("_offset"))
    limit = _parse_int(params.get("_limit"))
    sorts = tuple(parse_sorts(params["_sort"])) if params.get("_sort") else ()
    filters = tuple(parse_filters(params["_filter"])) if params.get("_filter") else ()

    if not (q or fields or preloads or sorts or filters) and offset is None and limit is None:
        raise QueryParseError("Query not found")

    return QuerySpec(
        q=q,
        filters=filters,
        sorts=sorts,
        fields=fields,
        preloads=preloads,
        offset=-1 if offset is None else offset,
        limit=-1 if limit is None else limit,
    )
