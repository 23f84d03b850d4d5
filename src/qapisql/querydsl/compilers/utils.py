"""Compiler utility functions.

Predicate rendering and the three relation subquery shapes shared by the
filter and free-text search compilers.
"""

from typing import Any, List, Optional

from qapisql.constants import IN_SEPARATORS, SQL_OPERATOR_MAP, ColumnKind, Operation, RelationKind
from qapisql.converters import convert_value
from qapisql.exceptions import InvalidSchemaError
from qapisql.schema import FieldMeta, Filter
from qapisql.settings import settings
from qapisql.utils import column, is_null, json_key_path, quote_identifier, quote_literal


def build_condition(lhs: str, operation: Operation, value: str) -> str:
    """Render `<lhs> <op> ?`, the NULL forms, or an `IN (?,...)` list."""
    if operation is Operation.EQ and is_null(value):
        return f"{lhs} IS NULL"
    if operation is Operation.NEQ and is_null(value):
        return f"{lhs} IS NOT NULL"
    if operation in IN_SEPARATORS:
        count = len(value.split(IN_SEPARATORS[operation]))
        return f"{lhs} IN ({','.join('?' * count)})"
    return f"{lhs} {SQL_OPERATOR_MAP[operation]} ?"


def bind_values(flt: Filter, kind: Optional[ColumnKind]) -> List[Any]:
    """Convert a filter's raw value(s) into bound arguments.

    NULL sentinels under EQ/NEQ bind nothing. IN lists convert every element.

    Raises:
        TypeConversionError: If any element does not parse as `kind`
    """
    if flt.operation in (Operation.EQ, Operation.NEQ) and is_null(flt.value):
        return []
    return [convert_value(kind, raw, flt.name) for raw in flt.raw_values()]


def direct_subquery(outer_table: str, fk_column: str, related_table: str, inner: str, dialect: Optional[str] = None) -> str:
    pk = settings.PRIMARY_KEY_COLUMN
    return (
        f"{column(outer_table, fk_column, dialect)} IN ( SELECT {column(related_table, pk, dialect)} "
        f"FROM {quote_identifier(related_table, dialect)} WHERE ( {inner} ) )"
    )


def many2many_subquery(
    outer_table: str, pivot_table: str, related_table: str, inner: str, dialect: Optional[str] = None
) -> str:
    pk = settings.PRIMARY_KEY_COLUMN
    src_ref = quote_identifier(outer_table + settings.FOREIGN_KEY_SUFFIX, dialect)
    dest_ref = quote_identifier(related_table + settings.FOREIGN_KEY_SUFFIX, dialect)
    return (
        f"{quote_identifier(outer_table, dialect)}.{pk} IN ( SELECT {src_ref} FROM {quote_identifier(pivot_table, dialect)} "
        f"WHERE ( {dest_ref} IN ( SELECT {pk} FROM {quote_identifier(related_table, dialect)} WHERE ( {inner} ) ) ) )"
    )


def polymorphic_subquery(
    outer_table: str, prefix: str, related_table: str, inner: str, dialect: Optional[str] = None
) -> str:
    """Discriminator match is ANDed beside `inner`; callers parenthesize OR groups."""
    outer_pk = column(outer_table, settings.PRIMARY_KEY_COLUMN, dialect)
    poly_id = column(related_table, prefix + settings.FOREIGN_KEY_SUFFIX, dialect)
    poly_type = column(related_table, prefix + settings.POLYMORPHIC_TYPE_SUFFIX, dialect)
    return (
        f"{outer_pk} IN ( SELECT {poly_id} FROM {quote_identifier(related_table, dialect)} "
        f"WHERE ( {inner} AND {poly_id} = {outer_pk} AND {poly_type} = {quote_literal(outer_table)} ) )"
    )


def relation_subquery(field: FieldMeta, outer_table: str, related_table: str, inner: str, dialect: Optional[str] = None) -> str:
    """Wrap `inner` (a predicate on `related_table`) in the subquery shape of `field`'s relation."""
    if field.relation is RelationKind.DIRECT:
        return direct_subquery(outer_table, field.fk_column, related_table, inner, dialect)
    if field.relation is RelationKind.MANY2MANY:
        return many2many_subquery(outer_table, field.many2many, related_table, inner, dialect)
    if field.relation is RelationKind.POLYMORPHIC:
        return polymorphic_subquery(outer_table, field.polymorphic, related_table, inner, dialect)
    raise InvalidSchemaError("field is not a relation", field=field.name)


def json_extract(ref: str, sub_path: str) -> str:
    """Text of a JSON column's sub-path: `CAST(<ref>->'$.<sub>' AS CHAR)`."""
    return f"CAST({ref}->{quote_literal(json_key_path(sub_path))} AS CHAR)"
