"""Filter compiler.

Transforms a list of `Filter` objects into an AND-joined SQL predicate with
positional arguments.

Supported path shapes:
- `Name`: plain column comparison on the root table
- `Meta.color`: JSON sub-path of a JSON column, compared as text
- `Title.tr-TR`: one explicit language of a translated column
- `Relation.Field`: correlated subquery per relation kind (direct FK,
  many-to-many pivot, polymorphic discriminator), nested to any depth
  below `MAX_RELATION_DEPTH`

A relation path present in the join registry is compared against the joined
table instead and reported back so the caller adds the JOIN.
"""

from typing import Any, List, Optional, Sequence, Tuple

from qapisql.constants import ColumnKind, RelationKind
from qapisql.exceptions import FieldNotFoundError, InvalidFilterError
from qapisql.schema import EntitySchema, FieldMeta, Filter
from qapisql.types import Args, Fragment
from qapisql.utils import join_conditions

from .base import BaseCompiler
from .utils import bind_values, build_condition, json_extract, relation_subquery

__all__ = (
    "FilterCompiler",
    "filter_compiler",
)


class FilterCompiler(BaseCompiler):
    """Compile filters into a WHERE fragment.

    Compilation is all-or-nothing: the first unknown field, conversion failure
    or malformed relation aborts it with an exception.
    """

    def compile(self, filters: Sequence[Filter], entity: Any, table: Optional[str] = None) -> Fragment:
        """Compile filters for `entity`.

        Args:
            filters: Parsed filters, combined with AND
            entity: Root entity type
            table: Root table alias; defaults to the entity's table name

        Returns:
            (where SQL, bound arguments); ("", []) for no filters
        """
        where, args, _ = self.compile_with_paths(filters, entity, table)
        return where, args

    def compile_with_paths(
        self, filters: Sequence[Filter], entity: Any, table: Optional[str] = None
    ) -> Tuple[str, Args, List[str]]:
        """Like `compile`, also returning registry relation paths that must be joined."""
        schema = self.describe(entity)
        table = table or schema.table_name
        conditions: List[str] = []
        args: Args = []
        paths: List[str] = []
        for flt in filters:
            sql, values = self._predicate(schema, table, flt, flt.segments, 0, True, "", paths)
            conditions.append(sql)
            args.extend(values)
        where = join_conditions(conditions, "AND")
        if where:
            self.logger.fragment("filter", where, args)
        return where, args, paths

    def _predicate(
        self,
        schema: EntitySchema,
        table: str,
        flt: Filter,
        segments: List[str],
        depth: int,
        qualified: bool,
        prefix: Optional[str],
        paths: List[str],
    ) -> Fragment:
        """Resolve `segments` against `schema`, innermost predicate first.

        `prefix` is the registry path walked so far, or None once inside a
        subquery where outer joins no longer apply.
        """
        self.check_depth(depth, flt.name)
        head, rest = segments[0], segments[1:]
        field = schema.field(head, path=flt.name)

        if not rest:
            if field.is_relation:
                raise InvalidFilterError("cannot compare a relation directly", filter=flt.name)
            return self._leaf(field, table if qualified else None, flt)

        if not field.is_relation:
            return self._sub_path(schema, field, table if qualified else None, flt, rest)

        related = self.related(field)
        if prefix is not None and self.registry is not None:
            rel_path = prefix + head
            config = self.registry.get(rel_path)
            if config is not None:
                if rel_path not in paths:
                    paths.append(rel_path)
                return self._predicate(related, config.table, flt, rest, depth + 1, True, rel_path + ".", paths)

        inner_qualified = field.relation is not RelationKind.MANY2MANY
        inner, args = self._predicate(
            related, related.table_name, flt, rest, depth + 1, inner_qualified, None, paths
        )
        return relation_subquery(field, table, related.table_name, inner, self.dialect), args

    def _leaf(self, field: FieldMeta, table: Optional[str], flt: Filter) -> Fragment:
        if field.translated:
            if self.translations.is_all(self.language):
                return self.translations.search_all_condition(field, table, flt)
            lhs = self.translations.resolve_column(field, table)
            return build_condition(lhs, flt.operation, flt.value), bind_values(flt, ColumnKind.STRING)
        lhs = self.ref(field, table)
        return build_condition(lhs, flt.operation, flt.value), bind_values(flt, field.kind)

    def _sub_path(
        self, schema: EntitySchema, field: FieldMeta, table: Optional[str], flt: Filter, rest: List[str]
    ) -> Fragment:
        ref = self.ref(field, table)
        if field.is_json:
            lhs = json_extract(ref, ".".join(rest))
        elif field.translated and len(rest) == 1:
            lhs = self.translations.extract(ref, rest[0])
        else:
            raise FieldNotFoundError(
                "Can't find field", entity=schema.entity.__name__, field=".".join(rest), path=flt.name
            )
        return build_condition(lhs, flt.operation, flt.value), bind_values(flt, ColumnKind.STRING)


filter_compiler = FilterCompiler()
