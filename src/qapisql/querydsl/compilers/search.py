"""Free-text search compiler.

Expands one search term into OR-joined LIKE predicates over every field
carrying a search pattern. The bound value of each branch is the field's
pattern with its `*` replaced by the term, so `%*%` means "contains" and
`*%` means "starts with". Relation fields with a search tag recurse into the
related entity's own searchable fields.
"""

from typing import Any, List, Optional, Sequence, Tuple

from qapisql.constants import SEARCH_PLACEHOLDER, RelationKind
from qapisql.exceptions import InvalidSchemaError
from qapisql.schema import EntitySchema, FieldMeta
from qapisql.types import Args, Fragment
from qapisql.utils import join_conditions

from .base import BaseCompiler
from .utils import relation_subquery

__all__ = (
    "SearchCompiler",
    "search_compiler",
)


class SearchCompiler(BaseCompiler):
    """Compile a free-text term into a WHERE fragment."""

    def compile(self, term: str, entity: Any, table: Optional[str] = None) -> Fragment:
        """Compile `term` against every searchable field reachable from `entity`.

        Returns:
            (LIKE predicates, bound arguments); several predicates are OR-joined
            inside parentheses. ("", []) for an empty term or an entity without
            searchable fields

        Raises:
            InvalidSchemaError: On a relation cycle or a path deeper than MAX_RELATION_DEPTH
        """
        where, args, _ = self.compile_with_paths(term, entity, table)
        return where, args

    def compile_with_paths(self, term: str, entity: Any, table: Optional[str] = None) -> Tuple[str, Args, List[str]]:
        if not term:
            return "", [], []
        schema = self.describe(entity)
        paths: List[str] = []
        branches, args = self._branches(schema, table or schema.table_name, term, (schema.entity,), "", paths)
        where = join_conditions(branches, "OR")
        if len(branches) > 1:
            where = f"({where})"
        if where:
            self.logger.fragment("search", where, args)
        return where, args, paths

    def _branches(
        self,
        schema: EntitySchema,
        table: str,
        term: str,
        chain: Sequence[type],
        prefix: Optional[str],
        paths: List[str],
    ) -> Tuple[List[str], Args]:
        branches: List[str] = []
        args: Args = []
        for field in schema.searchable_fields:
            if not field.is_relation:
                branches.append(f"{self.translations.resolve_column(field, table)} LIKE ?")
                args.append(field.search.replace(SEARCH_PLACEHOLDER, term, 1))
                continue
            sub_branches, sub_args = self._relation(field, table, term, chain, prefix, paths)
            branches.extend(sub_branches)
            args.extend(sub_args)
        return branches, args

    def _relation(
        self,
        field: FieldMeta,
        table: str,
        term: str,
        chain: Sequence[type],
        prefix: Optional[str],
        paths: List[str],
    ) -> Tuple[List[str], Args]:
        related = self.related(field)
        if related.entity in chain:
            raise InvalidSchemaError(
                "cyclic searchable relation",
                field=field.name,
                chain=" -> ".join(e.__name__ for e in chain + (related.entity,)),
            )
        self.check_depth(len(chain), field.name)
        chain = tuple(chain) + (related.entity,)

        if prefix is not None and self.registry is not None:
            rel_path = prefix + field.name
            config = self.registry.get(rel_path)
            if config is not None:
                # parent joins precede the joins of nested paths
                position = len(paths)
                branches, args = self._branches(related, config.table, term, chain, rel_path + ".", paths)
                if branches and rel_path not in paths:
                    paths.insert(position, rel_path)
                return branches, args

        branches, args = self._branches(related, related.table_name, term, chain, None, paths)
        if not branches:
            return [], []
        inner = " OR ".join(branches)
        if field.relation is RelationKind.POLYMORPHIC and len(branches) > 1:
            inner = f"( {inner} )"
        return [relation_subquery(field, table, related.table_name, inner, self.dialect)], args


search_compiler = SearchCompiler()
