"""Sort compiler.

Resolves sort clauses into ORDER BY expressions (comma-joined, without the
`ORDER BY` keyword). Translated columns sort by one language, JSON sub-paths
by their text, and relation paths by a joined column.
"""

import re
from typing import Any, List, Optional, Sequence, Tuple

from qapisql.exceptions import FieldNotFoundError, InvalidSortError
from qapisql.joins import JoinRegistry, join_config_for
from qapisql.schema import EntitySchema, Sort
from qapisql.settings import settings

from .base import BaseCompiler
from .utils import json_extract

__all__ = (
    "SortCompiler",
    "sort_compiler",
)

_VERBATIM_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


class SortCompiler(BaseCompiler):
    """Compile sort clauses into an ORDER BY fragment.

    In strict mode (the default, see `STRICT_SORT`) an unknown path raises
    FieldNotFoundError; otherwise it is emitted verbatim.
    """

    def __init__(self, *args: Any, strict: Optional[bool] = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.strict = settings.STRICT_SORT if strict is None else strict

    def compile(self, sorts: Sequence[Sort], entity: Any, table: Optional[str] = None) -> str:
        order_by, _ = self.compile_with_joins(sorts, entity, table)
        return order_by

    def compile_with_joins(
        self,
        sorts: Sequence[Sort],
        entity: Any,
        table: Optional[str] = None,
        joined: Sequence[str] = (),
    ) -> Tuple[str, List[str]]:
        """Compile sorts, also returning the JOINs relation sorts need.

        A polymorphic discriminator goes into the ON clause, so a LEFT JOIN
        added for sorting keeps rows without a related row.

        Args:
            joined: Registry paths the caller already joins; no JOIN is emitted for them

        Returns:
            (order by, join clauses)

        Raises:
            FieldNotFoundError: Unknown path in strict mode
            InvalidSortError: Sorting by a relation itself, or an unsafe verbatim path
        """
        schema = self.describe(entity)
        table = table or schema.table_name
        clauses: List[str] = []
        joins: List[str] = []
        for sort in sorts:
            direction = sort.direction.value
            clause_joins: List[str] = []
            try:
                expr = self._expression(schema, table, sort, sort.segments, "", joined, clause_joins)
            except FieldNotFoundError:
                if self.strict:
                    raise
                if not _VERBATIM_RE.match(sort.name):
                    raise InvalidSortError("invalid sort path", sort=sort.name)
                expr = sort.name
                clause_joins = []
            for join in clause_joins:
                if join not in joins:
                    joins.append(join)
            clauses.append(f"{expr} {direction}")
        order_by = ", ".join(clauses)
        if order_by:
            self.logger.fragment("sort", order_by, [])
        return order_by, joins

    def _expression(
        self,
        schema: EntitySchema,
        table: str,
        sort: Sort,
        segments: List[str],
        prefix: str,
        joined: Sequence[str],
        joins: List[str],
    ) -> str:
        self.check_depth(len(prefix.split(".")) - 1, sort.name)
        head, rest = segments[0], segments[1:]
        field = schema.field(head, path=sort.name)

        if not rest:
            if field.is_relation:
                raise InvalidSortError("cannot sort by a relation", sort=sort.name)
            return self.translations.sort_expression(field, table)

        if not field.is_relation:
            ref = self.ref(field, table)
            if field.is_json:
                return json_extract(ref, ".".join(rest))
            if field.translated and len(rest) == 1:
                return self.translations.extract(ref, rest[0])
            raise FieldNotFoundError(
                "Can't find field", entity=schema.entity.__name__, field=".".join(rest), path=sort.name
            )

        related = self.related(field)
        rel_path = prefix + head
        registry = self.registry or JoinRegistry(self.dialect)
        config = registry.get(rel_path) or join_config_for(field, table)
        if rel_path not in joined:
            join, _ = registry.generate_join(table, config, inline_discriminator=True)
            if join not in joins:
                joins.append(join)
        return self._expression(related, config.table, sort, rest, rel_path + ".", joined, joins)


sort_compiler = SortCompiler()
