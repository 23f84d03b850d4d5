"""
Query engine orchestrating the fragment compilers.

This module provides the `QueryCompiler`, which turns one parsed `QuerySpec`
into a `CompiledQuery`: WHERE, ORDER BY and SELECT fragments, the JOINs they
need and the positional arguments, plus helpers assembling full SELECT and
COUNT statements.
"""

from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .introspection import SchemaCache, schema_cache
from .joins import JoinRegistry
from .logger import Logger
from .querydsl.compilers import FilterCompiler, SearchCompiler, SortCompiler, TranslationResolver
from .schema import QuerySpec
from .settings import settings
from .utils import column, quote_identifier

__all__ = ("CompiledQuery", "QueryCompiler")

# MySQL's documented way to express OFFSET without a LIMIT
_NO_LIMIT = 18446744073709551615


class CompiledQuery(BaseModel):
    """SQL fragments and arguments produced for one `QuerySpec`.

    `args` holds the WHERE arguments in placeholder order; `statement()` and
    `count_statement()` append paging arguments as needed.
    """

    model_config = ConfigDict(frozen=True)

    table: str
    where: str = ""
    args: List[Any] = Field(default_factory=list)
    order_by: str = ""
    select: List[str] = Field(default_factory=list)
    joins: List[str] = Field(default_factory=list)
    relationship_paths: List[str] = Field(default_factory=list)
    preloads: List[str] = Field(default_factory=list)
    offset: int = -1
    limit: int = -1
    dialect: Optional[str] = None

    def _from(self) -> str:
        sql = f"FROM {quote_identifier(self.table, self.dialect)}"
        if self.joins:
            sql += " " + " ".join(self.joins)
        if self.where:
            sql += f" WHERE {self.where}"
        return sql

    def statement(self) -> Tuple[str, List[Any]]:
        """Assemble `SELECT ... FROM ... [JOIN ...] [WHERE ...] [ORDER BY ...] [LIMIT ? [OFFSET ?]]`."""
        if self.select:
            projection = ", ".join(self.select)
        else:
            projection = f"{quote_identifier(self.table, self.dialect)}.*" if self.joins else "*"
        sql = f"SELECT {projection} {self._from()}"
        args = list(self.args)
        if self.order_by:
            sql += f" ORDER BY {self.order_by}"
        if self.limit > 0 or self.offset > 0:
            sql += " LIMIT ?"
            args.append(self.limit if self.limit > 0 else _NO_LIMIT)
            if self.offset > 0:
                sql += " OFFSET ?"
                args.append(self.offset)
        return sql, args

    def count_statement(self) -> Tuple[str, List[Any]]:
        """Assemble the matching row count, ignoring order and paging."""
        if self.joins:
            counted = f"COUNT(DISTINCT {column(self.table, settings.PRIMARY_KEY_COLUMN, self.dialect)})"
        else:
            counted = "COUNT(*)"
        return f"SELECT {counted} {self._from()}", list(self.args)


class QueryCompiler:
    """High-level compiler for parsed request queries.

    Combines filter, search, sort and projection compilation for one root
    entity and collects the JOINs required by registry-resolved paths.

    Attributes:
        registry: Optional join registry; registered relation paths are joined instead of sub-queried
        cache: Schema cache used for entity introspection
        language: Target language for translated columns, or the `all` sentinel
        strict_sort: Whether unknown sort paths raise
    """

    def __init__(
        self,
        registry: Optional[JoinRegistry] = None,
        cache: Optional[SchemaCache] = None,
        language: Optional[str] = None,
        strict_sort: Optional[bool] = None,
        dialect: Optional[str] = None,
    ) -> None:
        self.registry = registry
        self.cache = cache or schema_cache
        self.language = language
        self.dialect = dialect
        self.strict_sort = settings.STRICT_SORT if strict_sort is None else strict_sort
        common = dict(registry=registry, cache=self.cache, language=language, dialect=dialect)
        self.filters = FilterCompiler(**common)
        self.search = SearchCompiler(**common)
        self.sorts = SortCompiler(strict=self.strict_sort, **common)
        self.translations = TranslationResolver(language, dialect)
        self.logger = Logger(self.__class__.__name__)

    def compile(self, spec: QuerySpec, entity: Any, table: Optional[str] = None) -> CompiledQuery:
        """Compile a parsed query for `entity`.

        Args:
            spec: Parsed request query
            entity: Root entity type
            table: Root table name; defaults to the entity's table name

        Returns:
            CompiledQuery whose WHERE ANDs the filter group, the search group and
            discriminator clauses of filter joins

        Raises:
            QapiError: Any compilation failure; nothing is partially returned
        """
        schema = self.cache.describe(entity)
        table = table or schema.table_name

        filter_where, filter_args, filter_paths = self.filters.compile_with_paths(spec.filters, entity, table)
        search_where, search_args, search_paths = self.search.compile_with_paths(spec.q, entity, table)

        preloads = list(spec.preloads)
        for preload in preloads:
            schema.field(preload.split(".")[0], path=preload)
        paths: List[str] = []
        for path in filter_paths + search_paths:
            if path not in paths:
                paths.append(path)
        preload_paths = [p for p in preloads if self._joinable(p) and p not in paths]

        joins: List[str] = []
        wheres: List[str] = []
        if paths:
            joins, wheres = self.registry.build_joins(table, paths)
        if preload_paths:
            # preload joins must not narrow the result
            preload_joins, _ = self.registry.build_joins(table, preload_paths, inline_discriminator=True)
            joins.extend(j for j in preload_joins if j not in joins)
        order_by, sort_joins = self.sorts.compile_with_joins(spec.sorts, entity, table, joined=paths)
        for join in sort_joins:
            if join not in joins:
                joins.append(join)

        conditions: List[str] = []
        if filter_where:
            conditions.append(f"({filter_where})")
        if search_where:
            conditions.append(search_where)
        conditions.extend(wheres)
        select: List[str] = []
        if spec.fields or self.language:
            select = self.translations.select_list(schema, spec.fields, table)

        compiled = CompiledQuery(
            table=table,
            where=" AND ".join(conditions),
            args=filter_args + search_args,
            order_by=order_by,
            select=select,
            joins=joins,
            relationship_paths=paths + preload_paths,
            preloads=preloads,
            offset=spec.offset,
            limit=spec.limit,
            dialect=self.dialect,
        )
        self.logger.message(
            "Compiled query for %s: filters=%d search=%s sorts=%d joins=%d",
            schema.entity.__name__,
            len(spec.filters),
            bool(search_where),
            len(spec.sorts),
            len(joins),
        )
        return compiled

    def _joinable(self, path: str) -> bool:
        return self.registry is not None and path in self.registry
