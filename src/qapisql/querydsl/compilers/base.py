"""Base compiler interface.

Holds the collaborators every SQL fragment compiler needs (schema cache, join
registry, target language, dialect) and the abstract `compile` contract.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from qapisql.exceptions import InvalidSchemaError
from qapisql.introspection import SchemaCache, schema_cache
from qapisql.joins import JoinRegistry
from qapisql.logger import Logger
from qapisql.schema import EntitySchema, FieldMeta
from qapisql.settings import settings
from qapisql.utils import column, quote_identifier

from .translations import TranslationResolver

__all__ = ("BaseCompiler",)


class BaseCompiler(ABC):
    """Abstract base class for SQL fragment compilers.

    Every argument defaults to the process-wide value from settings or the
    shared schema cache.
    """

    def __init__(
        self,
        registry: Optional[JoinRegistry] = None,
        cache: Optional[SchemaCache] = None,
        language: Optional[str] = None,
        dialect: Optional[str] = None,
        max_depth: Optional[int] = None,
    ) -> None:
        self.registry = registry
        self.cache = cache or schema_cache
        self.language = language
        self.dialect = dialect
        self.max_depth = max_depth if max_depth is not None else settings.MAX_RELATION_DEPTH
        self.translations = TranslationResolver(language, dialect)
        self.logger = Logger(self.__class__.__name__)

    @abstractmethod
    def compile(self, *args: Any, **kwargs: Any) -> Any:
        """Compile request input into a SQL fragment for one root entity."""
        raise NotImplementedError

    def describe(self, entity: Any) -> EntitySchema:
        return self.cache.describe(entity)

    def related(self, field: FieldMeta) -> EntitySchema:
        """Schema of a relation field's target entity."""
        if field.target is None:
            raise InvalidSchemaError("relation has no target entity", field=field.name)
        return self.describe(field.target)

    def check_depth(self, depth: int, path: str) -> None:
        if depth > self.max_depth:
            raise InvalidSchemaError("relation path too deep", path=path, max_depth=self.max_depth)

    def ref(self, field: FieldMeta, table: Optional[str]) -> str:
        """Quoted column of `field`, qualified by `table` unless it is None."""
        if table is None:
            return quote_identifier(field.column, self.dialect)
        return column(table, field.column, self.dialect)
