"""Schema introspection for entity types.

`describe(entity)` turns a pydantic entity model into an `EntitySchema`:
its table name and, per field, the column name, column kind, relation
classification, search pattern and translation flag. Results are built once
per type and memoized for the process lifetime.
"""

import threading
import types as _pytypes
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Tuple, Union, get_args, get_origin

from pydantic import BaseModel
from pydantic.errors import PydanticUndefinedAnnotation

from .constants import SEARCH_PLACEHOLDER, ColumnKind, RelationKind
from .exceptions import InvalidSchemaError
from .logger import Logger
from .schema import EntitySchema, FieldMeta
from .types import JSON_MARKER, TRANSLATIONS_MARKER, UINT_MARKER, Tag

__all__ = ("Entity", "SchemaCache", "schema_cache", "describe", "table_name_of")

_LIST_ORIGINS = (list, tuple, set, frozenset)
_UNION_ORIGINS = (Union, _pytypes.UnionType)


class Entity(BaseModel):
    """Optional base class for entities.

    Override `table_name` when the table is not named after the class.
    """

    @classmethod
    def table_name(cls) -> str:
        return cls.__name__


def table_name_of(entity: type) -> str:
    """Table name of an entity: its `table_name()` override or the class name."""
    override = getattr(entity, "table_name", None)
    if callable(override):
        return override()
    return entity.__name__


def _unwrap(annotation: Any) -> Tuple[Any, List[Any], bool]:
    """Peel Annotated/Optional/List wrappers.

    Returns:
        (base type, collected Annotated metadata, whether a collection was peeled)
    """
    markers: List[Any] = []
    is_list = False
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            base, *meta = get_args(annotation)
            markers.extend(meta)
            annotation = base
            continue
        if origin in _UNION_ORIGINS:
            args = [a for a in get_args(annotation) if a is not type(None)]
            if len(args) != 1:
                break
            annotation = args[0]
            continue
        if origin in _LIST_ORIGINS:
            args = get_args(annotation)
            if not args:
                break
            annotation = args[0]
            is_list = True
            continue
        break
    return annotation, markers, is_list


def _is_entity(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, BaseModel)


def _column_kind(base: Any, markers: List[Any]) -> Optional[ColumnKind]:
    if any(m is JSON_MARKER or m is TRANSLATIONS_MARKER for m in markers):
        return ColumnKind.JSON
    if any(m is UINT_MARKER for m in markers):
        return ColumnKind.UINT
    if not isinstance(base, type):
        if get_origin(base) is dict:
            return ColumnKind.JSON
        return None
    # bool before int: bool is an int subclass
    if issubclass(base, bool):
        return ColumnKind.BOOL
    if issubclass(base, Enum):
        return ColumnKind.INT if issubclass(base, int) else ColumnKind.STRING
    if issubclass(base, int):
        return ColumnKind.INT
    if issubclass(base, (float, Decimal)):
        return ColumnKind.FLOAT
    if issubclass(base, str):
        return ColumnKind.STRING
    if issubclass(base, (datetime, date)):
        return ColumnKind.TIME
    if issubclass(base, dict):
        return ColumnKind.JSON
    return None


def _field_meta(entity: type, name: str, annotation: Any, metadata: List[Any]) -> FieldMeta:
    base, markers, is_list = _unwrap(annotation)
    markers = list(metadata) + markers
    tags = [m for m in markers if isinstance(m, Tag)]
    tag = tags[0] if tags else Tag()
    translated = any(m is TRANSLATIONS_MARKER for m in markers)

    if tag.polymorphic and tag.many2many:
        raise InvalidSchemaError(
            "polymorphic and many2many tags are mutually exclusive", entity=entity.__name__, field=name
        )
    if tag.search is not None and tag.search.count(SEARCH_PLACEHOLDER) != 1:
        raise InvalidSchemaError(
            "search pattern must contain exactly one '*'", entity=entity.__name__, field=name, search=tag.search
        )

    if _is_entity(base):
        if translated:
            raise InvalidSchemaError(
                "relation fields can't be translated", entity=entity.__name__, field=name
            )
        if tag.polymorphic:
            relation = RelationKind.POLYMORPHIC
        elif tag.many2many:
            relation = RelationKind.MANY2MANY
        else:
            relation = RelationKind.DIRECT
        return FieldMeta(
            name=name,
            column=tag.column or name,
            kind=None,
            relation=relation,
            target=base,
            target_table=table_name_of(base),
            is_list=is_list,
            search=tag.search,
            polymorphic=tag.polymorphic,
            many2many=tag.many2many,
            foreign_key=tag.foreign_key,
            join=tag.join,
        )

    if tag.polymorphic or tag.many2many or tag.join:
        raise InvalidSchemaError(
            "relation tags need an entity-typed field", entity=entity.__name__, field=name
        )
    return FieldMeta(
        name=name,
        column=tag.column or name,
        kind=_column_kind(base, markers),
        translated=translated,
        search=tag.search,
    )


def build_schema(entity: type) -> EntitySchema:
    """Introspect `entity` without caching.

    Raises:
        InvalidSchemaError: If the type is not a pydantic model or its tags are malformed
    """
    if not _is_entity(entity):
        raise InvalidSchemaError("Entity must be a pydantic model", entity=getattr(entity, "__name__", repr(entity)))
    if not entity.__pydantic_complete__:
        try:
            entity.model_rebuild()
        except PydanticUndefinedAnnotation as e:
            raise InvalidSchemaError(f"Unresolved annotation: {e}", entity=entity.__name__) from e
    fields = tuple(
        _field_meta(entity, name, info.annotation, info.metadata) for name, info in entity.model_fields.items()
    )
    return EntitySchema(entity=entity, table_name=table_name_of(entity), fields=fields)


class SchemaCache:
    """Process-wide memo of `EntitySchema` per entity type.

    Reads never lock. A miss builds the schema outside the lock and publishes
    it with a check-then-set under the lock, so concurrent first lookups may
    build twice but always observe one stored schema.
    """

    def __init__(self) -> None:
        self._schemas: Dict[type, EntitySchema] = {}
        self._lock = threading.Lock()
        self.logger = Logger(self.__class__.__name__)

    def describe(self, entity: Any) -> EntitySchema:
        if not isinstance(entity, type):
            entity = type(entity)
        schema = self._schemas.get(entity)
        if schema is not None:
            return schema
        built = build_schema(entity)
        with self._lock:
            schema = self._schemas.setdefault(entity, built)
        if schema is built:
            self.logger.debug("Schema cached: entity=%s table=%s fields=%d", entity.__name__, built.table_name, len(built.fields))
        return schema

    def clear(self) -> None:
        with self._lock:
            self._schemas.clear()

    def __contains__(self, entity: type) -> bool:
        return entity in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)


schema_cache = SchemaCache()


def describe(entity: Any) -> EntitySchema:
    """Describe `entity` through the process-wide cache."""
    return schema_cache.describe(entity)
