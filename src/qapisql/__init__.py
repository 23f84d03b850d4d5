"""
qapisql compiles a small request query language (filters, free-text search,
sorts, projection, preloads) into parameterized SQL fragments for entities
declared as pydantic models.
"""

from .engine import CompiledQuery, QueryCompiler
from .introspection import Entity, SchemaCache, describe, schema_cache
from .joins import JoinRegistry, join_config_for, parse_join_tag
from .querydsl import parse_filter, parse_filters, parse_query, parse_sort, parse_sorts
from .schema import EntitySchema, FieldMeta, Filter, JoinConfig, QuerySpec, Sort
from .types import JSON, Tag, Translations, UInt

__version__ = "0.1.0"

__all__ = [
    "QueryCompiler",
    "CompiledQuery",
    "Entity",
    "SchemaCache",
    "schema_cache",
    "describe",
    "JoinRegistry",
    "join_config_for",
    "parse_join_tag",
    "parse_filter",
    "parse_filters",
    "parse_query",
    "parse_sort",
    "parse_sorts",
    "EntitySchema",
    "FieldMeta",
    "Filter",
    "JoinConfig",
    "QuerySpec",
    "Sort",
    "JSON",
    "Tag",
    "Translations",
    "UInt",
]
