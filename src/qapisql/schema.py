"""Pydantic schemas for queries, joins and entity metadata."""

import re
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    IN_SEPARATORS,
    OPERATOR_MAP,
    ColumnKind,
    Direction,
    JoinType,
    Operation,
    RelationKind,
    RelationType,
)
from .exceptions import FieldNotFoundError, InvalidJoinConfigError
from .settings import settings
from .utils import split_in_values

_SEGMENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")

_OPERATION_TOKENS = {operation: token for token, operation in OPERATOR_MAP.items()}


# ---------------------------------------------------------------------------
# Request side
# ---------------------------------------------------------------------------


class Filter(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Dotted field path, e.g. Profile.Bio.")
    operation: Operation = Field(..., description="Comparison operation.")
    value: str = Field(..., min_length=1, description="Raw, untyped filter value.")

    @field_validator("name")
    @classmethod
    def check_segments(cls, v: str) -> str:
        if not v or not all(_SEGMENT_RE.match(seg) for seg in v.split(".")):
            raise ValueError(f"invalid filter path: {v!r}")
        return v

    @property
    def segments(self) -> List[str]:
        return self.name.split(".")

    @property
    def is_list(self) -> bool:
        return self.operation in IN_SEPARATORS

    def raw_values(self) -> List[str]:
        """Values to convert and bind: IN lists split on their separator."""
        if self.is_list:
            return split_in_values(self.value, self.operation)
        return [self.value]

    def __str__(self) -> str:
        return f"{self.name}{_OPERATION_TOKENS[self.operation]}{self.value}"


class Sort(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Dotted path, optionally into a JSON column.")
    direction: Direction = Direction.ASC

    @property
    def segments(self) -> List[str]:
        return self.name.split(".")

    def __str__(self) -> str:
        return f"{self.name} {self.direction.value.lower()}"


class QuerySpec(BaseModel):
    """Parsed request query. Built once per request and read-only afterwards."""

    model_config = ConfigDict(frozen=True)

    q: str = Field("", description="Free-text search term.")
    filters: Tuple[Filter, ...] = ()
    sorts: Tuple[Sort, ...] = ()
    fields: Tuple[str, ...] = ()
    preloads: Tuple[str, ...] = ()
    offset: int = -1
    limit: int = -1

    @property
    def is_paginated(self) -> bool:
        return self.offset > 0 or self.limit > 0

    def with_owner(self, owner_id: int, name: str = "OwnerID") -> "QuerySpec":
        """Return a copy restricted to rows owned by `owner_id`."""
        owner = Filter(name=name, operation=Operation.EQ, value=str(owner_id))
        return self.model_copy(update={"filters": self.filters + (owner,)})


# ---------------------------------------------------------------------------
# Joins
# ---------------------------------------------------------------------------


_KEY_GROUPS = {
    "direct": ("local_key", "foreign_key"),
    "pivot": ("pivot_table", "pivot_local_key", "pivot_foreign_key"),
    "polymorphic": ("polymorphic_id", "polymorphic_type", "polymorphic_value"),
}


def _default_join_type() -> JoinType:
    return JoinType(settings.DEFAULT_JOIN_TYPE)


class JoinConfig(BaseModel):
    """How to join a relation path's table.

    Exactly one key group is populated, matching `type`:
    - one_to_one / one_to_many: local_key, foreign_key
    - many_to_many: pivot_table, pivot_local_key, pivot_foreign_key
    - polymorphic: polymorphic_id, polymorphic_type, polymorphic_value
    """

    model_config = ConfigDict(frozen=True)

    type: RelationType
    table: str
    join_type: JoinType = Field(default_factory=_default_join_type)

    local_key: Optional[str] = None
    foreign_key: Optional[str] = None

    pivot_table: Optional[str] = None
    pivot_local_key: Optional[str] = None
    pivot_foreign_key: Optional[str] = None

    polymorphic_id: Optional[str] = None
    polymorphic_type: Optional[str] = None
    polymorphic_value: Optional[str] = None

    @property
    def group(self) -> str:
        if self.type in (RelationType.ONE_TO_ONE, RelationType.ONE_TO_MANY):
            return "direct"
        if self.type is RelationType.MANY_TO_MANY:
            return "pivot"
        return "polymorphic"

    def validate_keys(self, path: str = "") -> "JoinConfig":
        """Check that the key group for `type` is complete and the others are empty.

        Raises:
            InvalidJoinConfigError: On a missing required key or a stray key
        """
        if not self.table:
            raise InvalidJoinConfigError("table is required", path=path)
        group = self.group
        required = _KEY_GROUPS[group]
        missing = [k for k in required if not getattr(self, k)]
        if missing:
            raise InvalidJoinConfigError(
                f"{', '.join(required)} are required for {self.type.value} relationships",
                path=path,
                missing=missing,
            )
        stray = [k for g, keys in _KEY_GROUPS.items() if g != group for k in keys if getattr(self, k)]
        if stray:
            raise InvalidJoinConfigError(
                f"keys not valid for {self.type.value} relationships", path=path, keys=stray
            )
        return self


# ---------------------------------------------------------------------------
# Entity metadata
# ---------------------------------------------------------------------------


class FieldMeta(BaseModel):
    """Introspected description of one entity field."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    column: str
    kind: Optional[ColumnKind] = ColumnKind.STRING
    relation: RelationKind = RelationKind.NONE
    target: Optional[type] = None
    target_table: Optional[str] = None
    is_list: bool = False
    translated: bool = False
    search: Optional[str] = None
    polymorphic: Optional[str] = None
    many2many: Optional[str] = None
    foreign_key: Optional[str] = None
    join: Optional[str] = None

    @property
    def is_relation(self) -> bool:
        return self.relation is not RelationKind.NONE

    @property
    def is_json(self) -> bool:
        return self.kind is ColumnKind.JSON and not self.translated

    @property
    def searchable(self) -> bool:
        return self.search is not None

    @property
    def fk_column(self) -> str:
        """Column on the owning table referencing a direct relation."""
        return self.foreign_key or f"{self.name}{settings.FOREIGN_KEY_SUFFIX}"


class EntitySchema(BaseModel):
    """Table name and field metadata of one entity type."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    entity: type
    table_name: str
    fields: Tuple[FieldMeta, ...] = ()

    def get(self, name: str) -> Optional[FieldMeta]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def field(self, name: str, path: Optional[str] = None) -> FieldMeta:
        """Return the field named `name`.

        Raises:
            FieldNotFoundError: If the entity has no such field
        """
        meta = self.get(name)
        if meta is None:
            raise FieldNotFoundError(
                "Can't find field", entity=self.entity.__name__, field=name, path=path or name
            )
        return meta

    @property
    def searchable_fields(self) -> Tuple[FieldMeta, ...]:
        return tuple(f for f in self.fields if f.searchable)

    @property
    def column_fields(self) -> Tuple[FieldMeta, ...]:
        """Fields stored as columns of this table (relations excluded)."""
        return tuple(f for f in self.fields if not f.is_relation)
