"""Join registry.

Declarative catalog mapping a relation path to its join strategy. Each
strategy renders to a JOIN clause plus, for polymorphic relations, a
discriminator predicate that callers must AND into their WHERE clause.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .constants import JoinType, RelationKind, RelationType
from .exceptions import InvalidJoinConfigError, JoinNotFoundError
from .introspection import SchemaCache, schema_cache
from .schema import FieldMeta, JoinConfig
from .settings import settings
from .utils import column, quote_identifier, quote_literal

__all__ = (
    "JoinRegistry",
    "join_config_for",
    "parse_join_tag",
)

_RELATION_ALIASES = {
    "one2one": RelationType.ONE_TO_ONE,
    "onetoone": RelationType.ONE_TO_ONE,
    "one2many": RelationType.ONE_TO_MANY,
    "onetomany": RelationType.ONE_TO_MANY,
    "many2many": RelationType.MANY_TO_MANY,
    "manytomany": RelationType.MANY_TO_MANY,
    "polymorphic": RelationType.POLYMORPHIC,
}

_KEY_ALIASES = {
    "table": "table",
    "local_key": "local_key",
    "foreign_key": "foreign_key",
    "through": "pivot_table",
    "pivot_table": "pivot_table",
    "pivot_local_key": "pivot_local_key",
    "local_key_through": "pivot_local_key",
    "pivot_foreign_key": "pivot_foreign_key",
    "foreign_key_through": "pivot_foreign_key",
    "id": "polymorphic_id",
    "polymorphic_id": "polymorphic_id",
    "type": "polymorphic_type",
    "polymorphic_type": "polymorphic_type",
    "value": "polymorphic_value",
    "polymorphic_value": "polymorphic_value",
}

_JOIN_TYPE_ALIASES = {
    "INNER": JoinType.INNER,
    "INNER_JOIN": JoinType.INNER,
    "RIGHT": JoinType.RIGHT,
    "RIGHT_JOIN": JoinType.RIGHT,
    "LEFT": JoinType.LEFT,
    "LEFT_JOIN": JoinType.LEFT,
}


def parse_join_tag(tag: str, field: Optional[FieldMeta] = None, base_table: Optional[str] = None) -> JoinConfig:
    """Parse a compact join tag into a `JoinConfig`.

    Supported forms:
        - "one2one,table:Profile,foreign_key:UserID"
        - "one2many,table:Order,foreign_key:UserID"
        - "many2many,table:Tag,through:UserTag,pivot_local_key:UserID,pivot_foreign_key:TagID"
        - "polymorphic,table:Comment,id:CommentableID,type:CommentableType,value:User"

    Missing table and keys are filled from the field's target type and the
    naming conventions in settings.

    Raises:
        InvalidJoinConfigError: On an empty tag or unknown relationship type
    """
    parts = [p.strip() for p in tag.split(",") if p.strip()]
    if not parts:
        raise InvalidJoinConfigError("empty join tag", tag=tag)
    rel_type = _RELATION_ALIASES.get(parts[0].lower())
    if rel_type is None:
        raise InvalidJoinConfigError(f"unsupported relationship type: {parts[0]}", tag=tag)

    values: Dict[str, Any] = {"type": rel_type}
    for part in parts[1:]:
        key, sep, value = part.partition(":")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()
        if key == "join_type":
            values["join_type"] = _JOIN_TYPE_ALIASES.get(value.upper(), JoinType.LEFT)
        elif key in _KEY_ALIASES:
            values[_KEY_ALIASES[key]] = value

    pk = settings.PRIMARY_KEY_COLUMN
    suffix = settings.FOREIGN_KEY_SUFFIX
    if not values.get("table") and field is not None and field.target_table:
        values["table"] = field.target_table
    table = values.get("table", "")
    if rel_type in (RelationType.ONE_TO_ONE, RelationType.ONE_TO_MANY):
        values.setdefault("local_key", pk)
        if field is not None:
            values.setdefault("foreign_key", field.name + suffix)
    elif rel_type is RelationType.MANY_TO_MANY:
        if base_table:
            values.setdefault("pivot_local_key", base_table + suffix)
        if table:
            values.setdefault("pivot_foreign_key", table + suffix)
    else:
        prefix = field.polymorphic if field is not None else None
        if prefix:
            values.setdefault("polymorphic_id", prefix + suffix)
            values.setdefault("polymorphic_type", prefix + settings.POLYMORPHIC_TYPE_SUFFIX)
        if base_table:
            values.setdefault("polymorphic_value", base_table)
    values.setdefault("table", "")
    return JoinConfig(**values)


def join_config_for(field: FieldMeta, base_table: str, join_type: Optional[JoinType] = None) -> JoinConfig:
    """Derive a join strategy from a relation field's own classification.

    Raises:
        InvalidJoinConfigError: If the field is not a relation
    """
    suffix = settings.FOREIGN_KEY_SUFFIX
    extra: Dict[str, Any] = {"join_type": join_type} if join_type else {}
    if field.relation is RelationKind.DIRECT:
        return JoinConfig(
            type=RelationType.ONE_TO_MANY if field.is_list else RelationType.ONE_TO_ONE,
            table=field.target_table,
            local_key=field.fk_column,
            foreign_key=settings.PRIMARY_KEY_COLUMN,
            **extra,
        )
    if field.relation is RelationKind.MANY2MANY:
        return JoinConfig(
            type=RelationType.MANY_TO_MANY,
            table=field.target_table,
            pivot_table=field.many2many,
            pivot_local_key=base_table + suffix,
            pivot_foreign_key=field.target_table + suffix,
            **extra,
        )
    if field.relation is RelationKind.POLYMORPHIC:
        return JoinConfig(
            type=RelationType.POLYMORPHIC,
            table=field.target_table,
            polymorphic_id=field.polymorphic + suffix,
            polymorphic_type=field.polymorphic + settings.POLYMORPHIC_TYPE_SUFFIX,
            polymorphic_value=base_table,
            **extra,
        )
    raise InvalidJoinConfigError("field is not a relation", field=field.name)


class JoinRegistry:
    """Join configurations keyed by relation path (e.g. "Profile", "Order.Items").

    Owned by whoever builds it; instances are not shared implicitly.
    """

    def __init__(self, dialect: Optional[str] = None) -> None:
        self._joins: Dict[str, JoinConfig] = {}
        self.dialect = dialect

    def register(self, path: str, config: JoinConfig) -> None:
        """Add a join configuration for a relation path.

        Raises:
            InvalidJoinConfigError: If the config's key group does not match its type
        """
        self._joins[path] = config.validate_keys(path)

    def get(self, path: str) -> Optional[JoinConfig]:
        return self._joins.get(path)

    def resolve(self, path: str) -> Tuple[Optional[JoinConfig], bool]:
        config = self._joins.get(path)
        return config, config is not None

    def require(self, path: str) -> JoinConfig:
        config = self._joins.get(path)
        if config is None:
            raise JoinNotFoundError("no join configuration found for field path", path=path)
        return config

    def has_joins(self) -> bool:
        return bool(self._joins)

    def paths(self) -> List[str]:
        return list(self._joins)

    def __contains__(self, path: str) -> bool:
        return path in self._joins

    def __len__(self) -> int:
        return len(self._joins)

    # ------------------------------------------------------------------
    # SQL generation
    # ------------------------------------------------------------------

    def generate_join(
        self, base_table: str, config: JoinConfig, inline_discriminator: bool = False
    ) -> Tuple[str, str]:
        """Render one join strategy.

        With `inline_discriminator` a polymorphic type match is ANDed into the
        ON clause instead, so a LEFT JOIN keeps rows without a related row.

        Returns:
            (join clause, where clause); the where clause is empty unless the
            relation is polymorphic and the discriminator is not inlined.
        """
        config.validate_keys()
        if config.type in (RelationType.ONE_TO_ONE, RelationType.ONE_TO_MANY):
            return self._direct_join(base_table, config), ""
        if config.type is RelationType.MANY_TO_MANY:
            return self._many_to_many_join(base_table, config), ""
        join, where = self._polymorphic_join(base_table, config)
        if inline_discriminator:
            return f"{join} AND {where}", ""
        return join, where

    def generate_join_sql(self, path: str, base_table: str) -> Tuple[str, str]:
        """Render the join registered for `path`.

        Raises:
            JoinNotFoundError: If nothing is registered for `path`
        """
        return self.generate_join(base_table, self.require(path))

    def build_joins(
        self, base_table: str, paths: Iterable[str], inline_discriminator: bool = False
    ) -> Tuple[List[str], List[str]]:
        """Render joins for several paths, skipping duplicates.

        Returns:
            (join clauses, discriminator where clauses)
        """
        joins: List[str] = []
        wheres: List[str] = []
        for path in paths:
            join, where = self.generate_join(base_table, self.require(path), inline_discriminator)
            if join and join not in joins:
                joins.append(join)
            if where and where not in wheres:
                wheres.append(where)
        return joins, wheres

    def build_join_query(self, base_query: str, base_table: str, paths: Sequence[str]) -> Tuple[str, List[str]]:
        """Append the joins for `paths` to `base_query`.

        Returns:
            (query with joins, where clauses the caller must AND in)
        """
        joins, wheres = self.build_joins(base_table, paths)
        query = base_query
        if joins:
            query += " " + " ".join(joins)
        return query, wheres

    def _q(self, name: str) -> str:
        return quote_identifier(name, self.dialect)

    def _c(self, table: str, name: str) -> str:
        return column(table, name, self.dialect)

    def _direct_join(self, base_table: str, config: JoinConfig) -> str:
        return (
            f"{config.join_type.value} {self._q(config.table)} ON "
            f"{self._c(base_table, config.local_key)} = {self._c(config.table, config.foreign_key)}"
        )

    def _many_to_many_join(self, base_table: str, config: JoinConfig) -> str:
        pk = settings.PRIMARY_KEY_COLUMN
        return " ".join(
            [
                f"{config.join_type.value} {self._q(config.pivot_table)} ON "
                f"{self._c(base_table, pk)} = {self._c(config.pivot_table, config.pivot_local_key)}",
                f"{config.join_type.value} {self._q(config.table)} ON "
                f"{self._c(config.pivot_table, config.pivot_foreign_key)} = {self._c(config.table, pk)}",
            ]
        )

    def _polymorphic_join(self, base_table: str, config: JoinConfig) -> Tuple[str, str]:
        join = (
            f"{config.join_type.value} {self._q(config.table)} ON "
            f"{self._c(base_table, settings.PRIMARY_KEY_COLUMN)} = {self._c(config.table, config.polymorphic_id)}"
        )
        where = f"{self._c(config.table, config.polymorphic_type)} = {quote_literal(config.polymorphic_value)}"
        return join, where

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def from_entity(
        cls,
        entity: type,
        preloads: Optional[Sequence[str]] = None,
        cache: Optional[SchemaCache] = None,
        dialect: Optional[str] = None,
    ) -> "JoinRegistry":
        """Build a registry for an entity's relations.

        Fields carrying a `join` tag use it; other relation fields fall back to
        their schema classification. With `preloads`, only those relations are
        registered.

        Raises:
            FieldNotFoundError: If a preload names a field the entity lacks
            InvalidJoinConfigError: If a join tag is malformed or a preload is not a relation
        """
        schema = (cache or schema_cache).describe(entity)
        registry = cls(dialect=dialect)
        if preloads:
            fields = [schema.field(p) for p in preloads]
        else:
            fields = [f for f in schema.fields if f.is_relation]
        for field in fields:
            if field.join:
                config = parse_join_tag(field.join, field, schema.table_name)
            else:
                config = join_config_for(field, schema.table_name)
            registry.register(field.name, config)
        return registry

    @classmethod
    def from_preloads(cls, preloads: Sequence[str], dialect: Optional[str] = None) -> "JoinRegistry":
        """Build a convention-only registry: table named after the preload,
        joined on `ID` = `<preload>ID`."""
        registry = cls(dialect=dialect)
        for preload in preloads:
            registry.register(
                preload,
                JoinConfig(
                    type=RelationType.ONE_TO_MANY,
                    table=preload,
                    local_key=settings.PRIMARY_KEY_COLUMN,
                    foreign_key=preload + settings.FOREIGN_KEY_SUFFIX,
                    join_type=JoinType.LEFT,
                ),
            )
        return registry
