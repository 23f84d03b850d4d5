"""Type aliases and field markers for qapisql entities.

Entities are declared as pydantic models. Per-field DSL declarations are
attached with `typing.Annotated`:

    class User(Entity):
        ID: UInt
        Name: Annotated[str, Tag(search="%*%")]
        Title: Translations
        Roles: Annotated[List[Role], Tag(many2many="UserRole", search="*")]
"""

from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Optional, Tuple

from pydantic import Field


@dataclass(frozen=True)
class Tag:
    """Per-field declarations consumed by the schema introspector.

    Attributes:
        column: Explicit column name override
        polymorphic: Discriminator prefix (`Holder` -> `HolderID`/`HolderType`)
        many2many: Pivot table name
        search: LIKE template with one `*` placeholder, e.g. `%*%`
        join: Compact join tag, e.g. `one2one,table:Profile,foreign_key:UserID`
        foreign_key: Column on the owning table pointing at a direct relation
    """

    column: Optional[str] = None
    polymorphic: Optional[str] = None
    many2many: Optional[str] = None
    search: Optional[str] = None
    join: Optional[str] = None
    foreign_key: Optional[str] = None


class _Marker:
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


TRANSLATIONS_MARKER = _Marker("translations")
JSON_MARKER = _Marker("json")
UINT_MARKER = _Marker("uint")

# Column storing a map of language code -> localized string
Translations = Annotated[Dict[str, str], TRANSLATIONS_MARKER]

# Free-form JSON column; `field.sub` paths address keys inside it
JSON = Annotated[Dict[str, Any], JSON_MARKER]

UInt = Annotated[int, Field(ge=0), UINT_MARKER]

# Bound positional arguments, ordered like the `?` placeholders
Args = List[Any]

# (sql fragment, bound arguments)
Fragment = Tuple[str, Args]
