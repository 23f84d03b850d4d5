"""Entity models shared by the test suite."""

from datetime import datetime
from typing import Annotated, List, Optional

from qapisql import JSON, Tag, Translations, UInt
from qapisql.introspection import Entity


class Inner2(Entity):
    ID: UInt = 0
    Name: Annotated[str, Tag(search="*%")] = ""
    Age: UInt = 0


class Inner1(Entity):
    ID: UInt = 0
    HolderID: UInt = 0
    HolderType: str = ""
    Name: Annotated[str, Tag(search="%*")] = ""
    Inner2FID: UInt = 0
    Inner2F: Optional[Inner2] = None
    Inner2P: Annotated[Optional[Inner2], Tag(polymorphic="Holder", search="*")] = None


class Sample(Entity):
    ID: UInt = 0
    Name: Annotated[str, Tag(search="%*%")] = ""
    InnerFID: UInt = 0
    InnerF: Annotated[Optional[Inner1], Tag(search="*")] = None


class SamplePoly(Entity):
    ID: UInt = 0
    Name: Annotated[str, Tag(search="*")] = ""
    InnerF: Annotated[Optional[Inner1], Tag(polymorphic="Holder", search="*")] = None


class SampleM2M(Entity):
    ID: UInt = 0
    Name: str = ""
    Inner2s: Annotated[List[Inner2], Tag(many2many="SampleM2MInner2", search="*")] = []


class SampleName(Entity):
    ID: UInt = 0
    Name: Annotated[str, Tag(search="*%")] = ""
    Age: UInt = 0

    @classmethod
    def table_name(cls) -> str:
        return "Sample"


class Product(Entity):
    ID: UInt = 0
    Title: Annotated[Translations, Tag(search="%*%")] = {}
    Meta: JSON = {}
    Price: float = 0.0
    Stock: int = 0
    Active: bool = True
    CreatedAt: Optional[datetime] = None
    Code: Annotated[str, Tag(column="product_code")] = ""
