"""Tests for entity schema introspection and the schema cache."""

import threading
from typing import Annotated, List, Optional

import pytest
from pydantic import BaseModel

from entities import Inner1, Product, Sample, SampleM2M, SampleName, SamplePoly
from qapisql import Tag
from qapisql.constants import ColumnKind, RelationKind
from qapisql.exceptions import FieldNotFoundError, InvalidSchemaError
from qapisql.introspection import Entity, SchemaCache, build_schema, describe, table_name_of


class TreeNode(Entity):
    ID: int = 0
    Parent: Optional["TreeNode"] = None


class TestTableName:
    def test_class_name(self):
        assert table_name_of(Sample) == "Sample"

    def test_override(self):
        assert table_name_of(SampleName) == "Sample"

    def test_plain_pydantic_model(self):
        class Plain(BaseModel):
            ID: int = 0

        assert describe(Plain).table_name == "Plain"


class TestFieldMeta:
    def test_scalar_kinds(self):
        schema = describe(Product)
        assert schema.field("ID").kind is ColumnKind.UINT
        assert schema.field("Price").kind is ColumnKind.FLOAT
        assert schema.field("Stock").kind is ColumnKind.INT
        assert schema.field("Active").kind is ColumnKind.BOOL
        assert schema.field("CreatedAt").kind is ColumnKind.TIME
        assert schema.field("Meta").is_json

    def test_translations(self):
        title = describe(Product).field("Title")
        assert title.translated
        assert not title.is_json
        assert title.search == "%*%"

    def test_column_override(self):
        assert describe(Product).field("Code").column == "product_code"

    def test_direct_relation(self):
        inner = describe(Sample).field("InnerF")
        assert inner.relation is RelationKind.DIRECT
        assert inner.target is Inner1
        assert inner.target_table == "Inner1"
        assert inner.fk_column == "InnerFID"
        assert inner.kind is None

    def test_polymorphic_relation(self):
        inner = describe(SamplePoly).field("InnerF")
        assert inner.relation is RelationKind.POLYMORPHIC
        assert inner.polymorphic == "Holder"

    def test_many_to_many_relation(self):
        inner = describe(SampleM2M).field("Inner2s")
        assert inner.relation is RelationKind.MANY2MANY
        assert inner.many2many == "SampleM2MInner2"
        assert inner.is_list

    def test_searchable_fields(self):
        names = [f.name for f in describe(Sample).searchable_fields]
        assert names == ["Name", "InnerF"]

    def test_self_reference(self):
        meta = describe(TreeNode).field("Parent")
        assert meta.relation is RelationKind.DIRECT
        assert meta.target is TreeNode
        assert meta.target_table == "TreeNode"

    def test_missing_field(self):
        with pytest.raises(FieldNotFoundError) as exc:
            describe(Sample).field("Nope")
        assert exc.value.details == {"entity": "Sample", "field": "Nope", "path": "Nope"}


class TestInvalidSchemas:
    def test_polymorphic_and_many2many(self):
        class Bad(Entity):
            Other: Annotated[Optional[Inner1], Tag(polymorphic="Holder", many2many="BadInner1")] = None

        with pytest.raises(InvalidSchemaError, match="mutually exclusive"):
            build_schema(Bad)

    @pytest.mark.parametrize("pattern", ["%", "*%*"])
    def test_search_pattern_needs_one_placeholder(self, pattern):
        class Bad(Entity):
            Name: Annotated[str, Tag(search=pattern)] = ""

        with pytest.raises(InvalidSchemaError):
            build_schema(Bad)

    def test_relation_tag_on_scalar(self):
        class Bad(Entity):
            Name: Annotated[str, Tag(many2many="Pivot")] = ""

        with pytest.raises(InvalidSchemaError):
            build_schema(Bad)

    def test_not_a_model(self):
        with pytest.raises(InvalidSchemaError):
            build_schema(dict)

    def test_unresolved_forward_reference(self):
        class Dangling(Entity):
            Other: Optional["Missing"] = None  # noqa: F821

        with pytest.raises(InvalidSchemaError, match="Unresolved annotation"):
            build_schema(Dangling)


class TestSchemaCache:
    def test_memoizes(self, cache):
        first = cache.describe(Sample)
        assert cache.describe(Sample) is first
        assert Sample in cache
        assert len(cache) == 1

    def test_instances_resolve_to_their_type(self, cache):
        assert cache.describe(Sample()) is cache.describe(Sample)

    def test_clear(self, cache):
        cache.describe(Sample)
        cache.clear()
        assert len(cache) == 0

    def test_concurrent_population_stores_one_schema(self, cache):
        results: List[object] = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(cache.describe(Product))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len({id(r) for r in results}) == 1
