"""Tests for the free-text search compiler."""

from typing import Annotated, Optional

import pytest

from entities import Inner2, Product, Sample, SampleM2M, SamplePoly
from qapisql import Tag
from qapisql.exceptions import InvalidSchemaError
from qapisql.introspection import Entity
from qapisql.querydsl.compilers import SearchCompiler, search_compiler


class Node(Entity):
    ID: int = 0
    Name: Annotated[str, Tag(search="%*%")] = ""
    Parent: Annotated[Optional["Node"], Tag(search="*")] = None


class TestScalarFields:
    def test_single_field(self):
        where, args = search_compiler.compile("osman", Inner2)
        assert where == "`Inner2`.`Name` LIKE ?"
        assert args == ["osman%"]

    def test_empty_term(self):
        assert search_compiler.compile("", Sample) == ("", [])

    def test_untagged_fields_do_not_participate(self):
        where, args = search_compiler.compile("x", SampleM2M)
        assert "`SampleM2M`.`Name`" not in where
        assert args == ["x%"]

    def test_pattern_replaces_first_placeholder_only(self):
        where, args = search_compiler.compile("a*b", Inner2)
        assert args == ["a*b%"]

    def test_several_branches_are_grouped(self):
        where, _ = search_compiler.compile("q", SamplePoly)
        assert where.startswith("(") and where.endswith(")")
        assert where.count(" OR ") == 2


class TestRelations:
    def test_direct_and_polymorphic_nesting(self):
        where, args = search_compiler.compile("osman", Sample)
        assert where == (
            "(`Sample`.`Name` LIKE ? OR `Sample`.`InnerFID` IN ( SELECT `Inner1`.`ID` FROM `Inner1` WHERE ( "
            "`Inner1`.`Name` LIKE ? OR `Inner1`.`ID` IN ( SELECT `Inner2`.`HolderID` FROM `Inner2` WHERE ( "
            "`Inner2`.`Name` LIKE ? AND `Inner2`.`HolderID` = `Inner1`.`ID` AND `Inner2`.`HolderType` = 'Inner1' ) ) ) ))"
        )
        assert args == ["%osman%", "%osman", "osman%"]

    def test_branch_count_matches_reachable_tagged_fields(self):
        where, args = search_compiler.compile("q", Sample)
        assert where.count("LIKE ?") == 3
        assert len(args) == 3

    def test_polymorphic_groups_or_branches(self):
        where, args = search_compiler.compile("q", SamplePoly)
        assert where.startswith(
            "(`SamplePoly`.`Name` LIKE ? OR `SamplePoly`.`ID` IN ( SELECT `Inner1`.`HolderID` FROM `Inner1` WHERE ( ( "
        )
        assert where.endswith(
            " ) AND `Inner1`.`HolderID` = `SamplePoly`.`ID` AND `Inner1`.`HolderType` = 'SamplePoly' ) ))"
        )
        assert args == ["q", "%q", "q%"]

    def test_many_to_many(self):
        where, args = search_compiler.compile("q", SampleM2M)
        assert where == (
            "`SampleM2M`.ID IN ( SELECT `SampleM2MID` FROM `SampleM2MInner2` WHERE ( "
            "`Inner2ID` IN ( SELECT ID FROM `Inner2` WHERE ( `Inner2`.`Name` LIKE ? ) ) ) )"
        )
        assert args == ["q%"]

    def test_cycle_is_rejected(self):
        with pytest.raises(InvalidSchemaError, match="cyclic"):
            search_compiler.compile("x", Node)

    def test_registry_path(self, inner_registry):
        compiler = SearchCompiler(registry=inner_registry)
        where, args, paths = compiler.compile_with_paths("q", Sample)
        assert where.startswith("(`Sample`.`Name` LIKE ? OR `Inner1`.`Name` LIKE ? OR `Inner1`.`ID` IN (")
        assert args == ["%q%", "%q", "q%"]
        assert paths == ["InnerF"]


class TestTranslations:
    def test_translated_field_uses_language(self):
        compiler = SearchCompiler(language="en-US")
        where, args = compiler.compile("book", Product)
        assert where == "JSON_UNQUOTE(JSON_EXTRACT(`Product`.`Title`, '$.\"en-US\"')) LIKE ?"
        assert args == ["%book%"]

    def test_all_languages_searches_raw_column(self):
        compiler = SearchCompiler(language="all")
        where, _ = compiler.compile("book", Product)
        assert where == "`Product`.`Title` LIKE ?"
