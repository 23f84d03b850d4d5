"""Tests for the query engine."""

import pytest

from entities import Product, Sample, SampleName, SamplePoly
from qapisql import QueryCompiler, parse_query
from qapisql.exceptions import FieldNotFoundError, TypeConversionError
from qapisql.schema import QuerySpec


class TestCompile:
    def test_filters_only(self):
        compiled = QueryCompiler().compile(parse_query({"_filter": "Name=Osman"}), Sample)
        assert compiled.where == "(`Sample`.`Name` = ?)"
        assert compiled.args == ["Osman"]
        assert compiled.joins == []

    def test_filters_and_search(self):
        compiled = QueryCompiler().compile(parse_query({"_filter": "ID>3", "_q": "os"}), SampleName)
        assert compiled.where == "(`Sample`.`ID` > ?) AND `Sample`.`Name` LIKE ?"
        assert compiled.args == [3, "os%"]

    def test_grouped_search_is_anded_after_filters(self):
        compiled = QueryCompiler().compile(parse_query({"_filter": "ID=2", "_q": "os"}), Sample)
        assert compiled.where.startswith("(`Sample`.`ID` = ?) AND (`Sample`.`Name` LIKE ? OR ")
        assert compiled.where.endswith(")")
        assert compiled.args == [2, "%os%", "%os", "os%"]

    def test_empty_query(self):
        compiled = QueryCompiler().compile(QuerySpec(), Sample)
        assert compiled.where == ""
        assert compiled.args == []
        assert compiled.statement() == ("SELECT * FROM `Sample`", [])

    def test_statement_with_paging_and_sort(self):
        spec = parse_query({"_filter": "Name=Osman", "_sort": "-Name", "_limit": "10", "_offset": "20"})
        sql, args = QueryCompiler().compile(spec, Sample).statement()
        assert sql == (
            "SELECT * FROM `Sample` WHERE (`Sample`.`Name` = ?) ORDER BY `Sample`.`Name` DESC LIMIT ? OFFSET ?"
        )
        assert args == ["Osman", 10, 20]

    def test_offset_without_limit(self):
        sql, args = QueryCompiler().compile(parse_query({"_offset": "5"}), Sample).statement()
        assert sql == "SELECT * FROM `Sample` LIMIT ? OFFSET ?"
        assert args[1] == 5

    def test_count_statement(self):
        spec = parse_query({"_filter": "Name=Osman", "_limit": "10"})
        sql, args = QueryCompiler().compile(spec, Sample).count_statement()
        assert sql == "SELECT COUNT(*) FROM `Sample` WHERE (`Sample`.`Name` = ?)"
        assert args == ["Osman"]

    def test_registry_paths_become_joins(self, inner_registry):
        spec = parse_query({"_filter": "InnerF.Name=Osman"})
        compiled = QueryCompiler(registry=inner_registry).compile(spec, Sample)
        assert compiled.where == "(`Inner1`.`Name` = ?)"
        assert compiled.relationship_paths == ["InnerF"]
        assert compiled.joins == ["LEFT JOIN `Inner1` ON `Sample`.`ID` = `Inner1`.`SampleID`"]
        sql, _ = compiled.count_statement()
        assert sql.startswith("SELECT COUNT(DISTINCT `Sample`.`ID`) FROM `Sample` LEFT JOIN `Inner1`")

    def test_registered_preloads_are_joined(self, inner_registry):
        compiled = QueryCompiler(registry=inner_registry).compile(parse_query({"_preloads": "InnerF"}), Sample)
        assert compiled.preloads == ["InnerF"]
        assert compiled.relationship_paths == ["InnerF"]
        sql, _ = compiled.statement()
        assert sql == "SELECT `Sample`.* FROM `Sample` LEFT JOIN `Inner1` ON `Sample`.`ID` = `Inner1`.`SampleID`"

    def test_unregistered_preloads_are_passed_through(self):
        compiled = QueryCompiler().compile(parse_query({"_preloads": "InnerF"}), Sample)
        assert compiled.preloads == ["InnerF"]
        assert compiled.joins == []

    def test_sort_discriminator_stays_in_the_join(self):
        compiled = QueryCompiler().compile(parse_query({"_filter": "Name=x", "_sort": "InnerF.Name"}), SamplePoly)
        assert compiled.where == "(`SamplePoly`.`Name` = ?)"
        assert compiled.joins == [
            "LEFT JOIN `Inner1` ON `SamplePoly`.`ID` = `Inner1`.`HolderID` AND `Inner1`.`HolderType` = 'SamplePoly'"
        ]

    def test_filter_join_discriminator_is_anded(self, poly_registry):
        spec = parse_query({"_filter": "InnerF.Name=x", "_sort": "InnerF.Name"})
        compiled = QueryCompiler(registry=poly_registry).compile(spec, SamplePoly)
        assert compiled.where == "(`Inner1`.`Name` = ?) AND `Inner1`.`HolderType` = 'SamplePoly'"
        assert compiled.joins == ["LEFT JOIN `Inner1` ON `SamplePoly`.`ID` = `Inner1`.`HolderID`"]
        assert compiled.order_by == "`Inner1`.`Name` ASC"

    def test_preload_discriminator_stays_in_the_join(self, poly_registry):
        compiled = QueryCompiler(registry=poly_registry).compile(parse_query({"_preloads": "InnerF"}), SamplePoly)
        assert compiled.where == ""
        assert compiled.relationship_paths == ["InnerF"]
        assert compiled.joins[0].endswith("AND `Inner1`.`HolderType` = 'SamplePoly'")

    def test_projection_with_language(self):
        compiled = QueryCompiler(language="en-US").compile(parse_query({"_fields": "ID,Title"}), Product)
        assert compiled.select == [
            "`Product`.`ID`",
            "JSON_UNQUOTE(JSON_EXTRACT(`Product`.`Title`, '$.\"en-US\"')) AS `Title`",
        ]

    def test_ansi_dialect(self):
        compiled = QueryCompiler(dialect="ansi").compile(parse_query({"_filter": "Name=x"}), Sample)
        assert compiled.statement() == ('SELECT * FROM "Sample" WHERE ("Sample"."Name" = ?)', ["x"])


class TestAllOrNothing:
    def test_unknown_field(self):
        spec = parse_query({"_filter": "Name=x,Nope=y"})
        with pytest.raises(FieldNotFoundError):
            QueryCompiler().compile(spec, Sample)

    def test_unknown_preload(self):
        with pytest.raises(FieldNotFoundError):
            QueryCompiler().compile(parse_query({"_preloads": "Nope"}), Sample)

    def test_conversion_failure(self):
        with pytest.raises(TypeConversionError):
            QueryCompiler().compile(parse_query({"_filter": "ID=abc"}), Sample)


class TestDeterminism:
    def test_byte_identical(self):
        spec = parse_query({"_filter": "InnerF.Inner2F.Age|=1|2", "_q": "x", "_sort": "-Name"})
        compiler = QueryCompiler()
        assert compiler.compile(spec, Sample) == compiler.compile(spec, Sample)
