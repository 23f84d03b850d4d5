"""Translation column resolution.

A translated column stores a JSON map of language code -> text. Given a
language, references to it are rewritten into JSON extraction expressions;
the `all` sentinel keeps the raw JSON column.
"""

from typing import Any, List, Optional, Sequence, Tuple

from qapisql.constants import Operation
from qapisql.exceptions import UnsupportedOperatorError
from qapisql.schema import EntitySchema, FieldMeta, Filter
from qapisql.settings import settings
from qapisql.utils import column, escape_like, is_null, language_path, quote_identifier, quote_literal

__all__ = ("TranslationResolver", "translation_resolver")


class TranslationResolver:
    """Rewrite translated column references for one target language.

    Used by filtering (comparison against one language), sorting and SELECT
    projection.
    """

    def __init__(self, language: Optional[str] = None, dialect: Optional[str] = None) -> None:
        self.language = language
        self.dialect = dialect

    def is_all(self, language: Optional[str]) -> bool:
        return language == settings.ALL_LANG_CODE

    def _lang(self, language: Optional[str]) -> Optional[str]:
        return language if language is not None else self.language

    def _ref(self, field: FieldMeta, table: Optional[str]) -> str:
        if table is None:
            return quote_identifier(field.column, self.dialect)
        return column(table, field.column, self.dialect)

    def extract(self, ref: str, language: str) -> str:
        return f"JSON_UNQUOTE(JSON_EXTRACT({ref}, {quote_literal(language_path(language))}))"

    def resolve_column(self, field: FieldMeta, table: Optional[str], language: Optional[str] = None) -> str:
        """Column reference for `field`, language-extracted when translated.

        Args:
            field: Field metadata
            table: Owning table; None renders an unqualified column
            language: Language code; defaults to the resolver's language

        Returns:
            Either the plain column or `JSON_UNQUOTE(JSON_EXTRACT(col, '$."<lang>"'))`
        """
        ref = self._ref(field, table)
        lang = self._lang(language)
        if not field.translated or not lang or self.is_all(lang):
            return ref
        return self.extract(ref, lang)

    def sort_expression(self, field: FieldMeta, table: Optional[str], language: Optional[str] = None) -> str:
        """Like `resolve_column`, but `all` sorts by the default language."""
        lang = self._lang(language)
        if field.translated and self.is_all(lang):
            lang = settings.DEFAULT_LANG_CODE
        return self.resolve_column(field, table, lang)

    def select_expression(self, field: FieldMeta, table: Optional[str], language: Optional[str] = None) -> str:
        expr = self.resolve_column(field, table, language)
        ref = self._ref(field, table)
        if expr == ref:
            return expr
        return f"{expr} AS {quote_identifier(field.column, self.dialect)}"

    def select_list(
        self,
        schema: EntitySchema,
        fields: Sequence[str] = (),
        table: Optional[str] = None,
        language: Optional[str] = None,
    ) -> List[str]:
        """Build a SELECT list with translated columns narrowed to one language.

        Relation fields are skipped entirely. With `fields`, only those are
        projected, in the requested order.

        Raises:
            FieldNotFoundError: If a requested field does not exist
        """
        table = table or schema.table_name
        if fields:
            metas = [schema.field(name) for name in fields]
        else:
            metas = list(schema.column_fields)
        return [self.select_expression(m, table, language) for m in metas if not m.is_relation]

    def search_all_condition(self, field: FieldMeta, table: Optional[str], flt: Filter) -> Tuple[str, List[Any]]:
        """Predicate matching a value in any language of a translated column.

        LK binds the value as a pattern; EQ, NEQ and IN escape its wildcards so
        they match exactly.

        Raises:
            UnsupportedOperatorError: For range operators, which have no meaning across languages
        """
        ref = self._ref(field, table)
        found = f"JSON_SEARCH({ref}, 'one', ?) IS NOT NULL"
        if flt.operation is Operation.EQ and is_null(flt.value):
            return f"{ref} IS NULL", []
        if flt.operation is Operation.NEQ and is_null(flt.value):
            return f"{ref} IS NOT NULL", []
        if flt.operation is Operation.LK:
            return found, [flt.value]
        if flt.operation is Operation.EQ:
            return found, [escape_like(flt.value)]
        if flt.operation is Operation.NEQ:
            return f"JSON_SEARCH({ref}, 'one', ?) IS NULL", [escape_like(flt.value)]
        if flt.operation in (Operation.IN, Operation.IN_ALT):
            values = [escape_like(v) for v in flt.raw_values()]
            return "( " + " OR ".join([found] * len(values)) + " )", values
        raise UnsupportedOperatorError(
            "operator not supported across all languages", filter=flt.name, operation=flt.operation.value
        )


translation_resolver = TranslationResolver()
