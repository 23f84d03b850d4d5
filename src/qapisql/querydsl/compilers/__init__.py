from .base import BaseCompiler
from .filters import FilterCompiler, filter_compiler
from .search import SearchCompiler, search_compiler
from .sort import SortCompiler, sort_compiler
from .translations import TranslationResolver, translation_resolver

__all__ = (
    "BaseCompiler",
    "FilterCompiler",
    "filter_compiler",
    "SearchCompiler",
    "search_compiler",
    "SortCompiler",
    "sort_compiler",
    "TranslationResolver",
    "translation_resolver",
)
