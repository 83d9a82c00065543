"""Completion services built for a connected session."""

from __future__ import annotations

from .catalog import KeywordCatalog, KeywordEntry
from .metadata import MetadataProvider, SchemaMetadataProvider, quote_if_needed
from .models import AnalysisResult, Clause, Suggestion, SuggestionType
from .service import MAX_SUGGESTIONS, SqlCompleter

__all__ = [
    "AnalysisResult",
    "Clause",
    "KeywordCatalog",
    "KeywordEntry",
    "MAX_SUGGESTIONS",
    "MetadataProvider",
    "SchemaMetadataProvider",
    "SqlCompleter",
    "Suggestion",
    "SuggestionType",
    "quote_if_needed",
]
