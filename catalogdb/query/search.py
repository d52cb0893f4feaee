"""
Search Strategies
One strategy per search mode: a filter fragment and, for full-text search,
a relevance expression used for ordering only.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import String, bindparam, func, or_
from sqlalchemy.sql.elements import ColumnElement

from ..models.common import SearchMode

logger = logging.getLogger(__name__)


LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


@dataclass(frozen=True)
class SearchTarget:
    """
    Columns a resource exposes to free-text search.

    Attributes:
        vector: Precomputed weighted tsvector, or None if the store keeps none
        exact: Columns compared by exact (case-insensitive) search
        fuzzy: Columns compared by substring search
    """

    vector: Optional[ColumnElement] = None
    exact: Tuple[ColumnElement, ...] = ()
    fuzzy: Tuple[ColumnElement, ...] = ()


@dataclass
class SearchClause:
    condition: Optional[ColumnElement] = None
    rank: Optional[ColumnElement] = None
    bindings: Dict[str, Any] = field(default_factory=dict)


class SearchStrategy(ABC):
    """Base class for search modes."""

    mode: SearchMode

    @abstractmethod
    def build(self, target: SearchTarget, term: str) -> SearchClause:
        """
        Build the search fragment for a term.

        Args:
            target: Searchable columns of the resource
            term: Non-empty search term

        Returns:
            SearchClause (condition, optional rank, bindings)
        """


def _match_any(columns: Tuple[ColumnElement, ...], key: str, pattern: str) -> SearchClause:
    if not columns:
        return SearchClause()
    param = bindparam(key, pattern, type_=String())
    condition = or_(*[col.ilike(param, escape=LIKE_ESCAPE) for col in columns])
    return SearchClause(condition=condition, bindings={key: pattern})


class ExactSearch(SearchStrategy):
    """Case-insensitive equality on the resource's name columns."""

    mode = SearchMode.EXACT

    def build(self, target: SearchTarget, term: str) -> SearchClause:
        return _match_any(target.exact, "exact_search", escape_like(term.strip()))


class FuzzySearch(SearchStrategy):
    """Substring match on the resource's text columns."""

    mode = SearchMode.FUZZY

    def build(self, target: SearchTarget, term: str) -> SearchClause:
        return _match_any(target.fuzzy, "fuzzy_search", f"%{escape_like(term.strip())}%")


class FullTextSearch(SearchStrategy):
    """
    Weighted full-text match with ts_rank relevance.

    Resources without a search vector fall back to substring matching
    without a rank.
    """

    mode = SearchMode.FULL_TEXT

    def __init__(self, language: str = "spanish"):
        self.language = language

    def build(self, target: SearchTarget, term: str) -> SearchClause:
        if target.vector is None:
            logger.debug("No search vector for resource; using substring match")
            return FuzzySearch().build(target, term)

        query = func.plainto_tsquery(
            bindparam("search_language", self.language, type_=String()),
            bindparam("search_query", term.strip(), type_=String()),
        )
        return SearchClause(
            condition=target.vector.op("@@")(query),
            rank=func.ts_rank(target.vector, query),
            bindings={"search_language": self.language, "search_query": term.strip()},
        )


def get_strategy(mode: SearchMode, language: str = "spanish") -> SearchStrategy:
    """Return the strategy for a search mode (empty mode means full text)."""
    mode = SearchMode.parse(mode)
    if mode is SearchMode.EXACT:
        return ExactSearch()
    if mode is SearchMode.FUZZY:
        return FuzzySearch()
    return FullTextSearch(language)
