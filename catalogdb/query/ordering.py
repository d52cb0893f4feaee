"""
Order Resolver
Map sort tokens to ordering clauses from a fixed, per-resource allow-list.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sqlalchemy.sql.elements import ColumnElement

logger = logging.getLogger(__name__)

RELEVANCE = "relevance"


@dataclass(frozen=True)
class SortOption:
    """
    One allowed ordering.

    Attributes:
        clauses: Ordering clauses, e.g. (products.c.price.asc(),)
        rank_tiebreak: Append relevance as a tiebreaker when ranking is active
    """

    clauses: Tuple[ColumnElement, ...]
    rank_tiebreak: bool = True


class OrderResolver:
    """
    Resolves (sort token, rank) to an ORDER BY list.

    - Ranked search with an empty, unknown or "relevance" token orders by
      relevance, then name.
    - "relevance" without a rank falls back to the default ordering.
    - Every ordering ends with the identity column so pages are stable.
    """

    def __init__(
        self,
        options: Dict[str, SortOption],
        name_column: ColumnElement,
        id_column: ColumnElement,
        default_token: Optional[str] = None,
    ):
        """
        Initialize resolver.

        Args:
            options: Allowed sort tokens (lower case)
            name_column: Column for the name-ascending default
            id_column: Identity column used as the final tiebreaker
            default_token: Token used when none is given (name ascending if None)
        """
        self.options = options
        self.name_column = name_column
        self.id_column = id_column
        self.default_token = default_token

    @property
    def tokens(self) -> List[str]:
        return sorted(self.options)

    def _relevance(self, rank: ColumnElement) -> List[ColumnElement]:
        return [rank.desc(), self.name_column.asc(), self.id_column.asc()]

    def _default(self) -> List[ColumnElement]:
        option = self.options.get(self.default_token) if self.default_token else None
        if option is None:
            return [self.name_column.asc(), self.id_column.asc()]
        return [*option.clauses, self.id_column.asc()]

    def resolve(
        self, token: Optional[str], rank: Optional[ColumnElement] = None
    ) -> List[ColumnElement]:
        """
        Resolve a sort token.

        Args:
            token: Client supplied sort token (validated here)
            rank: Relevance expression when full-text ranking is active

        Returns:
            List of ordering clauses
        """
        token = (token or "").strip().lower()

        if token == RELEVANCE and rank is None:
            logger.debug("Relevance ordering requested without ranking; using default order")
            return self._default()

        option = self.options.get(token) if token and token != RELEVANCE else None
        if option is None:
            if token and token != RELEVANCE:
                logger.debug(f"Unknown sort token {token!r}; using default order")
            if rank is not None:
                return self._relevance(rank)
            return self._default()

        clauses = list(option.clauses)
        if rank is not None and option.rank_tiebreak:
            clauses.append(rank.desc())
        clauses.append(self.id_column.asc())
        return clauses
