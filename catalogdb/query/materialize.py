"""
Result Materializer
Map result rows to typed models, applying read-time corrections.
"""

import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence, Type

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Mutates the row dict in place before validation
Correction = Callable[[Dict[str, Any]], None]


def force_unavailable_when_out_of_stock(row: Dict[str, Any]) -> None:
    """A product without stock is never available, whatever its flag says."""
    quantity = row.get("quantity")
    if quantity is not None and quantity <= 0:
        row["available"] = False


def fallback_long_description(row: Dict[str, Any]) -> None:
    if not row.get("long_description"):
        row["long_description"] = row.get("description") or ""


def decode_json_list(column: str) -> Correction:
    """Decode a JSON array column; NULL or malformed values become []."""

    def correct(row: Dict[str, Any]) -> None:
        value = row.get(column)
        if isinstance(value, (str, bytes)):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning(f"Malformed JSON in column {column}")
                value = None
        row[column] = [v for v in value if v] if isinstance(value, list) else []

    return correct


def default_values(**defaults: Any) -> Correction:
    """Replace NULLs with defaults (e.g. counts over empty joins)."""

    def correct(row: Dict[str, Any]) -> None:
        for key, value in defaults.items():
            if row.get(key) is None:
                row[key] = value

    return correct


class Materializer:
    """
    Builds a resource model from a row mapping.

    Example:
        Materializer(CatalogProduct, [force_unavailable_when_out_of_stock])
    """

    def __init__(self, model: Type[BaseModel], corrections: Sequence[Correction] = ()):
        self.model = model
        self.corrections = tuple(corrections)

    def __call__(self, row: Mapping[str, Any]) -> BaseModel:
        data = dict(row)
        for correction in self.corrections:
            correction(data)
        return self.model.model_validate(data)

    def many(self, rows: Iterable[Mapping[str, Any]]) -> List[BaseModel]:
        return [self(row) for row in rows]
