"""
Database
Table definitions, engine construction and the unit of work.
"""

from .models import (
    Base,
    Cart,
    CartItem,
    Category,
    EventKind,
    Image,
    Product,
    Quote,
    Section,
    SectionParagraph,
    SectionService,
    SectionServiceItem,
    Wizard,
    WizardStep,
    catalog_products,
    view_metadata,
    wizard_step_categories,
)
from .session import Database, create_db_engine
from .errors import translate_error

__all__ = [
    "Base",
    "Cart",
    "CartItem",
    "Category",
    "EventKind",
    "Image",
    "Product",
    "Quote",
    "Section",
    "SectionParagraph",
    "SectionService",
    "SectionServiceItem",
    "Wizard",
    "WizardStep",
    "catalog_products",
    "view_metadata",
    "wizard_step_categories",
    "Database",
    "create_db_engine",
    "translate_error",
]
