"""
Models
Pydantic models for filter parameters, results and aggregates.
"""

from .common import FilterSpec, ResultPage, SearchMode
from .catalog import (
    CatalogProduct,
    CatalogProductFilter,
    CategoryFilter,
    CategorySummary,
    Product,
    ProductFilter,
)
from .section import Paragraph, Section, SectionFilter, SectionSummary, Service, ServiceItem
from .wizard import Wizard, WizardFilter, WizardStep, WizardStepFilter
from .quote import ImageAsset, ImageFilter, Quote, QuoteFilter
from .cart import Cart, CartItem, CartSource, MutationLog

__all__ = [
    "FilterSpec",
    "ResultPage",
    "SearchMode",
    "CatalogProduct",
    "CatalogProductFilter",
    "CategoryFilter",
    "CategorySummary",
    "Product",
    "ProductFilter",
    "Paragraph",
    "Section",
    "SectionFilter",
    "SectionSummary",
    "Service",
    "ServiceItem",
    "Wizard",
    "WizardFilter",
    "WizardStep",
    "WizardStepFilter",
    "ImageAsset",
    "ImageFilter",
    "Quote",
    "QuoteFilter",
    "Cart",
    "CartItem",
    "CartSource",
    "MutationLog",
]
