"""
Services
Catalog browsing, section aggregates and carts.
"""

from .aggregates import AggregateUpdater, Mutation, MutationKind, MutationPlan, NodeSpec, Snapshot
from .cart import CartRepository
from .catalog import CatalogService
from .sections import SectionService

__all__ = [
    "AggregateUpdater",
    "Mutation",
    "MutationKind",
    "MutationPlan",
    "NodeSpec",
    "Snapshot",
    "CartRepository",
    "CatalogService",
    "SectionService",
]
