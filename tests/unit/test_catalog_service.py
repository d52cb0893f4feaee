"""
Tests for the catalog convenience operations.
"""

import uuid

import pytest

from catalogdb.errors import NotFoundError
from catalogdb.services import CatalogService


@pytest.fixture
def catalog(database):
    return CatalogService(database)


@pytest.fixture
def products(seed_catalog):
    return seed_catalog(
        {"name": "Silla Tiffany", "category": "Sillas", "quantity": 20},
        {"name": "Silla Crossback", "category": "Sillas", "quantity": 0},
        {"name": "Mesa imperial", "category": "Mesas", "quantity": 4},
        {"name": "Mantel blanco", "category": "Mantelería", "available": False},
    )


def test_filter_by_categories(catalog, seed_catalog, products):
    sillas = seed_catalog.category("Sillas")
    page = catalog.filter_by_categories([sillas])

    assert [p.name for p in page.items] == ["Silla Crossback", "Silla Tiffany"]


def test_filter_available(catalog, products):
    page = catalog.filter_available(limit=10)

    assert [p.name for p in page.items] == ["Mesa imperial", "Silla Tiffany"]
    assert page.limit == 10


def test_filter_for_wizard(catalog, seed_catalog, products):
    categories = [seed_catalog.category("Sillas"), seed_catalog.category("Mesas")]

    page = catalog.filter_for_wizard(categories, exclude_ids=[products[2]])

    assert [p.name for p in page.items] == ["Silla Tiffany"]


def test_filter_catalog_paginates(catalog, products):
    page = catalog.filter_catalog({"limit": 3, "page": 2})

    assert page.total == 4
    assert len(page.items) == 1
    assert page.has_previous


def test_filter_products(catalog, products):
    page = catalog.filter_products({"available": False})

    assert [p.name for p in page.items] == ["Mantel blanco"]
    assert page.items[0].category_name == "Mantelería"


def test_get_catalog_product(catalog, products):
    assert catalog.get_catalog_product(products[0]).name == "Silla Tiffany"
    with pytest.raises(NotFoundError):
        catalog.get_catalog_product(uuid.uuid4())


def test_get_catalog_products_by_ids(catalog, products):
    items = catalog.get_catalog_products_by_ids([products[2], products[0], uuid.uuid4()])
    assert [p.name for p in items] == ["Mesa imperial", "Silla Tiffany"]
