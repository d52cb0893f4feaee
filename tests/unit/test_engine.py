"""
Tests for the filter engine against an in-memory store.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import exc as sa_exc, insert
from sqlalchemy.dialects import postgresql

from catalogdb.config import Settings
from catalogdb.db.models import Quote
from catalogdb.errors import NotFoundError, QueryExecutionError, UnknownResourceError
from catalogdb.models import CatalogProductFilter, FilterSpec
from catalogdb.query import FilterEngine, build_filter_query
from catalogdb.query.pagination import expected_item_count
from catalogdb.query.resources import CATALOG_PRODUCTS


@pytest.fixture
def products(seed_catalog):
    return seed_catalog(
        {"name": "Silla Tiffany", "description": "Silla blanca de resina", "quantity": 40},
        {"name": "Mesa redonda", "description": "Mesa para 10 personas", "quantity": 8},
        {"name": "Silla Chiavari", "description": "Silla dorada", "quantity": 0},
        {"name": "Mantel", "description": "Mantel 100% algodón", "category": "Mantelería"},
        {"name": "Copa", "description": "Copa de cristal", "available": False},
    )


class TestFilter:
    def test_default_lists_everything_by_name(self, filter_engine, products):
        page = filter_engine.filter("catalog_products")

        assert page.total == 5
        assert page.limit == CATALOG_PRODUCTS.default_limit
        assert [p.name for p in page.items] == [
            "Copa",
            "Mantel",
            "Mesa redonda",
            "Silla Chiavari",
            "Silla Tiffany",
        ]

    def test_fuzzy_search(self, filter_engine, products):
        page = filter_engine.filter(
            "catalog_products", {"search": "silla", "search_mode": "fuzzy"}
        )

        assert page.total == 2
        assert [p.name for p in page.items] == ["Silla Chiavari", "Silla Tiffany"]
        assert all(p.search_rank is None for p in page.items)

    def test_fuzzy_search_matches_wildcards_literally(self, filter_engine, products):
        page = filter_engine.filter(
            "catalog_products", {"search": "100%", "search_mode": "fuzzy"}
        )
        assert [p.name for p in page.items] == ["Mantel"]

        page = filter_engine.filter("catalog_products", {"search": "_", "search_mode": "fuzzy"})
        assert page.total == 0

    def test_exact_search_is_case_insensitive(self, filter_engine, products):
        page = filter_engine.filter(
            "catalog_products", {"search": "MESA REDONDA", "search_mode": "exact"}
        )
        assert [p.name for p in page.items] == ["Mesa redonda"]

    def test_available_excludes_out_of_stock(self, filter_engine, products):
        page = filter_engine.filter("catalog_products", CatalogProductFilter(available=True))

        assert page.total == 3
        assert all(p.available for p in page.items)
        assert "Silla Chiavari" not in [p.name for p in page.items]

    def test_products_available_agrees_with_read_time_correction(
        self, filter_engine, products
    ):
        in_stock = filter_engine.filter("products", {"available": True})
        assert "Silla Chiavari" not in [p.name for p in in_stock.items]
        assert all(p.available for p in in_stock.items)
        assert in_stock.total == 3

        unavailable = filter_engine.filter("products", {"available": False})
        assert sorted(p.name for p in unavailable.items) == ["Copa", "Silla Chiavari"]
        assert not any(p.available for p in unavailable.items)

    def test_read_time_correction(self, filter_engine, products):
        page = filter_engine.filter("catalog_products", {"only_ids": [products[2]]})

        assert page.total == 1
        assert page.items[0].available is False

    def test_only_ids_ignore_search(self, filter_engine, products):
        spec = {"only_ids": [products[0], products[3]], "search": "zzz", "search_mode": "fuzzy"}
        page = filter_engine.filter("catalog_products", spec)

        assert page.total == 2
        assert [p.name for p in page.items] == ["Mantel", "Silla Tiffany"]

    def test_exclude_ids_apply_with_only_ids(self, filter_engine, products):
        spec = {"only_ids": [products[0], products[3]], "exclude_ids": [products[3]]}
        page = filter_engine.filter("catalog_products", spec)

        assert [p.id for p in page.items] == [products[0]]

    def test_sort_token(self, filter_engine, products):
        page = filter_engine.filter("catalog_products", {"sort": "quantity_desc", "limit": 2})
        assert [p.name for p in page.items] == ["Silla Tiffany", "Mesa redonda"]

    @pytest.mark.parametrize("page_number,limit", [(1, 2), (2, 2), (3, 2), (4, 2), (1, 10)])
    def test_page_holds_expected_items(self, filter_engine, products, page_number, limit):
        page = filter_engine.filter("catalog_products", {"page": page_number, "limit": limit})
        query = build_filter_query(
            CATALOG_PRODUCTS,
            CatalogProductFilter(page=page_number, limit=limit),
            filter_engine.settings,
        )

        assert page.total == 5
        assert len(page.items) == expected_item_count(5, query.page)

    def test_pages_do_not_overlap(self, filter_engine, products):
        seen = []
        for number in (1, 2, 3):
            page = filter_engine.filter("catalog_products", {"page": number, "limit": 2})
            seen.extend(p.id for p in page.items)
        assert sorted(seen) == sorted(products)

    def test_page_past_the_end(self, filter_engine, products):
        page = filter_engine.filter("catalog_products", {"page": 50, "limit": 2})

        assert page.items == []
        assert page.total == 5
        assert page.has_next is False

    def test_limit_clamped(self, filter_engine, products):
        page = filter_engine.filter("catalog_products", {"limit": 1000})
        assert page.limit == CATALOG_PRODUCTS.max_limit

    def test_empty_store(self, filter_engine):
        page = filter_engine.filter("catalog_products", FilterSpec(search="x", search_mode="fuzzy"))

        assert page.total == 0
        assert page.total_pages == 0
        assert page.items == []

    def test_unknown_resource(self, filter_engine):
        with pytest.raises(UnknownResourceError):
            filter_engine.filter("nope")


class TestResourcesWithoutVector:
    def test_quotes_default_newest_first(self, engine, filter_engine):
        now = datetime.now(timezone.utc)
        with engine.begin() as conn:
            for i, name in enumerate(["Ana", "Bruno", "Carla"]):
                conn.execute(
                    insert(Quote.__table__).values(
                        id=uuid.uuid4(),
                        customer_name=name,
                        customer_phone=f"55-000{i}",
                        customer_email=f"{name.lower()}@example.com",
                        request_type="cotización",
                        created_at=now + timedelta(minutes=i),
                    )
                )

        page = filter_engine.filter("quotes")
        assert [q.customer_name for q in page.items] == ["Carla", "Bruno", "Ana"]

        # Full-text mode on a resource without a vector matches substrings
        page = filter_engine.filter("quotes", {"search": "bru"})
        assert [q.customer_name for q in page.items] == ["Bruno"]


class TestGet:
    def test_get(self, filter_engine, products):
        product = filter_engine.get("catalog_products", products[1])
        assert product.name == "Mesa redonda"

    def test_get_missing(self, filter_engine, products):
        with pytest.raises(NotFoundError) as excinfo:
            filter_engine.get("catalog_products", uuid.uuid4())
        assert excinfo.value.resource == "catalog_products"

    def test_get_many_orders_by_name_and_ignores_unknown(self, filter_engine, products):
        items = filter_engine.get_many(
            "catalog_products", [products[0], uuid.uuid4(), products[3]]
        )
        assert [p.name for p in items] == ["Mantel", "Silla Tiffany"]

    def test_malformed_id_hides_statement(self, filter_engine, products):
        with pytest.raises(QueryExecutionError) as excinfo:
            filter_engine.get("products", "not-a-uuid")

        assert isinstance(excinfo.value.__cause__, sa_exc.StatementError)
        assert "SELECT" not in excinfo.value.message
        assert "SELECT" not in str(excinfo.value.details)

    def test_get_many_empty(self, filter_engine):
        assert filter_engine.get_many("catalog_products", []) == []


def test_count_and_page_share_conditions():
    spec = CatalogProductFilter(search="silla", available=True, categories=[uuid.uuid4()])
    query = build_filter_query(CATALOG_PRODUCTS, spec, Settings(database_url="sqlite://"))
    dialect = postgresql.dialect()

    count_sql = str(query.count.compile(dialect=dialect))
    data_sql = str(query.data.compile(dialect=dialect))
    where = count_sql.split("WHERE", 1)[1]

    assert where.strip() in data_sql
    assert "ts_rank" in data_sql
    assert "search_rank" in data_sql


def test_custom_resource_table(database, products):
    engine = FilterEngine(database, resources={"catalog": CATALOG_PRODUCTS})
    assert engine.filter("catalog").total == 5


def test_relevance_with_exact_search_orders_by_name():
    spec = CatalogProductFilter(search="silla", search_mode="exact", sort="relevance")
    query = build_filter_query(CATALOG_PRODUCTS, spec, Settings(database_url="sqlite://"))
    data_sql = str(query.data.compile(dialect=postgresql.dialect()))

    assert query.compiled.rank is None
    assert "ts_rank" not in data_sql
    assert "ORDER BY catalog_products.name ASC, catalog_products.id ASC" in data_sql
