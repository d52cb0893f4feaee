"""
Pytest configuration and shared fixtures
"""

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, event, insert
from sqlalchemy.pool import StaticPool

from catalogdb.config import Settings
from catalogdb.db import Base, Database, catalog_products, view_metadata
from catalogdb.db.models import Category, Product
from catalogdb.query import FilterEngine


@pytest.fixture
def settings():
    """Settings for an in-memory SQLite store."""
    return Settings(
        database_url="sqlite://",
        default_page_size=20,
        max_page_size=100,
        slow_query_ms=10_000,
    )


@pytest.fixture
def engine():
    """In-memory SQLite engine with foreign keys enforced."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    view_metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def database(engine, settings):
    return Database(engine, settings)


@pytest.fixture
def filter_engine(database):
    return FilterEngine(database)


@pytest.fixture
def seed_catalog(engine):
    """
    Insert products into both the products table and the catalog view table.

    Returns a function taking product dicts (name required) and returning
    their ids in order.
    """
    category_ids = {}

    def category(name):
        if name not in category_ids:
            category_id = uuid.uuid4()
            with engine.begin() as conn:
                conn.execute(
                    insert(Category.__table__).values(
                        id=category_id, name=name, slug=name.lower().replace(" ", "-")
                    )
                )
            category_ids[name] = category_id
        return category_ids[name]

    def seed(*products):
        ids = []
        with engine.begin() as conn:
            for i, data in enumerate(products):
                product_id = data.get("id") or uuid.uuid4()
                category_name = data.get("category", "Mobiliario")
                category_id = category(category_name)
                row = {
                    "id": product_id,
                    "name": data["name"],
                    "slug": data.get("slug") or f"{data['name'].lower().replace(' ', '-')}-{i}",
                    "description": data.get("description", ""),
                    "long_description": data.get("long_description"),
                    "price": data.get("price", 10),
                    "unit": data.get("unit"),
                    "quantity": data.get("quantity", 5),
                    "category_id": category_id,
                    "available": data.get("available", True),
                    "created_at": data.get("created_at", datetime.now(timezone.utc)),
                }
                conn.execute(insert(Product.__table__).values(**row))
                conn.execute(
                    insert(catalog_products).values(
                        id=product_id,
                        name=row["name"],
                        description=row["description"],
                        long_description=row["long_description"],
                        slug=row["slug"],
                        category_id=category_id,
                        category_name=category_name,
                        image_url=data.get("image_url", ""),
                        price=row["price"],
                        unit=row["unit"],
                        available=row["available"],
                        quantity=row["quantity"],
                        images=data.get("images", []),
                        created_at=row["created_at"],
                    )
                )
                ids.append(product_id)
        return ids

    seed.category = category
    return seed
