"""
Table Definitions
SQLAlchemy declarative models for the catalog store.

Statements are built with SQLAlchemy Core against ``Model.__table__``; the
declarative classes only describe the schema.
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    false,
    true,
)
from sqlalchemy.dialects.postgresql import TSVECTOR
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

# Weighted full-text representation maintained by the store (triggers).
# SQLite test databases store it as plain text and never query it.
SearchVector = TSVECTOR().with_variant(Text(), "sqlite")


class Image(Base):
    """Uploaded media asset."""

    __tablename__ = "images"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    filename = Column(String(512), unique=True, nullable=False)
    name = Column(String(512), nullable=False)
    no_optimize = Column(Boolean, nullable=False, server_default=false())
    size = Column(Integer, nullable=False, comment="Size in bytes")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    search_vector = Column(SearchVector, nullable=True)


class Category(Base):
    """Product category."""

    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, nullable=False)
    description = Column(String(360), nullable=False, server_default="")
    long_description = Column(String(512), nullable=True)
    header_img = Column(Uuid, ForeignKey("images.id", ondelete="SET NULL"), nullable=True)
    display_img = Column(Uuid, ForeignKey("images.id", ondelete="SET NULL"), nullable=True)
    qr_code = Column(String(512), nullable=True)
    search_vector = Column(
        SearchVector,
        nullable=True,
        comment="Weights: A name, B description and long_description",
    )


class Product(Base):
    """Rentable product."""

    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, nullable=False)
    description = Column(String(360), nullable=False, server_default="")
    long_description = Column(String(512), nullable=True)
    price = Column(Numeric(10, 2), nullable=False, server_default="0")
    unit = Column(String(64), nullable=True)
    quantity = Column(Integer, nullable=False, server_default="1")
    category_id = Column(Uuid, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=True)
    main_img_id = Column(Uuid, ForeignKey("images.id", ondelete="SET NULL"), nullable=True)
    available = Column(Boolean, nullable=False, server_default=true())
    qr_code = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    search_vector = Column(
        SearchVector,
        nullable=True,
        comment="Weights: A name, B description and long_description, C category name",
    )


class EventKind(Base):
    """Kind of event a wizard guides the customer through."""

    __tablename__ = "event_kinds"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(128), unique=True, nullable=False)


class Wizard(Base):
    """Guided selection flow."""

    __tablename__ = "wizards"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, server_default="")
    event_kind_id = Column(Uuid, ForeignKey("event_kinds.id", ondelete="SET NULL"), nullable=True)
    is_general = Column(Boolean, nullable=False, server_default=false())
    enabled = Column(Boolean, nullable=False, server_default=true())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    search_vector = Column(SearchVector, nullable=True)


class WizardStep(Base):
    """One step of a wizard; offers products from its categories."""

    __tablename__ = "wizard_steps"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    wizard_id = Column(Uuid, ForeignKey("wizards.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, server_default="")
    required = Column(Boolean, nullable=False, server_default=false())
    multi_select = Column(Boolean, nullable=False, server_default=false())
    min_selected = Column(Integer, nullable=False, server_default="0")
    max_selected = Column(Integer, nullable=False, server_default="0")
    step_order = Column(Integer, nullable=False, server_default="0")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


wizard_step_categories = Table(
    "wizard_step_categories",
    Base.metadata,
    Column("step_id", Uuid, ForeignKey("wizard_steps.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Uuid, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Section(Base):
    """Content section of the public site (aggregate root)."""

    __tablename__ = "sections"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(64), unique=True, nullable=False)
    title = Column(Text, nullable=True)
    image = Column(String(256), nullable=True)
    bg_image = Column(String(256), nullable=True)
    version = Column(Integer, nullable=False, server_default="1")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    search_vector = Column(SearchVector, nullable=True)


class SectionParagraph(Base):
    __tablename__ = "section_paragraphs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    section_id = Column(
        Uuid, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_idx = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SectionService(Base):
    __tablename__ = "section_service"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    section_id = Column(
        Uuid, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(Text, nullable=False)
    price = Column(Integer, nullable=True, comment="Price in cents")
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SectionServiceItem(Base):
    __tablename__ = "section_service_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    service_id = Column(
        Uuid, ForeignKey("section_service.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_idx = Column(Integer, nullable=False, server_default="0")
    price = Column(Integer, nullable=False, comment="Price in cents")
    content = Column(Text, nullable=False)
    content_as_list = Column(Boolean, nullable=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Cart(Base):
    """Customer cart (aggregate root)."""

    __tablename__ = "carts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_name = Column(String(256), nullable=True)
    customer_email = Column(String(256), nullable=True)
    customer_phone = Column(String(256), nullable=True)
    is_submitted = Column(Boolean, nullable=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="cart_items_quantity_check"),)

    cart_id = Column(Uuid, ForeignKey("carts.id", ondelete="CASCADE"), primary_key=True)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    quantity = Column(Integer, nullable=False, server_default="1")
    source = Column(String(32), nullable=False, server_default="catálogo")
    step_index = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Quote(Base):
    """Customer quote or contact request."""

    __tablename__ = "quotes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_name = Column(String(256), nullable=False)
    customer_phone = Column(String(256), nullable=False)
    customer_email = Column(String(256), nullable=False)
    cart_id = Column(Uuid, ForeignKey("carts.id", ondelete="SET NULL"), nullable=True)
    request_type = Column(String(64), nullable=False, comment="contacto, cotización")
    status = Column(
        String(64),
        nullable=False,
        server_default="pendiente",
        comment="pendiente, procesada, en_progreso, cancelada",
    )
    event_kind = Column(String(128), nullable=True)
    event_start = Column(Date, nullable=True)
    comments = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


# Read-only views maintained by migrations. Kept off Base.metadata so that
# create_all() never turns them into tables.
view_metadata = MetaData()

catalog_products = Table(
    "catalog_products",
    view_metadata,
    Column("id", Uuid, primary_key=True),
    Column("name", String(200)),
    Column("description", String(360)),
    Column("long_description", String(512)),
    Column("slug", String(200)),
    Column("category_id", Uuid),
    Column("category_name", String(200)),
    Column("image_url", String(512)),
    Column("price", Numeric(10, 2)),
    Column("unit", String(64)),
    Column("available", Boolean),
    Column("quantity", Integer),
    Column("images", JSON, comment="Gallery filenames as a JSON array"),
    Column("created_at", DateTime(timezone=True)),
    Column("search_vector", SearchVector),
)
