"""
Cart Repository
Load and persist cart aggregates.

A save writes the root only when it changed, upserts every remaining line
and deletes the lines removed since the last save, all in one transaction.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import Table, bindparam, delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection

from ..db.models import Cart as CartRow
from ..db.models import CartItem as CartItemRow
from ..db.models import catalog_products
from ..db.session import Database
from ..errors import NotFoundError
from ..models.cart import CUSTOMER_FIELDS, Cart, CartItem, CartSource

logger = logging.getLogger(__name__)

carts = CartRow.__table__
cart_items = CartItemRow.__table__

ITEM_UPSERT_FIELDS = ("quantity", "source", "step_index", "updated_at")


def _cart_id(cart_id: UUID):
    return bindparam("cart_id", cart_id, type_=carts.c.id.type)


def _dialect_insert(conn: Connection, table: Table):
    """Pick the INSERT construct that supports ON CONFLICT for the connection."""
    name = conn.dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Upsert not supported for dialect {name}")


class CartRepository:
    """
    Repository for carts and their lines.

    Example:
        repo = CartRepository(database)
        cart = repo.get_or_create_cart(cart_id)
        repo.add_product(cart, product_id, quantity=2)
        repo.save(cart)
    """

    def __init__(self, database: Database):
        self.database = database

    def find_cart(self, cart_id: UUID) -> Cart:
        """
        Load a cart with its lines.

        Line display fields and stock bounds come from the catalog.

        Raises:
            NotFoundError: If the cart does not exist
        """
        root_stmt = select(
            carts.c.id,
            *(carts.c[name] for name in CUSTOMER_FIELDS),
            carts.c.created_at,
        ).where(carts.c.id == _cart_id(cart_id))

        items_stmt = (
            select(
                cart_items.c.product_id,
                cart_items.c.quantity,
                cart_items.c.source,
                cart_items.c.step_index,
                cart_items.c.created_at,
                cart_items.c.updated_at,
                catalog_products.c.name,
                catalog_products.c.category_name.label("category"),
                catalog_products.c.image_url,
                catalog_products.c.quantity.label("max_qty"),
            )
            .select_from(
                cart_items.outerjoin(
                    catalog_products, cart_items.c.product_id == catalog_products.c.id
                )
            )
            .where(cart_items.c.cart_id == _cart_id(cart_id))
            .order_by(cart_items.c.created_at.asc(), cart_items.c.product_id.asc())
        )

        with self.database.read("carts", "find") as conn:
            root = conn.execute(root_stmt).mappings().first()
            if root is None:
                raise NotFoundError("carts", cart_id)
            rows = conn.execute(items_stmt).mappings().all()

        items = []
        for row in rows:
            values = dict(row)
            for key in ("name", "category", "image_url"):
                if values[key] is None:
                    values[key] = ""
            items.append(CartItem(**values))

        cart = Cart(**root, items=items)
        cart.reconcile_stock()
        return cart

    def get_or_create_cart(self, cart_id: Optional[UUID] = None) -> Cart:
        """
        Load a cart, or start a new unsaved one when it does not exist.

        Args:
            cart_id: Cart identity; a fresh id is generated when omitted

        Returns:
            Cart (new carts are persisted on their first save)
        """
        if cart_id is None:
            return Cart.new()

        try:
            return self.find_cart(cart_id)
        except NotFoundError:
            logger.info(f"Cart {cart_id} not found, starting a new one")
            return Cart.new(cart_id)

    def add_product(
        self,
        cart: Cart,
        product_id: UUID,
        quantity: int = 1,
        source: CartSource = CartSource.CATALOG,
        step_index: Optional[int] = None,
    ) -> CartItem:
        """
        Add a catalog product to a cart (in memory; call save to persist).

        The line's stock bound is the product's current quantity.

        Raises:
            NotFoundError: If the product is not in the catalog
            InvalidQuantityError: If quantity is not positive or nothing is in stock
        """
        stmt = select(
            catalog_products.c.name,
            catalog_products.c.category_name,
            catalog_products.c.image_url,
            catalog_products.c.quantity,
        ).where(
            catalog_products.c.id
            == bindparam("product_id", product_id, type_=catalog_products.c.id.type)
        )

        with self.database.read("catalog_products", "get") as conn:
            product = conn.execute(stmt).mappings().first()

        if product is None:
            raise NotFoundError("catalog_products", product_id)

        item = CartItem(
            product_id=product_id,
            name=product["name"] or "",
            category=product["category_name"] or "",
            image_url=product["image_url"] or "",
            quantity=quantity,
            max_qty=product["quantity"],
            source=source,
            step_index=step_index,
        )
        return cart.add_item(item)

    def save(self, cart: Cart) -> Cart:
        """
        Persist a cart's pending changes in one transaction.

        The cart's mutation log is cleared only after the transaction commits;
        on failure the cart keeps its pending changes and can be saved again.

        Returns:
            The same cart
        """
        log = cart.mutations
        if log.is_empty():
            logger.debug(f"Cart {cart.id} has no pending changes")
            return cart

        now = datetime.now(timezone.utc)

        with self.database.write("carts", "save") as conn:
            if log.root_dirty:
                self._upsert_root(conn, cart, now)

            if cart.items:
                self._upsert_items(conn, cart, now)

            if log.removed:
                ids = bindparam(
                    "product_ids",
                    log.removed_ids,
                    expanding=True,
                    type_=cart_items.c.product_id.type,
                )
                conn.execute(
                    delete(cart_items).where(
                        cart_items.c.cart_id == _cart_id(cart.id),
                        cart_items.c.product_id.in_(ids),
                    )
                )

        logger.info(
            f"Saved cart {cart.id}",
            extra={
                "cart_id": str(cart.id),
                "lines": len(cart.items),
                "removed": len(log.removed),
                "new": log.is_new,
            },
        )
        cart.discard_mutations()
        return cart

    def _upsert_root(self, conn: Connection, cart: Cart, now: datetime) -> None:
        values = {name: getattr(cart, name) for name in CUSTOMER_FIELDS}
        stmt = _dialect_insert(conn, carts).values(
            id=cart.id, created_at=cart.created_at, updated_at=now, **values
        )

        changed = CUSTOMER_FIELDS if cart.mutations.is_new else sorted(cart.mutations.dirty_fields)
        update = {name: stmt.excluded[name] for name in changed}
        update["updated_at"] = stmt.excluded.updated_at

        conn.execute(stmt.on_conflict_do_update(index_elements=[carts.c.id], set_=update))

    def _upsert_items(self, conn: Connection, cart: Cart, now: datetime) -> None:
        rows = [
            {
                "cart_id": cart.id,
                "product_id": item.product_id,
                "quantity": item.quantity,
                "source": item.source.value,
                "step_index": item.step_index,
                "created_at": item.created_at,
                "updated_at": now,
            }
            for item in cart.items
        ]
        stmt = _dialect_insert(conn, cart_items).values(rows)
        conn.execute(
            stmt.on_conflict_do_update(
                index_elements=[cart_items.c.cart_id, cart_items.c.product_id],
                set_={name: stmt.excluded[name] for name in ITEM_UPSERT_FIELDS},
            )
        )

    def delete_cart(self, cart_id: UUID) -> None:
        """
        Delete a cart; its lines are removed by cascade.

        Raises:
            NotFoundError: If the cart does not exist
        """
        stmt = delete(carts).where(carts.c.id == _cart_id(cart_id))
        with self.database.write("carts", "delete") as conn:
            result = conn.execute(stmt)

        if result.rowcount == 0:
            raise NotFoundError("carts", cart_id)
        logger.info(f"Deleted cart {cart_id}")
