"""
Cart Models
Cart aggregate with line items and its mutation log.

Lines are kept in memory and reconciled with the store on save: the
mutation log records which root fields changed and which products were
removed since the last successful save.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set
from uuid import UUID

from pydantic import BaseModel, Field, PrivateAttr

from ..errors import InvalidQuantityError

logger = logging.getLogger(__name__)


class CartSource(str, Enum):
    """Where a cart line was added from."""

    WIZARD = "asistente"
    CATALOG = "catálogo"


CUSTOMER_FIELDS = ("customer_name", "customer_email", "customer_phone", "is_submitted")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CartItem(BaseModel):
    product_id: UUID
    name: str = ""
    category: str = ""
    image_url: str = ""
    quantity: int = Field(..., description="Units requested")
    max_qty: Optional[int] = Field(None, description="Stock bound from the catalog")
    source: CartSource = CartSource.CATALOG
    step_index: Optional[int] = Field(None, description="Wizard step the line came from")
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def clamp(self, quantity: int) -> int:
        """Bound a quantity by the stock bound when one is known."""
        if self.max_qty is not None and quantity > self.max_qty:
            return self.max_qty
        return quantity


@dataclass
class MutationLog:
    """
    Pending changes of one cart since its last save.

    Owned by a single Cart instance and replaced by an empty log once a save
    commits.
    """

    is_new: bool = False
    dirty_fields: Set[str] = field(default_factory=set)
    removed: Dict[UUID, None] = field(default_factory=dict)  # ordered set
    items_dirty: bool = False

    @property
    def removed_ids(self) -> List[UUID]:
        return list(self.removed)

    @property
    def root_dirty(self) -> bool:
        return self.is_new or bool(self.dirty_fields)

    def is_empty(self) -> bool:
        return not (self.root_dirty or self.removed or self.items_dirty)


class Cart(BaseModel):
    """Cart aggregate root."""

    id: UUID = Field(default_factory=uuid.uuid4)
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    is_submitted: bool = False
    created_at: datetime = Field(default_factory=_now)
    items: List[CartItem] = Field(default_factory=list)

    _log: MutationLog = PrivateAttr(default_factory=MutationLog)

    @classmethod
    def new(cls, cart_id: Optional[UUID] = None) -> "Cart":
        """Create a cart that has not been persisted yet."""
        cart = cls(id=cart_id) if cart_id else cls()
        cart._log = MutationLog(is_new=True)
        return cart

    @property
    def mutations(self) -> MutationLog:
        return self._log

    def discard_mutations(self) -> None:
        """Forget pending changes; called after a successful save."""
        self._log = MutationLog()

    def find_item(self, product_id: UUID) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def add_item(self, item: CartItem) -> CartItem:
        """
        Add a line or merge its quantity into the existing line.

        Args:
            item: Line to add

        Returns:
            The line now held by the cart
        """
        if item.quantity <= 0:
            raise InvalidQuantityError(item.product_id, item.quantity)

        # Re-adding cancels a pending removal
        self._log.removed.pop(item.product_id, None)
        self._log.items_dirty = True

        existing = self.find_item(item.product_id)
        if existing is None:
            item.quantity = item.clamp(item.quantity)
            if item.quantity <= 0:
                raise InvalidQuantityError(item.product_id, item.quantity)
            self.items.append(item)
            return item

        if item.max_qty is not None:
            existing.max_qty = item.max_qty
        self.update_item_qty(existing.product_id, existing.quantity + item.quantity)
        return existing

    def update_item_qty(self, product_id: UUID, quantity: int) -> bool:
        """
        Set a line's quantity.

        A quantity of zero or less removes the line. Larger quantities are
        clamped to the line's stock bound.

        Returns:
            False if the product is not in the cart
        """
        if quantity <= 0:
            return self.remove_item(product_id)

        item = self.find_item(product_id)
        if item is None:
            logger.debug(f"Product {product_id} not in cart {self.id}")
            return False

        quantity = item.clamp(quantity)
        if quantity <= 0:
            return self.remove_item(product_id)

        item.quantity = quantity
        item.updated_at = _now()
        self._log.items_dirty = True
        return True

    def remove_item(self, product_id: UUID) -> bool:
        """Drop a line and queue its product for deletion on save."""
        item = self.find_item(product_id)
        if item is None:
            return False

        self.items = [line for line in self.items if line.product_id != product_id]
        self._log.removed[product_id] = None
        return True

    def reconcile_stock(self) -> None:
        """
        Clamp every line to its current stock bound.

        Lines left without stock are queued for removal; clamped lines mark
        the cart dirty so the next save writes them.
        """
        for item in list(self.items):
            quantity = item.clamp(item.quantity)
            if quantity == item.quantity:
                continue
            logger.info(
                f"Clamping product {item.product_id} in cart {self.id} "
                f"from {item.quantity} to {quantity}"
            )
            self.update_item_qty(item.product_id, quantity)

    def clear(self) -> None:
        """Queue every line for deletion."""
        for item in self.items:
            self._log.removed[item.product_id] = None
        self.items = []

    def set_customer(self, **fields) -> None:
        """
        Update customer fields, marking only changed ones dirty.

        Raises:
            ValueError: If a field is not a customer field
        """
        for name, value in fields.items():
            if name not in CUSTOMER_FIELDS:
                raise ValueError(f"Unknown cart field: {name}")
            if getattr(self, name) != value:
                setattr(self, name, value)
                self._log.dirty_fields.add(name)

    def mark_submitted(self) -> None:
        self.set_customer(is_submitted=True)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)
