"""Shopping Cart aggregate (CQRS): one per user, one item per product.

The cart is created lazily on the first add and never deleted by the
customer. Writers go through a revision check-and-set (see
ordering.cart.repository), so a write computed from a stale cart is retried
against the fresh one instead of overwriting it: two adds of different
products both survive.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from protean.fields import DateTime, HasMany, Identifier, Integer

from ordering.cart.events import (
    CartCreated,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    PurchasedItemsRemoved,
)
from ordering.domain import ordering
from shared.errors import not_found


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@ordering.aggregate
class ShoppingCart:
    user_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        cart = cls(user_id=str(user_id), revision=0, created_at=now, updated_at=now)
        cart.raise_(CartCreated(cart_id=str(cart.id), user_id=str(user_id)))
        return cart

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def item_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def quantity_of(self, product_id) -> int:
        item = self.item_for(product_id)
        return item.quantity if item else 0

    @property
    def lines(self) -> list["CartLine"]:
        """Product lines in the order they were added."""
        items = sorted(self.items, key=lambda i: i.added_at or datetime.min.replace(tzinfo=UTC))
        return [CartLine(product_id=str(i.product_id), quantity=i.quantity) for i in items]

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity):
        """Add ``quantity`` units, merging with an existing line. Returns the line quantity."""
        existing = self.item_for(product_id)
        now = datetime.now(UTC)

        if existing:
            existing.quantity += quantity
            line_quantity = existing.quantity
        else:
            self.add_items(CartItem(product_id=str(product_id), quantity=quantity, added_at=now))
            line_quantity = quantity

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product_id),
                quantity=quantity,
                line_quantity=line_quantity,
            )
        )
        return line_quantity

    def update_quantity(self, product_id, new_quantity):
        item = self.item_for(product_id)
        if item is None:
            raise not_found("cart item", product_id)

        previous_quantity = item.quantity
        item.quantity = new_quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, product_id) -> bool:
        """Drop a line. Returns False, and raises nothing, when it is not there."""
        item = self.item_for(product_id)
        if item is None:
            return False

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))
        return True

    def remove_purchased(self, order_id, purchased) -> int:
        """Take purchased quantities out of the cart.

        Matches by product id only and never removes more than was purchased,
        so items added after checkout stay put. Returns the number of lines
        touched.
        """
        touched = 0
        for line in purchased:
            item = self.item_for(line.product_id)
            if item is None:
                continue
            if item.quantity > line.quantity:
                item.quantity -= line.quantity
            else:
                self.remove_items(item)
            touched += 1

        self.updated_at = datetime.now(UTC)
        self.raise_(PurchasedItemsRemoved(cart_id=str(self.id), order_id=str(order_id), lines_touched=touched))
        return touched


@dataclass(frozen=True)
class CartLine:
    """A product and quantity as read from the cart at one moment."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class CartLineView:
    product_id: str
    quantity: int
    title: str | None
    image: str | None
    unit_price: Decimal | None
    available: bool

    @property
    def line_total(self) -> Decimal | None:
        if self.unit_price is None:
            return None
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CartView:
    """Cart contents joined with live catalogue data at read time."""

    user_id: str
    cart_id: str | None = None
    items: list[CartLineView] = field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items if item.line_total is not None), Decimal("0"))
