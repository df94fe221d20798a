"""Cart store: the customer-facing cart operations.

Each write reads the cart, validates against live stock, then sends a
command naming the revision it read. A command that loses its revision to a
concurrent writer changes nothing, and the store re-reads and tries again,
so a decision is never applied to a cart it was not made against. Stock is
checked before anything is written: a rejected call leaves the cart exactly
as it was.

Every attempt is its own unit of work. The store never touches a caller's
transaction.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from sqlalchemy.exc import IntegrityError

from ordering.cart.cart import CartLine, CartLineView, CartView, ShoppingCart
from ordering.cart.items import AddToCart, CreateCart, RemoveFromCart, UpdateCartQuantity
from ordering.catalogue import CatalogueService, DomainCatalogue
from ordering.stock import StockValidator, require_positive_quantity
from shared.errors import ConcurrentUpdate, not_found

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 3


class CartStore:
    def __init__(self, catalogue: CatalogueService | None = None) -> None:
        self.catalogue = catalogue or DomainCatalogue()
        self.stock = StockValidator(self.catalogue)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _cart_for(self, user_id) -> ShoppingCart | None:
        return current_domain.repository_for(ShoppingCart).for_user(user_id)

    def _ensure_cart(self, user_id) -> ShoppingCart:
        cart = self._cart_for(user_id)
        if cart is not None:
            return cart

        try:
            cart_id = current_domain.process(CreateCart(user_id=str(user_id)), asynchronous=False)
        except (IntegrityError, ValidationError):
            # Another request opened it first
            cart = self._cart_for(user_id)
            if cart is None:
                raise
            return cart

        logger.info("cart.created", cart_id=cart_id, user_id=str(user_id))
        return self._cart_for(user_id)

    @staticmethod
    def _too_busy(product_id):
        return ConcurrentUpdate({"cart": [f"Cart line for {product_id} is changing too quickly, try again"]})

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------
    def add_item(self, user_id, product_id, quantity) -> int:
        """Add ``quantity`` units, merging with an existing line. Returns the line's new quantity."""
        require_positive_quantity(quantity)
        product_id = str(product_id)

        for _ in range(MAX_ATTEMPTS):
            cart = self._cart_for(user_id)
            combined = quantity + (cart.quantity_of(product_id) if cart else 0)
            self.stock.check(product_id, combined)

            if cart is None:
                cart = self._ensure_cart(user_id)
                if cart.quantity_of(product_id):
                    # Someone else's first add already holds this product
                    continue

            line_quantity = current_domain.process(
                AddToCart(cart_id=str(cart.id), product_id=product_id, quantity=quantity, revision=cart.revision),
                asynchronous=False,
            )
            if line_quantity is None:
                continue

            logger.info(
                "cart.item_added",
                user_id=str(user_id),
                product_id=product_id,
                quantity=quantity,
                line_quantity=line_quantity,
            )
            return line_quantity

        raise self._too_busy(product_id)

    def update_quantity(self, user_id, product_id, quantity) -> None:
        """Replace the quantity of an existing line."""
        if quantity == 0:
            raise ValidationError({"quantity": ["Quantity must be positive; remove the item instead"]})
        require_positive_quantity(quantity)
        product_id = str(product_id)

        for _ in range(MAX_ATTEMPTS):
            cart = self._cart_for(user_id)
            if cart is None or cart.item_for(product_id) is None:
                raise not_found("cart item", product_id)

            self.stock.check(product_id, quantity)
            applied = current_domain.process(
                UpdateCartQuantity(
                    cart_id=str(cart.id),
                    product_id=product_id,
                    new_quantity=quantity,
                    revision=cart.revision,
                ),
                asynchronous=False,
            )
            if applied is not None:
                logger.info("cart.quantity_updated", user_id=str(user_id), product_id=product_id, quantity=quantity)
                return

        raise self._too_busy(product_id)

    def remove_item(self, user_id, product_id) -> None:
        """Remove a line. Removing a line that is not there is a no-op."""
        product_id = str(product_id)

        for _ in range(MAX_ATTEMPTS):
            cart = self._cart_for(user_id)
            if cart is None or cart.item_for(product_id) is None:
                return

            applied = current_domain.process(
                RemoveFromCart(cart_id=str(cart.id), product_id=product_id, revision=cart.revision),
                asynchronous=False,
            )
            if applied:
                logger.info("cart.item_removed", user_id=str(user_id), product_id=product_id)
                return

        raise self._too_busy(product_id)

    def lines(self, user_id) -> list[CartLine]:
        """The cart's product lines, in the order they were added."""
        cart = self._cart_for(user_id)
        return cart.lines if cart else []

    def get_cart(self, user_id) -> CartView:
        """Current lines joined with live catalogue data (not persisted)."""
        cart = self._cart_for(user_id)
        items = []
        for line in cart.lines if cart else []:
            product = self.catalogue.get_product(line.product_id)
            items.append(
                CartLineView(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    title=product.title if product else None,
                    image=product.image if product else None,
                    unit_price=product.effective_price if product else None,
                    available=product is not None and line.quantity <= product.stock,
                )
            )
        return CartView(user_id=str(user_id), cart_id=str(cart.id) if cart else None, items=items)
