"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Identifier, Integer

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartCreated:
    """A customer's cart was opened by their first add."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """Units of a product were added to the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    __version__ = "v1"

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = "v1"

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@ordering.event(part_of="ShoppingCart")
class PurchasedItemsRemoved:
    """A captured order's lines were taken out of the live cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    lines_touched = Integer(required=True)
