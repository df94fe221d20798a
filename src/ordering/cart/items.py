"""Cart item management: commands and handler.

Every command names the cart revision its caller read. The handler applies
it only if it can claim that revision; otherwise it returns None and the
caller re-reads the cart and decides again.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering


@ordering.command(part_of="ShoppingCart")
class CreateCart:
    user_id = Identifier(required=True)


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    revision = Integer(required=True)


@ordering.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=1)
    revision = Integer(required=True)


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    revision = Integer(required=True)


def _claimed_cart(cart_id, revision):
    """The cart, claimed for writing, or None if it moved past ``revision``."""
    repo = current_domain.repository_for(ShoppingCart)
    cart = repo.get(cart_id)
    if cart.revision != revision or not repo.claim(cart):
        return None
    return cart


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = ShoppingCart.create(command.user_id)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(AddToCart)
    def add_to_cart(self, command):
        cart = _claimed_cart(command.cart_id, command.revision)
        if cart is None:
            return None
        line_quantity = cart.add_item(product_id=command.product_id, quantity=command.quantity)
        current_domain.repository_for(ShoppingCart).add(cart)
        return line_quantity

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        cart = _claimed_cart(command.cart_id, command.revision)
        if cart is None:
            return None
        cart.update_quantity(product_id=command.product_id, new_quantity=command.new_quantity)
        current_domain.repository_for(ShoppingCart).add(cart)
        return command.new_quantity

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = _claimed_cart(command.cart_id, command.revision)
        if cart is None:
            return None
        cart.remove_item(product_id=command.product_id)
        current_domain.repository_for(ShoppingCart).add(cart)
        return True
