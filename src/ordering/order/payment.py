"""Order payment: commands and handler.

Handles the payment lifecycle after checkout: intent created, capture
confirmed, capture declined, and the one-time removal of purchased items
from the owner's cart. Handlers return False (or None) instead of writing
when the order moved on under them; the caller re-reads and decides.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import CartLine, ShoppingCart
from ordering.domain import ordering
from ordering.order.order import Order
from shared.errors import ConcurrentUpdate


@ordering.command(part_of="Order")
class RecordPaymentIntent:
    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class RecordPaymentCaptured:
    order_id = Identifier(required=True)
    payment_reference = String(required=True, max_length=255)
    payer_reference = String(required=True, max_length=255)


@ordering.command(part_of="Order")
class RecordPaymentFailed:
    order_id = Identifier(required=True)
    payment_reference = String(required=True, max_length=255)
    reason = String(required=True, max_length=500)


@ordering.command(part_of="Order")
class ClearPurchasedItems:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class RecordPaymentHandler:
    @handle(RecordPaymentIntent)
    def record_payment_intent(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        order.record_intent()
        repo.add(order)

    @handle(RecordPaymentCaptured)
    def record_payment_captured(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        if order.is_paid or not repo.claim(order):
            return False
        order.record_capture(
            payment_reference=command.payment_reference,
            payer_reference=command.payer_reference,
        )
        repo.add(order)
        return True

    @handle(RecordPaymentFailed)
    def record_payment_failed(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        if order.is_paid or not repo.claim(order):
            return False
        order.record_payment_failure(payment_reference=command.payment_reference, reason=command.reason)
        repo.add(order)
        return True

    @handle(ClearPurchasedItems)
    def clear_purchased_items(self, command):
        """Returns the number of cart lines touched, or None if there was nothing to do."""
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        if not order.is_paid or order.cart_cleared or not repo.claim(order):
            return None

        touched = 0
        cart_repo = current_domain.repository_for(ShoppingCart)
        cart = cart_repo.for_user(order.user_id)
        if cart is not None:
            if not cart_repo.claim(cart):
                # Rolls the order claim back with it
                raise ConcurrentUpdate({"cart": ["Cart changed while clearing purchased items"]})
            purchased = [CartLine(product_id=str(line.product_id), quantity=line.quantity) for line in order.lines]
            touched = cart.remove_purchased(order.id, purchased)
            cart_repo.add(cart)

        order.mark_cart_cleared(touched)
        repo.add(order)
        return touched
