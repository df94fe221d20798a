"""Checkout: turns a cart snapshot into a pending order and a payment intent.

Flow:
    1. Re-check every line against current stock (it may have moved since
       the items were added to the cart)
    2. Snapshot title, image and price from the catalogue and compute the
       total; a caller-supplied total must agree with it
    3. Place the order as (pending, pending) in its own unit of work
    4. Ask the gateway for a payment intent; its approval reference goes back
       to the caller and is not stored on the order

Checkout never consumes the cart: only a successful capture takes purchased
items out of it. Abandoned checkouts therefore leave pending orders behind;
that is a normal state, and the customer can resume payment on them.
"""

import json
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from config import get_settings
from ordering.cart.cart import CartLine
from ordering.catalogue import CatalogueService, DomainCatalogue
from ordering.order.creation import PlaceOrder
from ordering.order.order import AddressSnapshot, Order
from ordering.order.payment import RecordPaymentIntent
from ordering.order.status import OrderStatus
from ordering.stock import StockValidator, require_positive_quantity
from payments.gateway import bounded_gateway
from payments.gateway.port import PaymentGateway
from shared.errors import AmountMismatch, GatewayUnavailable, InvalidTransition
from shared.money import to_money

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    total_amount: Decimal
    approval_reference: str


class CheckoutOrchestrator:
    def __init__(
        self,
        catalogue: CatalogueService | None = None,
        gateway: PaymentGateway | None = None,
    ) -> None:
        self.catalogue = catalogue or DomainCatalogue()
        self.stock = StockValidator(self.catalogue)
        self.gateway = gateway or bounded_gateway()

    @property
    def ledger(self):
        return current_domain.repository_for(Order)

    def create_order(
        self,
        user_id,
        cart_lines: list[CartLine],
        address: AddressSnapshot,
        payment_method: str,
        expected_total: Decimal | None = None,
    ) -> CheckoutResult:
        """Place a pending order for ``cart_lines`` and open a payment intent for it.

        Raises GatewayUnavailable, carrying the new order's id, when the
        intent cannot be created; the order stays pending for a later retry.
        """
        if not cart_lines:
            raise ValidationError({"cart": ["Cannot check out an empty cart"]})

        # A product listed twice must fit in stock as a whole
        wanted = Counter()
        for line in cart_lines:
            require_positive_quantity(line.quantity)
            wanted[line.product_id] += line.quantity
        products = {product_id: self.stock.check(product_id, quantity) for product_id, quantity in wanted.items()}

        lines_data = [
            {
                "product_id": line.product_id,
                "title": products[line.product_id].title,
                "image": products[line.product_id].image,
                "unit_price": str(products[line.product_id].effective_price),
                "quantity": line.quantity,
            }
            for line in cart_lines
        ]
        total = sum((to_money(line["unit_price"]) * line["quantity"] for line in lines_data), Decimal("0"))
        if expected_total is not None and to_money(expected_total) != total:
            raise AmountMismatch(expected_total, total)

        order_id = current_domain.process(
            PlaceOrder(
                user_id=str(user_id),
                lines=json.dumps(lines_data),
                address=json.dumps(address.to_dict()),
                payment_method=payment_method,
            ),
            asynchronous=False,
        )
        order = self.ledger.get_order(order_id)
        logger.info("order.placed", order_id=str(order.id), user_id=str(user_id), total_amount=str(order.total))

        approval_reference = self._request_intent(order)
        return CheckoutResult(
            order_id=str(order.id),
            total_amount=order.total,
            approval_reference=approval_reference,
        )

    def resume_payment(self, order_id, user_id) -> CheckoutResult:
        """Open a fresh payment intent for one of the user's unpaid pending orders."""
        order = self.ledger.get_for_user(order_id, user_id)
        if order.status != OrderStatus.PENDING or order.is_paid:
            raise InvalidTransition(
                order.order_status,
                OrderStatus.CONFIRMED.value,
                f"order is not awaiting payment (payment {order.payment_status})",
            )

        return CheckoutResult(
            order_id=str(order.id),
            total_amount=order.total,
            approval_reference=self._request_intent(order),
        )

    def _request_intent(self, order: Order) -> str:
        order_id = str(order.id)
        return_context = {
            "order_id": order_id,
            "return_url": get_settings().payment_return_url,
        }
        try:
            result = self.gateway.create_intent(order.total, return_context)
        except GatewayUnavailable as exc:
            exc.order_id = order_id
            logger.warning("payment.intent_unavailable", order_id=order_id, reason=exc.reason)
            raise

        if not result.success:
            logger.warning("payment.intent_rejected", order_id=order_id, reason=result.failure_reason)
            raise GatewayUnavailable(result.failure_reason or "intent rejected", order_id=order_id)

        current_domain.process(RecordPaymentIntent(order_id=order_id), asynchronous=False)
        logger.info("payment.intent_created", order_id=order_id, amount=str(order.total))
        return result.approval_reference
