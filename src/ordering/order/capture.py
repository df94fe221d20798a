"""Payment capture: finalizes a payment intent and confirms the order.

Capture is idempotent. Whatever number of times a capture callback arrives,
the order is marked paid once, ``PaymentCaptured`` is raised once and the
purchased items leave the cart once.

Writes happen in two units of work:
    1. Order write (all-or-nothing): payment ``paid``, order ``confirmed``,
       references stored
    2. Cart clear: the order's ``cart_cleared`` flag and the cart change
       commit together; a retried capture finishes a clear that was cut short

The gateway's verdict is only trusted for the order it was issued for: a
reference opened for another order, or for a different amount, is recorded
as a failed payment. A declined capture marks the payment ``failed`` and
leaves the order ``pending`` and the cart untouched so the customer can try
again. A gateway timeout changes nothing.
"""

from dataclasses import dataclass
from enum import Enum

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.order.order import Order
from ordering.order.payment import ClearPurchasedItems, RecordPaymentCaptured, RecordPaymentFailed
from ordering.order.status import OrderStatus
from payments.gateway import bounded_gateway
from payments.gateway.port import CaptureResult as GatewayVerdict
from payments.gateway.port import PaymentGateway
from shared.errors import ConcurrentUpdate, InvalidTransition
from shared.money import to_money

logger = structlog.get_logger(__name__)

CLEAR_ATTEMPTS = 3


class CaptureOutcome(Enum):
    CAPTURED = "Captured"
    ALREADY_CAPTURED = "AlreadyCaptured"
    FAILED = "Failed"


@dataclass(frozen=True)
class CaptureResult:
    outcome: CaptureOutcome
    order_id: str
    order_status: str
    payment_status: str
    failure_reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome != CaptureOutcome.FAILED


def verdict_mismatch(order: Order, verdict: GatewayVerdict) -> str | None:
    """Why a successful gateway verdict does not settle ``order``, or None if it does."""
    if verdict.order_id is None or str(verdict.order_id) != str(order.id):
        return "Payment reference was issued for a different order"
    if verdict.amount is None or to_money(verdict.amount) != order.total:
        return f"Captured amount {verdict.amount} does not match order total {order.total}"
    return None


class PaymentCaptureHandler:
    def __init__(self, gateway: PaymentGateway | None = None) -> None:
        self.gateway = gateway or bounded_gateway()

    @property
    def ledger(self):
        return current_domain.repository_for(Order)

    def capture(self, order_id, payment_reference: str, payer_reference: str, user_id=None) -> CaptureResult:
        """Capture the payment for ``order_id``.

        When ``user_id`` is given, only that user's orders are visible.
        """
        if not payment_reference or not payer_reference:
            raise ValidationError({"payment_reference": ["Payment and payer references are required"]})

        order = self.ledger.get_for_user(order_id, user_id) if user_id is not None else self.ledger.get_order(order_id)

        if order.is_paid:
            return self._already_captured(order)
        if order.status != OrderStatus.PENDING:
            raise InvalidTransition(order.order_status, OrderStatus.CONFIRMED.value, "order is no longer awaiting payment")

        # GatewayUnavailable propagates from here with nothing written
        verdict = self.gateway.capture_intent(payment_reference, payer_reference)

        if not verdict.success:
            return self._record_failure(order, payment_reference, verdict.failure_reason or "Capture declined")

        mismatch = verdict_mismatch(order, verdict)
        if mismatch:
            logger.warning(
                "payment.capture_mismatch",
                order_id=str(order.id),
                payment_reference=payment_reference,
                verdict_order_id=verdict.order_id,
                verdict_amount=str(verdict.amount),
            )
            return self._record_failure(order, payment_reference, mismatch)

        captured = current_domain.process(
            RecordPaymentCaptured(
                order_id=str(order.id),
                payment_reference=payment_reference,
                payer_reference=payer_reference,
            ),
            asynchronous=False,
        )
        if not captured:
            latest = self.ledger.get_order(order.id)
            if latest.is_paid:
                return self._already_captured(latest)
            raise InvalidTransition(latest.order_status, OrderStatus.CONFIRMED.value, "order changed concurrently")

        logger.info(
            "payment.captured",
            order_id=str(order.id),
            user_id=str(order.user_id),
            amount=str(order.total),
            gateway_transaction_id=verdict.gateway_transaction_id,
        )
        self._clear_cart(order)
        return self._result(CaptureOutcome.CAPTURED, self.ledger.get_order(order.id))

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _already_captured(self, order: Order) -> CaptureResult:
        logger.info("payment.already_captured", order_id=str(order.id))
        if not order.cart_cleared:
            self._clear_cart(order)
            order = self.ledger.get_order(order.id)
        return self._result(CaptureOutcome.ALREADY_CAPTURED, order)

    def _record_failure(self, order: Order, payment_reference: str, reason: str) -> CaptureResult:
        recorded = current_domain.process(
            RecordPaymentFailed(order_id=str(order.id), payment_reference=payment_reference, reason=reason),
            asynchronous=False,
        )
        latest = self.ledger.get_order(order.id)
        if recorded:
            logger.warning("payment.capture_failed", order_id=str(order.id), reason=reason)
            return self._result(CaptureOutcome.FAILED, latest, reason)

        if latest.is_paid:
            return self._already_captured(latest)
        return self._result(CaptureOutcome.FAILED, latest, reason)

    def _clear_cart(self, order: Order) -> None:
        """Take the order's lines out of the owner's cart, once per order."""
        for _ in range(CLEAR_ATTEMPTS):
            try:
                touched = current_domain.process(ClearPurchasedItems(order_id=str(order.id)), asynchronous=False)
            except ConcurrentUpdate:
                continue
            if touched is not None:
                logger.info("cart.cleared_after_capture", order_id=str(order.id), user_id=str(order.user_id), lines=touched)
            return

        # cart_cleared is still False, so the next capture call for this order retries
        logger.warning("cart.clear_deferred", order_id=str(order.id), user_id=str(order.user_id))

    @staticmethod
    def _result(outcome: CaptureOutcome, order: Order, failure_reason: str | None = None) -> CaptureResult:
        return CaptureResult(
            outcome=outcome,
            order_id=str(order.id),
            order_status=order.order_status,
            payment_status=order.payment_status,
            failure_reason=failure_reason,
        )
